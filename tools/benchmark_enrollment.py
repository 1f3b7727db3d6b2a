#!/usr/bin/env -S uv run
"""
Enrollment Benchmark Tool for simplq

Measures concurrent enroll_token throughput for each storage adapter and
lock scope, and checks that every queue ended up with exactly the token
numbers 1..N.

Usage:
    uv run tools/benchmark_enrollment.py
    uv run tools/benchmark_enrollment.py --operations 500 --queues 4
    uv run tools/benchmark_enrollment.py --adapters memory --scopes global,queue
    uv run tools/benchmark_enrollment.py --help
"""
# /// script
# requires-python = ">=3.11"
# dependencies = [
#     "pydantic>=2.0",
#     "pydantic-settings>=2.0",
#     "structlog>=24.1",
#     "typer>=0.9.0",
#     "rich>=13.0",
# ]
# ///

from __future__ import annotations

import asyncio
import statistics
import sys
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from time import perf_counter

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

# Import simplq from the local checkout when run as a standalone script
sys.path.insert(0, str(Path(__file__).parent.parent))

from simplq import (
    InMemoryStorage,
    LocalFileSystemStorage,
    Queue,
    QueueService,
    Settings,
    Token,
    setup_logging,
)
from simplq.ports.storage import ObjectStoragePort

app = typer.Typer(
    help="Benchmark simplq token enrollment",
    add_completion=False,
)


# ---------------------------------------------------------------------------
# Data Classes
# ---------------------------------------------------------------------------


@dataclass
class BenchmarkConfig:
    """Configuration for benchmark runs."""

    operations: int = 200
    queues: int = 1
    adapters: list[str] = field(default_factory=lambda: ["memory", "filesystem"])
    scopes: list[str] = field(default_factory=lambda: ["global", "queue"])


@dataclass
class BenchmarkResult:
    """Results from a single benchmark run."""

    adapter_name: str
    lock_scope: str
    total_ops: int
    total_time: float
    latencies: list[float]  # seconds
    gapless: bool

    @property
    def ops_per_sec(self) -> float:
        return self.total_ops / self.total_time if self.total_time > 0 else 0.0

    @property
    def p50(self) -> float:
        return statistics.median(self.latencies) if self.latencies else 0.0

    def percentile(self, fraction: float) -> float:
        if not self.latencies:
            return 0.0
        ordered = sorted(self.latencies)
        return ordered[min(int(len(ordered) * fraction), len(ordered) - 1)]

    @staticmethod
    def format_latency_ms(seconds: float) -> str:
        ms = seconds * 1000
        if ms < 1:
            return f"{ms:.3f}ms"
        elif ms < 10:
            return f"{ms:.2f}ms"
        else:
            return f"{ms:.1f}ms"


# ---------------------------------------------------------------------------
# Core Benchmark
# ---------------------------------------------------------------------------


def create_storage_adapter(adapter_name: str, temp_dir: Path) -> ObjectStoragePort:
    """Create a fresh storage adapter ("memory" or "filesystem")."""
    if adapter_name == "memory":
        return InMemoryStorage()
    elif adapter_name == "filesystem":
        return LocalFileSystemStorage(Path(tempfile.mkdtemp(dir=temp_dir)))
    else:
        raise ValueError(f"Unknown adapter: {adapter_name}")


async def benchmark_enrollment(
    service: QueueService,
    operations: int,
    queues: int,
) -> tuple[list[float], bool]:
    """
    Enroll ``operations`` tokens spread round-robin over ``queues`` queues,
    all at once.

    Returns
    -------
    (latencies, gapless) : per-call latency in seconds, and whether every
                           queue holds exactly the numbers 1..N
    """
    queue_ids = [
        await service.create_queue(Queue(name=f"bench-{i}")) for i in range(queues)
    ]

    async def enroll_one(i: int) -> float:
        start = perf_counter()
        await service.enroll_token(queue_ids[i % queues], Token(name=f"holder-{i}"))
        return perf_counter() - start

    latencies = list(await asyncio.gather(*(enroll_one(i) for i in range(operations))))

    gapless = True
    for queue_id in queue_ids:
        queue = await service.read_queue(queue_id)
        numbers = [t.token_number for t in queue.tokens]
        gapless = gapless and numbers == list(range(1, len(numbers) + 1))
    return latencies, gapless


async def run_benchmarks(config: BenchmarkConfig, temp_dir: Path) -> list[BenchmarkResult]:
    results = []
    for adapter_name in config.adapters:
        for scope in config.scopes:
            storage = create_storage_adapter(adapter_name, temp_dir)
            service = QueueService.from_storage(storage, lock_scope=scope)
            start = perf_counter()
            latencies, gapless = await benchmark_enrollment(
                service, config.operations, config.queues
            )
            results.append(
                BenchmarkResult(
                    adapter_name=adapter_name,
                    lock_scope=scope,
                    total_ops=config.operations,
                    total_time=perf_counter() - start,
                    latencies=latencies,
                    gapless=gapless,
                )
            )
    return results


# ---------------------------------------------------------------------------
# Result Formatting
# ---------------------------------------------------------------------------


def format_results(results: list[BenchmarkResult], queues: int) -> None:
    console = Console()
    console.print()
    console.print(
        Panel(
            f"[bold cyan]Enrollment Benchmark Results[/bold cyan] ({queues} queue(s))",
            expand=False,
        )
    )

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Adapter", style="cyan")
    table.add_column("Lock scope", style="cyan")
    table.add_column("Ops/sec", justify="right", style="green")
    table.add_column("P50", justify="right")
    table.add_column("P95", justify="right")
    table.add_column("P99", justify="right")
    table.add_column("Gapless", justify="center")

    for result in results:
        table.add_row(
            result.adapter_name,
            result.lock_scope,
            f"{result.ops_per_sec:.1f}",
            result.format_latency_ms(result.p50),
            result.format_latency_ms(result.percentile(0.95)),
            result.format_latency_ms(result.percentile(0.99)),
            "[green]yes[/green]" if result.gapless else "[red]NO[/red]",
        )

    console.print(table)
    console.print()


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


@app.command()
def main(
    operations: int = typer.Option(
        200,
        "--operations",
        "-n",
        help="Number of concurrent enrollments per run",
    ),
    queues: int = typer.Option(
        1,
        "--queues",
        "-q",
        help="Number of queues the enrollments are spread over",
    ),
    adapters: str = typer.Option(
        "memory,filesystem",
        "--adapters",
        "-a",
        help="Comma-separated adapters to test",
    ),
    scopes: str = typer.Option(
        "global,queue",
        "--scopes",
        "-s",
        help="Comma-separated lock scopes to test",
    ),
) -> None:
    """
    Benchmark concurrent token enrollment.

    Every enrollment of a run is started at the same time. The Gapless column
    reports whether each queue's numbers came out as exactly 1..N.
    """
    setup_logging(Settings(log_level="WARNING", log_format="console"))

    config = BenchmarkConfig(
        operations=operations,
        queues=queues,
        adapters=[a.strip() for a in adapters.split(",")],
        scopes=[s.strip() for s in scopes.split(",")],
    )

    with tempfile.TemporaryDirectory() as temp_dir_str:
        results = asyncio.run(run_benchmarks(config, Path(temp_dir_str)))

    format_results(results, config.queues)
    if not all(r.gapless for r in results):
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
