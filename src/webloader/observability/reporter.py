"""Load Report Generator.

Builds a summary of a finished load, writes it as JSON and renders it with rich.
"""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import structlog
from rich.console import Console
from rich.table import Table

from ..dependency.planner import StepPlan
from ..models.results import FetchResult

logger = structlog.get_logger(__name__)


@dataclass
class LoadReport:
    """
    Structured report data for one load.

    Attributes:
        status: Final status (completed, failed)
        start_time: Start timestamp (ISO format)
        end_time: End timestamp (ISO format)
        duration_seconds: Total duration
        step_count: Number of steps in the plan
        total_resources: Resources in the plan
        loaded_resources: Resources that loaded successfully
        failed_resources: Resources that failed
        fallback_used: Resources served by their fallback URL
        total_bytes: Sum of fetched body sizes
        resources: Per-resource rows
    """

    status: str
    start_time: str
    end_time: str
    duration_seconds: float
    step_count: int
    total_resources: int
    loaded_resources: int
    failed_resources: int
    fallback_used: int
    total_bytes: int = 0
    resources: list[dict[str, Any]] = field(default_factory=list)


class ReportGenerator:
    """Generate reports for load sessions."""

    def generate_report(
        self,
        start_time: datetime,
        end_time: datetime,
        plan: StepPlan,
        results: list[FetchResult],
    ) -> LoadReport:
        """
        Generate report object from load data.

        Args:
            start_time: Start timestamp
            end_time: End timestamp
            plan: The step plan that was executed
            results: Per-resource results collected so far

        Returns:
            LoadReport object
        """
        loaded = sum(1 for r in results if r.success)
        failed = sum(1 for r in results if not r.success)
        status = "completed" if failed == 0 and loaded == plan.total_resources else "failed"

        rows = [
            {
                "id": r.resource_id,
                "step": r.step_index,
                "success": r.success,
                "url": r.url,
                "used_fallback": r.used_fallback,
                "bytes": r.resource.size if r.resource else 0,
                "duration_ms": round(r.duration_ms, 2) if r.duration_ms is not None else None,
                "error": r.error_message,
            }
            for r in results
        ]

        return LoadReport(
            status=status,
            start_time=start_time.isoformat(),
            end_time=end_time.isoformat(),
            duration_seconds=(end_time - start_time).total_seconds(),
            step_count=len(plan.steps),
            total_resources=plan.total_resources,
            loaded_resources=loaded,
            failed_resources=failed,
            fallback_used=sum(1 for r in results if r.success and r.used_fallback),
            total_bytes=sum(row["bytes"] for row in rows),
            resources=rows,
        )

    def save_json(self, report: LoadReport, path: Path) -> Path:
        """
        Write the report as JSON.

        Args:
            report: Report to write
            path: Destination file

        Returns:
            The path written
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(asdict(report), f, indent=2)

        logger.info("Load report written", path=str(path))
        return path

    def print_summary(self, report: LoadReport, console: Console) -> None:
        """Render the report as a rich table."""
        table = Table(title=f"Load {report.status}")
        table.add_column("Step", justify="right")
        table.add_column("Resource")
        table.add_column("Source")
        table.add_column("Bytes", justify="right")
        table.add_column("ms", justify="right")
        table.add_column("Status")

        for row in report.resources:
            if row["success"]:
                status = "[yellow]fallback[/yellow]" if row["used_fallback"] else "[green]ok[/green]"
            else:
                status = f"[red]failed[/red] {row['error'] or ''}"
            table.add_row(
                str(row["step"]),
                row["id"],
                row["url"] or "-",
                str(row["bytes"]),
                "-" if row["duration_ms"] is None else f"{row['duration_ms']:.1f}",
                status,
            )

        console.print(table)
        console.print(
            f"{report.loaded_resources}/{report.total_resources} resources loaded "
            f"in {report.step_count} steps ({report.duration_seconds:.2f}s, "
            f"{report.fallback_used} via fallback)"
        )
