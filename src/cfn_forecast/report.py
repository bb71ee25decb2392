"""
Report generation for forecasts.

Turns the accumulated forecast into a verdict, console lines, and JSON or
Markdown files.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .estimates import format_estimate
from .models import Action, Forecast

STYLE_FAIL = "fail"
STYLE_PASS = "pass"
STYLE_PLAIN = "plain"


@dataclass
class ForecastReport:
    """Complete forecast for one run."""

    run_id: str
    timestamp_utc: str
    stack_name: str
    action: Action
    region: str
    account_id: str
    forecast: Forecast = field(default_factory=Forecast)
    total_seconds: int = 0

    @property
    def succeeded(self) -> bool:
        """True when no check failed."""
        return self.forecast.num_failed == 0

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1

    def render_lines(self, show_all: bool = False) -> list[tuple[str, str]]:
        """
        Render the report as (style, text) lines.

        Args:
            show_all: Include passing checks as well as failures

        Returns:
            Lines in display order; style is one of "fail", "pass", "plain"
        """
        forecast = self.forecast
        lines: list[tuple[str, str]] = []

        if not self.succeeded:
            lines.append((STYLE_FAIL, "Stormy weather ahead! 🌪"))
            lines.append((STYLE_PLAIN, ""))
            lines.append(
                (
                    STYLE_FAIL,
                    f"{forecast.num_failed} checks failed out of "
                    f"{forecast.num_checked} total checks",
                )
            )
            lines.extend((STYLE_FAIL, str(m)) for m in forecast.failed)
            if show_all:
                lines.append((STYLE_PLAIN, ""))
                lines.append(
                    (
                        STYLE_PASS,
                        f"{forecast.num_passed} checks passed out of "
                        f"{forecast.num_checked} total checks",
                    )
                )
                lines.extend((STYLE_PASS, str(m)) for m in forecast.passed)
            return lines

        lines.append(
            (
                STYLE_PASS,
                f"Clear skies! 🌞 All {forecast.num_checked} checks passed. "
                f"Estimated time: {format_estimate(self.total_seconds)}",
            )
        )
        if show_all:
            lines.append((STYLE_PLAIN, ""))
            lines.extend((STYLE_PASS, str(m)) for m in forecast.passed)
        return lines

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "run_id": self.run_id,
            "timestamp_utc": self.timestamp_utc,
            "stack": {
                "name": self.stack_name,
                "action": self.action.value,
                "region": self.region,
                "account_id": self.account_id,
            },
            "summary": {
                "succeeded": self.succeeded,
                "checked": self.forecast.num_checked,
                "passed": self.forecast.num_passed,
                "failed": self.forecast.num_failed,
                "estimated_seconds": self.total_seconds,
            },
            "forecast": self.forecast.to_dict(),
        }


class ReportGenerator:
    """Generates report files from a forecast."""

    def __init__(self, report: ForecastReport):
        self.report = report

    def generate_json(self, path: Path | None = None) -> str:
        """
        Generate JSON report.

        Args:
            path: Optional path to write the report to

        Returns:
            JSON string of the report
        """
        json_str = json.dumps(self.report.to_dict(), indent=2)

        if path:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json_str)

        return json_str

    def generate_markdown(self, path: Path | None = None) -> str:
        """
        Generate Markdown report.

        Args:
            path: Optional path to write the report to

        Returns:
            Markdown string of the report
        """
        report = self.report
        forecast = report.forecast
        lines: list[str] = []

        lines.append("# Deployment Forecast\n")
        status = "✅ CLEAR" if report.succeeded else "❌ STORMY"
        lines.append(f"**Status:** {status}\n")

        lines.append("## Metadata\n")
        lines.append("| Field | Value |")
        lines.append("|-------|-------|")
        lines.append(f"| Run ID | `{report.run_id}` |")
        lines.append(f"| Timestamp | {report.timestamp_utc} |")
        lines.append(f"| Stack | {report.stack_name} |")
        lines.append(f"| Action | {report.action.value} |")
        lines.append(f"| Account | {report.account_id} |")
        lines.append(f"| Region | {report.region} |")
        lines.append(f"| Estimated time | {format_estimate(report.total_seconds)} |")
        lines.append("")

        lines.append("## Summary\n")
        lines.append(
            f"**Checks:** {forecast.num_passed} passed, "
            f"{forecast.num_failed} failed, {forecast.num_checked} total\n"
        )

        for title, messages in (("Failed", forecast.failed), ("Passed", forecast.passed)):
            if not messages:
                continue
            lines.append(f"## {title} Checks\n")
            lines.append("| Line | Type | Resource | Condition |")
            lines.append("|------|------|----------|-----------|")
            for m in messages:
                condition = f"❓ {m.condition}" if m.unknown else m.condition
                lines.append(f"| {m.line} | `{m.type_name}` | {m.logical_id} | {condition} |")
            lines.append("")

        markdown = "\n".join(lines)

        if path:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(markdown)

        return markdown


def generate_report(
    report: ForecastReport,
    output_dir: Path,
    formats: list[str] | None = None,
) -> dict[str, Path]:
    """
    Generate reports in specified formats.

    Args:
        report: The forecast report
        output_dir: Directory to write reports to
        formats: List of formats ("json", "md"). Defaults to both.

    Returns:
        Dictionary mapping format to output path
    """
    if formats is None:
        formats = ["json", "md"]

    generator = ReportGenerator(report)
    output_dir.mkdir(parents=True, exist_ok=True)

    result: dict[str, Path] = {}

    if "json" in formats:
        json_path = output_dir / f"forecast-{report.run_id}.json"
        generator.generate_json(json_path)
        result["json"] = json_path

    if "md" in formats:
        md_path = output_dir / f"forecast-{report.run_id}.md"
        generator.generate_markdown(md_path)
        result["md"] = md_path

    return result
