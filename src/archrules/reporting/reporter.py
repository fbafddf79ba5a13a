"""Aggregate RuleResults into a report and render it as text, JSON, porcelain, or Rich."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from collections.abc import Iterable

    from rich.console import Console

    from archrules.engine.rules import RuleResult


VALID_FORMATS: frozenset[str] = frozenset({"text", "json", "porcelain"})


@dataclass(frozen=True)
class Report:
    """Summary of one evaluation run."""

    results: tuple[RuleResult, ...] = ()
    assembly: str = ""
    types_scanned: int = 0
    elapsed_ms: float = 0.0
    warnings: tuple[str, ...] = ()

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def passed_count(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def failed_count(self) -> int:
        return self.total - self.passed_count

    @property
    def failures(self) -> tuple[RuleResult, ...]:
        return tuple(r for r in self.results if r.failed)

    @property
    def vacuous_count(self) -> int:
        return sum(1 for r in self.results if r.vacuous)

    @property
    def has_errors(self) -> bool:
        """True if a rule with ``error`` severity failed."""
        return any(r.severity == "error" for r in self.failures)

    @property
    def has_warnings(self) -> bool:
        return any(r.severity == "warn" for r in self.failures)


def build_report(
    results: Iterable[RuleResult],
    *,
    assembly: str = "",
    types_scanned: int = 0,
    elapsed_ms: float = 0.0,
    warnings: Iterable[str] = (),
) -> Report:
    return Report(
        results=tuple(results),
        assembly=assembly,
        types_scanned=types_scanned,
        elapsed_ms=elapsed_ms,
        warnings=tuple(warnings),
    )


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


def format_text(report: Report) -> str:
    """Format a report as plain human-readable text.

    Example output with a failure::

        Rules: 3 evaluated against 12 types (Architecture)

        ✗ controller-names [error]
          Controller classes must end with 'Controller'
          Architecture.Controllers.ItemCtrl

        1 of 3 rules failed (0.8ms)
    """
    lines: list[str] = []
    where = f" ({report.assembly})" if report.assembly else ""
    lines.append(f"Rules: {report.total} evaluated against {report.types_scanned} types{where}")
    lines.append("")

    for warning in report.warnings:
        lines.append(f"! {warning}")
    if report.warnings:
        lines.append("")

    for result in report.failures:
        lines.append(f"✗ {result.rule_name} [{result.severity}]")
        if result.description and result.description != result.rule_name:
            lines.append(f"  {result.description}")
        if result.violating_full_names:
            for full_name in result.violating_full_names:
                lines.append(f"  {full_name}")
        else:
            lines.append("  (no candidate types)")
        lines.append("")

    elapsed = f"{report.elapsed_ms:.1f}ms"
    if report.failures:
        lines.append(f"{report.failed_count} of {report.total} rules failed ({elapsed})")
    else:
        lines.append(f"✓ All {report.total} rules passed ({elapsed})")
    if report.vacuous_count:
        lines.append(f"  {report.vacuous_count} rule(s) matched no types and passed vacuously")

    return "\n".join(lines)


def report_to_dict(report: Report) -> dict[str, object]:
    """Serialize a report to a JSON-compatible dict."""
    results_list: list[dict[str, object]] = []
    for r in report.results:
        results_list.append(
            {
                "rule_name": r.rule_name,
                "description": r.description,
                "severity": r.severity,
                "passed": r.passed,
                "vacuous": r.vacuous,
                "candidate_count": r.candidate_count,
                "violating_type_names": list(r.violating_type_names),
                "violating_full_names": list(r.violating_full_names),
            }
        )

    return {
        "results": results_list,
        "summary": {
            "assembly": report.assembly,
            "rules_evaluated": report.total,
            "passed": report.passed_count,
            "failed": report.failed_count,
            "vacuous": report.vacuous_count,
            "types_scanned": report.types_scanned,
            "elapsed_ms": report.elapsed_ms,
        },
        "warnings": list(report.warnings),
    }


def format_json(report: Report) -> str:
    return json.dumps(report_to_dict(report), indent=2)


def format_porcelain(report: Report) -> str:
    """Format failures one violator per line: ``rule_name:severity:full_name``.

    A failed rule with no violators (an existence rule over zero candidates)
    produces ``rule_name:severity:`` with an empty last field.  Returns an
    empty string when every rule passed.
    """
    lines: list[str] = []
    for r in report.failures:
        if not r.violating_full_names:
            lines.append(f"{r.rule_name}:{r.severity}:")
        for full_name in r.violating_full_names:
            lines.append(f"{r.rule_name}:{r.severity}:{full_name}")
    return "\n".join(lines)


_FORMATTERS: dict[str, Callable[[Report], str]] = {
    "text": format_text,
    "json": format_json,
    "porcelain": format_porcelain,
}


def render(report: Report, fmt: str = "text") -> str:
    """Render *report* in one of :data:`VALID_FORMATS`."""
    formatter = _FORMATTERS.get(fmt)
    if formatter is None:
        msg = f"unknown report format '{fmt}', must be one of {sorted(VALID_FORMATS)}"
        raise ValueError(msg)
    return formatter(report)


def render_rich(report: Report, console: Console) -> None:
    """Render a report as a Rich table followed by violator details."""
    from rich.table import Table

    title = f"Architecture rules: {report.assembly}" if report.assembly else "Architecture rules"
    table = Table(title=title)
    table.add_column("Rule", style="bold")
    table.add_column("Severity")
    table.add_column("Candidates", justify="right")
    table.add_column("Result")

    for r in report.results:
        if r.passed:
            outcome = "[dim]pass (vacuous)[/dim]" if r.vacuous else "[green]pass[/green]"
        elif r.severity == "warn":
            outcome = f"[yellow]warn ({len(r.violating_full_names)})[/yellow]"
        else:
            outcome = f"[red]fail ({len(r.violating_full_names)})[/red]"
        table.add_row(r.rule_name, r.severity, str(r.candidate_count), outcome)

    console.print(table)

    for warning in report.warnings:
        console.print(f"[yellow]![/yellow] {warning}")

    for r in report.failures:
        color = "yellow" if r.severity == "warn" else "red"
        console.print()
        console.print(f"[{color}]✗ {r.rule_name}[/{color}]: {r.description}")
        for full_name in r.violating_full_names:
            console.print(f"  [{color}]-[/{color}] {full_name}")

    console.print()
    console.print(
        f"{report.passed_count} passed, {report.failed_count} failed, "
        f"{report.total} rules ({report.types_scanned} types, {report.elapsed_ms:.1f}ms)"
    )
