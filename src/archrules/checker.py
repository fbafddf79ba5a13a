"""Check orchestrator: load config, snapshot, and rules; evaluate; build the report."""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import TYPE_CHECKING

from archrules.catalog.loader import load_catalog
from archrules.config import load_config
from archrules.engine.rule_loader import load_rules
from archrules.engine.rules import evaluate_rules
from archrules.errors import ArchRulesError
from archrules.reporting.reporter import Report, build_report

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


class CheckError(ArchRulesError):
    """Raised when a check cannot run: bad config, snapshot, or rules file."""


def check(
    project_root: Path,
    *,
    catalog_path: Path | None = None,
    rules_path: Path | None = None,
    workers: int | None = None,
) -> Report:
    """Evaluate a project's rules against its type snapshot.

    Parameters
    ----------
    project_root:
        Root of the project (where ``.archrules/`` lives).
    catalog_path, rules_path:
        Explicit input files; when *None* the values from
        ``.archrules/config.yml`` (or its defaults) are used.
    workers:
        Number of threads used to evaluate rules; overrides the config.

    Returns
    -------
    Report
        Results of every rule, in rules-file order.  Rule failures are part of
        the report, never exceptions.

    Raises
    ------
    CheckError
        When the config, snapshot, or rules file is missing or invalid.
    """
    start = time.monotonic()

    try:
        config = load_config(project_root)
    except ArchRulesError as exc:
        msg = f"Invalid configuration: {exc}"
        raise CheckError(msg) from exc

    if catalog_path is not None:
        config = replace(config, catalog_path=catalog_path)
    if rules_path is not None:
        config = replace(config, rules_path=rules_path)
    if workers is not None:
        config = replace(config, workers=workers)

    if not config.catalog_path.is_file():
        msg = f"Type snapshot not found: {config.catalog_path}"
        raise CheckError(msg)
    if not config.rules_path.is_file():
        msg = f"Rules file not found: {config.rules_path}"
        raise CheckError(msg)

    try:
        catalog = load_catalog(config.catalog_path)
        rules = load_rules(config.rules_path)
        results = evaluate_rules(catalog, rules, workers=config.workers)
    except ArchRulesError as exc:
        msg = f"{type(exc).__name__}: {exc}"
        raise CheckError(msg) from exc

    warnings = [
        f"Rule '{r.rule_name}' matched no types and passed vacuously"
        for r in results
        if r.vacuous
    ]

    elapsed = (time.monotonic() - start) * 1000
    logger.info(
        "Evaluated %d rules against %d types in %.1fms", len(rules), len(catalog), elapsed
    )
    return build_report(
        results,
        assembly=catalog.assembly,
        types_scanned=len(catalog),
        elapsed_ms=elapsed,
        warnings=warnings,
    )
