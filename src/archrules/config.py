"""Project configuration: read ``.archrules/config.yml`` and resolve input paths."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import yaml

from archrules.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_DIR = ".archrules"
CONFIG_FILE = "config.yml"
DEFAULT_CATALOG = "catalog.yml"
DEFAULT_RULES = "rules.yml"

VALID_OUTPUT_FORMATS: frozenset[str] = frozenset({"text", "json", "porcelain", "rich"})

_CONFIG_KEYS: frozenset[str] = frozenset({"catalog", "rules", "workers", "format"})


@dataclass(frozen=True)
class ArchRulesConfig:
    """Resolved settings for one project."""

    project_root: Path
    catalog_path: Path
    rules_path: Path
    workers: int = 1
    output_format: str | None = None


def _resolve(project_root: Path, value: object, default: str, key: str) -> Path:
    if value is None:
        return project_root / CONFIG_DIR / default
    if not isinstance(value, str) or not value.strip():
        msg = f"{CONFIG_FILE}: '{key}' must be a non-empty string"
        raise ConfigError(msg)
    path = Path(value)
    return path if path.is_absolute() else project_root / path


def load_config(project_root: Path) -> ArchRulesConfig:
    """Read ``<project_root>/.archrules/config.yml``; a missing file yields defaults.

    Relative paths in the file are resolved against *project_root*.
    """
    config_path = project_root / CONFIG_DIR / CONFIG_FILE
    data: object = {}
    if config_path.is_file():
        logger.debug("Reading config from %s", config_path)
        try:
            data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as exc:
            msg = f"Cannot read {config_path}: {exc}"
            raise ConfigError(msg) from exc

    if not isinstance(data, dict):
        msg = f"{CONFIG_FILE} must be a YAML mapping"
        raise ConfigError(msg)

    unknown = sorted(set(data) - _CONFIG_KEYS)
    if unknown:
        msg = f"{CONFIG_FILE}: unknown key(s) {unknown}"
        raise ConfigError(msg)

    workers_raw = data.get("workers", 1)
    if isinstance(workers_raw, bool) or not isinstance(workers_raw, int) or workers_raw < 1:
        msg = f"{CONFIG_FILE}: 'workers' must be a positive integer"
        raise ConfigError(msg)

    fmt = data.get("format")
    if fmt is not None and fmt not in VALID_OUTPUT_FORMATS:
        msg = (
            f"{CONFIG_FILE}: invalid format '{fmt}', "
            f"must be one of {sorted(VALID_OUTPUT_FORMATS)}"
        )
        raise ConfigError(msg)

    return ArchRulesConfig(
        project_root=project_root,
        catalog_path=_resolve(project_root, data.get("catalog"), DEFAULT_CATALOG, "catalog"),
        rules_path=_resolve(project_root, data.get("rules"), DEFAULT_RULES, "rules"),
        workers=workers_raw,
        output_format=fmt,
    )
