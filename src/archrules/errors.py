"""Exception hierarchy shared by the catalog, the rule engine, and the CLI.

Only engine misuse and malformed input travel through exceptions.  A rule
that finds violations returns an ordinary failed ``RuleResult``.
"""

from __future__ import annotations


class ArchRulesError(Exception):
    """Base class for every error raised by archrules."""


class MalformedMetadata(ArchRulesError, ValueError):
    """Raised when a type snapshot is inconsistent or cannot be parsed."""


class InvalidRuleDefinition(ArchRulesError, ValueError):
    """Raised when a rule is built or declared incorrectly."""


class ConfigError(ArchRulesError):
    """Raised when ``.archrules/config.yml`` cannot be read or is invalid."""
