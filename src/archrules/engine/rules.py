"""Rules and their evaluation: selector + condition -> RuleResult."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING

from archrules.engine.predicates import context_for
from archrules.errors import InvalidRuleDefinition

if TYPE_CHECKING:
    from collections.abc import Sequence

    from archrules.catalog.catalog import TypeCatalog
    from archrules.catalog.model import TypeDescriptor
    from archrules.engine.predicates import EvaluationContext, Predicate
    from archrules.engine.selectors import Selector

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

VALID_RULE_SEVERITIES: frozenset[str] = frozenset({"error", "warn"})

QUANTIFIER_ALL = "all"
QUANTIFIER_ANY = "any"
VALID_QUANTIFIERS: frozenset[str] = frozenset({QUANTIFIER_ALL, QUANTIFIER_ANY})


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RuleResult:
    """Outcome of evaluating one rule against one catalog.

    ``violating_type_names`` holds simple names and ``violating_full_names``
    the matching identities, both in catalog declaration order.  ``vacuous``
    is True when the selector matched nothing.
    """

    rule_name: str
    description: str
    passed: bool
    violating_type_names: tuple[str, ...] = ()
    violating_full_names: tuple[str, ...] = ()
    severity: str = "error"
    candidate_count: int = 0
    vacuous: bool = False

    @property
    def failed(self) -> bool:
        return not self.passed


@dataclass(frozen=True)
class Rule:
    """Stateless pairing of a selector with a condition.

    With the default ``all`` quantifier every candidate must satisfy the
    condition, and an empty candidate set passes vacuously.  With ``any`` the
    rule is an existence claim: at least one candidate must satisfy it, so an
    empty candidate set fails.
    """

    name: str
    selector: Selector
    condition: Predicate
    description: str = ""
    severity: str = "error"
    quantifier: str = QUANTIFIER_ALL

    def __post_init__(self) -> None:
        if self.severity not in VALID_RULE_SEVERITIES:
            msg = (
                f"Rule '{self.name}': invalid severity '{self.severity}', "
                f"must be one of {sorted(VALID_RULE_SEVERITIES)}"
            )
            raise InvalidRuleDefinition(msg)
        if self.quantifier not in VALID_QUANTIFIERS:
            msg = (
                f"Rule '{self.name}': invalid quantifier '{self.quantifier}', "
                f"must be one of {sorted(VALID_QUANTIFIERS)}"
            )
            raise InvalidRuleDefinition(msg)

    def describe(self) -> str:
        """Return the rule description, generated from its parts when none was given."""
        if self.description:
            return self.description
        should = "at least one should" if self.quantifier == QUANTIFIER_ANY else "should"
        return f"Types that {self.selector.describe()} {should} {self.condition.describe()}"

    def evaluate(self, catalog: TypeCatalog, *, workers: int = 1) -> RuleResult:
        """Evaluate this rule; *workers* > 1 checks candidates in a thread pool."""
        self.selector.bind(catalog)
        self.condition.bind(catalog)
        ctx = context_for(catalog)
        if workers > 1:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                return _evaluate(self, ctx, pool)
        return _evaluate(self, ctx, None)


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


def _evaluate(rule: Rule, ctx: EvaluationContext, pool: ThreadPoolExecutor | None) -> RuleResult:
    catalog = ctx.catalog
    candidates = catalog.in_declaration_order(rule.selector.resolve(ctx))
    description = rule.describe()

    if not candidates and rule.quantifier == QUANTIFIER_ALL:
        logger.warning("Rule '%s' selected no types and passes vacuously", rule.name)
        return RuleResult(
            rule_name=rule.name,
            description=description,
            passed=True,
            severity=rule.severity,
            vacuous=True,
        )

    def check(descriptor: TypeDescriptor) -> tuple[str, bool]:
        return descriptor.full_name, rule.condition.matches(descriptor, ctx)

    outcomes = pool.map(check, candidates) if pool is not None else map(check, candidates)
    satisfied: set[str] = set()
    failing: set[str] = set()
    for identity, ok in outcomes:
        (satisfied if ok else failing).add(identity)

    if rule.quantifier == QUANTIFIER_ANY:
        passed = bool(satisfied)
        # An existence claim that fails is failed by every candidate.
        violators = () if passed else candidates
    else:
        passed = not failing
        # Restore declaration order regardless of completion order.
        violators = catalog.in_declaration_order(failing)

    logger.debug(
        "Rule '%s': %d candidate(s), %d violation(s)", rule.name, len(candidates), len(violators)
    )
    return RuleResult(
        rule_name=rule.name,
        description=description,
        passed=passed,
        violating_type_names=tuple(t.name for t in violators),
        violating_full_names=tuple(t.full_name for t in violators),
        severity=rule.severity,
        candidate_count=len(candidates),
        vacuous=False,
    )


def evaluate_rules(
    catalog: TypeCatalog, rules: Sequence[Rule], *, workers: int = 1
) -> list[RuleResult]:
    """Evaluate every rule against *catalog* and return results in rule order.

    Rules are independent pure functions of the catalog, so with *workers* > 1
    they run concurrently; the result list still follows the order of *rules*.
    """
    if workers < 1:
        msg = f"workers must be at least 1, got {workers}"
        raise ValueError(msg)

    for rule in rules:
        rule.selector.bind(catalog)
        rule.condition.bind(catalog)

    ctx = context_for(catalog)
    if workers == 1 or len(rules) < 2:
        return [_evaluate(rule, ctx, None) for rule in rules]

    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(_evaluate, rule, ctx, None) for rule in rules]
        return [f.result() for f in futures]
