"""Engine domain: dependency graph, selectors, conditions, rules, and the rule builder.

Selector and condition factories share names (``have_name_ending_with`` exists
in both), so they are reached through their modules rather than re-exported::

    from archrules.engine import conditions, selectors
"""

from archrules.engine.builder import RuleBuilder, types
from archrules.engine.dependencies import (
    DependencyEdge,
    DependencyGraphBuilder,
    graph_for,
)
from archrules.engine.predicates import EvaluationContext, Predicate, context_for
from archrules.engine.rule_loader import load_rules, parse_rules
from archrules.engine.rules import Rule, RuleResult, evaluate_rules
from archrules.engine.selectors import Selector, select

__all__ = [
    "DependencyEdge",
    "DependencyGraphBuilder",
    "EvaluationContext",
    "Predicate",
    "Rule",
    "RuleBuilder",
    "RuleResult",
    "Selector",
    "context_for",
    "evaluate_rules",
    "graph_for",
    "load_rules",
    "parse_rules",
    "select",
    "types",
]
