"""Node/edge binding helpers.

Result node bindings are keyed by query-graph node ids, which differ between
reasoners. Each key is classified as the result subject or object by the
first matching rule in BINDING_RULES.
"""
from collections import namedtuple
from typing import Any, Callable, Optional

from .utils import ensure_list

SUBJECT = "subject"
OBJECT = "object"

BindingRule = namedtuple("BindingRule", ["name", "matches", "role"])


def exact(*keys: str) -> Callable[[str], bool]:
    return lambda key: key in keys


def contains(*fragments: str) -> Callable[[str], bool]:
    return lambda key: any(fragment in key for fragment in fragments)


BINDING_RULES = [
    BindingRule("named object", exact("on", "object_node"), OBJECT),
    BindingRule("named subject", exact("sn", "subject_node"), SUBJECT),
    BindingRule("positional object", exact("n0", "n00"), OBJECT),
    BindingRule("positional subject", exact("n1", "n01"), SUBJECT),
    BindingRule("fallback object", contains("0", "object"), OBJECT),
    BindingRule("fallback subject", contains("1", "subject"), SUBJECT),
]


def classify_binding_key(key: str, rules: list[BindingRule] = BINDING_RULES) -> Optional[str]:
    """Get the role of a node binding key, or None if no rule matches."""
    for rule in rules:
        if rule.matches(key):
            return rule.role
    return None


def binding_id(binding: Any) -> Optional[str]:
    """Get the bound id from a binding in any of the observed shapes."""
    if isinstance(binding, str):
        return binding
    if isinstance(binding, dict):
        return binding.get("id") or binding.get("kg_id")
    return None


def first_bound_id(bindings: Any) -> Optional[str]:
    """Get the first bound id of a node binding list."""
    for binding in ensure_list(bindings):
        bound = binding_id(binding)
        if bound:
            return bound
    return None


def bound_ids(bindings: Any) -> list[str]:
    """Get all bound ids of an edge binding list."""
    return [
        bound
        for binding in ensure_list(bindings)
        if (bound := binding_id(binding))
    ]


def resolve_roles(
    node_bindings: dict,
    rules: list[BindingRule] = BINDING_RULES,
) -> dict[str, str]:
    """Map role -> bound node id.

    Keys are visited in binding order and the last key classified to a role
    wins.
    """
    roles = {}
    for key, bindings in (node_bindings or {}).items():
        node_id = first_bound_id(bindings)
        if node_id is None:
            continue
        role = classify_binding_key(key, rules)
        if role is not None:
            roles[role] = node_id
    return roles
