"""
Backend-neutral filter predicates.

Adapters receive lists of ``Criterion`` expressed in canonical field names and
translate them to SQL clauses, PostgREST query parameters or Baserow filters.
Anything a backend cannot express natively is evaluated with ``matches``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

OP_EQ = "eq"
OP_IN = "in"
OP_NEQ = "neq"

ALL_OPS = frozenset({OP_EQ, OP_IN, OP_NEQ})


@dataclass(frozen=True)
class Criterion:
    field: str
    op: str
    value: Any

    def __post_init__(self):
        if self.op not in ALL_OPS:
            raise ValueError(f"Unsupported operator: {self.op}")


def eq(field: str, value: Any) -> Criterion:
    return Criterion(field, OP_EQ, value)


def neq(field: str, value: Any) -> Criterion:
    return Criterion(field, OP_NEQ, value)


def in_(field: str, values: Iterable[Any]) -> Criterion:
    return Criterion(field, OP_IN, tuple(values))


def _same(left: Any, right: Any) -> bool:
    if left == right:
        return True
    # REST backends hand ids back as strings or ints depending on column type
    if left is None or right is None:
        return False
    return str(left) == str(right)


def matches(row: Mapping[str, Any], criteria: Sequence[Criterion]) -> bool:
    """Return True when ``row`` satisfies every criterion."""
    for c in criteria:
        value = row.get(c.field)
        if c.op == OP_EQ and not _same(value, c.value):
            return False
        if c.op == OP_NEQ and _same(value, c.value):
            return False
        if c.op == OP_IN and not any(_same(value, v) for v in c.value):
            return False
    return True
