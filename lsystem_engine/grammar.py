from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Generic, TypeVar, Union

from .conditions import Condition
from .errors import GrammarError, _require
from .state import Occurrence, State
from .variables import Var, wrap

S = TypeVar("S", bound=Hashable)


# -------------------------
# Value expressions
# -------------------------


@dataclass(frozen=True)
class LiteralValue:
    value: Var

    def evaluate(self, state: State[Any]) -> Var:
        return self.value

    def refs(self) -> tuple[str, ...]:
        return ()


@dataclass(frozen=True)
class NamedRef:
    name: str

    def evaluate(self, state: State[Any]) -> Var:
        return state.var(self.name)

    def refs(self) -> tuple[str, ...]:
        return (self.name,)


@dataclass(frozen=True)
class Computed:
    """A value produced by calling ``fn(state)``; plain results are wrapped."""

    fn: Callable[[State[Any]], Any]
    uses: tuple[str, ...] = ()

    def evaluate(self, state: State[Any]) -> Var:
        return wrap(self.fn(state))

    def refs(self) -> tuple[str, ...]:
        return self.uses


ValueExpr = Union[LiteralValue, NamedRef, Computed]


# -------------------------
# Outputs, branches, rules
# -------------------------


@dataclass(frozen=True)
class OutputItem(Generic[S]):
    symbol: S
    values: tuple[ValueExpr, ...] = ()


@dataclass(frozen=True)
class OutputSpec(Generic[S]):
    items: tuple[OutputItem[S], ...] = ()

    def __len__(self) -> int:
        return len(self.items)

    def refs(self) -> Iterable[str]:
        for item in self.items:
            for v in item.values:
                yield from v.refs()

    def instantiate(self, state: State[Any]) -> list[Occurrence[S]]:
        # Values are evaluated strictly left to right, item by item, since
        # computed expressions may depend on side effects of earlier ones.
        return [
            Occurrence(item.symbol, tuple(v.evaluate(state) for v in item.values))
            for item in self.items
        ]


@dataclass(frozen=True)
class Branch(Generic[S]):
    output: OutputSpec[S]
    condition: Condition | None = None

    @property
    def unconditional(self) -> bool:
        return self.condition is None

    def matches(self, state: State[Any]) -> bool:
        return self.condition is None or self.condition.evaluate(state)


@dataclass(frozen=True)
class Rule(Generic[S]):
    symbol: S
    branches: tuple[Branch[S], ...]
    variables: tuple[str, ...] = ()

    def select(self, state: State[Any]) -> Branch[S] | None:
        """First branch whose condition holds, in declaration order."""
        for branch in self.branches:
            if branch.matches(state):
                return branch
        return None


@dataclass(frozen=True)
class Grammar(Generic[S]):
    """Immutable axiom, rule table and skip set.

    Validation runs on construction, so an invalid grammar can never reach the
    rewrite engine.
    """

    axiom: OutputSpec[S]
    rules: Mapping[S, Rule[S]] = field(default_factory=dict)
    skip: frozenset[S] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "rules", MappingProxyType(dict(self.rules)))
        object.__setattr__(self, "skip", frozenset(self.skip))
        _validate(self)

    def lookup(self, symbol: S) -> Rule[S] | None:
        return self.rules.get(symbol)


def _validate(grammar: Grammar[Any]) -> None:
    for name in grammar.axiom.refs():
        raise GrammarError(
            f"axiom references variable {name!r}; the axiom has no variables"
        )

    for key, rule in grammar.rules.items():
        _require(
            key == rule.symbol,
            f"rule registered under {key!r} is defined for {rule.symbol!r}",
        )
        declared = set(rule.variables)
        _require(
            len(declared) == len(rule.variables),
            f"rule {key!r} declares a variable more than once: {list(rule.variables)}",
        )

        for i, branch in enumerate(rule.branches):
            if branch.unconditional:
                _require(
                    i == len(rule.branches) - 1,
                    f"rule {key!r}: unconditional branch must be declared last",
                )

            refs = list(branch.output.refs())
            if branch.condition is not None:
                refs.extend(branch.condition.refs())
            for name in refs:
                _require(
                    name in declared,
                    f"rule {key!r} references undeclared variable {name!r}",
                )
