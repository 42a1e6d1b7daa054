"""Branch conditions and the fold that assembles them from builder calls.

A condition is a small tree of leaves (``Probability``, ``Predicate``,
``Precedes``, ``Follows``) joined by ``Not``, ``And`` and ``Or``. Trees are
assembled strictly left to right by ``ConditionFolder``:

  - ``not`` wraps the next leaf;
  - ``and``/``or`` combine everything folded so far with the next leaf;
  - two leaves with no combinator between them are joined with ``and``.

There is no operator precedence: ``a or b and c`` folds to ``(a or b) and c``.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Any, Literal

from .errors import GrammarError, _require
from .variables import Var


class Condition:
    def evaluate(self, state: Any) -> bool:
        raise NotImplementedError

    def refs(self) -> tuple[str, ...]:
        """Variable names this condition reads, for build-time validation."""
        return ()


@dataclass(frozen=True)
class Probability(Condition):
    p: float

    def __post_init__(self) -> None:
        _require(
            isinstance(self.p, (int, float)) and not isinstance(self.p, bool),
            "probability must be a number",
        )
        _require(0.0 < self.p < 1.0, f"probability must be in (0, 1); got {self.p}")

    def evaluate(self, state: Any) -> bool:
        # A fresh draw on every attempt; never cached across generations.
        return state.random.random() < self.p


@dataclass(frozen=True)
class Predicate(Condition):
    fn: Callable[[Any], Any]
    uses: tuple[str, ...] = ()

    def evaluate(self, state: Any) -> bool:
        result = self.fn(state)
        if isinstance(result, Var):
            return result.bool_val()
        return bool(result)

    def refs(self) -> tuple[str, ...]:
        return self.uses


@dataclass(frozen=True)
class Precedes(Condition):
    """Matches when the nearest left neighbours equal ``symbols``, nearest first."""

    symbols: tuple[Hashable, ...]

    def __post_init__(self) -> None:
        _require(len(self.symbols) > 0, "precedes requires at least one symbol")

    def evaluate(self, state: Any) -> bool:
        return state.left(len(self.symbols)) == self.symbols


@dataclass(frozen=True)
class Follows(Condition):
    """Mirror of ``Precedes`` on the right-hand side."""

    symbols: tuple[Hashable, ...]

    def __post_init__(self) -> None:
        _require(len(self.symbols) > 0, "follows requires at least one symbol")

    def evaluate(self, state: Any) -> bool:
        return state.right(len(self.symbols)) == self.symbols


@dataclass(frozen=True)
class Not(Condition):
    operand: Condition

    def evaluate(self, state: Any) -> bool:
        return not self.operand.evaluate(state)

    def refs(self) -> tuple[str, ...]:
        return self.operand.refs()


@dataclass(frozen=True)
class And(Condition):
    left: Condition
    right: Condition

    def evaluate(self, state: Any) -> bool:
        return self.left.evaluate(state) and self.right.evaluate(state)

    def refs(self) -> tuple[str, ...]:
        return self.left.refs() + self.right.refs()


@dataclass(frozen=True)
class Or(Condition):
    left: Condition
    right: Condition

    def evaluate(self, state: Any) -> bool:
        return self.left.evaluate(state) or self.right.evaluate(state)

    def refs(self) -> tuple[str, ...]:
        return self.left.refs() + self.right.refs()


# -------------------------
# Fold
# -------------------------

_Combinator = Literal["and", "or"]


class ConditionFolder:
    """Two-stack fold over a sequence of leaf / combinator calls."""

    def __init__(self) -> None:
        self._operands: list[Condition] = []
        self._operators: list[_Combinator] = []
        self._negations = 0

    @property
    def empty(self) -> bool:
        return not self._operands and not self._operators and not self._negations

    def push_leaf(self, leaf: Condition) -> None:
        for _ in range(self._negations):
            leaf = Not(leaf)
        self._negations = 0

        if not self._operands:
            self._operands.append(leaf)
            return

        op = self._operators.pop() if self._operators else "and"
        prev = self._operands.pop()
        self._operands.append(And(prev, leaf) if op == "and" else Or(prev, leaf))

    def push_not(self) -> None:
        self._negations += 1

    def push_combinator(self, op: _Combinator) -> None:
        _require(bool(self._operands), f"'{op}' must follow a condition")
        _require(
            not self._operators and not self._negations,
            f"'{op}' must be followed by a condition",
        )
        self._operators.append(op)

    def result(self) -> Condition | None:
        """Finish the fold; ``None`` when no condition was pushed."""
        if self._operators or self._negations:
            dangling = self._operators[-1] if self._operators else "not"
            raise GrammarError(f"'{dangling}' is not followed by a condition")
        return self._operands[-1] if self._operands else None
