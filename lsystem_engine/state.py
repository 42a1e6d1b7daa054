from __future__ import annotations

import random
from collections.abc import Hashable, Sequence
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from .context import left_context, right_context
from .errors import UnknownVariableError
from .variables import BoolVar, IntVar, RealVar, Var, wrap

S = TypeVar("S", bound=Hashable)


@dataclass(frozen=True)
class Occurrence(Generic[S]):
    """A symbol instance within a generation, with its bound parameters."""

    symbol: S
    params: tuple[Var, ...] = ()

    def __str__(self) -> str:
        if not self.params:
            return str(self.symbol)
        return f"{self.symbol}({','.join(str(p) for p in self.params)})"


class State(Generic[S]):
    """Rewrite-time state handed to predicates, computed values and interpreters.

    One instance is created per rewrite call (and per interpretation pass) and
    repointed at every occurrence as the engine walks a generation. It must not
    be retained or shared across calls.
    """

    def __init__(
        self,
        rng: random.Random | None = None,
        skip: frozenset[S] = frozenset(),
    ) -> None:
        self.random = rng if rng is not None else random.Random()
        self._skip = skip
        self._seq = 0
        self._sym: S | None = None
        self._params: tuple[Var, ...] = ()
        self._vars: dict[str, Var] = {}
        self._generation: Sequence[Occurrence[S]] = ()
        self._index = -1

    def _enter(
        self,
        occurrence: Occurrence[S] | None,
        names: Sequence[str] = (),
        *,
        seq: int = 0,
        generation: Sequence[Occurrence[S]] = (),
        index: int = -1,
    ) -> None:
        self._seq = seq
        if occurrence is None:
            self._sym = None
            self._params = ()
            self._vars = {}
        else:
            self._sym = occurrence.symbol
            self._params = occurrence.params
            # zip stops at the shorter side: missing names stay unbound and
            # surplus params are reachable through ``params`` only.
            self._vars = dict(zip(names, occurrence.params))
        self._generation = generation
        self._index = index

    # -------------------------
    # Accessors
    # -------------------------

    @property
    def seq(self) -> int:
        return self._seq

    @property
    def sym(self) -> S | None:
        return self._sym

    @property
    def params(self) -> tuple[Var, ...]:
        return self._params

    def is_(self, symbol: S) -> bool:
        return self._sym == symbol

    def var(self, name: str) -> Var:
        try:
            return self._vars[name]
        except KeyError:
            raise UnknownVariableError(
                f"variable {name!r} is not bound for symbol {self._sym!r}"
            ) from None

    def set(self, name: str, value: Any) -> Var:
        v = wrap(value)
        self._vars[name] = v
        return v

    # -------------------------
    # Context
    # -------------------------

    def left(self, n: int = 1) -> tuple[S, ...]:
        """Up to ``n`` nearest left neighbours, skip-set members elided."""
        return left_context(self._generation, self._index, self._skip, n)

    def right(self, n: int = 1) -> tuple[S, ...]:
        return right_context(self._generation, self._index, self._skip, n)

    # -------------------------
    # Value wrapping
    # -------------------------

    @staticmethod
    def wrap(value: Any) -> Var:
        return wrap(value)

    @staticmethod
    def wrap_bool(value: bool) -> BoolVar:
        return BoolVar(bool(value))

    @staticmethod
    def wrap_real(value: float) -> RealVar:
        return RealVar(float(value))

    @staticmethod
    def wrap_int(value: int) -> IntVar:
        return IntVar(int(value))
