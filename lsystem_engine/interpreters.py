"""Interpreter protocol and a few stock interpreters.

The engine treats an interpreter as three callbacks plus a result accessor:

  before(state)     once, seq == 0 and no current symbol
  interpret(state)  once per symbol of the final generation, seq 1..n
  after(state)      once, seq == n
  get_result()      value returned from ``LSystem.rewrite``

Interpreters own their accumulators and reset them in ``before``, so one
instance can be reused across rewrite calls (but not concurrently).
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Hashable
from typing import IO, Any, Generic, TypeVar

from .state import Occurrence, State

S = TypeVar("S", bound=Hashable)
R = TypeVar("R")


class Interpreter(Generic[S, R]):
    def before(self, state: State[S]) -> None:
        pass

    def interpret(self, state: State[S]) -> None:
        raise NotImplementedError

    def after(self, state: State[S]) -> None:
        pass

    def get_result(self) -> R | None:
        return None

    def and_then(self, other: Interpreter[S, Any]) -> Interpreter[S, R]:
        """Chain ``other`` after this interpreter.

        Every hook runs on ``self`` first and then on ``other``; the combined
        result is this interpreter's result alone.
        """
        if other is None:
            raise TypeError("and_then() requires an interpreter")
        return _Chained(self, other)


class _Chained(Interpreter[S, R]):
    def __init__(self, first: Interpreter[S, R], second: Interpreter[S, Any]) -> None:
        self._first = first
        self._second = second

    def before(self, state: State[S]) -> None:
        self._first.before(state)
        self._second.before(state)

    def interpret(self, state: State[S]) -> None:
        self._first.interpret(state)
        self._second.interpret(state)

    def after(self, state: State[S]) -> None:
        self._first.after(state)
        self._second.after(state)

    def get_result(self) -> R | None:
        return self._first.get_result()


# -------------------------
# Stock interpreters
# -------------------------


class CountingInterpreter(Interpreter[Any, int]):
    def __init__(self) -> None:
        self._count = 0

    def before(self, state: State[Any]) -> None:
        self._count = 0

    def interpret(self, state: State[Any]) -> None:
        self._count += 1

    def get_result(self) -> int:
        return self._count


class JoiningInterpreter(Interpreter[Any, str]):
    def __init__(self, separator: str | None = None) -> None:
        self._separator = separator or ""
        self._parts: list[str] = []

    def before(self, state: State[Any]) -> None:
        self._parts = []

    def interpret(self, state: State[Any]) -> None:
        self._parts.append(str(state.sym))

    def get_result(self) -> str:
        return self._separator.join(self._parts)


class PrintingInterpreter(Interpreter[Any, None]):
    def __init__(self, stream: IO[str] | None = None) -> None:
        self._stream = stream

    def _out(self) -> IO[str]:
        # Resolved lazily so redirected stdout is honoured.
        return self._stream if self._stream is not None else sys.stdout

    def interpret(self, state: State[Any]) -> None:
        print(state.sym, end="", file=self._out())

    def after(self, state: State[Any]) -> None:
        print(file=self._out())


class TracingInterpreter(Interpreter[Any, list[str]]):
    """Records each occurrence as ``symbol`` or ``symbol(p1,p2,...)``."""

    def __init__(self) -> None:
        self._trace: list[str] = []

    def before(self, state: State[Any]) -> None:
        self._trace = []

    def interpret(self, state: State[Any]) -> None:
        self._trace.append(str(Occurrence(state.sym, state.params)))

    def get_result(self) -> list[str]:
        return list(self._trace)


class FunctionInterpreter(Interpreter[S, None]):
    def __init__(self, fn: Callable[[State[S]], Any]) -> None:
        self._fn = fn

    def interpret(self, state: State[S]) -> None:
        self._fn(state)


def counting() -> CountingInterpreter:
    return CountingInterpreter()


def joining(separator: str | None = None) -> JoiningInterpreter:
    return JoiningInterpreter(separator)


def printing(stream: IO[str] | None = None) -> PrintingInterpreter:
    return PrintingInterpreter(stream)


def tracing() -> TracingInterpreter:
    return TracingInterpreter()


def interpreting(fn: Callable[[State[S]], Any]) -> FunctionInterpreter[S]:
    """Adapt a plain ``fn(state)`` callable into an interpreter."""
    return FunctionInterpreter(fn)
