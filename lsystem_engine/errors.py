"""Exception hierarchy shared by the grammar builder, the engine and the CLI."""

from __future__ import annotations


class LSystemError(Exception):
    pass


class GrammarError(LSystemError, ValueError):
    """Raised while a grammar is being built; never during rewriting."""


class ConfigError(GrammarError):
    pass


class VarTypeError(LSystemError, TypeError):
    pass


class UnknownVariableError(LSystemError, KeyError):
    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable.
        return str(self.args[0]) if self.args else ""


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise GrammarError(msg)
