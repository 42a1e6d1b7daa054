"""Fluent construction of grammars.

Example (the classic algae system)::

    ls = (
        string_symbols()
        .rule("a").out("a", "b")
        .rule("b").out("a")
        .axiom().out("a")
        .build()
    )
    ls.rewrite(4, joining())  # -> "abaababa"

Builder calls are recorded into an explicit accumulation record (``_Draft``)
and nothing is checked against the finished grammar until ``build()``, which
freezes the record into an immutable ``Grammar``. Misuse that can be detected
from the call sequence alone (a combinator with nothing to combine, a second
``otherwise()``) fails immediately with ``GrammarError``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable, Iterable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from .conditions import (
    Condition,
    ConditionFolder,
    Follows,
    Precedes,
    Predicate,
    Probability,
)
from .engine import LSystem
from .errors import GrammarError, VarTypeError, _require
from .grammar import (
    Branch,
    Computed,
    Grammar,
    LiteralValue,
    NamedRef,
    OutputItem,
    OutputSpec,
    Rule,
    ValueExpr,
)
from .state import State
from .variables import wrap

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=Hashable)
_B = TypeVar("_B", bound="Builder[Any]")


# -------------------------
# Accumulation record
# -------------------------


@dataclass
class _OutputDraft:
    symbol: Any
    values: list[ValueExpr] = field(default_factory=list)
    exploded: bool = False


@dataclass
class _BranchDraft:
    folder: ConditionFolder = field(default_factory=ConditionFolder)
    unconditional: bool = False
    outputs: list[_OutputDraft] = field(default_factory=list)


@dataclass
class _RuleDraft:
    symbol: Any
    is_axiom: bool = False
    variables: list[str] = field(default_factory=list)
    branches: list[_BranchDraft] = field(default_factory=list)

    @property
    def label(self) -> str:
        return "axiom" if self.is_axiom else f"rule {self.symbol!r}"


@dataclass
class _Draft:
    rules: dict[Any, _RuleDraft] = field(default_factory=dict)
    axiom: _RuleDraft | None = None
    skip: list[Any] = field(default_factory=list)

    # cursor
    rule: _RuleDraft | None = None
    last_out: list[_OutputDraft] = field(default_factory=list)


# -------------------------
# Builder
# -------------------------


class Builder(Generic[S]):
    def __init__(self) -> None:
        self._draft = _Draft()

    # Alphabet adapters override this to convert/validate literals.
    def _symbol(self, value: Any) -> S:
        try:
            hash(value)
        except TypeError:
            raise GrammarError(f"symbol {value!r} is not hashable") from None
        return value

    # -------------------------
    # Scopes
    # -------------------------

    def axiom(self: _B) -> _B:
        d = self._draft
        _require(d.axiom is None, "axiom is already defined")
        d.axiom = _RuleDraft(
            symbol=None, is_axiom=True, branches=[_BranchDraft(unconditional=True)]
        )
        d.rule = d.axiom
        d.last_out = []
        return self

    def rule(self: _B, symbol: Any) -> _B:
        d = self._draft
        sym = self._symbol(symbol)
        _require(sym not in d.rules, f"rule {sym!r} is already defined")
        d.rule = d.rules[sym] = _RuleDraft(symbol=sym)
        d.last_out = []
        return self

    def define(self: _B, *names: str) -> _B:
        rule = self._scope("define")
        _require(not rule.is_axiom, "the axiom cannot declare variables")
        for name in names:
            _require(
                isinstance(name, str) and name.isidentifier(),
                f"variable name must be an identifier; got {name!r}",
            )
            _require(
                name not in rule.variables,
                f"{rule.label} declares variable {name!r} twice",
            )
            rule.variables.append(name)
        return self

    def skipping(self: _B, *symbols: Any) -> _B:
        """Hide ``symbols`` from context matching; applies to the whole grammar."""
        for s in symbols:
            sym = self._symbol(s)
            if sym not in self._draft.skip:
                self._draft.skip.append(sym)
        return self

    # -------------------------
    # Conditions
    # -------------------------

    def probably(self: _B, probability: float) -> _B:
        return self._leaf("probably", Probability(probability))

    def when(
        self: _B, fn: Callable[[State[Any]], Any], uses: Iterable[str] = ()
    ) -> _B:
        """Add a predicate leaf; ``fn(state)`` decides whether the branch fires.

        ``uses`` names the rule variables ``fn`` reads. Only those names are
        checked against the rule's declarations by ``build()``; a read of an
        undeclared name that is not listed fails at rewrite time instead.
        """
        _require(callable(fn), "when() requires a callable")
        return self._leaf("when", Predicate(fn, _uses("when", uses)))

    def precedes(self: _B, *symbols: Any) -> _B:
        return self._leaf(
            "precedes", Precedes(tuple(self._symbol(s) for s in symbols))
        )

    def follows(self: _B, *symbols: Any) -> _B:
        return self._leaf("follows", Follows(tuple(self._symbol(s) for s in symbols)))

    def not_(self: _B) -> _B:
        self._conditional_branch("not").folder.push_not()
        return self

    def and_(self: _B) -> _B:
        self._open_condition("and").folder.push_combinator("and")
        return self

    def or_(self: _B) -> _B:
        self._open_condition("or").folder.push_combinator("or")
        return self

    def otherwise(self: _B) -> _B:
        rule = self._scope("otherwise")
        _require(not rule.is_axiom, "otherwise() is not allowed in the axiom")
        _require(
            not any(b.unconditional for b in rule.branches),
            f"{rule.label} already has an unconditional branch",
        )
        rule.branches.append(_BranchDraft(unconditional=True))
        self._draft.last_out = []
        return self

    # -------------------------
    # Output
    # -------------------------

    def out(self: _B, *symbols: Any) -> _B:
        _require(len(symbols) > 0, "out() requires at least one symbol")
        rule = self._scope("out")
        if not rule.branches:
            rule.branches.append(_BranchDraft(unconditional=True))
        branch = rule.branches[-1]
        batch = [_OutputDraft(self._symbol(s)) for s in symbols]
        branch.outputs.extend(batch)
        self._draft.last_out = batch
        return self

    def val(self: _B, value: Any) -> _B:
        try:
            v = wrap(value)
        except VarTypeError as e:
            raise GrammarError(str(e)) from e
        return self._value("val", LiteralValue(v))

    def var(self: _B, name: str) -> _B:
        _require(isinstance(name, str), f"variable name must be a string; got {name!r}")
        return self._value("var", NamedRef(name))

    def fun(
        self: _B, fn: Callable[[State[Any]], Any], uses: Iterable[str] = ()
    ) -> _B:
        """Append a value computed by ``fn(state)`` to the last output.

        As with ``when()``, listing the variables ``fn`` reads in ``uses`` is
        what lets ``build()`` reject undeclared names.
        """
        _require(callable(fn), "fun() requires a callable")
        return self._value("fun", Computed(fn, _uses("fun", uses)))

    # -------------------------
    # Finalize
    # -------------------------

    def build(self) -> LSystem[S]:
        d = self._draft
        if d.axiom is None:
            raise GrammarError("axiom is not defined")

        axiom = _output_spec(d.axiom.branches[0])
        rules: dict[Any, Rule[S]] = {}
        for sym, rd in d.rules.items():
            _require(bool(rd.branches), f"{rd.label} defines no branches")
            rules[sym] = Rule(
                symbol=sym,
                branches=tuple(_branch(rd, b) for b in rd.branches),
                variables=tuple(rd.variables),
            )

        grammar: Grammar[S] = Grammar(axiom=axiom, rules=rules, skip=frozenset(d.skip))
        logger.debug(
            "built grammar: %d rule(s), axiom of %d symbol(s), skip=%s",
            len(rules),
            len(axiom),
            sorted(map(repr, grammar.skip)),
        )
        return LSystem(grammar)

    # -------------------------
    # Cursor helpers
    # -------------------------

    def _scope(self, call: str) -> _RuleDraft:
        rule = self._draft.rule
        if rule is None:
            raise GrammarError(f"{call}() must follow rule() or axiom()")
        return rule

    def _conditional_branch(self, call: str) -> _BranchDraft:
        """The branch a condition leaf applies to, starting a new one if needed."""
        rule = self._scope(call)
        _require(not rule.is_axiom, f"{call}() is not allowed in the axiom")
        current = rule.branches[-1] if rule.branches else None
        if current is None or current.outputs or current.unconditional:
            _require(
                not any(b.unconditional for b in rule.branches),
                f"{rule.label}: conditional branch declared after the "
                "unconditional branch",
            )
            current = _BranchDraft()
            rule.branches.append(current)
            self._draft.last_out = []
        return current

    def _open_condition(self, call: str) -> _BranchDraft:
        rule = self._scope(call)
        current = rule.branches[-1] if rule.branches else None
        if current is None or current.unconditional or current.outputs:
            raise GrammarError(f"'{call}' must follow a condition")
        return current

    def _leaf(self: _B, call: str, leaf: Condition) -> _B:
        self._conditional_branch(call).folder.push_leaf(leaf)
        return self

    def _value(self: _B, call: str, expr: ValueExpr) -> _B:
        last = self._draft.last_out
        _require(bool(last), f"{call}() must follow out()")
        item = last[-1]
        _require(not item.exploded, "an exploded output cannot carry values")
        item.values.append(expr)
        return self


def _uses(call: str, uses: Iterable[str]) -> tuple[str, ...]:
    if isinstance(uses, str):
        return (uses,)
    names = tuple(uses)
    for name in names:
        _require(
            isinstance(name, str), f"{call}() uses must name variables; got {name!r}"
        )
    return names


def _output_spec(branch: _BranchDraft) -> OutputSpec[Any]:
    return OutputSpec(
        tuple(OutputItem(o.symbol, tuple(o.values)) for o in branch.outputs)
    )


def _branch(rule: _RuleDraft, branch: _BranchDraft) -> Branch[Any]:
    if branch.unconditional:
        return Branch(_output_spec(branch))
    try:
        condition = branch.folder.result()
    except GrammarError as e:
        raise GrammarError(f"{rule.label}: {e}") from e
    return Branch(_output_spec(branch), condition)


# -------------------------
# Alphabet adapters
# -------------------------


class IntBuilder(Builder[int]):
    def _symbol(self, value: Any) -> int:
        _require(
            isinstance(value, int) and not isinstance(value, bool),
            f"int alphabet expects integer symbols; got {value!r}",
        )
        return int(value)


class StringBuilder(Builder[str]):
    def _symbol(self, value: Any) -> str:
        _require(
            isinstance(value, str) and len(value) > 0,
            f"string alphabet expects non-empty string symbols; got {value!r}",
        )
        return str(value)

    def exploding(self, delimiter: str | None = None) -> StringBuilder:
        """Split the symbols of the last ``out()`` into several symbols.

        Without a delimiter every character becomes a symbol; otherwise the
        token is split on ``delimiter`` and empty parts are dropped.
        """
        d = self._draft
        _require(bool(d.last_out), "exploding() must follow out()")
        _require(
            delimiter is None or (isinstance(delimiter, str) and delimiter != ""),
            "exploding() delimiter must be a non-empty string",
        )
        for item in d.last_out:
            _require(not item.exploded, "output is already exploded")
            _require(not item.values, "cannot explode an output that carries values")

        exploded: list[_OutputDraft] = []
        for item in d.last_out:
            token: str = item.symbol
            parts = list(token) if delimiter is None else token.split(delimiter)
            parts = [p for p in parts if p]
            _require(bool(parts), f"exploding {token!r} produced no symbols")
            exploded.extend(_OutputDraft(p, exploded=True) for p in parts)

        rule = self._scope("exploding")
        outputs = rule.branches[-1].outputs
        del outputs[len(outputs) - len(d.last_out):]
        outputs.extend(exploded)
        d.last_out = exploded
        return self


def int_symbols() -> IntBuilder:
    return IntBuilder()


def string_symbols() -> StringBuilder:
    return StringBuilder()


def generic_symbols() -> Builder[Any]:
    return Builder()
