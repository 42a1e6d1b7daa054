from typing import Any

import pytest

from lsystem_engine import (
    And,
    GrammarError,
    Not,
    Or,
    Predicate,
    Probability,
    State,
    joining,
    string_symbols,
)
from lsystem_engine.conditions import ConditionFolder


def const(value: bool) -> Predicate:
    return Predicate(lambda s: value)


class _FixedRandom:
    """Stands in for random.Random and replays a fixed list of samples."""

    def __init__(self, samples: list[float]) -> None:
        self._samples = list(samples)
        self.calls = 0

    def random(self) -> float:
        self.calls += 1
        return self._samples.pop(0)


class TestLeaves:
    def test_probability_range(self) -> None:
        for p in (0, 1, -0.1, 1.5):
            with pytest.raises(GrammarError):
                Probability(p)
        assert Probability(0.25).p == pytest.approx(0.25)

    def test_probability_draws_once_per_evaluation(self) -> None:
        rng = _FixedRandom([0.1, 0.7, 0.49999])
        state: State[Any] = State(rng=rng)  # type: ignore[arg-type]
        leaf = Probability(0.5)
        assert leaf.evaluate(state) is True
        assert leaf.evaluate(state) is False
        assert leaf.evaluate(state) is True
        assert rng.calls == 3

    def test_predicate_unwraps_bool_var(self) -> None:
        state: State[Any] = State()
        assert Predicate(lambda s: s.wrap(True)).evaluate(state) is True
        assert Predicate(lambda s: s.wrap(False)).evaluate(state) is False

    def test_predicate_exception_propagates(self) -> None:
        class Boom(Exception):
            pass

        def fail(s: Any) -> bool:
            raise Boom()

        with pytest.raises(Boom):
            Predicate(fail).evaluate(State())


class TestComposites:
    def test_short_circuit(self) -> None:
        calls: list[str] = []

        def tracked(name: str, value: bool) -> Predicate:
            def fn(s: Any) -> bool:
                calls.append(name)
                return value

            return Predicate(fn)

        state: State[Any] = State()
        assert And(tracked("a", False), tracked("b", True)).evaluate(state) is False
        assert Or(tracked("c", True), tracked("d", False)).evaluate(state) is True
        assert calls == ["a", "c"]

    def test_refs_collected_through_tree(self) -> None:
        tree = Or(
            Not(Predicate(lambda s: True, ("x",))), Predicate(lambda s: 1, ("y",))
        )
        assert tree.refs() == ("x", "y")


class TestFolder:
    def test_empty(self) -> None:
        folder = ConditionFolder()
        assert folder.empty
        assert folder.result() is None

    def test_adjacent_leaves_default_to_and(self) -> None:
        folder = ConditionFolder()
        a, b = const(True), const(False)
        folder.push_leaf(a)
        folder.push_leaf(b)
        assert folder.result() == And(a, b)

    def test_left_to_right_without_precedence(self) -> None:
        # a or b and c  ->  (a or b) and c
        a, b, c = const(True), const(False), const(False)
        folder = ConditionFolder()
        folder.push_leaf(a)
        folder.push_combinator("or")
        folder.push_leaf(b)
        folder.push_combinator("and")
        folder.push_leaf(c)
        assert folder.result() == And(Or(a, b), c)

    def test_not_wraps_next_leaf_only(self) -> None:
        a, b = const(True), const(True)
        folder = ConditionFolder()
        folder.push_not()
        folder.push_leaf(a)
        folder.push_combinator("or")
        folder.push_leaf(b)
        assert folder.result() == Or(Not(a), b)

    def test_not_after_combinator(self) -> None:
        a, b = const(True), const(True)
        folder = ConditionFolder()
        folder.push_leaf(a)
        folder.push_combinator("and")
        folder.push_not()
        folder.push_leaf(b)
        assert folder.result() == And(a, Not(b))

    def test_double_negation(self) -> None:
        a = const(True)
        folder = ConditionFolder()
        folder.push_not()
        folder.push_not()
        folder.push_leaf(a)
        assert folder.result() == Not(Not(a))

    def test_combinator_first_rejected(self) -> None:
        with pytest.raises(GrammarError):
            ConditionFolder().push_combinator("and")

    def test_double_combinator_rejected(self) -> None:
        folder = ConditionFolder()
        folder.push_leaf(const(True))
        folder.push_combinator("and")
        with pytest.raises(GrammarError):
            folder.push_combinator("or")

    def test_not_then_combinator_rejected(self) -> None:
        folder = ConditionFolder()
        folder.push_leaf(const(True))
        folder.push_not()
        with pytest.raises(GrammarError):
            folder.push_combinator("or")

    def test_dangling_operators_rejected(self) -> None:
        folder = ConditionFolder()
        folder.push_leaf(const(True))
        folder.push_combinator("or")
        with pytest.raises(GrammarError):
            folder.result()

        folder = ConditionFolder()
        folder.push_not()
        with pytest.raises(GrammarError):
            folder.result()


class TestBuilderCallSequences:
    """The folded tree for exact builder call sequences."""

    def _condition(self, build: Any) -> Any:
        b = string_symbols()
        build(b.rule("a"))
        ls = b.out("X").axiom().out("a").build()
        rule = ls.grammar.lookup("a")
        assert rule is not None
        return rule.branches[0].condition, ls

    def test_or_then_and(self) -> None:
        t, f = (lambda s: True), (lambda s: False)
        cond, ls = self._condition(lambda b: b.when(t).or_().when(t).and_().when(f))
        assert isinstance(cond, And)
        assert isinstance(cond.left, Or)
        # (T or T) and F is false, so "a" is left alone
        assert ls.rewrite(1, joining()) == "a"

    def test_implicit_and(self) -> None:
        t, f = (lambda s: True), (lambda s: False)
        cond, ls = self._condition(lambda b: b.when(t).when(f))
        assert isinstance(cond, And)
        assert ls.rewrite(1, joining()) == "a"

    def test_not_or(self) -> None:
        f = lambda s: False  # noqa: E731
        cond, ls = self._condition(lambda b: b.not_().when(f).or_().when(f))
        assert isinstance(cond, Or)
        assert isinstance(cond.left, Not)
        assert ls.rewrite(1, joining()) == "X"
