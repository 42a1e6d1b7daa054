import pytest

from lsystem_engine import (
    And,
    Follows,
    GrammarError,
    IntVar,
    Precedes,
    Probability,
    UnknownVariableError,
    generic_symbols,
    int_symbols,
    joining,
    string_symbols,
    tracing,
)


class TestStructure:
    def test_branches_in_declaration_order(self) -> None:
        ls = (
            string_symbols()
            .rule("A")
            .probably(0.2).out("B")
            .precedes("X").out("C")
            .otherwise().out("D")
            .axiom().out("A")
            .build()
        )
        rule = ls.grammar.lookup("A")
        assert rule is not None
        assert [b.output.items[0].symbol for b in rule.branches] == ["B", "C", "D"]
        assert rule.branches[0].condition == Probability(0.2)
        assert rule.branches[1].condition == Precedes(("X",))
        assert rule.branches[2].unconditional

    def test_consecutive_leaves_share_a_branch(self) -> None:
        ls = (
            string_symbols()
            .rule("A")
            .precedes("X").follows("Y").out("B")
            .axiom().out("A")
            .build()
        )
        rule = ls.grammar.lookup("A")
        assert rule is not None
        assert len(rule.branches) == 1
        assert rule.branches[0].condition == And(Precedes(("X",)), Follows(("Y",)))

    def test_out_without_condition_is_unconditional(self) -> None:
        ls = string_symbols().rule("A").out("B", "C").axiom().out("A").build()
        rule = ls.grammar.lookup("A")
        assert rule is not None
        assert len(rule.branches) == 1
        assert rule.branches[0].unconditional
        assert len(rule.branches[0].output) == 2

    def test_skip_set_is_global(self) -> None:
        ls = (
            string_symbols()
            .rule("A").out("A").skipping("+")
            .rule("B").out("B")
            .skipping("-", "+")
            .axiom().out("A")
            .build()
        )
        assert ls.grammar.skip == frozenset({"+", "-"})

    def test_variables_declared(self) -> None:
        ls = (
            string_symbols()
            .rule("A").define("x").define("y")
            .out("A").var("y").var("x")
            .axiom().out("A").val(1).val(2)
            .build()
        )
        rule = ls.grammar.lookup("A")
        assert rule is not None
        assert rule.variables == ("x", "y")
        assert ls.rewrite(1, tracing()) == ["A(2,1)"]
        assert ls.rewrite(2, tracing()) == ["A(1,2)"]

    def test_builder_reusable_after_build(self) -> None:
        b = string_symbols().rule("a").out("a", "b").axiom().out("a")
        first = b.build()
        second = b.build()
        assert first.rewrite(3, joining()) == second.rewrite(3, joining()) == "abbb"

    def test_generic_symbols_accept_any_hashable(self) -> None:
        ls = (
            generic_symbols()
            .rule(("leaf", 1)).out(("leaf", 2), ("leaf", 1))
            .axiom().out(("leaf", 1))
            .build()
        )
        final = ls.derive(2)
        assert [o.symbol for o in final] == [("leaf", 2), ("leaf", 2), ("leaf", 1)]

    def test_val_wraps_literals(self) -> None:
        ls = string_symbols().axiom().out("A").val(3).build()
        value = ls.grammar.axiom.items[0].values[0]
        assert value.value == IntVar(3)  # type: ignore[union-attr]


class TestBuildErrors:
    def test_missing_axiom(self) -> None:
        with pytest.raises(GrammarError, match="axiom"):
            string_symbols().rule("a").out("b").build()

    def test_axiom_twice(self) -> None:
        with pytest.raises(GrammarError):
            string_symbols().axiom().out("a").axiom()

    def test_duplicate_rule(self) -> None:
        with pytest.raises(GrammarError):
            string_symbols().rule("a").out("b").rule("a")

    def test_duplicate_otherwise(self) -> None:
        with pytest.raises(GrammarError):
            string_symbols().rule("a").otherwise().out("b").otherwise()

    def test_condition_after_otherwise(self) -> None:
        with pytest.raises(GrammarError):
            string_symbols().rule("a").otherwise().out("b").probably(0.5)

    def test_condition_after_implicit_unconditional(self) -> None:
        with pytest.raises(GrammarError):
            string_symbols().rule("a").out("b").when(lambda s: True)

    def test_probability_bounds(self) -> None:
        for p in (0.0, 1.0, 2.0):
            with pytest.raises(GrammarError):
                string_symbols().rule("a").probably(p)

    def test_undeclared_variable(self) -> None:
        b = string_symbols().rule("a").define("x").out("a").var("y").axiom().out("a")
        with pytest.raises(GrammarError, match="'y'"):
            b.build()

    def test_predicate_uses_checked(self) -> None:
        b = (
            string_symbols()
            .rule("a").define("x")
            .when(lambda s: True, uses=["z"]).out("a")
            .axiom().out("a")
        )
        with pytest.raises(GrammarError):
            b.build()

    def test_axiom_variable_reference(self) -> None:
        with pytest.raises(GrammarError):
            string_symbols().axiom().out("a").var("x").build()

    def test_axiom_rejects_conditions(self) -> None:
        with pytest.raises(GrammarError):
            string_symbols().axiom().when(lambda s: True)
        with pytest.raises(GrammarError):
            string_symbols().axiom().define("x")
        with pytest.raises(GrammarError):
            string_symbols().axiom().otherwise()

    def test_calls_outside_scope(self) -> None:
        with pytest.raises(GrammarError):
            string_symbols().out("a")
        with pytest.raises(GrammarError):
            string_symbols().when(lambda s: True)
        with pytest.raises(GrammarError):
            string_symbols().rule("a").val(1)

    def test_combinator_placement(self) -> None:
        with pytest.raises(GrammarError):
            string_symbols().rule("a").and_()
        with pytest.raises(GrammarError):
            string_symbols().rule("a").out("b").or_()
        b = string_symbols().rule("a").precedes("x").or_().out("b").axiom().out("a")
        with pytest.raises(GrammarError, match="'or'"):
            b.build()

    def test_empty_rule(self) -> None:
        with pytest.raises(GrammarError):
            string_symbols().rule("a").axiom().out("a").build()

    def test_empty_context_pattern(self) -> None:
        with pytest.raises(GrammarError):
            string_symbols().rule("a").precedes()

    def test_bad_literal(self) -> None:
        with pytest.raises(GrammarError):
            string_symbols().axiom().out("a").val("text")

    def test_bad_variable_name(self) -> None:
        with pytest.raises(GrammarError):
            string_symbols().rule("a").define("not a name")
        with pytest.raises(GrammarError):
            string_symbols().rule("a").define("x", "x")

    def test_alphabet_adapters_check_literals(self) -> None:
        with pytest.raises(GrammarError):
            int_symbols().rule("a")
        with pytest.raises(GrammarError):
            int_symbols().rule(True)
        with pytest.raises(GrammarError):
            string_symbols().rule(1)
        with pytest.raises(GrammarError):
            string_symbols().axiom().out("")
        with pytest.raises(GrammarError):
            generic_symbols().rule(["unhashable"])


class TestExploding:
    def test_explodes_every_symbol_of_last_out(self) -> None:
        ls = string_symbols().axiom().out("ab", "cd").exploding().build()
        assert [o.symbol for o in ls.derive(0)] == ["a", "b", "c", "d"]

    def test_only_last_out_is_exploded(self) -> None:
        ls = string_symbols().axiom().out("xy").out("ab").exploding().build()
        assert [o.symbol for o in ls.derive(0)] == ["xy", "a", "b"]

    def test_delimiter_drops_empty_parts(self) -> None:
        ls = string_symbols().axiom().out("F||F|").exploding("|").build()
        assert [o.symbol for o in ls.derive(0)] == ["F", "F"]

    def test_multichar_parts(self) -> None:
        ls = string_symbols().axiom().out("seg turn seg").exploding(" ").build()
        assert ls.rewrite(0, joining("/")) == "seg/turn/seg"

    def test_malformed_configurations(self) -> None:
        with pytest.raises(GrammarError):
            string_symbols().axiom().exploding()
        with pytest.raises(GrammarError):
            string_symbols().axiom().out("ab").val(1).exploding()
        with pytest.raises(GrammarError):
            string_symbols().axiom().out("ab").exploding().exploding()
        with pytest.raises(GrammarError):
            string_symbols().axiom().out("ab").exploding("")
        with pytest.raises(GrammarError):
            string_symbols().axiom().out(",,").exploding(",")

    def test_exploded_output_cannot_carry_values(self) -> None:
        with pytest.raises(GrammarError):
            string_symbols().axiom().out("ab").exploding().val(1)

    def test_exploding_is_textual_only(self) -> None:
        assert not hasattr(int_symbols(), "exploding")
        assert not hasattr(generic_symbols(), "exploding")


class TestUses:
    def test_single_name_string_is_one_variable(self) -> None:
        ls = (
            string_symbols()
            .rule("a").define("count")
            .when(lambda s: s.var("count").int_val() > 0, uses="count")
            .out("a").fun(lambda s: s.var("count") - IntVar(1), uses="count")
            .axiom().out("a").val(2)
            .build()
        )
        rule = ls.grammar.lookup("a")
        assert rule is not None
        condition = rule.branches[0].condition
        assert condition is not None
        assert condition.refs() == ("count",)
        assert ls.rewrite(3, tracing()) == ["a(0)"]

    def test_single_undeclared_name_string(self) -> None:
        b = (
            string_symbols()
            .rule("a").define("x")
            .out("a").fun(lambda s: 1, uses="xy")
            .axiom().out("a")
        )
        with pytest.raises(GrammarError, match="'xy'"):
            b.build()

    def test_non_string_names_rejected(self) -> None:
        with pytest.raises(GrammarError):
            string_symbols().rule("a").when(
                lambda s: True, uses=[1]  # type: ignore[list-item]
            )

    def test_unlisted_read_fails_at_rewrite_time(self) -> None:
        ls = (
            string_symbols()
            .rule("a").when(lambda s: s.var("q").bool_val()).out("b")
            .axiom().out("a")
            .build()
        )
        with pytest.raises(UnknownVariableError):
            ls.rewrite(1, joining())
