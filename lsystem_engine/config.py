"""JSON grammar descriptions.

A description is a JSON object that maps onto builder calls; see
``cli.HELP_EPILOG`` for the full syntax. ``parse_config`` validates the object,
drives a ``Builder`` and returns the built system together with the run
settings (derivations, seed) stored alongside it.
"""

from __future__ import annotations

import json
import operator
import random
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Literal, cast

from .builder import Builder, StringBuilder, int_symbols, string_symbols
from .engine import LSystem
from .errors import ConfigError, GrammarError
from .state import State
from .variables import Var, wrap

Alphabet = Literal["string", "int"]


# -------------------------
# Validation helpers
# -------------------------


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise ConfigError(msg)


def _as_int(x: Any, path: str) -> int:
    _require(
        isinstance(x, int) and not isinstance(x, bool), f"{path} must be an integer"
    )
    return int(x)


def _as_float(x: Any, path: str) -> float:
    _require(
        isinstance(x, (int, float)) and not isinstance(x, bool),
        f"{path} must be a number",
    )
    return float(x)


def _as_str(x: Any, path: str) -> str:
    _require(isinstance(x, str), f"{path} must be a string")
    return cast(str, x)


def _as_list(x: Any, path: str) -> list[Any]:
    _require(isinstance(x, list), f"{path} must be an array")
    return cast(list[Any], x)


def _as_dict(x: Any, path: str) -> dict[str, Any]:
    _require(isinstance(x, dict), f"{path} must be an object")
    return cast(dict[str, Any], x)


def _as_symbol(x: Any, alphabet: Alphabet, path: str) -> Any:
    if alphabet == "int":
        return _as_int(x, path)
    s = _as_str(x, path)
    _require(len(s) > 0, f"{path} must be a non-empty string")
    return s


def _key_symbol(key: str, alphabet: Alphabet, path: str) -> Any:
    if alphabet == "int":
        try:
            return int(key)
        except ValueError:
            raise ConfigError(f"{path}: rule key {key!r} is not an integer") from None
    _require(len(key) > 0, f"{path}: rule key must be non-empty")
    return key


@contextmanager
def _at(path: str) -> Iterator[None]:
    """Re-raise builder errors with the JSON path that caused them."""
    try:
        yield
    except ConfigError:
        raise
    except GrammarError as e:
        raise ConfigError(f"{path}: {e}") from e


# -------------------------
# Expressions
# -------------------------

_ARITHMETIC: dict[str, Callable[[Var, Var], Var]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
    "//": operator.floordiv,
    "%": operator.mod,
}

_COMPARISON: dict[str, Callable[[Var, Var], bool]] = {
    "<": Var.less_than,
    "<=": Var.less_than_or_equal,
    ">": Var.greater_than,
    ">=": Var.greater_than_or_equal,
    "==": lambda a, b: a.compare_to(b) == 0,
    "!=": lambda a, b: a.compare_to(b) != 0,
}


def _operand(x: Any, path: str) -> tuple[Callable[[State[Any]], Var], tuple[str, ...]]:
    """An operand is a variable name or a JSON literal."""
    if isinstance(x, str):
        name = x
        return (lambda s: s.var(name)), (name,)
    _require(
        isinstance(x, (bool, int, float)), f"{path} must be a variable name or literal"
    )
    v = wrap(x)
    return (lambda s: v), ()


def _binary(
    x: Any, table: dict[str, Callable[[Var, Var], Any]], path: str
) -> tuple[Callable[[State[Any]], Any], tuple[str, ...]]:
    triple = _as_list(x, path)
    _require(len(triple) == 3, f"{path} must be [lhs, op, rhs]")
    lhs, op, rhs = triple
    op = _as_str(op, f"{path}[1]")
    _require(
        op in table,
        f"{path}[1]: unknown operator {op!r}; expected one of {list(table)}",
    )
    fn = table[op]
    left, left_refs = _operand(lhs, f"{path}[0]")
    right, right_refs = _operand(rhs, f"{path}[2]")
    return (lambda s: fn(left(s), right(s))), left_refs + right_refs


# -------------------------
# Grammar parts
# -------------------------


def _apply_value(b: Builder[Any], x: Any, path: str) -> None:
    if isinstance(x, (bool, int, float)):
        b.val(x)
        return
    obj = _as_dict(x, path)
    if "var" in obj:
        b.var(_as_str(obj["var"], f"{path}.var"))
    elif "expr" in obj:
        fn, refs = _binary(obj["expr"], _ARITHMETIC, f"{path}.expr")
        b.fun(fn, uses=refs)
    else:
        raise ConfigError(
            f"{path} must be a literal, {{'var': ...}} or {{'expr': ...}}"
        )


def _apply_outputs(b: Builder[Any], x: Any, alphabet: Alphabet, path: str) -> None:
    if isinstance(x, str):
        _require(
            alphabet == "string", f"{path}: string shorthand needs the string alphabet"
        )
        if x:
            cast(StringBuilder, b).out(x).exploding()
        return

    for i, item in enumerate(_as_list(x, path)):
        ipath = f"{path}[{i}]"
        if not isinstance(item, dict):
            b.out(_as_symbol(item, alphabet, ipath))
            continue
        if "explode" in item:
            _require(
                alphabet == "string", f"{ipath}: exploding needs the string alphabet"
            )
            token = _as_str(item["explode"], f"{ipath}.explode")
            delimiter = item.get("delimiter")
            if delimiter is not None:
                delimiter = _as_str(delimiter, f"{ipath}.delimiter")
            cast(StringBuilder, b).out(token).exploding(delimiter)
            continue
        _require("symbol" in item, f"{ipath} must have field 'symbol'")
        b.out(_as_symbol(item["symbol"], alphabet, f"{ipath}.symbol"))
        for j, v in enumerate(_as_list(item.get("values", []), f"{ipath}.values")):
            _apply_value(b, v, f"{ipath}.values[{j}]")


def _apply_condition(
    b: Builder[Any], items: Any, alphabet: Alphabet, path: str
) -> None:
    items = _as_list(items, path)
    _require(len(items) > 0, f"{path} must not be empty")
    for i, item in enumerate(items):
        ipath = f"{path}[{i}]"
        if isinstance(item, str):
            combinators = {"not": b.not_, "and": b.and_, "or": b.or_}
            _require(item in combinators, f"{ipath}: unknown combinator {item!r}")
            combinators[item]()
            continue
        obj = _as_dict(item, ipath)
        if "probability" in obj:
            b.probably(_as_float(obj["probability"], f"{ipath}.probability"))
        elif "precedes" in obj:
            seq = _as_list(obj["precedes"], f"{ipath}.precedes")
            b.precedes(*(_as_symbol(s, alphabet, f"{ipath}.precedes") for s in seq))
        elif "follows" in obj:
            seq = _as_list(obj["follows"], f"{ipath}.follows")
            b.follows(*(_as_symbol(s, alphabet, f"{ipath}.follows") for s in seq))
        elif "compare" in obj:
            fn, refs = _binary(obj["compare"], _COMPARISON, f"{ipath}.compare")
            b.when(fn, uses=refs)
        else:
            raise ConfigError(
                f"{ipath} must be one of probability, precedes, follows, compare"
            )


def _apply_rule(
    b: Builder[Any], symbol: Any, x: Any, alphabet: Alphabet, path: str
) -> None:
    b.rule(symbol)
    if not isinstance(x, dict):
        b.otherwise()
        _apply_outputs(b, x, alphabet, path)
        return

    obj = _as_dict(x, path)
    variables = [
        _as_str(v, f"{path}.vars")
        for v in _as_list(obj.get("vars", []), f"{path}.vars")
    ]
    if variables:
        b.define(*variables)

    branches = _as_list(obj.get("branches", []), f"{path}.branches")
    _require(len(branches) > 0, f"{path}.branches must not be empty")
    for i, br in enumerate(branches):
        bpath = f"{path}.branches[{i}]"
        br = _as_dict(br, bpath)
        out = br.get("out", [])
        if "when" in br:
            # Builder leaves after an empty branch would extend its condition
            # instead of opening a new branch.
            _require(
                out != [] and out != "",
                f"{bpath}: conditional branch must output a symbol",
            )
            _apply_condition(b, br["when"], alphabet, f"{bpath}.when")
        else:
            b.otherwise()
        _apply_outputs(b, out, alphabet, f"{bpath}.out")


# -------------------------
# Config
# -------------------------


@dataclass(frozen=True)
class GrammarConfig:
    name: str
    alphabet: Alphabet
    derivations: int
    seed: int | None
    system: LSystem[Any]


def parse_config(obj: dict[str, Any]) -> GrammarConfig:
    obj = _as_dict(obj, "root")

    name = _as_str(obj.get("name", "L-System"), "name")
    alphabet = _as_str(obj.get("alphabet", "string"), "alphabet")
    _require(alphabet in ("string", "int"), "alphabet must be 'string' or 'int'")
    alpha = cast(Alphabet, alphabet)

    derivations = _as_int(obj.get("derivations", 0), "derivations")
    _require(derivations >= 0, "derivations must be >= 0")

    seed = obj.get("seed")
    if seed is not None:
        seed = _as_int(seed, "seed")

    _require("axiom" in obj, "axiom is required")

    b: Builder[Any] = string_symbols() if alpha == "string" else int_symbols()

    with _at("skip"):
        skip = _as_list(obj.get("skip", []), "skip")
        b.skipping(*(_as_symbol(s, alpha, f"skip[{i}]") for i, s in enumerate(skip)))

    rules_obj = _as_dict(obj.get("rules", {}), "rules")
    for key, rule in rules_obj.items():
        path = f"rules[{key!r}]"
        with _at(path):
            _apply_rule(b, _key_symbol(key, alpha, path), rule, alpha, path)

    with _at("axiom"):
        b.axiom()
        _apply_outputs(b, obj["axiom"], alpha, "axiom")

    with _at("grammar"):
        system = b.build()
    _require(len(system.grammar.axiom) > 0, "axiom must be non-empty")

    return GrammarConfig(
        name=name,
        alphabet=alpha,
        derivations=derivations,
        seed=seed,
        system=system,
    )


def load_json(path: str) -> dict[str, Any]:
    with open(path, encoding="utf-8") as f:
        try:
            return cast(dict[str, Any], json.load(f))
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {path}: {e}") from e


def dump_json(obj: dict[str, Any], path: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, ensure_ascii=False)
        f.write("\n")


# -------------------------
# Random config generator
# -------------------------


def _random_balanced_word(
    rng: random.Random, length: int, *, p_branch: float = 0.20
) -> str:
    """Generate a random replacement word with balanced brackets.

    Produces symbols from: F, +, -, [, ]
    Brackets never go negative and are closed at the end.
    """
    word: list[str] = []
    depth = 0

    for _ in range(length):
        r = rng.random()
        if r < p_branch and depth < 3:
            word.append("[")
            depth += 1
            continue
        if r < p_branch * 2 and depth > 0:
            word.append("]")
            depth -= 1
            continue

        t = rng.random()
        if t < 0.55:
            word.append("F")
        elif t < 0.775:
            word.append("+")
        else:
            word.append("-")

    word.extend("]" * depth)

    if "F" not in word:
        word.append("F")

    return "".join(word)


def _stochastic_rule(rng: random.Random, min_len: int, max_len: int) -> dict[str, Any]:
    """A rule with one to three probability branches and a fallback."""
    branches: list[dict[str, Any]] = []
    for _ in range(rng.randint(1, 3)):
        branches.append(
            {
                "when": [{"probability": rng.choice([0.2, 0.25, 0.33, 0.5])}],
                "out": _random_balanced_word(rng, rng.randint(min_len, max_len)),
            }
        )
    branches.append({"out": _random_balanced_word(rng, rng.randint(min_len, max_len))})
    return {"branches": branches}


def generate_random_config(seed: int | None = None) -> dict[str, Any]:
    rng = random.Random(seed)

    derivations = rng.randint(2, 5)
    use_x = rng.random() < 0.5

    rules: dict[str, Any]
    if use_x:
        axiom = "X"
        rule_x = _stochastic_rule(rng, 4, 9)
        # X sprouts a new segment only when it is not followed by F.
        rule_x["branches"].insert(
            0, {"when": ["not", {"follows": ["F"]}], "out": "FX"}
        )
        rules = {"F": "FF", "X": rule_x}
    else:
        axiom = "F"
        rules = {"F": _stochastic_rule(rng, 6, 14)}

    cfg = {
        "name": "Random L-System",
        "alphabet": "string",
        "derivations": derivations,
        "seed": rng.randint(0, 2**31 - 1),
        "skip": ["[", "]"],
        "axiom": axiom,
        "rules": rules,
    }

    # Internal sanity check: generated config must always parse cleanly.
    parse_config(cfg)
    return cfg
