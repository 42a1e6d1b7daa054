"""Command line front end.

Run:
  python -m lsystem_engine rewrite grammar.json
  python -m lsystem_engine validate grammar.json
  python -m lsystem_engine random out.json --seed 123
  python -m lsystem_engine --help
"""

from __future__ import annotations

import argparse
import logging
import sys

from .config import dump_json, generate_random_config, load_json, parse_config
from .errors import LSystemError
from .interpreters import counting, joining

HELP_EPILOG = r"""
INPUT JSON SYNTAX

A grammar description is a single JSON object.

Top-level keys

  name: string (optional)
      A human-readable title.

  alphabet: "string" | "int" (default "string")
      Symbol type. Rule keys are always JSON strings; for the int alphabet
      they must parse as integers.

  derivations: integer >= 0 (default 0)
      Number of rewriting steps; --derivations overrides it.

  seed: integer (optional)
      Seed for probability conditions; --seed overrides it.

  skip: array of symbols (optional)
      Symbols ignored by precedes/follows context matching.

  axiom: output (required)
      Generation 0.

  rules: object mapping symbol -> rule (optional)
      Symbols without a rule are copied unchanged.

Outputs

  "F+F"                          string alphabet: one symbol per character
  ["A", "B"]                     a list of output items
  {"symbol": "A", "values": [v, ...]}
                                 a symbol carrying parameters
  {"explode": "ab,cd", "delimiter": ","}
                                 split a token into several symbols

Values

  1, 2.5, true                   literals (int, real, bool)
  {"var": "x"}                   a variable of the firing rule
  {"expr": ["x", "*", 2]}        + - * / // % over variables and literals

Rules

  "AB"                           one unconditional branch
  {"vars": ["x", "y"], "branches": [branch, ...]}

  A branch is {"when": [condition, ...], "out": output}; without "when" it is
  the unconditional fallback and must come last. Branches are tried in order
  and the first whose condition holds is used. If none holds the symbol is
  copied unchanged.

Conditions

  {"probability": 0.3}           true with probability p, 0 < p < 1
  {"precedes": ["A", "B"]}       left neighbours are A then B (nearest first)
  {"follows": ["C"]}             right neighbour is C
  {"compare": ["y", "<=", 3]}    < <= == != > >=
  "not", "and", "or"             combinators, folded left to right;
                                 adjacent conditions are joined with "and"

Example (parametric):

  {
    "derivations": 4,
    "axiom": [{"symbol": "B", "values": [2]}],
    "rules": {
      "B": {"vars": ["x"], "branches": [
        {"when": [{"compare": ["x", ">=", 1]}],
         "out": [{"symbol": "B", "values": [{"expr": ["x", "-", 1]}]}]},
        {"out": ["C"]}
      ]}
    }
  }
"""


def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="lsystem-engine",
        description="Rewrite L-system grammars described in JSON.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=HELP_EPILOG,
    )
    p.add_argument(
        "-v", "--verbose", action="store_true", help="Log derivation progress."
    )

    sub = p.add_subparsers(dest="cmd", required=True)

    pr = sub.add_parser(
        "rewrite",
        help="Derive a grammar and print the final generation.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    pr.add_argument("config", help="Path to the grammar JSON.")
    pr.add_argument(
        "-n",
        "--derivations",
        type=int,
        default=None,
        help="Number of derivations (default: from the config).",
    )
    pr.add_argument(
        "--seed", type=int, default=None, help="Seed for repeatable randomness."
    )
    pr.add_argument(
        "--separator", default="", help="String placed between printed symbols."
    )
    mode = pr.add_mutually_exclusive_group()
    mode.add_argument(
        "--count", action="store_true", help="Print the symbol count only."
    )
    mode.add_argument(
        "--trace",
        action="store_true",
        help="Print every generation, one per line, with parameters.",
    )

    pv = sub.add_parser(
        "validate",
        help="Validate a grammar JSON and print a brief summary.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    pv.add_argument("config", help="Path to the grammar JSON.")

    pg = sub.add_parser(
        "random",
        help="Generate a random stochastic grammar for experimentation.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    pg.add_argument("output", help="Where to write the generated JSON file.")
    pg.add_argument(
        "--seed", type=int, default=None, help="Seed for repeatable randomness."
    )

    return p


# -------------------------
# Commands
# -------------------------


def cmd_rewrite(
    config_path: str,
    derivations: int | None,
    seed: int | None,
    separator: str,
    count: bool,
    trace: bool,
) -> None:
    cfg = parse_config(load_json(config_path))
    n = cfg.derivations if derivations is None else derivations
    s = cfg.seed if seed is None else seed
    ls = cfg.system

    if trace:
        for g, generation in enumerate(ls.generations(n, seed=s)):
            print(f"{g}: {separator.join(str(o) for o in generation)}")
        return

    if count:
        print(ls.rewrite(n, counting(), seed=s))
    else:
        print(ls.rewrite(n, joining(separator), seed=s))


_VALIDATE_SYMBOL_LIMIT = 10_000


def cmd_validate(config_path: str) -> None:
    cfg = parse_config(load_json(config_path))
    grammar = cfg.system.grammar

    print(f"name: {cfg.name}")
    print(f"alphabet: {cfg.alphabet}")
    print(f"axiom length: {len(grammar.axiom)}")
    print(f"derivations: {cfg.derivations}")
    print(f"rules: {len(grammar.rules)}")
    print(f"branches: {sum(len(r.branches) for r in grammar.rules.values())}")
    print(f"skip: {len(grammar.skip)}")

    # Run a bounded derivation to catch rewrite-time failures (type mismatches,
    # unbound variables) and exponential blow-up.
    reached = 0
    size = 0
    for reached, generation in enumerate(
        cfg.system.generations(cfg.derivations, seed=cfg.seed)
    ):
        size = len(generation)
        if size >= _VALIDATE_SYMBOL_LIMIT:
            break
    print(f"symbols at generation {reached}: {size}")
    if reached < cfg.derivations:
        print(
            f"warning: generation {reached} exceeds {_VALIDATE_SYMBOL_LIMIT} "
            "symbols; later generations were not checked"
        )


def cmd_random(output_path: str, seed: int | None) -> None:
    cfg = generate_random_config(seed)
    dump_json(cfg, output_path)


def main(argv: list[str] | None = None) -> int:
    ap = build_argparser()
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        if args.cmd == "rewrite":
            cmd_rewrite(
                args.config,
                args.derivations,
                args.seed,
                args.separator,
                args.count,
                args.trace,
            )
        elif args.cmd == "validate":
            cmd_validate(args.config)
        elif args.cmd == "random":
            cmd_random(args.output, args.seed)
        else:
            raise AssertionError("unreachable")
    except LSystemError as e:
        print(f"Grammar error: {e}", file=sys.stderr)
        return 2
    except ArithmeticError as e:
        print(f"Rewrite error: {e}", file=sys.stderr)
        return 2
    except ValueError as e:
        print(f"Invalid argument: {e}", file=sys.stderr)
        return 2
    except OSError as e:
        print(f"File error: {e}", file=sys.stderr)
        return 2
    return 0
