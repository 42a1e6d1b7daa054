"""Lindenmayer system rewriting engine.

Grammars are built with one of the builder factories and rewritten with
``LSystem.rewrite``::

    from lsystem_engine import joining, string_symbols

    ls = (
        string_symbols()
        .rule("a").out("a", "b")
        .rule("b").out("a")
        .axiom().out("a")
        .build()
    )
    ls.rewrite(3, joining())  # "abaab"
"""

from .builder import (
    Builder,
    IntBuilder,
    StringBuilder,
    generic_symbols,
    int_symbols,
    string_symbols,
)
from .conditions import (
    And,
    Condition,
    Follows,
    Not,
    Or,
    Precedes,
    Predicate,
    Probability,
)
from .engine import LSystem, interpret
from .errors import (
    ConfigError,
    GrammarError,
    LSystemError,
    UnknownVariableError,
    VarTypeError,
)
from .grammar import (
    Branch,
    Computed,
    Grammar,
    LiteralValue,
    NamedRef,
    OutputItem,
    OutputSpec,
    Rule,
)
from .interpreters import (
    Interpreter,
    counting,
    interpreting,
    joining,
    printing,
    tracing,
)
from .state import Occurrence, State
from .variables import BoolVar, IntVar, RealVar, Var, wrap

__version__ = "0.1.0"
