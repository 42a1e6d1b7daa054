"""Generation-by-generation rewriting and interpretation.

Each derivation step reads a fixed previous generation and builds the next
one from scratch: context and branch selection for occurrence *k* never see
what was produced for *k-1* in the same step. Only the previous and current
generation are kept alive, since sequence length may grow exponentially with
the number of derivations.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Generator, Hashable, Sequence
from typing import Any, Generic, TypeVar

from .grammar import Grammar
from .interpreters import Interpreter
from .state import Occurrence, State

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=Hashable)
R = TypeVar("R")

Generation = tuple[Occurrence[S], ...]


class LSystem(Generic[S]):
    def __init__(self, grammar: Grammar[S]) -> None:
        self._grammar = grammar

    @property
    def grammar(self) -> Grammar[S]:
        return self._grammar

    def rewrite(
        self,
        derivations: int,
        interpreter: Interpreter[S, R],
        *,
        seed: int | None = None,
        rng: random.Random | None = None,
    ) -> R | None:
        """Derive ``derivations`` generations and interpret the last one.

        ``seed`` (or an explicit ``rng``) fixes the random source consumed by
        probability conditions; the source is private to this call.
        """
        random_source = rng if rng is not None else random.Random(seed)
        final = self.derive(derivations, rng=random_source)
        return interpret(
            final, interpreter, grammar=self._grammar, rng=random_source
        )

    def derive(
        self,
        derivations: int,
        *,
        seed: int | None = None,
        rng: random.Random | None = None,
    ) -> Generation[S]:
        final: Generation[S] = ()
        for final in self.generations(derivations, seed=seed, rng=rng):
            pass
        return final

    def generations(
        self,
        derivations: int,
        *,
        seed: int | None = None,
        rng: random.Random | None = None,
    ) -> Generator[Generation[S], None, None]:
        """Yield generations 0..derivations in order."""
        if isinstance(derivations, bool) or not isinstance(derivations, int):
            raise TypeError("derivations must be an integer")
        if derivations < 0:
            raise ValueError(f"derivations must be >= 0; got {derivations}")

        state: State[S] = State(
            rng=rng if rng is not None else random.Random(seed),
            skip=self._grammar.skip,
        )

        logger.debug("deriving %d generation(s)", derivations)
        current: Generation[S] = tuple(self._grammar.axiom.instantiate(state))
        logger.debug("generation 0: %d symbol(s)", len(current))
        yield current

        for g in range(1, derivations + 1):
            current = self._step(current, state)
            logger.debug("generation %d: %d symbol(s)", g, len(current))
            yield current

    def _step(self, previous: Generation[S], state: State[S]) -> Generation[S]:
        out: list[Occurrence[S]] = []
        for index, occurrence in enumerate(previous):
            rule = self._grammar.lookup(occurrence.symbol)
            if rule is None:
                out.append(occurrence)
                continue

            state._enter(
                occurrence,
                rule.variables,
                seq=len(out),
                generation=previous,
                index=index,
            )
            branch = rule.select(state)
            if branch is None:
                out.append(occurrence)
                continue
            out.extend(branch.output.instantiate(state))
        return tuple(out)


def interpret(
    generation: Sequence[Occurrence[S]],
    interpreter: Interpreter[S, R],
    *,
    grammar: Grammar[S] | None = None,
    rng: random.Random | None = None,
) -> R | None:
    """Run ``interpreter`` once over ``generation`` and return its result.

    With a ``grammar``, each symbol's parameters are bound to its rule's
    variable names so interpreters can use ``state.var(...)``.
    """
    state: State[S] = State(
        rng=rng, skip=grammar.skip if grammar is not None else frozenset()
    )
    interpreter.before(state)
    for index, occurrence in enumerate(generation):
        names: Any = ()
        if grammar is not None:
            rule = grammar.lookup(occurrence.symbol)
            if rule is not None:
                names = rule.variables
        state._enter(
            occurrence, names, seq=index + 1, generation=generation, index=index
        )
        interpreter.interpret(state)
    state._enter(None, seq=len(generation))
    interpreter.after(state)
    return interpreter.get_result()
