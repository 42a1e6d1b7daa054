"""Neighbour lookup for context-sensitive branch selection.

Context is read from a fixed generation: positions < i form the left context
and positions > i the right context, both ordered nearest-first. Symbols in
the skip set are removed from the view rather than matched as wildcards, so
``A+B`` with ``+`` skipped gives ``B`` a left neighbour of ``A``.
"""

from __future__ import annotations

from collections.abc import Collection, Hashable, Sequence
from typing import Any


def _scan(
    generation: Sequence[Any],
    start: int,
    step: int,
    skip: Collection[Hashable],
    limit: int,
) -> tuple[Hashable, ...]:
    found: list[Hashable] = []
    i = start
    n = len(generation)
    while 0 <= i < n and len(found) < limit:
        sym = generation[i].symbol
        if sym not in skip:
            found.append(sym)
        i += step
    return tuple(found)


def left_context(
    generation: Sequence[Any],
    index: int,
    skip: Collection[Hashable],
    limit: int,
) -> tuple[Hashable, ...]:
    if index < 0:
        return ()
    return _scan(generation, index - 1, -1, skip, limit)


def right_context(
    generation: Sequence[Any],
    index: int,
    skip: Collection[Hashable],
    limit: int,
) -> tuple[Hashable, ...]:
    if index < 0:
        return ()
    return _scan(generation, index + 1, 1, skip, limit)
