"""Iteration indices substituted for ``$i`` in output paths.

An index is the path of 1-based positions from the run root down to the
current iteration: each ``repeat`` iteration and each crawled link appends its
position to the index it was started with. The root index renders as ``0``;
every other index renders as its positions joined with ``-``:

    top level                  -> 0
    repeat(5) at top level     -> 1, 2, 3, 4, 5
    repeat(3) in iteration 2   -> 2-1, 2-2, 2-3
    crawl links in iteration 4 -> 4-1, 4-2, ... by link position

Two different iterations therefore never render the same index, whatever
the nesting.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class IterationIndex:
    positions: tuple[int, ...] = ()

    def child(self, position: int) -> IterationIndex:
        if position < 1:
            raise ValueError(f"positions are 1-based, got {position}")
        return IterationIndex(self.positions + (position,))

    @property
    def depth(self) -> int:
        return len(self.positions)

    def __str__(self) -> str:
        if not self.positions:
            return "0"
        return "-".join(str(p) for p in self.positions)


ROOT_INDEX = IterationIndex()
