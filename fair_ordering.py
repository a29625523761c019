from __future__ import annotations

from typing import Callable, Hashable

from random_stream import RandomSource
from splitting_ranges import SplittingRange


def shuffle_equal_key_blocks(
    order: list[int],
    key: Callable[[int], Hashable],
    rng: RandomSource,
) -> list[int]:
    """Shuffle, in place, every maximal block of ``order`` sharing one key.

    ``order`` must already be sorted so equal keys are adjacent. Each block gets
    a forward Fisher-Yates pass with one draw per position except the last.
    """
    block_start = 0
    total = len(order)
    while block_start < total:
        block_key = key(order[block_start])
        block_end = block_start + 1
        while block_end < total and key(order[block_end]) == block_key:
            block_end += 1

        i = block_start
        remaining = block_end - block_start
        while remaining > 1:
            swap = i + rng.next(remaining)
            order[i], order[swap] = order[swap], order[i]
            i += 1
            remaining -= 1

        block_start = block_end
    return order


def order_by_splittable_ascending(
    ranges: list[SplittingRange],
    rng: RandomSource,
) -> list[int]:
    """Range indices by ascending ``splittable_count``, ties shuffled fairly.

    The pre-shuffle order breaks ties on ``start`` so that a seed alone fixes
    the result.
    """
    order = sorted(
        range(len(ranges)),
        key=lambda i: (ranges[i].splittable_count, ranges[i].start),
    )
    return shuffle_equal_key_blocks(order, lambda i: ranges[i].splittable_count, rng)


def order_by_unsplittable_descending(
    ranges: list[SplittingRange],
    rng: RandomSource,
) -> list[int]:
    """Range indices by descending flanking-run size (max, then min), ties shuffled."""

    def flanking(i: int) -> tuple[int, int]:
        return (
            ranges[i].unsplittable_either_side_max,
            ranges[i].unsplittable_either_side_min,
        )

    order = sorted(
        range(len(ranges)),
        key=lambda i: flanking(i) + (ranges[i].start,),
        reverse=True,
    )
    return shuffle_equal_key_blocks(order, flanking, rng)
