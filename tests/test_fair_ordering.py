from collections import Counter
import itertools

import pytest

from fair_ordering import (
    order_by_splittable_ascending,
    order_by_unsplittable_descending,
    shuffle_equal_key_blocks,
)
from random_stream import RandomStream
from splitting_ranges import SplittingRange


class _RecordingStream:
    """Always draws 0, which leaves every block in its sorted order."""

    def __init__(self):
        self.bounds = []

    def next(self, bound):
        self.bounds.append(bound)
        return 0


def _range(start, splittable, prior, subsequent):
    return SplittingRange(
        start=start,
        splittable_count=splittable,
        prior_unsplittable_count=prior,
        subsequent_unsplittable_count=subsequent,
    )


def _sample_ranges():
    return [
        _range(0, 4, 0, 9),
        _range(13, 2, 9, 5),
        _range(20, 4, 5, 9),
        _range(33, 1, 9, 5),
        _range(39, 4, 5, 0),
    ]


def test_splittable_order_before_shuffle_is_stable_on_start():
    ranges = _sample_ranges()
    stream = _RecordingStream()

    order = order_by_splittable_ascending(ranges, stream)

    assert order == [3, 1, 0, 2, 4]
    # one draw per position in the block of three equal counts, except the last
    assert stream.bounds == [3, 2]


def test_unsplittable_order_before_shuffle_is_descending():
    ranges = _sample_ranges()
    stream = _RecordingStream()

    order = order_by_unsplittable_descending(ranges, stream)

    # (9, 5) ties break on start descending, then (9, 0) and (5, 0)
    assert order == [3, 2, 1, 0, 4]
    assert stream.bounds == [3, 2]


def test_either_side_extremes_follow_neighbour_runs():
    splitting_range = _range(10, 3, 7, 2)

    assert splitting_range.unsplittable_either_side_max == 7
    assert splitting_range.unsplittable_either_side_min == 2
    assert splitting_range.end == 13


def test_same_seed_reproduces_both_orderings():
    ranges = [_range(i * 10, i % 3, 5, 5) for i in range(12)]

    first = (
        order_by_splittable_ascending(ranges, RandomStream(17)),
        order_by_unsplittable_descending(ranges, RandomStream(17)),
    )
    second = (
        order_by_splittable_ascending(ranges, RandomStream(17)),
        order_by_unsplittable_descending(ranges, RandomStream(17)),
    )

    assert first == second


def test_shuffle_never_moves_entries_across_keys():
    keys = [1, 1, 2, 2, 2, 3, 4, 4]
    order = list(range(len(keys)))

    shuffled = shuffle_equal_key_blocks(order, lambda i: keys[i], RandomStream(3))

    assert [keys[i] for i in shuffled] == keys
    assert sorted(shuffled[2:5]) == [2, 3, 4]


def test_tie_block_shuffle_is_uniform_over_permutations():
    ranges = [
        _range(0, 1, 0, 6),
        _range(10, 5, 6, 6),
        _range(20, 5, 6, 6),
        _range(30, 5, 6, 6),
        _range(40, 9, 6, 0),
    ]
    n_seeds = 600
    counts = Counter()
    for seed in range(n_seeds):
        order = order_by_splittable_ascending(ranges, RandomStream(seed))
        assert order[0] == 0 and order[-1] == 4
        counts[tuple(order[1:4])] += 1

    assert set(counts) == set(itertools.permutations([1, 2, 3]))
    expected = n_seeds / 6
    for count in counts.values():
        assert abs(count - expected) < 0.4 * expected


@pytest.mark.parametrize("bound", [1, 2, 7, 1000])
def test_random_stream_draws_within_bound(bound):
    stream = RandomStream(-5)
    draws = [stream.next(bound) for _ in range(200)]

    assert all(0 <= d < bound for d in draws)
    replay = RandomStream(-5)
    assert draws == [replay.next(bound) for _ in range(200)]


def test_random_stream_rejects_empty_bound():
    with pytest.raises(ValueError):
        RandomStream(0).next(0)
