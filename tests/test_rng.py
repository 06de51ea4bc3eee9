"""Tests for the random draw sequencer and seed source."""

import threading

import pytest

from datum_transformer.errors import PreconditionError
from datum_transformer.rng import RandomSequencer, SeedSource


def _seeded(seed: int) -> RandomSequencer:
    seq = RandomSequencer()
    seq.init(needs_random=True, seed=seed)
    return seq


class TestRandomSequencer:
    def test_same_seed_same_draws(self) -> None:
        a, b = _seeded(42), _seeded(42)
        assert [a.next() for _ in range(10)] == [b.next() for _ in range(10)]

    def test_different_seed_different_draws(self) -> None:
        a, b = _seeded(1), _seeded(2)
        assert [a.next() for _ in range(10)] != [b.next() for _ in range(10)]

    def test_values_are_uint32(self) -> None:
        seq = _seeded(0)
        for _ in range(100):
            assert 0 <= seq.next() < 2**32

    def test_draws_without_generator_fail(self) -> None:
        seq = RandomSequencer()
        with pytest.raises(PreconditionError):
            seq.next()
        with pytest.raises(PreconditionError):
            seq.draw_three(mirror=True, crop=True)

    def test_init_without_need_clears(self) -> None:
        seq = _seeded(3)
        seq.init(needs_random=False, seed=3)
        assert not seq.initialized
        with pytest.raises(PreconditionError):
            seq.uniform()

    def test_randint_inclusive_bounds(self) -> None:
        seq = _seeded(5)
        values = {seq.randint(-2, 2) for _ in range(500)}
        assert values == {-2, -1, 0, 1, 2}

    def test_rand_rejects_empty_range(self) -> None:
        with pytest.raises(PreconditionError):
            _seeded(0).rand(0)

    def test_uniform_range(self) -> None:
        seq = _seeded(9)
        for _ in range(100):
            assert 0.8 <= seq.uniform(0.8, 1.2) < 1.2


class TestDrawThree:
    def test_always_consumes_three_values(self) -> None:
        mirror_only, crop_only = _seeded(11), _seeded(11)
        mirror_only.draw_three(mirror=True, crop=False)
        crop_only.draw_three(mirror=False, crop=True)
        assert mirror_only.next() == crop_only.next()

    def test_disabled_entries_are_zero(self) -> None:
        draws = _seeded(11).draw_three(mirror=True, crop=False)
        assert draws.mirror > 0
        assert draws.crop_h == 0
        assert draws.crop_w == 0

    def test_enabled_entries_are_raw_plus_one(self) -> None:
        reference = _seeded(13)
        raw = [reference.next() for _ in range(3)]
        draws = _seeded(13).draw_three(mirror=True, crop=True)
        assert tuple(draws) == tuple(v + 1 for v in raw)

    def test_toggling_mirror_keeps_crop_draws(self) -> None:
        with_mirror = _seeded(17).draw_three(mirror=True, crop=True)
        without_mirror = _seeded(17).draw_three(mirror=False, crop=True)
        assert with_mirror.crop_h == without_mirror.crop_h
        assert with_mirror.crop_w == without_mirror.crop_w


class TestSeedSource:
    def test_monotonic_from_base(self) -> None:
        source = SeedSource(100)
        assert [source.next_seed() for _ in range(3)] == [100, 101, 102]

    def test_negative_seed_uses_source(self) -> None:
        source = SeedSource(7)
        a, b = RandomSequencer(), RandomSequencer()
        a.init(needs_random=True, seed=-1, seed_source=source)
        b.init(needs_random=True, seed=-1, seed_source=source)
        assert (a.seed, b.seed) == (7, 8)

    def test_explicit_seed_ignores_source(self) -> None:
        source = SeedSource(7)
        seq = RandomSequencer()
        seq.init(needs_random=True, seed=0, seed_source=source)
        assert seq.seed == 0
        assert source.next_seed() == 7

    def test_thread_safe_unique_seeds(self) -> None:
        source = SeedSource(0)
        seeds: list[int] = []
        lock = threading.Lock()

        def _take() -> None:
            for _ in range(100):
                seed = source.next_seed()
                with lock:
                    seeds.append(seed)

        threads = [threading.Thread(target=_take) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert sorted(seeds) == list(range(400))
