import math
import threading

import numpy as np
import pytest

from conftest import make_layout
from splitkb.corpus import Corpus
from splitkb.errors import ConfigurationError
from splitkb.optimizer import (ACCEPT_SCHEDULES, Optimizer, get_accept_function,
                               optimise_restarts, weighted_choice)


@pytest.mark.parametrize("name, t, expected", [
    ('always', 0.3, 1.0),
    ('never', 0.3, 0.0),
    ('temp', 0.4, 0.4),
    ('cold', 0.4, 0.2),
    ('drop-slow', 1.0, 0.0),
    ('drop-slow', 0.0, 1.0),
    ('drop-slow', 0.5, 0.5),
    ('drop-fast', 1.0, 1.0),
    ('drop-fast', 0.0, math.exp(-3.0)),
])
def test_accept_schedules(name, t, expected):
    assert get_accept_function(name)(t) == pytest.approx(expected)


def test_schedules_stay_in_unit_interval():
    for accept in ACCEPT_SCHEDULES.values():
        for t in np.linspace(0.0, 1.0, 11):
            assert 0.0 <= accept(t) <= 1.0


def test_unknown_schedule_rejected_at_construction(sfb_corpus):
    with pytest.raises(ConfigurationError):
        get_accept_function('lukewarm')
    with pytest.raises(ConfigurationError):
        Optimizer(sfb_corpus, 10, accept='lukewarm')


@pytest.mark.parametrize("generations", [0, -5, 2.5, True])
def test_invalid_generations(sfb_corpus, generations):
    with pytest.raises(ConfigurationError):
        Optimizer(sfb_corpus, generations)


def test_weighted_choice_converges_to_count_shares():
    rng = np.random.default_rng(7)
    counts = np.array([60, 30, 10])
    cumulative = np.cumsum(counts)

    draws = np.array([weighted_choice(rng, cumulative) for _ in range(20000)])
    frequencies = np.bincount(draws, minlength=3) / len(draws)

    np.testing.assert_allclose(frequencies, counts / counts.sum(), atol=0.02)


class TestMutate:

    def test_swaps_a_character_of_an_sfb(self, sfb_layout, sfb_corpus):
        optimizer = Optimizer(sfb_corpus, 1, seed=3)

        assert optimizer.mutate(sfb_layout)
        assert sfb_layout.to_mapping() != {'a': (0, 0), 's': (1, 0), 'd': (1, 2), 'f': (1, 3)}

    def test_no_op_without_sfbs(self, sfb_layout):
        corpus = Corpus.from_counts(bigrams={'df': 10})
        before = sfb_layout.to_mapping()

        assert not Optimizer(corpus, 1, seed=3).mutate(sfb_layout)
        assert sfb_layout.to_mapping() == before

    def test_no_op_when_sfb_characters_pinned(self, sfb_layout, sfb_corpus):
        sfb_layout.pin_chars("as")

        assert not Optimizer(sfb_corpus, 1, seed=3).mutate(sfb_layout)

    def test_no_op_without_free_partner(self, sfb_corpus):
        layout = make_layout({'a': (0, 0), 's': (1, 0)})
        layout.pin_chars("a")

        assert not Optimizer(sfb_corpus, 1, seed=3).mutate(layout)
        assert layout.key_info('s').index == 12

    def test_moved_character_follows_sfb_counts(self, monkeypatch):
        layout = make_layout({'a': (0, 0), 's': (1, 0), 'j': (0, 11), 'k': (1, 11), 'x': (2, 5)})
        layout.pin_chars("sk")
        corpus = Corpus.from_counts("weighted", bigrams={'as': 90, 'jk': 10})
        optimizer = Optimizer(corpus, 1, seed=13)
        moved = []
        monkeypatch.setattr(layout, 'swap', lambda char, partner: moved.append(char))

        for _ in range(4000):
            assert optimizer.mutate(layout)

        assert set(moved) == {'a', 'j'}
        assert moved.count('a') / len(moved) == pytest.approx(0.9, abs=0.03)

    def test_pinned_character_never_moves(self, sfb_layout, sfb_corpus):
        sfb_layout.pin_chars("a")
        optimizer = Optimizer(sfb_corpus, 1, seed=11)

        for _ in range(50):
            optimizer.mutate(sfb_layout)
            assert sfb_layout.key_info('a').index == 0


class TestOptimise:

    def test_hall_of_fame_is_monotonic(self, qwerty, sample_corpus):
        result = Optimizer(sample_corpus, 200, accept='always', seed=1).optimise(qwerty)

        assert len(result.history) == 200
        assert all(later <= earlier for earlier, later in zip(result.history, result.history[1:]))
        assert result.fitness == result.history[-1]
        assert result.fitness <= result.initial_fitness

    def test_improves_sfb_scenario(self, sfb_layout, sfb_corpus):
        result = Optimizer(sfb_corpus, 100, accept='never', seed=5).optimise(sfb_layout)

        assert result.fitness < result.initial_fitness
        assert result.improvement > 0

    def test_input_layout_unchanged(self, qwerty, sample_corpus):
        before = qwerty.to_mapping()

        Optimizer(sample_corpus, 50, seed=2).optimise(qwerty)

        assert qwerty.to_mapping() == before

    def test_respects_pins(self, qwerty, sample_corpus):
        qwerty.pin_row(0)
        qwerty.pin_unassigned()
        top_row = {char: info.index for char, info in qwerty.rune_info.items() if info.row == 0}

        result = Optimizer(sample_corpus, 300, accept='temp', seed=4).optimise(qwerty)

        for char, index in top_row.items():
            assert result.layout.key_info(char).index == index
        assert result.layout.key_info(' ').index == qwerty.key_info(' ').index

    def test_same_seed_same_result(self, qwerty, sample_corpus):
        first = Optimizer(sample_corpus, 100, seed=9).optimise(qwerty)
        second = Optimizer(sample_corpus, 100, seed=9).optimise(qwerty)

        assert first.layout.to_mapping() == second.layout.to_mapping()
        assert first.history == second.history

    def test_progress_callback_on_strict_improvement(self, qwerty, sample_corpus):
        calls = []
        optimizer = Optimizer(sample_corpus, 200, accept='drop-fast', seed=6,
                              progress_callback=lambda gen, fitness, best: calls.append((gen, fitness)))

        result = optimizer.optimise(qwerty)

        assert len(calls) == result.improvements
        fitnesses = [fitness for _, fitness in calls]
        assert all(later < earlier for earlier, later in zip(fitnesses, fitnesses[1:]))
        if calls:
            assert fitnesses[-1] == result.fitness

    def test_cancellation(self, qwerty, sample_corpus):
        event = threading.Event()
        event.set()

        result = Optimizer(sample_corpus, 1000, seed=1).optimise(qwerty, cancel_event=event)

        assert result.cancelled
        assert result.generations == 0
        assert result.fitness == result.initial_fitness


def test_optimise_restarts_keeps_best(qwerty, sample_corpus):
    result = optimise_restarts(qwerty, sample_corpus, restarts=3, generations=50, seed=10, workers=2)
    singles = [Optimizer(sample_corpus, 50, seed=10 + i).optimise(qwerty).fitness for i in range(3)]

    assert result.fitness == pytest.approx(min(singles))


def test_optimise_restarts_rejects_zero(qwerty, sample_corpus):
    with pytest.raises(ConfigurationError):
        optimise_restarts(qwerty, sample_corpus, restarts=0, generations=10)
