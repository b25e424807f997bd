#!/usr/bin/env python3
"""
Simulated-annealing layout optimizer.

The genome is a SplitLayout; fitness is the fraction of corpus bigrams that
are same-finger bigrams (lower is better). Each generation mutates a clone
of the current layout by swapping a character from a frequent SFB with a
random other character. Better or equal candidates are always accepted;
worse ones with the probability given by an acceptance schedule of the
remaining progress t = 1 - generation / generations.
"""

import logging
import math
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

import numpy as np

from splitkb.corpus import Corpus
from splitkb.errors import ConfigurationError
from splitkb.layout import SplitLayout
from splitkb.metrics import MetricsEngine

logger = logging.getLogger(__name__)

AcceptFunction = Callable[[float], float]
ProgressCallback = Callable[[int, float, SplitLayout], None]

ACCEPT_SCHEDULES: Dict[str, AcceptFunction] = {
    'always': lambda t: 1.0,
    'never': lambda t: 0.0,
    'temp': lambda t: t,
    'cold': lambda t: 0.5 * t,
    'drop-slow': lambda t: (math.cos(t * math.pi) + 1.0) / 2.0,
    'drop-fast': lambda t: math.exp(-3.0 * (1.0 - t)),
}

DEFAULT_SCHEDULE = 'drop-slow'


def get_accept_function(name: str) -> AcceptFunction:
    """
    Look up an acceptance schedule by name.

    Raises:
        ConfigurationError: If the schedule is unknown
    """
    try:
        return ACCEPT_SCHEDULES[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown accept function '{name}'. Available: {list(ACCEPT_SCHEDULES)}"
        )


def weighted_choice(rng: np.random.Generator, cumulative: np.ndarray) -> int:
    """Index drawn with probability proportional to its weight, given cumulative weights."""
    draw = rng.uniform(0, cumulative[-1])
    index = int(np.searchsorted(cumulative, draw, side='right'))
    return min(index, len(cumulative) - 1)


@dataclass
class OptimizationResult:
    """Best layout found by one optimizer run."""
    layout: SplitLayout
    fitness: float
    initial_fitness: float
    generations: int
    accepted: int = 0
    improvements: int = 0
    seed: Optional[int] = None
    cancelled: bool = False
    history: List[float] = field(default_factory=list)
    execution_time: float = 0.0

    @property
    def improvement(self) -> float:
        return self.initial_fitness - self.fitness


class Optimizer:
    """
    Minimises the same-finger bigram fraction of a layout.

    Pinned keys never move. The best layout seen during the run is returned,
    even if the search later wanders to worse layouts.
    """

    def __init__(self, corpus: Corpus, generations: int, accept: str = DEFAULT_SCHEDULE,
                 seed: Optional[int] = None,
                 progress_callback: Optional[ProgressCallback] = None):
        if isinstance(generations, bool) or not isinstance(generations, int) or generations < 1:
            raise ConfigurationError(f"Generations must be a positive integer, got {generations!r}")

        self.corpus = corpus
        self.generations = generations
        self.accept_name = accept
        self.accept = get_accept_function(accept)
        self.seed = seed
        self.progress_callback = progress_callback
        self.engine = MetricsEngine(corpus)
        self.rng = np.random.default_rng(seed)

    def fitness(self, layout: SplitLayout) -> float:
        return self.engine.sfb_fraction(layout)

    def mutate(self, layout: SplitLayout) -> bool:
        """
        Swap a character of a frequent SFB with another free character.

        SFBs are drawn with probability proportional to their corpus count;
        one of the two characters is then chosen uniformly, and a draw that
        lands on a pinned character is retried with a fresh SFB.

        Returns:
            True if a swap happened, False if no eligible SFB or partner exists
        """
        sfbs, _ = self.engine.extract_sfbs(layout)
        candidates = [stat for stat in sfbs
                      if not layout.is_pinned(stat.ngram[0]) or not layout.is_pinned(stat.ngram[1])]
        if not candidates:
            return False

        cumulative = np.cumsum([stat.count for stat in candidates])
        while True:
            index = weighted_choice(self.rng, cumulative)
            char = candidates[index].ngram[int(self.rng.integers(2))]
            if not layout.is_pinned(char):
                break

        partners = [other for other in layout.chars
                    if other != char and not layout.is_pinned(other)]
        if not partners:
            return False

        layout.swap(char, partners[int(self.rng.integers(len(partners)))])
        return True

    def crossover(self, layout: SplitLayout, other: SplitLayout) -> None:
        """Crossover is not used; layouts evolve by mutation only."""
        return None

    def optimise(self, layout: SplitLayout,
                 cancel_event: Optional[threading.Event] = None) -> OptimizationResult:
        """
        Run the annealing loop for the configured number of generations.

        Args:
            layout: Starting layout (not modified)
            cancel_event: Checked between generations; stops the run when set

        Returns:
            OptimizationResult holding the best layout found
        """
        start_time = time.time()
        current = layout.clone()
        current_fitness = self.fitness(current)
        best = current.clone()
        best_fitness = current_fitness

        result = OptimizationResult(layout=best, fitness=best_fitness,
                                    initial_fitness=current_fitness,
                                    generations=0, seed=self.seed)
        logger.info("Optimising %s: %d generations, accept=%s, initial SFB %.4f%%",
                    layout.name, self.generations, self.accept_name, 100 * current_fitness)

        for generation in range(self.generations):
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Optimisation cancelled after %d generations", generation)
                result.cancelled = True
                break

            candidate = current.clone()
            self.mutate(candidate)
            candidate_fitness = self.fitness(candidate)

            t = 1.0 - generation / self.generations
            if candidate_fitness <= current_fitness or self.rng.random() < self.accept(t):
                current, current_fitness = candidate, candidate_fitness
                result.accepted += 1

            if current_fitness < best_fitness:
                best, best_fitness = current.clone(), current_fitness
                result.improvements += 1
                logger.debug("Generation %d: best SFB %.4f%%", generation + 1, 100 * best_fitness)
                if self.progress_callback is not None:
                    self.progress_callback(generation + 1, best_fitness, best)

            result.history.append(best_fitness)
            result.generations = generation + 1

        result.layout = best
        result.fitness = best_fitness
        result.execution_time = time.time() - start_time
        logger.info("Finished %s: SFB %.4f%% -> %.4f%% in %.2fs",
                    layout.name, 100 * result.initial_fitness, 100 * best_fitness,
                    result.execution_time)
        return result


def optimise_restarts(layout: SplitLayout, corpus: Corpus, restarts: int, generations: int,
                      accept: str = DEFAULT_SCHEDULE, seed: Optional[int] = None,
                      workers: Optional[int] = None) -> OptimizationResult:
    """
    Run independent optimizations and keep the best.

    Run i uses seed + i (or fresh entropy when seed is None). Every run works
    on its own clone of the layout and its own distance cache.

    Raises:
        ConfigurationError: If restarts, generations or accept are invalid
    """
    if restarts < 1:
        raise ConfigurationError(f"Restarts must be a positive integer, got {restarts!r}")

    optimizers = [Optimizer(corpus, generations, accept,
                            seed=None if seed is None else seed + i)
                  for i in range(restarts)]

    def run(optimizer: Optimizer) -> OptimizationResult:
        start = SplitLayout(layout.name, layout.slots, layout.geometry, layout.pinned)
        return optimizer.optimise(start)

    if not workers or workers <= 1:
        results = [run(optimizer) for optimizer in optimizers]
    else:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            results = list(executor.map(run, optimizers))

    return min(results, key=lambda result: result.fitness)
