#!/usr/bin/env python3
"""
Ergonomic metrics for split keyboard layouts.

Classifies every bigram and trigram of a corpus against a layout and
aggregates frequency-weighted percentages:

  Bigrams (same hand only):
    SFB  same-finger bigram: same finger, two different keys
    LSB  lateral-stretch bigram: one key in an inner column (5, 6), the
         other in column 3 or 8
    FSB  full scissor bigram: the lower key is two rows below the other and
         is typed by a ring or middle finger (fingers 1, 2, 7, 8)
    HSB  half scissor bigram: as FSB, one row apart

  Skipgrams: SFS, LSS, FSS, HSS apply the bigram rules to the first and
  third character of each trigram.

  Trigrams:
    ALT  alternation (left-right-left or right-left-right)
    ROL  roll: first and last on different hands, no adjacent finger repeat
    ONE  one hand, fingers in strictly increasing or decreasing order
    RED  redirection: one hand, three different fingers, not in order

An SFB is not classified further; LSB, FSB and HSB may overlap. Bigram
percentages are relative to all bigrams without whitespace, skipgram and
trigram percentages to all trigrams. A zero denominator yields 0.0.

There is one rule set, METRIC_SET_STANDARD; engines reject any other
metric-set name with ParseError.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from splitkb.corpus import Corpus
from splitkb.errors import ParseError
from splitkb.layout import COLUMNS, LEFT, KeyInfo, SplitLayout

logger = logging.getLogger(__name__)

BIGRAM_METRICS = ('SFB', 'LSB', 'FSB', 'HSB')
SKIPGRAM_METRICS = ('SFS', 'LSS', 'FSS', 'HSS')
TRIGRAM_METRICS = ('ALT', 'ROL', 'ONE', 'RED')
METRIC_NAMES = BIGRAM_METRICS + SKIPGRAM_METRICS + TRIGRAM_METRICS

METRIC_SET_STANDARD = 'standard'
METRIC_SETS: Dict[str, Tuple[str, ...]] = {METRIC_SET_STANDARD: METRIC_NAMES}

# Metrics with detailed per-n-gram listings
DETAIL_METRICS = BIGRAM_METRICS + ('SFS',)

LATERAL_INNER_COLUMNS = frozenset({5, 6})
LATERAL_OUTER_COLUMNS = frozenset({3, 8})
BOTTOM_ROW_FINGERS = frozenset({1, 2, 7, 8})

SAME_FINGER = 'SF'
LATERAL_STRETCH = 'LS'
FULL_SCISSOR = 'FS'
HALF_SCISSOR = 'HS'


def percent(count: int, total: int) -> float:
    """count / total scaled to 0-100, or 0.0 when total is zero."""
    if total == 0:
        return 0.0
    return 100.0 * count / total


def classify_pair(key1: KeyInfo, key2: KeyInfo) -> Tuple[str, ...]:
    """
    Classify an ordered pair of keys.

    Returns:
        Tuple of pair categories (SF, LS, FS, HS); empty for cross-hand pairs
        and for pairs matching no category
    """
    if key1.hand != key2.hand:
        return ()

    if key1.finger == key2.finger:
        return (SAME_FINGER,) if key1.index != key2.index else ()

    if key1.is_thumb or key2.is_thumb:
        return ()

    labels = []
    if ((key1.column in LATERAL_INNER_COLUMNS and key2.column in LATERAL_OUTER_COLUMNS) or
            (key2.column in LATERAL_INNER_COLUMNS and key1.column in LATERAL_OUTER_COLUMNS)):
        labels.append(LATERAL_STRETCH)

    upper, lower = (key1, key2) if key1.row <= key2.row else (key2, key1)
    if lower.finger in BOTTOM_ROW_FINGERS:
        row_diff = lower.row - upper.row
        if row_diff == 2:
            labels.append(FULL_SCISSOR)
        elif row_diff == 1:
            labels.append(HALF_SCISSOR)

    return tuple(labels)


def classify_trigram(key1: KeyInfo, key2: KeyInfo, key3: KeyInfo) -> Tuple[str, ...]:
    """Classify a trigram as ALT, ROL, ONE and/or RED."""
    labels = []

    if key1.hand == key3.hand and key1.hand != key2.hand:
        labels.append('ALT')

    if key1.hand != key3.hand and key1.finger != key2.finger and key2.finger != key3.finger:
        labels.append('ROL')

    if key1.hand == key2.hand == key3.hand:
        in_order = (key1.finger < key2.finger < key3.finger or
                    key1.finger > key2.finger > key3.finger)
        all_different = len({key1.finger, key2.finger, key3.finger}) == 3
        if in_order:
            labels.append('ONE')
        elif all_different:
            labels.append('RED')

    return tuple(labels)


@dataclass
class NgramStat:
    """One offending n-gram with its corpus count, percentage and key distance."""
    ngram: str
    count: int
    percentage: float
    distance: float = 0.0


@dataclass
class Usage:
    count: int = 0
    percentage: float = 0.0


@dataclass
class HandUsage:
    """
    Key press distribution over hands, rows, columns and fingers.

    Percentages are relative to all corpus unigrams, so they sum to less
    than 100 when the corpus contains characters missing from the layout.
    Column usage covers the finger rows only.
    """
    total_unigrams: int = 0
    hands: List[Usage] = field(default_factory=lambda: [Usage() for _ in range(2)])
    rows: List[Usage] = field(default_factory=lambda: [Usage() for _ in range(4)])
    columns: List[Usage] = field(default_factory=lambda: [Usage() for _ in range(COLUMNS)])
    fingers: List[Usage] = field(default_factory=lambda: [Usage() for _ in range(10)])
    unavailable: Dict[str, int] = field(default_factory=dict)

    def unavailable_sorted(self) -> List[Tuple[str, int]]:
        return sorted(self.unavailable.items(), key=lambda item: (-item[1], item[0]))


@dataclass
class LayoutAnalysis:
    """
    Result of analysing one layout against one corpus.

    Metric values are percentages (0-100).
    """
    layout_name: str
    corpus_name: str
    metrics: Dict[str, float] = field(default_factory=dict)
    counts: Dict[str, int] = field(default_factory=dict)
    details: Dict[str, List[NgramStat]] = field(default_factory=dict)
    merged_sfs: List[NgramStat] = field(default_factory=list)
    hand_usage: HandUsage = field(default_factory=HandUsage)
    unsupported_bigrams: Dict[str, int] = field(default_factory=dict)
    unsupported_trigrams: Dict[str, int] = field(default_factory=dict)
    total_bigrams: int = 0
    total_trigrams: int = 0
    execution_time: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Flat dictionary suitable for CSV/JSON export."""
        result = {
            'layout': self.layout_name,
            'corpus': self.corpus_name,
        }
        for name in METRIC_NAMES:
            result[name] = self.metrics.get(name, 0.0)
        result['left_hand'] = self.hand_usage.hands[0].percentage
        result['right_hand'] = self.hand_usage.hands[1].percentage
        result['unsupported_bigrams'] = sum(self.unsupported_bigrams.values())
        result['unsupported_trigrams'] = sum(self.unsupported_trigrams.values())
        return result


def _sorted_stats(stats: List[NgramStat]) -> List[NgramStat]:
    return sorted(stats, key=lambda stat: (-stat.count, stat.ngram))


class MetricsEngine:
    """
    Computes ergonomic metrics for layouts against a fixed corpus.

    The engine only reads the corpus, so one engine can analyse many layouts,
    including from several threads at once.
    """

    def __init__(self, corpus: Corpus, metric_set: str = METRIC_SET_STANDARD):
        if metric_set not in METRIC_SETS:
            raise ParseError(f"Unknown metric set '{metric_set}'. Available: {list(METRIC_SETS)}")
        self.corpus = corpus
        self.metric_set = metric_set

    def analyse(self, layout: SplitLayout) -> LayoutAnalysis:
        """
        Classify every bigram and trigram of the corpus against a layout.

        Args:
            layout: Layout to analyse

        Returns:
            LayoutAnalysis with metric percentages, detail listings and hand usage
        """
        start_time = time.time()
        corpus = self.corpus
        rune_info = layout.rune_info
        distance = layout.key_distance.distance

        counts = {name: 0 for name in METRIC_NAMES}
        details: Dict[str, List[NgramStat]] = {name: [] for name in DETAIL_METRICS}
        unsupported_bigrams: Dict[str, int] = {}
        unsupported_trigrams: Dict[str, int] = {}
        bigram_total = corpus.total_bigrams_no_space
        trigram_total = corpus.total_trigrams

        for bigram, count in corpus.bigrams.items():
            key1 = rune_info.get(bigram[0])
            key2 = rune_info.get(bigram[1])
            if key1 is None or key2 is None:
                unsupported_bigrams[bigram] = count
                continue

            labels = classify_pair(key1, key2)
            if not labels:
                continue
            dist = distance(key1, key2)
            for label in labels:
                metric = label + 'B'
                counts[metric] += count
                details[metric].append(NgramStat(bigram, count, percent(count, bigram_total), dist))

        merged: Dict[str, NgramStat] = {}
        for trigram, count in corpus.trigrams.items():
            key1 = rune_info.get(trigram[0])
            key3 = rune_info.get(trigram[2])
            if key1 is None or key3 is None:
                unsupported_trigrams[trigram] = count
                continue

            labels = classify_pair(key1, key3)
            if labels:
                dist = distance(key1, key3)
                for label in labels:
                    counts[label + 'S'] += count
                if SAME_FINGER in labels:
                    stat = NgramStat(trigram, count, percent(count, trigram_total), dist)
                    details['SFS'].append(stat)
                    first, last = sorted((trigram[0], trigram[2]))
                    merged_key = first + '_' + last
                    if merged_key in merged:
                        merged[merged_key].count += count
                        merged[merged_key].percentage += stat.percentage
                    else:
                        merged[merged_key] = NgramStat(merged_key, count, stat.percentage, dist)

            key2 = rune_info.get(trigram[1])
            if key2 is None:
                unsupported_trigrams[trigram] = count
                continue
            for label in classify_trigram(key1, key2, key3):
                counts[label] += count

        metrics = {}
        for name in BIGRAM_METRICS:
            metrics[name] = percent(counts[name], bigram_total)
        for name in SKIPGRAM_METRICS + TRIGRAM_METRICS:
            metrics[name] = percent(counts[name], trigram_total)

        analysis = LayoutAnalysis(
            layout_name=layout.name,
            corpus_name=corpus.name,
            metrics=metrics,
            counts=counts,
            details={name: _sorted_stats(stats) for name, stats in details.items()},
            merged_sfs=_sorted_stats(list(merged.values())),
            hand_usage=self.hand_usage(layout),
            unsupported_bigrams=unsupported_bigrams,
            unsupported_trigrams=unsupported_trigrams,
            total_bigrams=bigram_total,
            total_trigrams=trigram_total,
        )
        analysis.execution_time = time.time() - start_time
        return analysis

    def hand_usage(self, layout: SplitLayout) -> HandUsage:
        """Distribution of key presses over hands, rows, columns and fingers."""
        usage = HandUsage(total_unigrams=self.corpus.total_unigrams)

        for char, count in self.corpus.unigrams.items():
            info = layout.rune_info.get(char)
            if info is None:
                usage.unavailable[char] = usage.unavailable.get(char, 0) + count
                continue
            usage.hands[0 if info.hand == LEFT else 1].count += count
            usage.rows[info.row].count += count
            if not info.is_thumb:
                usage.columns[info.column].count += count
            usage.fingers[info.finger].count += count

        total = usage.total_unigrams
        for group in (usage.hands, usage.rows, usage.columns, usage.fingers):
            for entry in group:
                entry.percentage = percent(entry.count, total)

        return usage

    def extract_sfbs(self, layout: SplitLayout) -> Tuple[List[NgramStat], int]:
        """
        Same-finger bigrams of the corpus on a layout.

        Returns:
            Tuple of (SFB stats sorted by count then bigram, total SFB count)
        """
        rune_info = layout.rune_info
        total = self.corpus.total_bigrams_no_space
        sfbs = []
        sfb_count = 0

        for bigram, count in self.corpus.bigrams.items():
            key1 = rune_info.get(bigram[0])
            key2 = rune_info.get(bigram[1])
            if key1 is None or key2 is None:
                continue
            if key1.hand == key2.hand and key1.finger == key2.finger and key1.index != key2.index:
                sfbs.append(NgramStat(bigram, count, percent(count, total)))
                sfb_count += count

        return _sorted_stats(sfbs), sfb_count

    def sfb_fraction(self, layout: SplitLayout) -> float:
        """Fraction (0-1) of corpus bigrams that are same-finger bigrams."""
        total = self.corpus.total_bigrams_no_space
        if total == 0:
            return 0.0

        rune_info = layout.rune_info
        sfb_count = 0
        for bigram, count in self.corpus.bigrams.items():
            key1 = rune_info.get(bigram[0])
            key2 = rune_info.get(bigram[1])
            if (key1 is not None and key2 is not None and key1.finger == key2.finger
                    and key1.index != key2.index):
                sfb_count += count
        return sfb_count / total

    def analyse_many(self, layouts: Sequence[SplitLayout],
                     workers: Optional[int] = None) -> List[LayoutAnalysis]:
        """
        Analyse independent layouts against the shared corpus.

        Args:
            layouts: Layouts to analyse
            workers: Thread pool size (None or 1 = sequential)

        Returns:
            Analyses in the same order as the layouts
        """
        if not workers or workers <= 1 or len(layouts) <= 1:
            return [self.analyse(layout) for layout in layouts]

        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(self.analyse, layouts))
