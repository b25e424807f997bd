#!/usr/bin/env python3
"""
Cross-layout ranking by robust scaling of metric values.

For every metric the median and interquartile range (IQR) are taken across
all layouts being compared (or a larger population); each layout's value is scaled to
(value - median) / IQR and the weighted sum of scaled values is its score.
Lower scores are better, so metrics that should be high (ALT, ROL, ONE)
carry negative weights by default. A metric whose IQR is zero contributes
nothing.
"""

import logging
import math
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

from splitkb.errors import ConfigurationError, FormatError, ParseError
from splitkb.layout import SplitLayout
from splitkb.metrics import METRIC_NAMES, LayoutAnalysis

logger = logging.getLogger(__name__)

LAYOUT_EXTENSION = '.klf'

DEFAULT_WEIGHTS: Dict[str, float] = {name: 1.0 for name in METRIC_NAMES}
DEFAULT_WEIGHTS.update({'ALT': -1.0, 'ROL': -1.0, 'ONE': -1.0})

# Metrics where a higher value is better
REVERSED_METRICS = frozenset({'ALT', 'ROL', 'ONE'})

ORDER_OPTIONS = ('rank', 'input')


class Weights:
    """Per-metric weights; metrics without a weight contribute zero."""

    def __init__(self, weights: Optional[Dict[str, float]] = None):
        self.weights: Dict[str, float] = dict(DEFAULT_WEIGHTS)
        if weights:
            for name, value in weights.items():
                metric = _metric_name(name)
                weight = float(value)
                if not math.isfinite(weight):
                    raise ParseError(f"Weight for {metric} must be finite, got {value!r}")
                self.weights[metric] = weight

    def __repr__(self) -> str:
        return f"Weights({self.weights!r})"

    def get(self, metric: str) -> float:
        return self.weights.get(metric.upper(), 0.0)

    def to_string(self) -> str:
        return ','.join(f"{name}={value:g}" for name, value in self.weights.items())

    @classmethod
    def from_string(cls, text: Optional[str]) -> "Weights":
        """
        Parse a weight specification like "sfb=3, alt=-0.5".

        Names are case-insensitive and whitespace is ignored. Unlisted metrics
        keep their default weight; an empty string gives the defaults.

        Raises:
            ParseError: For malformed pairs, non-numeric or non-finite values, and unknown metrics
        """
        overrides: Dict[str, float] = {}
        if text is None or not text.strip():
            return cls()

        for part in text.split(','):
            part = part.strip()
            if not part:
                continue
            if '=' not in part:
                raise ParseError(f"Invalid weight '{part}': expected METRIC=value")
            name, value = (piece.strip() for piece in part.split('=', 1))
            metric = _metric_name(name)
            try:
                weight = float(value)
            except ValueError:
                raise ParseError(f"Invalid weight value for {metric}: '{value}'")
            overrides[metric] = weight

        return cls(overrides)


def _metric_name(name: str) -> str:
    metric = name.strip().upper()
    if metric not in METRIC_NAMES:
        raise ParseError(f"Unknown metric '{name}'. Available: {list(METRIC_NAMES)}")
    return metric


def robust_stats(frame: pd.DataFrame) -> pd.DataFrame:
    """
    Median and IQR of every column.

    Quartiles use linear interpolation, so for the values 1, 2, 3 the median
    is 2 and the IQR is 1.

    Returns:
        DataFrame indexed by column name with 'median' and 'iqr' columns
    """
    q1 = frame.quantile(0.25)
    q3 = frame.quantile(0.75)
    return pd.DataFrame({'median': frame.median(), 'iqr': q3 - q1})


def robust_scale(values: Sequence[float]) -> np.ndarray:
    """Scale values to (v - median) / IQR; all zeros when the IQR is zero."""
    array = np.asarray(values, dtype=float)
    if array.size == 0:
        return array
    q1, median, q3 = np.percentile(array, [25, 50, 75])
    iqr = q3 - q1
    if iqr == 0:
        return np.zeros_like(array)
    return (array - median) / iqr


def metrics_frame(analyses: Iterable[LayoutAnalysis]) -> pd.DataFrame:
    """One row per analysis in input order: a 'name' column, then one column per metric."""
    rows = [dict(analysis.metrics, name=analysis.layout_name) for analysis in analyses]
    frame = pd.DataFrame(rows, columns=['name'] + list(METRIC_NAMES))
    frame[list(METRIC_NAMES)] = frame[list(METRIC_NAMES)].fillna(0.0)
    return frame


def rank_layouts(analyses: Sequence[LayoutAnalysis],
                 weights: Optional[Weights] = None,
                 population: Optional[Sequence[LayoutAnalysis]] = None,
                 order: str = 'rank') -> pd.DataFrame:
    """
    Score and rank layouts against each other.

    Args:
        analyses: One analysis per layout, all against the same corpus.
                  Names need not be unique.
        weights: Metric weights (defaults when None)
        population: Analyses whose medians and IQRs scale the metrics; a
                    subset can then be scored against a whole directory.
                    Defaults to the analyses themselves.
        order: 'rank' sorts by score ascending (best first), ties broken by
               name and then input order; 'input' keeps the given order

    Returns:
        DataFrame with 'name', 'score' and one column per metric

    Raises:
        ConfigurationError: For an unknown order
    """
    if order not in ORDER_OPTIONS:
        raise ConfigurationError(f"Unknown order '{order}'. Available: {list(ORDER_OPTIONS)}")
    weights = weights or Weights()
    frame = metrics_frame(analyses)
    if frame.empty:
        return pd.DataFrame(columns=['name', 'score'] + list(METRIC_NAMES))

    reference = metrics_frame(population) if population else frame
    stats = robust_stats(reference[list(METRIC_NAMES)])
    scores = pd.Series(0.0, index=frame.index)
    for metric in METRIC_NAMES:
        weight = weights.get(metric)
        iqr = stats.at[metric, 'iqr']
        if weight == 0 or iqr == 0:
            continue
        scores += weight * (frame[metric] - stats.at[metric, 'median']) / iqr

    result = frame.copy()
    result.insert(1, 'score', scores)
    if order == 'rank':
        # lexsort on several keys is stable, so equal rows keep input order
        result = result.sort_values(['score', 'name'], kind='mergesort')
    result = result.reset_index(drop=True)
    logger.debug("Ranked %d layouts against %d", len(result), len(reference))
    return result


def metric_deltas(ranking: pd.DataFrame) -> pd.DataFrame:
    """
    Metric changes between consecutive rows of a ranking.

    Row i holds row i minus row i-1; the first row is all NaN.
    """
    return ranking[list(METRIC_NAMES)].diff()


def is_improvement(metric: str, delta: float) -> Optional[bool]:
    """Whether a metric change is better (lower, or higher for ALT/ROL/ONE); None if unchanged."""
    if delta == 0:
        return None
    if metric.upper() in REVERSED_METRICS:
        return bool(delta > 0)
    return bool(delta < 0)


def select_analyses(analyses: Sequence[LayoutAnalysis],
                    names: Sequence[str]) -> List[LayoutAnalysis]:
    """
    Pick analyses by layout name, in the order the names are given.

    Raises:
        FileNotFoundError: If a name matches no analysis
    """
    by_name = {analysis.layout_name: analysis for analysis in analyses}
    selected = []
    for name in names:
        if name not in by_name:
            raise FileNotFoundError(f"Layout not found: {name}")
        selected.append(by_name[name])
    return selected


def load_layouts(directory: str, geometry: Optional[str] = None) -> List[SplitLayout]:
    """
    Load every .klf file in a directory (sorted by file name).

    Malformed files are logged and skipped.

    Raises:
        FileNotFoundError: If the directory doesn't exist
    """
    path = Path(directory)
    if not path.is_dir():
        raise FileNotFoundError(f"Layouts directory not found: {directory}")

    layouts = []
    for filepath in sorted(path.glob(f"*{LAYOUT_EXTENSION}")):
        try:
            layouts.append(SplitLayout.load_from_file(str(filepath), geometry=geometry))
        except FormatError as e:
            logger.warning("Skipping %s: %s", filepath.name, e)

    logger.info("Loaded %d layouts from %s", len(layouts), directory)
    return layouts
