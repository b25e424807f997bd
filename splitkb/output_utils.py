#!/usr/bin/env python3
"""
Output utilities for layout analysis, ranking and optimization.

Common functions for formatting and displaying results in various formats.
"""

import sys
from typing import Dict, Any, List, Optional, Sequence

import pandas as pd

from splitkb.layout import SplitLayout
from splitkb.metrics import (BIGRAM_METRICS, METRIC_NAMES, SKIPGRAM_METRICS, TRIGRAM_METRICS,
                             HandUsage, LayoutAnalysis, NgramStat)
from splitkb.ranking import Weights, is_improvement, metric_deltas

OUTPUT_FORMATS = ('detailed', 'csv', 'score_only')

FINGER_LABELS = ('LP', 'LR', 'LM', 'LI', 'LT', 'RT', 'RI', 'RM', 'RR', 'RP')
ROW_LABELS = ('Top', 'Home', 'Bottom', 'Thumb')


def _show_ngram(ngram: str) -> str:
    return ngram.replace(' ', '_')


def format_metrics_line(metrics: Dict[str, float], names: Sequence[str], precision: int = 2) -> str:
    return '  '.join(f"{name} {metrics.get(name, 0.0):6.{precision}f}%" for name in names)


def format_ngram_table(title: str, stats: List[NgramStat], limit: int = 10) -> List[str]:
    """Format the most frequent offending n-grams of one metric."""
    lines = [f"{title} ({len(stats)} n-grams):"]
    if not stats:
        lines.append("  (none)")
        return lines

    for stat in stats[:limit]:
        lines.append(f"  {_show_ngram(stat.ngram):<6} {stat.count:>10,}  "
                     f"{stat.percentage:7.3f}%  {stat.distance:5.2f}U")
    if len(stats) > limit:
        lines.append(f"  ... and {len(stats) - limit} more")
    return lines


def format_hand_usage(usage: HandUsage) -> str:
    """Format hand, row, column and finger usage percentages."""
    lines = ["Hand usage:"]
    lines.append(f"  Left {usage.hands[0].percentage:6.2f}%   Right {usage.hands[1].percentage:6.2f}%")

    lines.append("Row usage:")
    lines.append('  ' + '  '.join(f"{label} {entry.percentage:6.2f}%"
                                  for label, entry in zip(ROW_LABELS, usage.rows)))

    lines.append("Finger usage:")
    lines.append('  ' + '  '.join(f"{label} {entry.percentage:5.2f}%"
                                  for label, entry in zip(FINGER_LABELS, usage.fingers)))

    lines.append("Column usage:")
    lines.append('  ' + ' '.join(f"{entry.percentage:5.2f}" for entry in usage.columns))

    unavailable = usage.unavailable_sorted()
    if unavailable:
        shown = ', '.join(f"{_show_ngram(char)!r}: {count:,}" for char, count in unavailable[:10])
        lines.append(f"Unavailable characters ({len(unavailable)}): {shown}")

    return '\n'.join(lines)


def format_detailed_output(analysis: LayoutAnalysis, layout: Optional[SplitLayout] = None,
                           top: int = 10, show_usage: bool = True) -> str:
    """
    Format an analysis as a human-readable report.

    Args:
        analysis: Analysis to format
        layout: Layout to draw above the report (optional)
        top: Number of n-grams to list per metric (0 = no listings)
        show_usage: Whether to include hand usage
    """
    lines = [f"{analysis.layout_name} ({analysis.corpus_name})", "=" * 70]
    if layout is not None:
        lines.append(str(layout))
        lines.append("")

    lines.append("Bigrams:   " + format_metrics_line(analysis.metrics, BIGRAM_METRICS))
    lines.append("Skipgrams: " + format_metrics_line(analysis.metrics, SKIPGRAM_METRICS))
    lines.append("Trigrams:  " + format_metrics_line(analysis.metrics, TRIGRAM_METRICS))

    if show_usage:
        lines.append("")
        lines.append(format_hand_usage(analysis.hand_usage))

    if top > 0:
        for metric, stats in analysis.details.items():
            lines.append("")
            lines.extend(format_ngram_table(metric, stats, top))
        lines.append("")
        lines.extend(format_ngram_table("SFS (merged)", analysis.merged_sfs, top))

    unsupported_bigrams = sum(analysis.unsupported_bigrams.values())
    unsupported_trigrams = sum(analysis.unsupported_trigrams.values())
    if unsupported_bigrams or unsupported_trigrams:
        lines.append("")
        lines.append(f"Unsupported: {unsupported_bigrams:,} bigrams, {unsupported_trigrams:,} trigrams")

    return '\n'.join(lines)


def format_score_only_output(analysis: LayoutAnalysis, precision: int = 6) -> str:
    """Space-separated metric values in canonical order."""
    return ' '.join(f"{analysis.metrics.get(name, 0.0):.{precision}f}" for name in METRIC_NAMES)


def analyses_frame(analyses: Sequence[LayoutAnalysis]) -> pd.DataFrame:
    return pd.DataFrame([analysis.to_dict() for analysis in analyses])


def format_csv_output(analyses: Sequence[LayoutAnalysis], precision: int = 6) -> str:
    return analyses_frame(analyses).to_csv(index=False, float_format=f"%.{precision}f").rstrip('\n')


def print_results(analysis: LayoutAnalysis, output_format: str = "detailed",
                  layout: Optional[SplitLayout] = None, top: int = 10, file=None) -> None:
    """
    Print an analysis in the specified format.

    Args:
        analysis: Analysis to print
        output_format: Format type ('detailed', 'csv', 'score_only')
        layout: Layout drawn in the detailed format
        top: Number of n-grams listed per metric in the detailed format
        file: File object to write to (defaults to stdout)
    """
    if file is None:
        file = sys.stdout

    if output_format == "csv":
        output = format_csv_output([analysis])
    elif output_format == "score_only":
        output = format_score_only_output(analysis)
    elif output_format == "detailed":
        output = format_detailed_output(analysis, layout, top)
    else:
        raise ValueError(f"Unknown output format: {output_format}")

    print(output, file=file)


# Delta row markers: a change for the better or for the worse
DELTA_MARKS = {True: '*', False: '!', None: ' '}


def format_ranking_table(ranking: pd.DataFrame, title: str = "Layout Ranking",
                         metrics: Sequence[str] = METRIC_NAMES,
                         weights: Optional[Weights] = None,
                         show_deltas: bool = False) -> str:
    """
    Format a ranking frame as a fixed-width table, rows in frame order.

    Args:
        ranking: Frame from rank_layouts()
        title: Table title
        metrics: Metric columns to show
        weights: When given, a weight row follows the header
        show_deltas: Insert a row of metric changes before every layout after
                     the first; '*' marks an improvement, '!' a regression
                     (higher is better for ALT, ROL and ONE)
    """
    if ranking.empty:
        return "No layouts to rank"

    lines = [f"\n{title}", "=" * len(title)]
    header = f"{'Rank':<6} {'Layout':<24} {'Score':>8}"
    for metric in metrics:
        header += f" {metric:>7}"
    lines.append(header)
    if weights is not None:
        weight_line = f"{'':<6} {'Weight':<24} {'':>8}"
        for metric in metrics:
            weight_line += f" {weights.get(metric):7.2f}"
        lines.append(weight_line)
    lines.append("-" * len(header))

    deltas = metric_deltas(ranking) if show_deltas else None
    for position, row in enumerate(ranking.itertuples(index=False)):
        values = row._asdict()
        if deltas is not None and position > 0:
            delta_line = f"{'':<6} {'':<24} {'':>8}"
            for metric in metrics:
                delta = deltas.iloc[position][metric]
                delta_line += f" {delta:+6.2f}{DELTA_MARKS[is_improvement(metric, delta)]}"
            lines.append(delta_line.rstrip())

        line = f"{'#' + str(position + 1):<6} {str(values['name'])[:24]:<24} {values['score']:8.3f}"
        for metric in metrics:
            line += f" {values[metric]:7.2f}"
        lines.append(line)

    return '\n'.join(lines)


def save_dataframe_csv(frame: pd.DataFrame, csv_file: str, quiet: bool = False) -> None:
    """Save a results frame to CSV."""
    frame.to_csv(csv_file, index=False)
    if not quiet:
        print(f"Results saved to: {csv_file}")


def format_optimization_summary(result: Any, quiet: bool = False) -> str:
    """Format an OptimizationResult: the best layout and its SFB change."""
    lines = []
    if not quiet:
        lines.append(f"\nOptimized layout ({result.generations:,} generations, "
                     f"{result.accepted:,} accepted, {result.improvements:,} improvements)")
        lines.append("=" * 70)
    lines.append(str(result.layout))
    lines.append("")
    lines.append(f"SFB: {100 * result.initial_fitness:.4f}% -> {100 * result.fitness:.4f}%")
    if result.cancelled:
        lines.append("(cancelled before the last generation)")
    if not quiet:
        lines.append(f"Time: {result.execution_time:.2f}s")
    return '\n'.join(lines)
