#!/usr/bin/env python3
"""
Split keyboard layout ranking.

Analyzes every layout in a directory against one corpus, scales each metric
by its median and interquartile range across the layouts, and ranks layouts
by the weighted sum of scaled metrics (lower = better).

Usage:
    # Rank the bundled layouts with default weights
    python rank_layouts.py --layouts-dir data/layouts --corpus data/corpus/sample.txt

    # Emphasize same-finger bigrams and ignore redirects
    python rank_layouts.py --corpus data/corpus/sample.txt --weights "sfb=3,sfs=2,red=0"

    # Save the ranking table
    python rank_layouts.py --corpus data/corpus/sample.txt --csv rankings.csv

    # Compare two layouts in the given order, scaled against the whole directory
    python rank_layouts.py --corpus data/corpus/sample.txt --layouts qwerty.klf graphite.klf \
        --order input --show-deltas
"""

import argparse
import logging
import sys
from typing import List, Optional

from splitkb.cli_utils import (add_input_arguments, add_output_arguments, handle_common_errors,
                               load_corpus, resolve_setting, setup_logging, validate_output_path)
from splitkb.config_loader import load_section
from splitkb.errors import ConfigurationError
from splitkb.metrics import MetricsEngine
from splitkb.output_utils import format_ranking_table, save_dataframe_csv
from splitkb.ranking import ORDER_OPTIONS, Weights, load_layouts, rank_layouts, select_analyses

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Rank split keyboard layouts by weighted, robustly scaled metrics',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Rank the bundled layouts with default weights
  python rank_layouts.py --layouts-dir data/layouts --corpus data/corpus/sample.txt

  # Custom weights
  python rank_layouts.py --corpus data/corpus/sample.txt --weights "sfb=3,sfs=2,red=0"

  # Subset with metric changes between consecutive layouts
  python rank_layouts.py --corpus data/corpus/sample.txt --layouts qwerty.klf graphite.klf \
      --order input --show-deltas

Weights:
  Comma-separated METRIC=value pairs. Metrics: SFB LSB FSB HSB SFS LSS FSS HSS
  ALT ROL ONE RED. Defaults are 1, except ALT, ROL and ONE which are -1.

Deltas:
  With --show-deltas each layout after the first is preceded by its metric
  changes from the row above. '*' marks an improvement, '!' a regression.
        """
    )

    add_input_arguments(parser)

    ranking_group = parser.add_argument_group('Ranking Options')
    ranking_group.add_argument('--layouts-dir', dest='layouts_dir',
                               help='Directory of .klf layout files (default: data/layouts)')
    ranking_group.add_argument('--weights',
                               help='Metric weights, e.g. "sfb=3,alt=-0.5"')
    ranking_group.add_argument('--workers', type=int,
                               help='Analyze layouts in parallel threads')
    ranking_group.add_argument('--layouts', nargs='+', metavar='FILE',
                               help='Only list these layout files from the layouts directory; '
                                    'medians and IQRs still come from the whole directory')
    ranking_group.add_argument('--order', choices=ORDER_OPTIONS,
                               help='rank: best score first (default); input: as listed')
    ranking_group.add_argument('--show-deltas', dest='show_deltas', action='store_true', default=None,
                               help='Show metric changes between consecutive layouts')

    add_output_arguments(parser)
    return parser


@handle_common_errors
def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = create_parser().parse_args(argv)
    setup_logging(args.verbose, args.quiet)

    config = load_section('rank', args.config)
    validate_output_path(args.csv)
    weights = Weights.from_string(resolve_setting(args, config, 'weights', ''))
    order = resolve_setting(args, config, 'order', 'rank')
    if order not in ORDER_OPTIONS:
        raise ConfigurationError(f"Unknown order '{order}'. Available: {list(ORDER_OPTIONS)}")
    corpus = load_corpus(args, config)

    layouts_dir = resolve_setting(args, config, 'layouts_dir', 'data/layouts')
    layouts = load_layouts(layouts_dir, resolve_setting(args, config, 'geometry'))
    if not layouts:
        print(f"No layouts found in {layouts_dir}", file=sys.stderr)
        return 1

    analyses = MetricsEngine(corpus).analyse_many(layouts, resolve_setting(args, config, 'workers'))
    if args.layouts:
        ranking = rank_layouts(select_analyses(analyses, args.layouts), weights,
                               population=analyses, order=order)
    else:
        ranking = rank_layouts(analyses, weights, order=order)
    logger.debug("Weights: %s", weights.to_string())

    title = f"Layout Ranking ({corpus.name})"
    print(format_ranking_table(ranking, title=title, weights=weights,
                               show_deltas=bool(resolve_setting(args, config, 'show_deltas', False))))

    if args.csv:
        save_dataframe_csv(ranking, args.csv, args.quiet)

    return 0


if __name__ == "__main__":
    sys.exit(main())
