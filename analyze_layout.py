#!/usr/bin/env python3
"""
Split keyboard layout analyzer.

Computes same-finger, lateral-stretch and scissor bigrams and skipgrams,
alternation/roll/one-hand/redirect trigrams and hand usage for one or more
42-key split layouts against a text corpus.

Usage:
    # Analyze one layout
    python analyze_layout.py data/layouts/qwerty.klf --corpus data/corpus/sample.txt

    # Analyze several layouts on a row-staggered board, 20 n-grams per metric
    python analyze_layout.py data/layouts/*.klf --corpus data/corpus/sample.txt --geometry rowstag --top 20

    # Metric values only, saved to CSV
    python analyze_layout.py data/layouts/*.klf --corpus data/corpus/sample.txt --format score_only --csv analysis.csv
"""

import argparse
import logging
import sys
from typing import List, Optional

from splitkb.cli_utils import (add_input_arguments, add_output_arguments, handle_common_errors,
                               load_corpus, resolve_setting, setup_logging, validate_output_path)
from splitkb.config_loader import load_section
from splitkb.layout import SplitLayout
from splitkb.metrics import MetricsEngine
from splitkb.output_utils import (OUTPUT_FORMATS, analyses_frame, format_csv_output,
                                  print_results, save_dataframe_csv)

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Analyze split keyboard layouts against a text corpus',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Analyze one layout
  python analyze_layout.py data/layouts/qwerty.klf --corpus data/corpus/sample.txt

  # Several layouts, 20 n-grams per metric
  python analyze_layout.py data/layouts/*.klf --corpus data/corpus/sample.txt --top 20

  # Metric values only, saved to CSV
  python analyze_layout.py data/layouts/*.klf --format score_only --csv analysis.csv

Layout files (.klf):
  Optional geometry line (ortho, rowstag, colstag), then 3 rows of 12 keys
  and 1 row of 6 thumb keys. '~' = no key, '_' = space.
        """
    )

    parser.add_argument('layouts', nargs='+',
                        help='Layout files (.klf) to analyze')

    add_input_arguments(parser)

    analysis_group = parser.add_argument_group('Analysis Options')
    analysis_group.add_argument('--top', type=int,
                                help='Number of n-grams listed per metric (default: 10)')
    analysis_group.add_argument('--format', dest='output_format', choices=list(OUTPUT_FORMATS),
                                default='detailed',
                                help='Output format (default: detailed)')
    analysis_group.add_argument('--workers', type=int,
                                help='Analyze layouts in parallel threads')

    add_output_arguments(parser)
    return parser


@handle_common_errors
def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = create_parser().parse_args(argv)
    setup_logging(args.verbose, args.quiet)

    config = load_section('analyze', args.config)
    validate_output_path(args.csv)
    corpus = load_corpus(args, config)
    geometry = resolve_setting(args, config, 'geometry')
    top = resolve_setting(args, config, 'top', 10)

    layouts = [SplitLayout.load_from_file(path, geometry=geometry) for path in args.layouts]
    engine = MetricsEngine(corpus)
    analyses = engine.analyse_many(layouts, resolve_setting(args, config, 'workers'))

    if args.output_format == 'csv':
        print(format_csv_output(analyses))
    else:
        for layout, analysis in zip(layouts, analyses):
            print_results(analysis, args.output_format, layout=layout, top=top)
            if args.output_format == 'detailed' and not args.quiet:
                print()
            logger.debug("Analyzed %s in %.3fs", analysis.layout_name, analysis.execution_time)

    if args.csv:
        save_dataframe_csv(analyses_frame(analyses), args.csv, args.quiet)

    return 0


if __name__ == "__main__":
    sys.exit(main())
