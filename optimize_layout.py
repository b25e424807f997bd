#!/usr/bin/env python3
"""
Split keyboard layout optimizer.

Reduces the same-finger bigram rate of a layout by simulated annealing.
Keys can be pinned by row, by character or with a pins file; pinned keys
never move. Empty and whitespace keys are always pinned.

Usage:
    # Optimize with the default schedule
    python optimize_layout.py data/layouts/qwerty.klf --corpus data/corpus/sample.txt

    # Keep the top row fixed, reproducible run, save the result
    python optimize_layout.py data/layouts/qwerty.klf --corpus data/corpus/sample.txt \
        --pin-row 0 --seed 42 --generations 5000 --output best.klf

    # Several independent restarts in parallel
    python optimize_layout.py data/layouts/qwerty.klf --corpus data/corpus/sample.txt --restarts 4 --workers 4
"""

import argparse
import logging
import sys
from typing import List, Optional

from splitkb.cli_utils import (add_input_arguments, add_output_arguments, handle_common_errors,
                               load_corpus, resolve_setting, setup_logging, validate_output_path)
from splitkb.config_loader import load_section
from splitkb.layout import SplitLayout
from splitkb.optimizer import (ACCEPT_SCHEDULES, DEFAULT_SCHEDULE, Optimizer,
                               get_accept_function, optimise_restarts)
from splitkb.output_utils import format_optimization_summary

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Optimize a split keyboard layout for fewer same-finger bigrams',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Optimize with the default schedule
  python optimize_layout.py data/layouts/qwerty.klf --corpus data/corpus/sample.txt

  # Pin the top row and the characters "aeiou", save the result
  python optimize_layout.py data/layouts/qwerty.klf --pin-row 0 --pin aeiou --output best.klf

  # Move only the given characters
  python optimize_layout.py data/layouts/qwerty.klf --free etaoinsr

Accept schedules (probability of accepting a worse layout, t from 1 down to 0):
  always 1, never 0, temp t, cold t/2, drop-slow (cos(t*pi)+1)/2, drop-fast exp(-3(1-t))

Pins file: same shape as a layout file; '.', '_' or '-' = free, '*', 'x' or 'X' = pinned.
        """
    )

    parser.add_argument('layout', help='Starting layout file (.klf)')

    add_input_arguments(parser)

    opt_group = parser.add_argument_group('Optimization Options')
    opt_group.add_argument('--generations', type=int,
                           help='Number of generations (default: 1000)')
    opt_group.add_argument('--accept', choices=list(ACCEPT_SCHEDULES),
                           help=f'Accept schedule for worse layouts (default: {DEFAULT_SCHEDULE})')
    opt_group.add_argument('--seed', type=int,
                           help='Random seed for reproducible runs')
    opt_group.add_argument('--restarts', type=int,
                           help='Independent runs with seeds seed, seed+1, ... (default: 1)')
    opt_group.add_argument('--workers', type=int,
                           help='Run restarts in parallel threads')

    pin_group = parser.add_argument_group('Pinning Options')
    pin_group.add_argument('--pin-row', dest='pinned_rows', type=int, action='append',
                           help='Pin a row (0-2 finger rows, 3 thumbs); repeatable')
    pin_group.add_argument('--pin', dest='pinned_chars',
                           help='Characters to pin')
    pin_group.add_argument('--free', dest='free_chars',
                           help='Pin everything except these characters')
    pin_group.add_argument('--pins-file', dest='pins_file',
                           help='Pins file with the shape of a layout')

    add_output_arguments(parser)
    parser.add_argument('--output', '-o',
                        help='Save the optimized layout to a .klf file')
    return parser


def apply_pins(layout: SplitLayout, args: argparse.Namespace, config: dict) -> None:
    """Apply pins from the pins file, rows and characters, then pin empty and space keys."""
    pins_file = resolve_setting(args, config, 'pins_file')
    if pins_file:
        layout.load_pins(pins_file)

    free_chars = resolve_setting(args, config, 'free_chars')
    if free_chars:
        layout.free_only(free_chars)

    for row in resolve_setting(args, config, 'pinned_rows', []):
        layout.pin_row(int(row))

    pinned_chars = resolve_setting(args, config, 'pinned_chars')
    if pinned_chars:
        layout.pin_chars(pinned_chars)

    layout.pin_unassigned()
    logger.info("Pinned %d of %d keys", sum(layout.pinned), len(layout.pinned))


@handle_common_errors
def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = create_parser().parse_args(argv)
    setup_logging(args.verbose, args.quiet)

    config = load_section('optimize', args.config)
    validate_output_path(args.output)

    generations = int(resolve_setting(args, config, 'generations', 1000))
    accept = resolve_setting(args, config, 'accept', DEFAULT_SCHEDULE)
    get_accept_function(accept)
    seed = resolve_setting(args, config, 'seed')
    restarts = int(resolve_setting(args, config, 'restarts', 1))

    corpus = load_corpus(args, config)
    layout = SplitLayout.load_from_file(args.layout, geometry=resolve_setting(args, config, 'geometry'))
    apply_pins(layout, args, config)

    if restarts > 1:
        result = optimise_restarts(layout, corpus, restarts, generations, accept, seed,
                                   workers=resolve_setting(args, config, 'workers'))
    else:
        def report(generation: int, fitness: float, best: SplitLayout) -> None:
            if not args.quiet:
                print(f"  generation {generation:>7,}: SFB {100 * fitness:.4f}%")

        optimizer = Optimizer(corpus, generations, accept, seed=seed, progress_callback=report)
        result = optimizer.optimise(layout)

    print(format_optimization_summary(result, args.quiet))

    if args.output:
        result.layout.save_to_file(args.output)
        if not args.quiet:
            print(f"Layout saved to: {args.output}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
