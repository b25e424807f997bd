#!/usr/bin/env python3
"""
CLI utilities for the layout analysis tools.

Common argument groups, logging setup and error handling shared by
analyze_layout.py, rank_layouts.py and optimize_layout.py.
"""

import argparse
import functools
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from splitkb.corpus import Corpus
from splitkb.distance import GEOMETRIES

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Configure root logging: DEBUG when verbose, WARNING when quiet, else INFO."""
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)


def add_input_arguments(parser: argparse.ArgumentParser, corpus_required: bool = False) -> None:
    """Add corpus, geometry and configuration arguments."""
    input_group = parser.add_argument_group('Input Options')

    input_group.add_argument(
        '--corpus',
        dest='corpus',
        required=corpus_required,
        help="Path to corpus text file (overrides config)"
    )

    input_group.add_argument(
        '--geometry',
        dest='geometry',
        choices=list(GEOMETRIES),
        help="Keyboard geometry (default: layout file header, then ortho)"
    )

    input_group.add_argument(
        '--config',
        dest='config',
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)"
    )


def add_output_arguments(parser: argparse.ArgumentParser) -> None:
    """Add standard output arguments."""
    output_group = parser.add_argument_group('Output Options')

    output_group.add_argument(
        '--csv',
        dest='csv',
        help="Save results to a CSV file"
    )

    output_group.add_argument(
        '--quiet',
        dest='quiet',
        action='store_true',
        help="Suppress verbose output"
    )

    output_group.add_argument(
        '--verbose',
        dest='verbose',
        action='store_true',
        help="Enable debug logging"
    )


def resolve_setting(args: argparse.Namespace, config: Dict[str, Any], key: str,
                    default: Any = None) -> Any:
    """Command-line value if given, else the config value, else the default."""
    value = getattr(args, key, None)
    if value is not None:
        return value
    value = config.get(key)
    return default if value is None else value


def load_corpus(args: argparse.Namespace, config: Dict[str, Any]) -> Corpus:
    """
    Load the corpus named on the command line or in the config.

    Raises:
        ValueError: If no corpus is configured
        FileNotFoundError: If the corpus file doesn't exist
    """
    corpus_path = resolve_setting(args, config, 'corpus')
    if not corpus_path:
        raise ValueError("No corpus given: use --corpus or set 'corpus' in the config")
    return Corpus.from_file(corpus_path, name=Path(corpus_path).name)


def handle_common_errors(func):
    """
    Decorator to handle common CLI errors gracefully.

    Args:
        func: Function to wrap (typically main())

    Returns:
        Wrapped function returning an exit code
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            print("\nOperation cancelled by user.", file=sys.stderr)
            return 130
        except FileNotFoundError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        except PermissionError as e:
            print(f"Permission error: {e}", file=sys.stderr)
            return 1

    return wrapper


def validate_output_path(filepath: Optional[str]) -> None:
    """
    Raises:
        FileNotFoundError: If the output file's directory doesn't exist
    """
    if filepath is None:
        return
    parent = Path(filepath).parent
    if not parent.is_dir():
        raise FileNotFoundError(f"Output directory not found: {parent}")
