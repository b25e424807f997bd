#!/usr/bin/env python3
"""
Exception types for split layout analysis and optimisation.

All errors derive from ValueError so the CLI error handler treats them
like any other invalid-input problem.
"""


class LayoutError(ValueError):
    """Base class for all splitkb errors."""


class FormatError(LayoutError):
    """Malformed layout or pins file (wrong row/column counts, bad tokens)."""


class ParseError(LayoutError):
    """Malformed weight specification, unrecognized metric or metric-set name."""


class ConfigurationError(LayoutError):
    """Invalid configuration, e.g. an unknown acceptance schedule or geometry."""
