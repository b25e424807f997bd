# splitkb/__init__.py
"""
Split Keyboard Layout Metrics and Optimization

Corpus n-gram counting, ergonomic metrics for 42-key split layouts,
cross-layout ranking and a simulated-annealing optimizer.
"""

__version__ = "1.0.0"

# Import main classes for easy access
from .corpus import Corpus
from .errors import ConfigurationError, FormatError, LayoutError, ParseError
from .layout import KeyInfo, SplitLayout
from .metrics import LayoutAnalysis, MetricsEngine
from .optimizer import Optimizer, OptimizationResult
from .ranking import Weights, rank_layouts

__all__ = [
    'Corpus',
    'ConfigurationError',
    'FormatError',
    'LayoutError',
    'ParseError',
    'KeyInfo',
    'SplitLayout',
    'LayoutAnalysis',
    'MetricsEngine',
    'Optimizer',
    'OptimizationResult',
    'Weights',
    'rank_layouts',
]
