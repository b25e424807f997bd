#!/usr/bin/env python3
"""
Text corpus for keyboard layout analysis.

Holds frequency counts of 1-, 2- and 3-character sequences extracted from
text, plus the totals used as normalization denominators by the metrics
engine. Text is lower-cased before counting, and any whitespace character
resets the sliding window so that no bigram or trigram spans a word boundary.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


def _has_space(ngram: str) -> bool:
    return any(char.isspace() for char in ngram)


class Corpus:
    """
    Frequency counts of unigrams, bigrams and trigrams.

    N-grams are stored as plain strings ('a', 'th', 'the'). A corpus is built
    incrementally with add_text() and must be treated as read-only once it
    is handed to a MetricsEngine or Optimizer.
    """

    def __init__(self, name: str = "corpus"):
        self.name = name
        self.unigrams: Dict[str, int] = {}
        self.bigrams: Dict[str, int] = {}
        self.trigrams: Dict[str, int] = {}

        self.total_unigrams = 0
        self.total_unigrams_no_space = 0
        self.total_bigrams = 0
        self.total_bigrams_no_space = 0
        self.total_trigrams = 0
        self.total_trigrams_no_space = 0

    def __repr__(self) -> str:
        return (f"Corpus(name={self.name!r}, unigrams={self.total_unigrams}, "
                f"bigrams={self.total_bigrams}, trigrams={self.total_trigrams})")

    def add_unigram(self, unigram: str, count: int = 1) -> None:
        """Add a unigram to the corpus and increment the totals."""
        if len(unigram) != 1:
            raise ValueError(f"Unigram must have 1 character, got {unigram!r}")
        self._add(self.unigrams, unigram, count)
        self.total_unigrams += count
        if not _has_space(unigram):
            self.total_unigrams_no_space += count

    def add_bigram(self, bigram: str, count: int = 1) -> None:
        """Add a bigram to the corpus and increment the totals."""
        if len(bigram) != 2:
            raise ValueError(f"Bigram must have 2 characters, got {bigram!r}")
        self._add(self.bigrams, bigram, count)
        self.total_bigrams += count
        if not _has_space(bigram):
            self.total_bigrams_no_space += count

    def add_trigram(self, trigram: str, count: int = 1) -> None:
        """Add a trigram to the corpus and increment the totals."""
        if len(trigram) != 3:
            raise ValueError(f"Trigram must have 3 characters, got {trigram!r}")
        self._add(self.trigrams, trigram, count)
        self.total_trigrams += count
        if not _has_space(trigram):
            self.total_trigrams_no_space += count

    @staticmethod
    def _add(counts: Dict[str, int], ngram: str, count: int) -> None:
        if count < 1:
            raise ValueError(f"Count for {ngram!r} must be >= 1, got {count}")
        counts[ngram] = counts.get(ngram, 0) + count

    def add_text(self, text: str) -> None:
        """
        Add the unigrams, bigrams and trigrams of a piece of text.

        Every character (whitespace included) is counted as a unigram.
        Whitespace resets the window, so bigrams and trigrams never contain it.

        Args:
            text: Raw text; it is lower-cased before counting
        """
        prev1 = prev2 = None
        for char in text.lower():
            self.add_unigram(char)
            if char.isspace():
                prev1 = prev2 = None
                continue
            if prev1 is not None:
                self.add_bigram(prev1 + char)
                if prev2 is not None:
                    self.add_trigram(prev2 + prev1 + char)
            prev2, prev1 = prev1, char

    @classmethod
    def from_text(cls, text: str, name: str = "text") -> "Corpus":
        corpus = cls(name)
        corpus.add_text(text)
        return corpus

    @classmethod
    def from_file(cls, filepath: str, name: Optional[str] = None) -> "Corpus":
        """
        Build a corpus from a text file, one line at a time.

        Args:
            filepath: Path to a UTF-8 text file
            name: Corpus name (defaults to the file name)

        Returns:
            Populated Corpus

        Raises:
            FileNotFoundError: If the file doesn't exist
        """
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"Corpus file not found: {filepath}")

        corpus = cls(name or path.name)
        with open(path, 'r', encoding='utf-8') as f:
            for line in f:
                if not line.strip():
                    continue
                corpus.add_text(line)

        logger.info("Loaded corpus %s: %d unigrams, %d bigrams, %d trigrams",
                    corpus.name, corpus.total_unigrams, corpus.total_bigrams,
                    corpus.total_trigrams)
        return corpus

    @classmethod
    def from_counts(cls, name: str = "counts",
                    unigrams: Optional[Dict[str, int]] = None,
                    bigrams: Optional[Dict[str, int]] = None,
                    trigrams: Optional[Dict[str, int]] = None) -> "Corpus":
        """Build a corpus directly from precomputed n-gram counts."""
        corpus = cls(name)
        for unigram, count in (unigrams or {}).items():
            corpus.add_unigram(unigram, count)
        for bigram, count in (bigrams or {}).items():
            corpus.add_bigram(bigram, count)
        for trigram, count in (trigrams or {}).items():
            corpus.add_trigram(trigram, count)
        return corpus

    def most_common(self, order: int = 2, limit: Optional[int] = None) -> List[Tuple[str, int]]:
        """
        Get n-grams sorted by count (descending), ties broken by the n-gram itself.

        Args:
            order: 1 for unigrams, 2 for bigrams, 3 for trigrams
            limit: Maximum number of entries (None = all)
        """
        counts = {1: self.unigrams, 2: self.bigrams, 3: self.trigrams}.get(order)
        if counts is None:
            raise ValueError(f"Unsupported n-gram order: {order}")
        ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        return ranked if limit is None else ranked[:limit]

    def summary(self, limit: int = 10) -> str:
        lines = [f"Corpus: {self.name}"]
        for order, label in ((1, "Unigrams"), (2, "Bigrams"), (3, "Trigrams")):
            lines.append(f"{label}:")
            for ngram, count in self.most_common(order, limit):
                lines.append(f"  {ngram!r}: {count:,}")
        return "\n".join(lines)
