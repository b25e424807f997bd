import pytest

from splitkb.corpus import Corpus


def test_add_text_counts_ngrams_within_words():
    corpus = Corpus.from_text("the cat")

    assert corpus.unigrams == {'t': 2, 'h': 1, 'e': 1, ' ': 1, 'c': 1, 'a': 1}
    assert corpus.bigrams == {'th': 1, 'he': 1, 'ca': 1, 'at': 1}
    assert corpus.trigrams == {'the': 1, 'cat': 1}


def test_whitespace_resets_window():
    corpus = Corpus.from_text("ab\tcd\nef")

    assert set(corpus.bigrams) == {'ab', 'cd', 'ef'}
    assert corpus.trigrams == {}


def test_text_is_lowercased():
    corpus = Corpus.from_text("AbA")

    assert corpus.unigrams == {'a': 2, 'b': 1}
    assert corpus.trigrams == {'aba': 1}


def test_totals():
    corpus = Corpus.from_text("ab cd")

    assert corpus.total_unigrams == 5
    assert corpus.total_unigrams_no_space == 4
    assert corpus.total_bigrams == 2
    assert corpus.total_bigrams_no_space == 2
    assert corpus.total_trigrams == 0


def test_from_counts_tracks_space_totals():
    corpus = Corpus.from_counts(bigrams={'ab': 3, 'a ': 2}, trigrams={'abc': 4, 'a b': 1})

    assert corpus.total_bigrams == 5
    assert corpus.total_bigrams_no_space == 3
    assert corpus.total_trigrams == 5
    assert corpus.total_trigrams_no_space == 4


def test_invalid_ngrams_rejected():
    corpus = Corpus()
    with pytest.raises(ValueError):
        corpus.add_bigram('abc')
    with pytest.raises(ValueError):
        corpus.add_unigram('a', count=0)


def test_most_common_breaks_ties_by_ngram():
    corpus = Corpus.from_counts(bigrams={'zz': 2, 'ab': 2, 'cd': 5})

    assert corpus.most_common(2) == [('cd', 5), ('ab', 2), ('zz', 2)]
    assert corpus.most_common(2, limit=1) == [('cd', 5)]
    with pytest.raises(ValueError):
        corpus.most_common(4)


def test_from_file(tmp_path):
    path = tmp_path / "words.txt"
    path.write_text("one two\n\nthree\n", encoding='utf-8')

    corpus = Corpus.from_file(str(path))

    assert corpus.name == "words.txt"
    assert corpus.trigrams['thr'] == 1
    assert corpus.bigrams['tw'] == 1
    # line breaks count as whitespace unigrams
    assert corpus.unigrams['\n'] == 2


def test_from_file_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        Corpus.from_file(str(tmp_path / "missing.txt"))


def test_summary_lists_top_ngrams():
    summary = Corpus.from_text("abab", name="tiny").summary(limit=1)

    assert summary.splitlines()[0] == "Corpus: tiny"
    assert "'ab': 2" in summary
    assert "'aba': 1" in summary
