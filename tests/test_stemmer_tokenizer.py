import pytest

from indexer.stemmer import stem_term
from indexer.tokenizer import encode, split_terms


@pytest.mark.parametrize("word,expected", [
    ("running", "runn"),
    ("configuration", "configurat"),
    ("extension", "extens"),
    ("played", "play"),
    ("boxes", "box"),
    ("quickly", "quick"),
    ("deployment", "deploy"),
    ("darkness", "dark"),
    ("libraries", "library"),
    ("docs", "doc"),
    ("class", "class"),
    ("agreed", "agreed"),
])
def test_first_matching_rule_applies(word, expected):
    assert stem_term(word) == expected


@pytest.mark.parametrize("word", ["api", "cat", "is", "ing"])
def test_short_words_pass_through(word):
    assert stem_term(word) == word


def test_split_on_whitespace_and_punctuation():
    assert split_terms("Hello, World! foo-bar/baz_qux (v2.0)") == [
        "hello", "world", "foo", "bar", "baz", "qux", "v2", "0"
    ]
    assert split_terms("") == []


def test_encode_lowercases_and_stems():
    assert encode("Configuring OAuth Tokens") == ["configur", "oauth", "token"]
