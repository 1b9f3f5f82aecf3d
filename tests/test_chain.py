from collections import Counter

import pytest

from markovgen.data.corpus import Tokens
from markovgen.errors import ArgumentError
from markovgen.models.chain import PLACEHOLDER, Chain, Prefix

TEXT = "I am not a number! I am a free man!"


def test_prefix_start_and_shift():
    p = Prefix.start(2)
    assert p == (PLACEHOLDER, PLACEHOLDER)
    assert p.is_start
    p = p.shift("I").shift("am")
    assert p == ("I", "am")
    assert not p.is_start
    assert hash(p) == hash(("I", "am"))


def test_prefix_from_words_pads_and_truncates():
    assert Prefix.from_words(["x"], 3) == ("", "", "x")
    assert Prefix.from_words(["a", "b", "c", "d"], 2) == ("c", "d")


def test_chain_records_example_text():
    chain = Chain(2)
    chain.build(Tokens(TEXT))
    assert chain.observations(("", "")) == ["I"]
    assert chain.observations(("", "I")) == ["am"]
    assert chain.observations(("I", "am")) == ["not", "a"]
    assert chain.observations(("am", "a")) == ["free"]
    assert chain.observations(("number!", "I")) == ["am"]
    assert chain.observations(("free", "man!")) == []


def test_build_returns_observation_count():
    chain = Chain(3)
    assert chain.build("a b c d".split()) == 4
    assert chain.build([]) == 0


def test_short_text_only_records_start_transitions():
    chain = Chain(3)
    chain.build(["only", "two"])
    assert all(any(w == PLACEHOLDER for w in p) for p, _ in chain.items())


def test_files_share_one_start_prefix():
    chain = Chain.from_texts(1, [Tokens("alpha beta"), Tokens("gamma delta")])
    assert chain.observations(("",)) == ["alpha", "gamma"]
    # no window spans the boundary between texts
    assert chain.observations(("beta",)) == []


def test_duplicates_are_preserved_in_order():
    chain = Chain(1)
    chain.build("a b a c a b".split())
    assert chain.observations(("a",)) == ["b", "c", "b"]


@pytest.mark.parametrize("n", [0, -1, "2", 1.5, True])
def test_invalid_prefix_length(n):
    with pytest.raises(ArgumentError):
        Chain(n)


@pytest.mark.parametrize("n", [1, 2, 3, 4])
def test_observation_counts_match_overlapping_occurrences(n):
    words = "the cat the cat the dog the cat sat the cat".split()
    chain = Chain(n)
    chain.build(words)
    expected = Counter(tuple(words[i:i + n]) for i in range(len(words) - n))
    for prefix, count in expected.items():
        assert len(chain.observations(prefix)) == count
