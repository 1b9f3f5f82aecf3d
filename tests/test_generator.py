import pytest
import torch

from markovgen.data.corpus import Tokens
from markovgen.errors import ArgumentError
from markovgen.models.table import MAX_COUNT, FrequencyTable
from markovgen.utils.trainer import (
    Generator,
    Trainer,
    cumulative_counts,
    pick_index,
    weighted_choice,
)

TEXT = "I am not a number! I am a free man!"


@pytest.fixture
def table():
    trainer = Trainer(2)
    trainer.train_text(TEXT)
    return trainer.build_table()


def seeded(seed=0):
    return torch.Generator().manual_seed(seed)


def test_cumulative_counts_sorted_by_token():
    words, cum = cumulative_counts({"b": 3, "a": 1, "c": 2})
    assert words == ["a", "b", "c"]
    assert cum.tolist() == [1, 4, 6]


@pytest.mark.parametrize("draw,expected", [(0, 0), (1, 1), (3, 1), (4, 2), (5, 2)])
def test_pick_index_maps_draws_to_buckets(draw, expected):
    _, cum = cumulative_counts({"a": 1, "b": 3, "c": 2})
    assert pick_index(cum, draw) == expected


def test_weighted_choice_single_suffix():
    assert weighted_choice({"only": 5}, seeded()) == "only"


def test_weighted_choice_follows_counts():
    gen = seeded(1)
    picks = [weighted_choice({"rare": 1, "common": 9}, gen) for _ in range(2000)]
    assert 0.8 < picks.count("common") / len(picks) < 0.97


def test_weighted_choice_rejects_empty_mapping():
    with pytest.raises(ValueError):
        weighted_choice({}, seeded())


def test_largest_loadable_counts_still_sample():
    table = FrequencyTable.deserialize(
        [[[""], "big", MAX_COUNT - 1], [[""], "small", 1]], 1)
    assert Generator(table, seeded()).generate(1)[0] in ("big", "small")


def test_zero_word_limit(table):
    assert Generator(table, seeded()).generate(0) == []


def test_negative_word_limit(table):
    with pytest.raises(ArgumentError):
        Generator(table).generate(-1)


def test_empty_start_prefix_yields_nothing():
    table = FrequencyTable.deserialize([[["x", "y"], "z", 1]], 2)
    assert Generator(table, seeded()).generate(50) == []


def test_generation_stops_on_exhaustion(table):
    # the only way out of the text is "... free man!", which has no suffix
    words = Generator(table, seeded(3)).generate(1000)
    assert 0 < len(words) < 1000
    assert words[:2] == ["I", "am"]
    assert words[-2:] == ["free", "man!"]


def test_generation_respects_word_limit():
    table = FrequencyTable.deserialize(
        [[["", ""], "a", 1], [["", "a"], "a", 1], [["a", "a"], "a", 1]], 2)
    assert Generator(table, seeded()).generate(7) == ["a"] * 7


def test_only_observed_suffixes_follow_prompt(table):
    gen = Generator(table, seeded(5))
    seen = {gen.generate(1, prompt=["I", "am"])[0] for _ in range(50)}
    assert seen <= {"a", "not"}
    assert seen == {"a", "not"}


def test_same_seed_same_output(table):
    a = Generator(table, seeded(42)).generate(20)
    b = Generator(table, seeded(42)).generate(20)
    assert a == b


def test_every_step_is_an_observed_transition(table):
    words = Generator(table, seeded(9)).generate(100)
    context = ["", ""] + words
    for i, word in enumerate(words):
        assert word in table.suffixes_for(tuple(context[i:i + 2]))


def test_trainer_files(tmp_path):
    a = tmp_path / "a.txt"
    b = tmp_path / "b.txt"
    a.write_text("one two", encoding="utf-8")
    b.write_text("one three", encoding="utf-8")
    trainer = Trainer(1)
    assert trainer.train_files([a, b]) == 4
    table = trainer.save(tmp_path / "out" / "table.json")
    assert table.suffixes_for(("",)) == {"one": 2}
    assert table.suffixes_for(("one",)) == {"two": 1, "three": 1}
    assert FrequencyTable.load(tmp_path / "out" / "table.json") == table


def test_trainer_is_idempotent_across_runs():
    tables = []
    for _ in range(2):
        trainer = Trainer(2)
        for token_text in (TEXT, "a free man! I am"):
            trainer.chain.build(Tokens(token_text))
        tables.append(trainer.build_table())
    assert tables[0] == tables[1]
