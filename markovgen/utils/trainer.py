"""Utilities for training and generation."""

import logging
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

import torch

from markovgen.data.corpus import TextCorpus, WhitespaceTokenizer
from markovgen.errors import ArgumentError, TableWriteError
from markovgen.models.chain import Chain, Prefix
from markovgen.models.table import FrequencyTable


logger = logging.getLogger(__name__)


class Trainer:
    """Accumulates texts into a single chain and produces its table."""

    def __init__(
        self,
        prefix_length: int,
        tokenizer: Optional[WhitespaceTokenizer] = None,
    ):
        """
        Args:
            prefix_length: Number of words in every prefix
            tokenizer: Tokenizer for raw text (defaults to whitespace splitting)
        """
        self.chain = Chain(prefix_length)
        self.tokenizer = tokenizer or WhitespaceTokenizer()

    @property
    def prefix_length(self) -> int:
        return self.chain.prefix_length

    def train_text(self, text: str) -> int:
        """Add one raw text to the chain."""
        return self.chain.build(self.tokenizer.encode(text))

    def train_corpus(self, corpus: TextCorpus) -> int:
        added = 0
        for i, text in enumerate(corpus):
            n = self.train_text(text)
            logger.debug(f"Text {i}: {n} observations")
            added += n
        return added

    def train_files(self, paths: Sequence[Union[str, Path]]) -> int:
        """Read every file, then train on them in the order given."""
        corpus = TextCorpus.from_files(paths)
        added = self.train_corpus(corpus)
        logger.info(
            f"Trained on {len(corpus)} file(s): {added} observations, "
            f"{len(self.chain)} prefixes"
        )
        return added

    def build_table(self) -> FrequencyTable:
        return FrequencyTable.build(self.chain)

    def save(self, path: Union[str, Path]) -> FrequencyTable:
        """Build the frequency table and write it to ``path``."""
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise TableWriteError(path, str(e)) from e
        table = self.build_table()
        table.save(path)
        observations = sum(table.total(p) for p in table.prefixes())
        logger.debug(f"Table holds {observations} observations")
        return table


def cumulative_counts(suffixes: Mapping[str, int]) -> Tuple[List[str], torch.Tensor]:
    """Suffixes sorted by token, with the running sum of their counts."""
    words = sorted(suffixes)
    counts = torch.tensor([suffixes[w] for w in words], dtype=torch.long)
    return words, torch.cumsum(counts, dim=0)


def pick_index(cumulative: torch.Tensor, draw: int) -> int:
    """Index of the first cumulative count greater than ``draw``."""
    target = torch.tensor([draw], dtype=cumulative.dtype)
    return int(torch.searchsorted(cumulative, target, right=True)[0])


def weighted_choice(
    suffixes: Mapping[str, int],
    generator: Optional[torch.Generator] = None,
) -> str:
    """Pick a suffix with probability proportional to its count.

    Raises:
        ValueError: if ``suffixes`` is empty
    """
    if not suffixes:
        raise ValueError("cannot choose from an empty suffix mapping")
    words, cumulative = cumulative_counts(suffixes)
    return _sample(words, cumulative, generator)


def _sample(
    words: List[str],
    cumulative: torch.Tensor,
    generator: Optional[torch.Generator],
) -> str:
    total = int(cumulative[-1])
    draw = int(torch.randint(total, (1,), generator=generator)[0])
    return words[pick_index(cumulative, draw)]


class Generator:
    """Weighted random walk over a frequency table."""

    def __init__(
        self,
        table: FrequencyTable,
        generator: Optional[torch.Generator] = None,
    ):
        """
        Args:
            table: Table to walk
            generator: Random source; torch's default generator when omitted
        """
        self.table = table
        self.generator = generator
        self._cache: Dict[Prefix, Tuple[List[str], torch.Tensor]] = {}

    def _distribution(self, prefix: Prefix) -> Optional[Tuple[List[str], torch.Tensor]]:
        if prefix not in self.table:
            return None
        if prefix not in self._cache:
            self._cache[prefix] = cumulative_counts(self.table.suffixes_for(prefix))
        return self._cache[prefix]

    def walk(self, prompt: Optional[Sequence[str]] = None) -> Iterator[str]:
        """Yield words until the current prefix has no recorded suffixes."""
        if prompt:
            prefix = Prefix.from_words(prompt, self.table.prefix_length)
        else:
            prefix = Prefix.start(self.table.prefix_length)
        if prefix.is_start:
            logger.debug("Walking from the start of text")
        else:
            logger.debug(f"Walking from prompt {prefix!r}")
        while True:
            dist = self._distribution(prefix)
            if dist is None:
                logger.debug(f"Chain exhausted at {prefix!r}")
                return
            word = _sample(*dist, self.generator)
            yield word
            prefix = prefix.shift(word)

    def generate(
        self,
        word_limit: int,
        prompt: Optional[Sequence[str]] = None,
    ) -> List[str]:
        """Generate at most ``word_limit`` words."""
        if word_limit < 0:
            raise ArgumentError(f"word limit must not be negative, got {word_limit}")
        words: List[str] = []
        if word_limit == 0:
            return words
        for word in self.walk(prompt):
            words.append(word)
            if len(words) >= word_limit:
                break
        logger.debug(f"Generated {len(words)}/{word_limit} words")
        return words
