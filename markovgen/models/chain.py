"""Prefix/suffix observation chain."""

import logging
from typing import Dict, Iterable, Iterator, List, Sequence, Tuple

from markovgen.errors import ArgumentError


logger = logging.getLogger(__name__)

# Fills the prefix window before any word has been seen. Words are never
# empty, so it cannot collide with a real token.
PLACEHOLDER = ''


class Prefix(tuple):
    """Fixed-length word window used as a lookup key."""

    @classmethod
    def start(cls, length: int) -> 'Prefix':
        """The beginning-of-text prefix: ``length`` placeholders."""
        return cls((PLACEHOLDER,) * length)

    @classmethod
    def from_words(cls, words: Sequence[str], length: int) -> 'Prefix':
        """Last ``length`` words, left-padded with placeholders."""
        words = list(words)[-length:]
        return cls([PLACEHOLDER] * (length - len(words)) + words)

    def shift(self, word: str) -> 'Prefix':
        """Drop the first word and append ``word``."""
        return Prefix(self[1:] + (word,))

    @property
    def is_start(self) -> bool:
        return all(w == PLACEHOLDER for w in self)

    def __repr__(self) -> str:
        return f"Prefix({tuple(self)!r})"


class Chain:
    """Raw per-prefix log of observed suffixes, duplicates kept."""

    def __init__(self, prefix_length: int):
        """
        Args:
            prefix_length: Number of words in every prefix (N >= 1)
        """
        if isinstance(prefix_length, bool) or not isinstance(prefix_length, int) \
                or prefix_length < 1:
            raise ArgumentError(
                f"prefix length must be a positive integer, got {prefix_length!r}"
            )
        self.prefix_length = prefix_length
        self._observations: Dict[Prefix, List[str]] = {}

    @classmethod
    def from_texts(cls, prefix_length: int, texts: Iterable[Iterable[str]]) -> 'Chain':
        """Build one chain from several token sequences, in order."""
        chain = cls(prefix_length)
        for tokens in texts:
            chain.build(tokens)
        return chain

    def build(self, tokens: Iterable[str]) -> int:
        """Record every prefix -> suffix transition in ``tokens``.

        The walk starts at the start prefix, so the opening words of each
        text are recorded as transitions out of it. Returns the number of
        observations added.
        """
        prefix = Prefix.start(self.prefix_length)
        added = 0
        for word in tokens:
            self._observations.setdefault(prefix, []).append(word)
            prefix = prefix.shift(word)
            added += 1
        logger.debug(f"Added {added} observations (chain now has {len(self)} prefixes)")
        return added

    def observations(self, prefix: Sequence[str]) -> List[str]:
        """Suffixes seen after ``prefix``, in first-seen order."""
        return list(self._observations.get(Prefix(prefix), []))

    def items(self) -> Iterator[Tuple[Prefix, List[str]]]:
        for prefix, suffixes in self._observations.items():
            yield prefix, list(suffixes)

    def __len__(self) -> int:
        return len(self._observations)
