"""Text loading and tokenization utilities."""

import logging
import re
from pathlib import Path
from typing import Iterable, Iterator, List, Sequence, Union

from markovgen.errors import InputUnavailableError


logger = logging.getLogger(__name__)

_WORD_RE = re.compile(r'\S+')


class Tokens:
    """Lazy, restartable sequence of whitespace-delimited words.

    Every call to ``iter()`` rescans the text, so the same object can be
    consumed any number of times.
    """

    def __init__(self, text: str):
        self.text = text or ''

    def __iter__(self) -> Iterator[str]:
        for match in _WORD_RE.finditer(self.text):
            yield match.group()

    def __repr__(self) -> str:
        return f"Tokens({self.text[:30]!r})"


class WhitespaceTokenizer:
    """Splits text on runs of whitespace. No normalization is applied."""

    def encode(self, text: str) -> Tokens:
        """Convert text to a word sequence."""
        return Tokens(text)

    def decode(self, words: Iterable[str]) -> str:
        """Convert words back to text."""
        return ' '.join(words)


def read_text(path: Union[str, Path]) -> str:
    """Read one UTF-8 text file."""
    path = Path(path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise InputUnavailableError(path, str(e)) from e


class TextCorpus:
    """Ordered raw texts, one per input file."""

    def __init__(self, texts: Sequence[str]):
        """
        Args:
            texts: Raw text blobs, in the order they should be trained on
        """
        self.texts: List[str] = list(texts)

    @classmethod
    def from_files(cls, paths: Iterable[Union[str, Path]]) -> 'TextCorpus':
        """Read every file, failing on the first one that is unreadable."""
        texts = []
        for path in paths:
            text = read_text(path)
            logger.debug(f"Read {len(text)} characters from {path}")
            texts.append(text)
        return cls(texts)

    def __len__(self) -> int:
        return len(self.texts)

    def __getitem__(self, idx: int) -> str:
        return self.texts[idx]

    def __iter__(self) -> Iterator[str]:
        return iter(self.texts)
