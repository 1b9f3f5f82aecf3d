"""Frequency table derived from a chain, and its on-disk format."""

import json
import logging
import re
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

import torch

from markovgen.errors import InputUnavailableError, MalformedRecordError, TableWriteError
from markovgen.models.chain import PLACEHOLDER, Chain, Prefix


logger = logging.getLogger(__name__)

FORMAT_NAME = 'markov-table'
FORMAT_VERSION = 1

# Counts and per-prefix totals are summed into int64 tensors when sampling.
MAX_COUNT = torch.iinfo(torch.long).max

_SPACE_RE = re.compile(r'\s')


@dataclass(frozen=True)
class Record:
    """One persisted (prefix, suffix, count) triple."""
    prefix: Tuple[str, ...]
    suffix: str
    count: int

    def to_json(self) -> list:
        return [list(self.prefix), self.suffix, self.count]


class FrequencyTable:
    """Per-prefix suffix counts.

    Every stored count is at least 1, and the counts for a prefix sum to the
    number of times that prefix was observed in the source chain.
    """

    def __init__(
        self,
        prefix_length: int,
        counts: Optional[Mapping[Tuple[str, ...], Mapping[str, int]]] = None,
    ):
        """
        Args:
            prefix_length: Number of words in every prefix
            counts: Optional prefix -> {suffix: count} mapping to copy
        """
        self.prefix_length = prefix_length
        self._counts: Dict[Prefix, Counter] = {}
        for prefix, suffixes in (counts or {}).items():
            kept = Counter({w: c for w, c in suffixes.items() if c > 0})
            if kept:
                self._counts[Prefix(prefix)] = kept

    @classmethod
    def build(cls, chain: Chain) -> 'FrequencyTable':
        """Tally each prefix's observation list."""
        table = cls(chain.prefix_length)
        for prefix, suffixes in chain.items():
            table._counts[prefix] = Counter(suffixes)
        return table

    def suffixes_for(self, prefix: Iterable[str]) -> Dict[str, int]:
        """Suffix counts for ``prefix``; empty when it was never observed."""
        return dict(self._counts.get(Prefix(prefix), {}))

    def prefixes(self) -> List[Prefix]:
        return list(self._counts)

    def total(self, prefix: Iterable[str]) -> int:
        """Number of observations of ``prefix``."""
        return sum(self._counts.get(Prefix(prefix), {}).values())

    def serialize(self) -> List[Record]:
        """One record per (prefix, suffix) pair, sorted for stable output."""
        return [
            Record(tuple(prefix), suffix, count)
            for prefix in sorted(self._counts)
            for suffix, count in sorted(self._counts[prefix].items())
        ]

    @classmethod
    def deserialize(
        cls, records: Iterable[Union[Record, list, tuple]], prefix_length: int,
    ) -> 'FrequencyTable':
        """Rebuild a table from records given in any order."""
        table = cls(prefix_length)
        totals: Dict[Prefix, int] = {}
        for i, record in enumerate(records):
            prefix, suffix, count = _validate_record(record, prefix_length, i)
            suffixes = table._counts.setdefault(prefix, Counter())
            if suffix in suffixes:
                raise MalformedRecordError(
                    f"record {i}: duplicate entry for {suffix!r} after {tuple(prefix)!r}"
                )
            suffixes[suffix] = count
            totals[prefix] = totals.get(prefix, 0) + count
            if totals[prefix] > MAX_COUNT:
                raise MalformedRecordError(
                    f"record {i}: total count after {tuple(prefix)!r} is too large"
                )
        return table

    def save(self, path: Union[str, Path]) -> None:
        """Save the table to a JSON file.

        The table is written to a sibling temporary file first and moved into
        place, so a failed write never leaves a truncated table behind.
        """
        path = Path(path)
        data = {
            'format': FORMAT_NAME,
            'version': FORMAT_VERSION,
            'prefix_length': self.prefix_length,
            'records': [r.to_json() for r in self.serialize()],
        }
        tmp = path.with_name(path.name + '.tmp')
        try:
            with open(tmp, 'w', encoding='utf-8') as f:
                json.dump(data, f, ensure_ascii=False, indent=1)
            tmp.replace(path)
        except OSError as e:
            tmp.unlink(missing_ok=True)
            raise TableWriteError(path, str(e)) from e
        logger.info(f"Saved {len(self)} prefixes to {path}")

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'FrequencyTable':
        """Load a table from a JSON file."""
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise MalformedRecordError(f"{path}: not a valid table file ({e})") from e
        except OSError as e:
            raise InputUnavailableError(path, str(e)) from e

        if not isinstance(data, dict) or data.get('format') != FORMAT_NAME:
            raise MalformedRecordError(f"{path}: missing '{FORMAT_NAME}' header")
        if data.get('version') != FORMAT_VERSION:
            raise MalformedRecordError(
                f"{path}: unsupported version {data.get('version')!r}"
            )
        prefix_length = data.get('prefix_length')
        if not _is_int(prefix_length) or prefix_length < 1:
            raise MalformedRecordError(f"{path}: bad prefix length {prefix_length!r}")
        records = data.get('records')
        if not isinstance(records, list):
            raise MalformedRecordError(f"{path}: 'records' must be a list")

        table = cls.deserialize(records, prefix_length)
        logger.info(f"Loaded {len(table)} prefixes from {path}")
        return table

    def __len__(self) -> int:
        return len(self._counts)

    def __contains__(self, prefix) -> bool:
        return Prefix(prefix) in self._counts

    def __eq__(self, other) -> bool:
        if not isinstance(other, FrequencyTable):
            return NotImplemented
        return (self.prefix_length == other.prefix_length
                and self._counts == other._counts)

    def __repr__(self) -> str:
        return f"FrequencyTable(prefix_length={self.prefix_length}, prefixes={len(self)})"


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _validate_record(record, prefix_length: int, i: int) -> Tuple[Prefix, str, int]:
    if isinstance(record, Record):
        record = (record.prefix, record.suffix, record.count)
    if not isinstance(record, (list, tuple)) or len(record) != 3:
        raise MalformedRecordError(f"record {i}: expected [prefix, suffix, count]")
    prefix, suffix, count = record
    if not isinstance(prefix, (list, tuple)) or len(prefix) != prefix_length:
        raise MalformedRecordError(
            f"record {i}: prefix must have {prefix_length} words, got {prefix!r}"
        )
    if not all(isinstance(w, str) for w in prefix):
        raise MalformedRecordError(f"record {i}: prefix words must be strings")
    if any(_SPACE_RE.search(w) for w in prefix):
        raise MalformedRecordError(f"record {i}: prefix words must not contain whitespace")
    # placeholders only pad the front of the window
    real = [w != PLACEHOLDER for w in prefix]
    if any(not r for r, prev in zip(real[1:], real) if prev):
        raise MalformedRecordError(
            f"record {i}: placeholder after a real word in {prefix!r}"
        )
    if not isinstance(suffix, str) or not suffix or _SPACE_RE.search(suffix):
        raise MalformedRecordError(
            f"record {i}: suffix must be a non-empty word without whitespace"
        )
    if not _is_int(count) or count < 1:
        raise MalformedRecordError(f"record {i}: count must be a positive integer, got {count!r}")
    if count > MAX_COUNT:
        raise MalformedRecordError(f"record {i}: count {count} is too large")
    return Prefix(prefix), suffix, count
