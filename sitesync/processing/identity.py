"""
Identity Index and Diff Engine
==============================

Decides which canonical records are new relative to a manifest and hands
out sequence numbers to them.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Set

from ..models import CanonicalRecord, Manifest
from ..utils.logging import get_logger_for_component


logger = get_logger_for_component("identity")


class IdentityIndex:
    """Set of identity keys already recorded."""

    def __init__(self, keys: Iterable[str] = ()):
        self._keys: Set[str] = set(keys)

    def __contains__(self, key: str) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def contains_any(self, keys: Iterable[str]) -> bool:
        return any(key in self._keys for key in keys)

    def add_all(self, keys: Iterable[str]) -> None:
        self._keys.update(keys)

    def copy(self) -> "IdentityIndex":
        return IdentityIndex(self._keys)


def build_index(manifest: Manifest) -> IdentityIndex:
    """Index every identity key of every manifest entry."""
    return IdentityIndex(manifest.iter_identity_keys())


@dataclass
class PartitionResult:
    """Outcome of diffing a fetch against the index."""
    new: List[CanonicalRecord] = field(default_factory=list)
    known: List[CanonicalRecord] = field(default_factory=list)
    last_assigned: int = 0

    @property
    def has_new(self) -> bool:
        return bool(self.new)


def partition(
    records: Iterable[CanonicalRecord],
    index: IdentityIndex,
    last_assigned: int,
) -> PartitionResult:
    """
    Split records into new and known, in source order.

    A record is known when any of its keys is already indexed. New records
    are numbered ``last_assigned + 1, + 2, ...`` and their keys join a
    running copy of the index straight away, so two records of one fetch
    that share a key collapse into the first. The caller's index is not
    modified.

    Args:
        records: Normalized records in source order
        index: Keys of previously recorded items
        last_assigned: Highest sequence number handed out so far

    Returns:
        PartitionResult with numbered new records and the updated counter
    """
    running = index.copy()
    result = PartitionResult(last_assigned=last_assigned)

    for record in records:
        if running.contains_any(record.identity_keys):
            result.known.append(record)
            continue

        result.last_assigned += 1
        result.new.append(record.with_sequence(result.last_assigned))
        running.add_all(record.identity_keys)

    logger.debug(
        f"Partitioned {len(result.new) + len(result.known)} records: "
        f"{len(result.new)} new, {len(result.known)} known"
    )
    return result
