"""Find-or-create resolution of labels to external records.

A label (a student name from a caption, or a file base name) is mapped to a
record in a store, either a Trello card or a spreadsheet tab. The store is listed
on every call; nothing is cached locally. Comparison happens on normalized
text (NFD, combining marks removed, lower-cased) and follows the store's
:class:`MatchPolicy`:

- ``SUBSTRING``: the normalized title contains the normalized label.
- ``EXACT``: the normalized title equals the normalized label.

When nothing matches, a record is created with the original trimmed label as
its title.
"""

from __future__ import annotations

import asyncio
import logging
import unicodedata
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional, Protocol

from src.core.errors import NotFoundError, ValidationError
from src.models.records import MatchPolicy, Record, ResolveResult


logger = logging.getLogger("media_bridge.resolver")


class RecordStore(Protocol):
    """What the resolver needs from a store."""

    match_policy: MatchPolicy

    async def list_records(self) -> List[Record]:
        ...

    async def create_record(self, title: str) -> Record:
        ...


def normalize_label(value: Optional[str]) -> str:
    """Normalize text for comparison.

    ``"José Álvares"`` and ``"JOSE ALVARES"`` both become ``"jose alvares"``.
    """

    decomposed = unicodedata.normalize("NFD", (value or "").strip())
    stripped = "".join(ch for ch in decomposed if not ("\u0300" <= ch <= "\u036f"))
    return stripped.lower()


def matches(policy: MatchPolicy, normalized_label: str, normalized_title: str) -> bool:
    if policy is MatchPolicy.SUBSTRING:
        return normalized_label in normalized_title
    return normalized_label == normalized_title


class LabelLocks:
    """Per-label mutual exclusion for resolve-then-write sequences.

    Two events for the same normalized label are serialized; different labels
    run independently. Locks are dropped once nobody holds or waits on them.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, label: str) -> AsyncIterator[None]:
        key = normalize_label(label)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


class NameResolver:
    """Map a label to a record in ``store``, creating it on a miss."""

    def __init__(self, store: RecordStore, policy: Optional[MatchPolicy] = None) -> None:
        self.store = store
        self.policy = policy or store.match_policy

    async def find(self, label: str) -> Record:
        """Return the first record matching ``label``.

        Raises:
            ValidationError: when ``label`` normalizes to an empty string.
            NotFoundError: when no record matches.
        """

        needle = normalize_label(label)
        if not needle:
            raise ValidationError(f"Label '{label}' has no comparable characters", reason="empty_label")
        records = await self.store.list_records()
        for record in records:
            if matches(self.policy, needle, normalize_label(record.title)):
                logger.info("Record found for '%s': %s", label, record.title)
                return record
        raise NotFoundError(label)

    async def resolve(self, label: str) -> ResolveResult:
        """Find or create the record for ``label``.

        Store errors propagate unchanged; the create branch only runs after a
        successful listing that produced no match.
        """

        title = (label or "").strip()
        try:
            record = await self.find(title)
        except NotFoundError:
            logger.info("No record for '%s'; creating one", title)
            record = await self.store.create_record(title)
            return ResolveResult(record=record, is_new=True)
        return ResolveResult(record=record, is_new=False)
