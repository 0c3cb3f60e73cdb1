"""Record models shared by the resolver, the writer and the stores."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class MatchPolicy(str, Enum):
    """How a normalized label is compared with a normalized record title."""

    EXACT = "exact"
    SUBSTRING = "substring"


class WriteStyle(str, Enum):
    """How media is added to a resolved record."""

    ATTACHMENT = "attachment"
    APPEND = "append"


@dataclass(frozen=True)
class Record:
    """An external record: a Trello card or a spreadsheet tab.

    Attributes:
        id: Opaque identifier used to write to the record (card id, or the
            tab title for spreadsheets).
        title: Display title exactly as stored remotely.
    """

    id: str
    title: str


@dataclass(frozen=True)
class ResolveResult:
    record: Record
    is_new: bool

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.record.id, "title": self.record.title, "is_new": self.is_new}


@dataclass(frozen=True)
class MediaMetadata:
    """What gets written to a record for one piece of media."""

    display_title: str
    url: str
    timestamp: str


@dataclass(frozen=True)
class UploadedObject:
    """Result of an object-storage upload."""

    public_url: str
    object_id: Optional[str] = None
    name: Optional[str] = None
