"""Append-only record of a user/system correction exchange."""

from __future__ import annotations

from collections.abc import Iterator

from curriculum_sql.models import CorrectionLogEntry


class CorrectionLog:
    """Ordered log of correction messages.

    Entries are never reordered or de-duplicated; two identical consecutive
    messages are both kept.
    """

    def __init__(self) -> None:
        self._entries: list[CorrectionLogEntry] = []

    def append(self, entry: CorrectionLogEntry) -> None:
        self._entries.append(entry)

    def append_user(self, content: str) -> CorrectionLogEntry:
        entry = CorrectionLogEntry(role="user", content=content)
        self.append(entry)
        return entry

    def append_system(self, content: str) -> CorrectionLogEntry:
        entry = CorrectionLogEntry(role="system", content=content)
        self.append(entry)
        return entry

    def to_sequence(self) -> tuple[CorrectionLogEntry, ...]:
        """Return the entries in insertion order."""
        return tuple(self._entries)

    def clear(self) -> None:
        self._entries = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[CorrectionLogEntry]:
        return iter(tuple(self._entries))
