"""Linear undo/redo log of editor snapshots."""

from typing import Generic, List, Optional, Tuple, TypeVar

T = TypeVar("T")


class HistoryStack(Generic[T]):
    """
    Snapshots ``[0..cursor]`` are the past, the one at ``cursor`` being the
    current state; ``(cursor..end]`` can be redone. Committing truncates the
    redo tail before appending.

    Snapshots are stored as given, so callers must hand over copies they will
    not mutate afterwards.
    """

    def __init__(self, initial: T, max_entries: Optional[int] = None):
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._entries: List[T] = [initial]
        self._cursor = 0

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> Tuple[T, ...]:
        return tuple(self._entries)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def current(self) -> T:
        return self._entries[self._cursor]

    @property
    def can_undo(self) -> bool:
        return self._cursor > 0

    @property
    def can_redo(self) -> bool:
        return self._cursor < len(self._entries) - 1

    def commit(self, snapshot: T) -> None:
        del self._entries[self._cursor + 1:]
        self._entries.append(snapshot)
        if self.max_entries is not None and len(self._entries) > self.max_entries:
            del self._entries[: len(self._entries) - self.max_entries]
        self._cursor = len(self._entries) - 1

    def undo(self) -> Optional[T]:
        """Step back; returns the snapshot to restore, or None at position 0."""
        if not self.can_undo:
            return None
        self._cursor -= 1
        return self._entries[self._cursor]

    def redo(self) -> Optional[T]:
        """Step forward; returns the snapshot to restore, or None at the tail."""
        if not self.can_redo:
            return None
        self._cursor += 1
        return self._entries[self._cursor]

    def reset(self, initial: T) -> None:
        self._entries = [initial]
        self._cursor = 0
