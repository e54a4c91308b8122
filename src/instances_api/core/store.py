"""
Process-wide published record set.

[PublishedStore][instances_api.core.store.PublishedStore] holds the result
of the most recent successful refresh cycle as one immutable
[StoreSnapshot][instances_api.core.store.StoreSnapshot]. Publishing builds a
complete new snapshot first and then replaces the single reference, so a
reader sees either the previous cycle or the new one, never a mixture and
never a partially written map. Before the first successful cycle the store
is empty.

There is exactly one writer (the refresher loop runs one cycle at a time)
and any number of readers (HTTP handlers). All of them run on the same
event loop, and the reference swap is a single attribute assignment, so no
lock is needed.

Examples:
    ```python
    store = PublishedStore()
    store.records()          # {} (read-only)
    store.publish({"yewtu.be": record})
    store.snapshot().version # 1
    ```
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from instances_api.models import Record


_EMPTY: Mapping[str, Record] = MappingProxyType({})


@dataclass(frozen=True, slots=True)
class StoreSnapshot:
    """One complete published record set.

    Attributes:
        records: Read-only mapping of host to
            [Record][instances_api.models.record.Record].
        version: Number of successful publications so far (0 = never).
        published_at: Unix timestamp of the publication, or ``None``.
    """

    records: Mapping[str, Record] = field(default_factory=lambda: _EMPTY)
    version: int = 0
    published_at: float | None = None

    def __len__(self) -> int:
        return len(self.records)


class PublishedStore:
    """Single-writer, multi-reader container for the published records.

    See Also:
        [Refresher][instances_api.services.refresher.Refresher]: The only
            writer.
        [Api][instances_api.services.api.Api]: Reads snapshots to serve
            the JSON listing.
    """

    def __init__(self) -> None:
        self._snapshot = StoreSnapshot()

    def snapshot(self) -> StoreSnapshot:
        """Return the current snapshot; hold on to it for a consistent view."""
        return self._snapshot

    def records(self) -> Mapping[str, Record]:
        """Return the current read-only host to record mapping."""
        return self._snapshot.records

    @property
    def version(self) -> int:
        return self._snapshot.version

    def publish(self, records: Mapping[str, Record]) -> StoreSnapshot:
        """Replace the published set wholesale.

        The mapping is copied before the swap, so later mutation of
        ``records`` by the caller is not visible to readers.

        Args:
            records: The complete reconciled set of one cycle. Must not be
                empty: an empty cycle leaves the store untouched instead.

        Returns:
            The newly published snapshot.

        Raises:
            ValueError: If ``records`` is empty.
        """
        if not records:
            raise ValueError("refusing to publish an empty record set")

        snapshot = StoreSnapshot(
            records=MappingProxyType(dict(records)),
            version=self._snapshot.version + 1,
            published_at=time.time(),
        )
        self._snapshot = snapshot
        return snapshot
