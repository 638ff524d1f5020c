"""In-memory store for PDF import previews.

A preview lives between the upload (parse + resolve) and the confirmation
by the office. Entries expire after a TTL and are swept periodically.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

from ordertrack.config import settings
from ordertrack.infra.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ImportPreview:
    """A parsed PDF waiting for confirmation.

    Attributes:
        import_id: Random identifier handed to the client
        preview: Parsed order as shown to the user
        meta: Filename, page count, raw text excerpt
        created_by: User who uploaded the PDF
        expires_at: Monotonic deadline
    """

    import_id: str
    preview: dict[str, Any]
    meta: dict[str, Any] = field(default_factory=dict)
    created_by: int | None = None
    expires_at: float = 0.0


class PreviewStore:
    """TTL store for import previews, guarded by an asyncio lock."""

    def __init__(
        self,
        ttl_seconds: float = 15 * 60,
        sweep_interval_seconds: float = 60,
    ) -> None:
        self._items: dict[str, ImportPreview] = {}
        self._ttl = ttl_seconds
        self._sweep_interval = sweep_interval_seconds
        self._lock = asyncio.Lock()
        self._sweep_task: asyncio.Task[None] | None = None

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    async def put(
        self,
        preview: dict[str, Any],
        meta: dict[str, Any] | None = None,
        created_by: int | None = None,
    ) -> ImportPreview:
        """Store a new preview under a fresh import id."""
        item = ImportPreview(
            import_id=uuid.uuid4().hex,
            preview=preview,
            meta=meta or {},
            created_by=created_by,
            expires_at=time.monotonic() + self._ttl,
        )
        async with self._lock:
            self._items[item.import_id] = item

        logger.debug("Stored import preview", import_id=item.import_id)
        return item

    async def get(self, import_id: str) -> ImportPreview | None:
        """Return a live preview, dropping it if expired."""
        async with self._lock:
            item = self._items.get(import_id)
            if item is None:
                return None
            if item.expires_at <= time.monotonic():
                del self._items[import_id]
                logger.debug("Import preview expired", import_id=import_id)
                return None
            return item

    async def pop(self, import_id: str) -> ImportPreview | None:
        async with self._lock:
            item = self._items.pop(import_id, None)
        if item is None or item.expires_at <= time.monotonic():
            return None
        return item

    async def delete(self, import_id: str) -> bool:
        async with self._lock:
            return self._items.pop(import_id, None) is not None

    async def sweep(self) -> int:
        """Remove every expired preview.

        Returns:
            Number of previews removed
        """
        now = time.monotonic()
        async with self._lock:
            expired = [k for k, v in self._items.items() if v.expires_at <= now]
            for k in expired:
                del self._items[k]

        if expired:
            logger.info("Swept expired import previews", count=len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._items)

    async def start_sweeper(self) -> None:
        """Start the periodic sweep loop in background."""
        if self._sweep_task is not None:
            logger.warning("Preview sweeper already running")
            return

        logger.info("Starting import preview sweeper", interval_seconds=self._sweep_interval)
        self._sweep_task = asyncio.create_task(self._sweep_loop())

    async def stop(self) -> None:
        """Stop the sweep loop."""
        if self._sweep_task is None:
            return

        self._sweep_task.cancel()
        try:
            await self._sweep_task
        except asyncio.CancelledError:
            logger.info("Preview sweeper cancelled")

        self._sweep_task = None

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            try:
                await self.sweep()
            except Exception as e:
                logger.error("Error while sweeping previews", error=str(e), exc_info=True)


# Global singleton instance
_preview_store: PreviewStore | None = None


def get_preview_store() -> PreviewStore:
    """Get or create the global preview store."""
    global _preview_store

    if _preview_store is None:
        _preview_store = PreviewStore(
            ttl_seconds=settings.pdf_preview_ttl_seconds,
            sweep_interval_seconds=settings.pdf_preview_sweep_seconds,
        )

    return _preview_store
