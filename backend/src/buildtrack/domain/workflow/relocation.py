"""Blob relocation from the staging namespace to permanent keys.

Clients upload to ``uploads/tmp/...`` through presigned URLs. When a
workflow operation consumes those uploads it copies each one to a permanent
key inside the open transaction and records the move on the handle's ledger:

- commit: the staged originals are deleted (``finalize``)
- abort: the permanent copies are deleted (``compensate``), staged originals stay

Permanent key layout: ``{namespace}/{parent_id}/{entity_id}/{sub_resource_id}/{uuid}{ext}``
"""

import logging
import os
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional
from uuid import uuid4

from ..errors import PreconditionFailedError, StorageError
from ..storage.object_storage_port import ObjectStoragePort
from .transaction import PendingMove, TransactionHandle
from ...observability.metrics import (
    blob_compensations_total,
    blob_finalize_failures_total,
    blob_relocations_total,
)

logger = logging.getLogger(__name__)

DEFAULT_STAGING_PREFIX = "uploads/tmp/"

KeyComputer = Callable[[str], str]


def build_permanent_key(
    namespace: str,
    parent_id: Any,
    entity_id: Any,
    sub_resource_id: Any,
    staged_key: str,
) -> str:
    """Compute a fresh permanent key for a staged blob.

    The extension of the staged key is kept (lower-cased); a None
    ``sub_resource_id`` drops that path segment.

    Example:
        >>> build_permanent_key("messages", "p1", "m1", None, "uploads/tmp/chat/a-1.PNG")
        'messages/p1/m1/3f2c...e9.png'
    """
    ext = os.path.splitext(staged_key)[1].lower()
    segments = [namespace, parent_id, entity_id, sub_resource_id]
    prefix = "/".join(str(s) for s in segments if s is not None and s != "")
    return f"{prefix}/{uuid4()}{ext}"


def key_computer_for(
    namespace: str,
    parent_id: Any,
    entity_id: Any,
    sub_resource_id: Any = None,
) -> KeyComputer:
    """Bind everything but the staged key."""
    def compute(staged_key: str) -> str:
        return build_permanent_key(namespace, parent_id, entity_id, sub_resource_id, staged_key)
    return compute


class BlobRelocator:
    """Moves staged blobs into permanent storage with commit/abort cleanup."""

    def __init__(self, storage: ObjectStoragePort, staging_prefix: str = DEFAULT_STAGING_PREFIX):
        self.storage = storage
        self.staging_prefix = staging_prefix

    def is_staged(self, key: Optional[str]) -> bool:
        return bool(key) and key.startswith(self.staging_prefix)

    async def relocate(
        self,
        handle: TransactionHandle,
        staged_key: str,
        key_computer: KeyComputer,
    ) -> str:
        """Copy one staged blob to its permanent key and record the move.

        Raises:
            PreconditionFailedError: If the handle is not active
            StorageError: If the copy fails (the move is not recorded)
        """
        if not handle.is_active:
            raise PreconditionFailedError("Blob relocation requires an active transaction")

        handle.register_hooks(
            self,
            after_commit=lambda: self.finalize(handle.ledger),
            after_abort=lambda: self.compensate(handle.ledger),
        )

        new_key = key_computer(staged_key)
        try:
            await self.storage.copy_file(staged_key, new_key)
        except StorageError:
            blob_relocations_total.labels(status="error").inc()
            logger.error(
                f"Relocation failed: {staged_key} -> {new_key}",
                extra={"storage_key": staged_key},
            )
            raise

        handle.ledger.append(PendingMove(old_key=staged_key, new_key=new_key))
        blob_relocations_total.labels(status="success").inc()
        logger.info(f"Relocated {staged_key} -> {new_key}", extra={"storage_key": new_key})
        return new_key

    async def relocate_files(
        self,
        handle: TransactionHandle,
        files: Iterable[Mapping[str, Any]],
        key_computer: KeyComputer,
    ) -> List[Dict[str, Any]]:
        """Relocate every staged file in a list, one after another.

        Files whose key is already permanent are returned unchanged.
        """
        relocated = []
        for file in files or []:
            entry = dict(file)
            if self.is_staged(entry.get("key")):
                entry["key"] = await self.relocate(handle, entry["key"], key_computer)
            relocated.append(entry)
        return relocated

    async def finalize(self, ledger: List[PendingMove]) -> None:
        """Delete the staged originals after commit. Failures are logged only."""
        for move in ledger:
            try:
                await self.storage.delete_file(move.old_key)
            except Exception as e:
                blob_finalize_failures_total.inc()
                logger.warning(
                    f"Could not delete staged original {move.old_key}: {e}",
                    extra={"storage_key": move.old_key},
                )

    async def compensate(self, ledger: List[PendingMove]) -> None:
        """Delete the permanent copies after abort, in relocation order."""
        for move in ledger:
            try:
                await self.storage.delete_file(move.new_key)
                blob_compensations_total.labels(status="success").inc()
            except Exception as e:
                blob_compensations_total.labels(status="error").inc()
                logger.error(
                    f"Compensation failed, permanent copy left behind: {move.new_key}: {e}",
                    extra={"storage_key": move.new_key},
                )
