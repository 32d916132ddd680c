"""Unit tests for BlobRelocator against a moto-backed bucket.

Tests cover:
- Permanent key layout
- Commit: staged originals deleted, permanent copies kept
- Abort: permanent copies deleted, staged originals kept
- A failed copy in the middle of a batch
- Finalize and compensate never raise
"""

import re

import pytest

from buildtrack.domain.errors import PreconditionFailedError, StorageError
from buildtrack.domain.storage.object_storage_port import ObjectStoragePort
from buildtrack.domain.workflow.relocation import (
    BlobRelocator,
    build_permanent_key,
    key_computer_for,
)
from buildtrack.domain.workflow.transaction import PendingMove

UUID_RE = r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"


class TestPermanentKeys:

    def test_key_layout_with_sub_resource(self):
        key = build_permanent_key("customer-leads", "L1", "R1", "floor_plan", "uploads/tmp/site/plan-1.PDF")
        assert re.fullmatch(rf"customer-leads/L1/R1/floor_plan/{UUID_RE}\.pdf", key)

    def test_key_layout_without_sub_resource(self):
        key = build_permanent_key("messages", "P1", "M1", None, "uploads/tmp/chat/photo.jpg")
        assert re.fullmatch(rf"messages/P1/M1/{UUID_RE}\.jpg", key)

    def test_key_without_extension(self):
        key = build_permanent_key("messages", "P1", "M1", None, "uploads/tmp/chat/README")
        assert re.fullmatch(rf"messages/P1/M1/{UUID_RE}", key)

    def test_each_call_yields_a_fresh_key(self):
        compute = key_computer_for("projects", "P", "D", 1)
        assert compute("uploads/tmp/a.pdf") != compute("uploads/tmp/a.pdf")

    def test_is_staged(self, relocator):
        assert relocator.is_staged("uploads/tmp/site/a.pdf")
        assert not relocator.is_staged("projects/p/d/1/a.pdf")
        assert not relocator.is_staged(None)


class TestRelocateCommit:

    @pytest.mark.asyncio
    async def test_commit_finalizes_moves(self, coordinator, relocator, put_object, object_keys):
        staged = [put_object(f"uploads/tmp/site/file-{i}.pdf") for i in range(3)]

        async def work(handle):
            compute = key_computer_for("projects", "P", "D", 1)
            return [await relocator.relocate(handle, key, compute) for key in staged]

        new_keys = await coordinator.run_atomic(work)

        assert object_keys("uploads/tmp/") == set()
        assert object_keys("projects/") == set(new_keys)
        assert len(set(new_keys)) == 3

    @pytest.mark.asyncio
    async def test_relocate_files_keeps_permanent_entries(self, coordinator, relocator, put_object):
        staged = put_object("uploads/tmp/site/new.pdf")
        files = [
            {"key": staged, "file_type": "document"},
            {"key": "projects/P/D/1/existing.pdf", "file_type": "document"},
        ]

        async def work(handle):
            return await relocator.relocate_files(handle, files, key_computer_for("projects", "P", "D", 2))

        result = await coordinator.run_atomic(work)

        assert result[0]["key"].startswith("projects/P/D/2/")
        assert result[1]["key"] == "projects/P/D/1/existing.pdf"
        assert files[0]["key"] == staged

    @pytest.mark.asyncio
    async def test_relocate_requires_active_handle(self, coordinator, relocator, put_object):
        staged = put_object("uploads/tmp/site/late.pdf")
        captured = {}

        async def work(handle):
            captured["handle"] = handle

        await coordinator.run_atomic(work)

        with pytest.raises(PreconditionFailedError):
            await relocator.relocate(captured["handle"], staged, key_computer_for("projects", "P", "D"))


class TestRelocateAbort:

    @pytest.mark.asyncio
    async def test_failure_after_n_relocations_leaves_no_permanent_keys(
        self, coordinator, relocator, put_object, object_keys
    ):
        staged = {put_object(f"uploads/tmp/site/file-{i}.pdf") for i in range(4)}

        async def work(handle):
            compute = key_computer_for("projects", "P", "D", 1)
            for key in sorted(staged):
                await relocator.relocate(handle, key, compute)
            raise RuntimeError("database write failed")

        with pytest.raises(RuntimeError):
            await coordinator.run_atomic(work)

        assert object_keys("projects/") == set()
        assert object_keys("uploads/tmp/") == staged

    @pytest.mark.asyncio
    async def test_second_copy_failure_compensates_first(
        self, coordinator, relocator, put_object, object_keys
    ):
        first = put_object("uploads/tmp/site/first.pdf")
        missing = "uploads/tmp/site/never-uploaded.pdf"

        async def work(handle):
            compute = key_computer_for("customer-leads", "L", "R", "document")
            await relocator.relocate(handle, first, compute)
            await relocator.relocate(handle, missing, compute)

        with pytest.raises(StorageError):
            await coordinator.run_atomic(work)

        assert object_keys("customer-leads/") == set()
        assert object_keys("uploads/tmp/") == {first}


class FlakyStorage(ObjectStoragePort):
    """Storage double whose deletes always fail."""

    def __init__(self):
        self.deleted = []

    async def copy_file(self, source_key, destination_key):
        return None

    async def delete_file(self, storage_key):
        self.deleted.append(storage_key)
        raise StorageError("delete refused")

    async def file_exists(self, storage_key):
        return True

    async def generate_presigned_url(self, storage_key, expires_in_seconds=3600):
        return f"https://example.test/{storage_key}"

    async def generate_presigned_upload_url(self, storage_key, content_type, expires_in_seconds=3600):
        return f"https://example.test/{storage_key}?upload"


class TestCleanupNeverRaises:

    @pytest.mark.asyncio
    async def test_finalize_swallows_delete_errors(self):
        storage = FlakyStorage()
        relocator = BlobRelocator(storage)
        ledger = [PendingMove("uploads/tmp/a", "p/a"), PendingMove("uploads/tmp/b", "p/b")]

        await relocator.finalize(ledger)

        assert storage.deleted == ["uploads/tmp/a", "uploads/tmp/b"]

    @pytest.mark.asyncio
    async def test_compensate_attempts_every_move(self):
        storage = FlakyStorage()
        relocator = BlobRelocator(storage)
        ledger = [PendingMove("uploads/tmp/a", "p/a"), PendingMove("uploads/tmp/b", "p/b")]

        await relocator.compensate(ledger)

        assert storage.deleted == ["p/a", "p/b"]

    @pytest.mark.asyncio
    async def test_commit_succeeds_when_finalize_fails(self, coordinator):
        relocator = BlobRelocator(FlakyStorage())

        async def work(handle):
            return await relocator.relocate(
                handle, "uploads/tmp/site/a.pdf", key_computer_for("projects", "P", "D")
            )

        new_key = await coordinator.run_atomic(work)
        assert new_key.startswith("projects/P/D/")
