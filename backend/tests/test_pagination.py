"""Tests for page reads, read-ahead and progress tracking."""
import asyncio

import pytest

from pageturner.errors import StoreUnavailableError


class TestGetPage:
    @pytest.mark.asyncio
    async def test_reads_requested_page(self, service, owner, document_id):
        page = await service.get_page(document_id, 2, owner)
        assert page.text == "GHI"
        assert page.current_page == 2
        assert page.total_pages == 4
        assert page.title == "letters.txt"
        assert page.document_id == document_id
        assert page.language_code == "en"

    @pytest.mark.asyncio
    async def test_next_page_is_warmed(self, service, cache, tasks, owner, document_id):
        await service.get_page(document_id, 2, owner)
        await tasks.drain(timeout=1.0)
        assert cache.get(document_id, 3).content == "J"

    @pytest.mark.asyncio
    async def test_last_page_schedules_no_read_ahead(
        self, service, scripted, tasks, owner, document_id
    ):
        await service.get_page(document_id, 3, owner)
        await tasks.drain(timeout=1.0)
        assert scripted.get_chunk_calls == [(document_id, 3)]

    @pytest.mark.asyncio
    async def test_warm_page_is_served_from_cache(
        self, service, scripted, tasks, owner, document_id
    ):
        await service.get_page(document_id, 0, owner)
        await tasks.drain(timeout=1.0)
        scripted.get_chunk_calls.clear()

        page = await service.get_page(document_id, 1, owner)
        assert page.text == "DEF"
        assert (document_id, 1) not in scripted.get_chunk_calls

    @pytest.mark.asyncio
    async def test_repeated_and_concurrent_reads_agree(self, service, tasks, owner, document_id):
        expected = ["ABC", "DEF", "GHI", "J"]
        for _ in range(3):
            pages = await asyncio.gather(
                *(service.get_page(document_id, i, owner) for i in range(4) for _ in range(3))
            )
            assert [p.text for p in pages] == [t for t in expected for _ in range(3)]
        await tasks.drain(timeout=1.0)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("index", [-1, 4, 100, 2**63, 10**20])
    async def test_out_of_range_is_not_found(self, service, owner, document_id, index):
        assert await service.get_page(document_id, index, owner) is None

    @pytest.mark.asyncio
    async def test_negative_index_does_no_io(self, service, scripted, owner, document_id):
        await service.get_page(document_id, -1, owner)
        assert scripted.get_chunk_calls == []

    @pytest.mark.asyncio
    async def test_unknown_document_is_not_found(self, service, owner):
        assert await service.get_page("no-such-doc", 0, owner) is None

    @pytest.mark.asyncio
    async def test_cached_page_is_not_served_to_other_owner(
        self, service, cache, tasks, owner, stranger, document_id
    ):
        await service.get_page(document_id, 0, owner)
        await tasks.drain(timeout=1.0)
        assert cache.get(document_id, 0) is not None

        assert await service.get_page(document_id, 0, stranger) is None
        assert await service.get_page(document_id, 1, stranger) is None


class TestCacheTtl:
    @pytest.mark.asyncio
    async def test_requested_and_read_ahead_pages_use_different_ttls(
        self, service, cache, clock, tasks, owner, document_id
    ):
        await service.get_page(document_id, 0, owner)
        await tasks.drain(timeout=1.0)

        clock.advance(cache.default_ttl)
        assert cache.get(document_id, 1) is None
        assert cache.get(document_id, 0) is not None

        clock.advance(3600)
        assert cache.get(document_id, 0) is None

    @pytest.mark.asyncio
    async def test_cached_entries_do_not_carry_reading_marker(
        self, service, cache, tasks, owner, document_id
    ):
        await service.get_page(document_id, 0, owner)
        await tasks.drain(timeout=1.0)
        assert cache.get(document_id, 0).last_read_index is None
        assert cache.get(document_id, 1).last_read_index is None


class TestProgress:
    @pytest.mark.asyncio
    async def test_progress_is_saved(self, service, store, tasks, owner, document_id):
        await service.get_page(document_id, 2, owner)
        doc = await store.get_document_meta(document_id)
        assert doc.last_read_index == 2
        await tasks.drain(timeout=1.0)

    @pytest.mark.asyncio
    async def test_progress_is_saved_on_cache_hit(self, service, store, tasks, owner, document_id):
        await service.get_page(document_id, 0, owner)
        await tasks.drain(timeout=1.0)

        await service.get_page(document_id, 1, owner)
        doc = await store.get_document_meta(document_id)
        assert doc.last_read_index == 1

        await service.get_page(document_id, 0, owner)
        doc = await store.get_document_meta(document_id)
        assert doc.last_read_index == 0
        await tasks.drain(timeout=1.0)

    @pytest.mark.asyncio
    async def test_preview_leaves_marker_alone(self, service, store, tasks, owner, document_id):
        page = await service.get_page(document_id, 3, owner, persist_progress=False)
        assert page.text == "J"
        doc = await store.get_document_meta(document_id)
        assert doc.last_read_index == 0
        await tasks.drain(timeout=1.0)

    @pytest.mark.asyncio
    async def test_progress_failure_does_not_fail_the_read(
        self, service, scripted, store, tasks, owner, document_id
    ):
        scripted.update_error = StoreUnavailableError("disk is on fire")
        page = await service.get_page(document_id, 1, owner)
        assert page.text == "DEF"
        doc = await store.get_document_meta(document_id)
        assert doc.last_read_index == 0
        await tasks.drain(timeout=1.0)


class TestReadAheadFailures:
    @pytest.mark.asyncio
    async def test_read_ahead_error_is_swallowed(
        self, service, scripted, cache, tasks, owner, document_id
    ):
        scripted.chunk_errors[2] = StoreUnavailableError("flaky")
        page = await service.get_page(document_id, 1, owner)
        assert page.text == "DEF"

        await tasks.drain(timeout=1.0)
        assert cache.get(document_id, 2) is None

        # the primary path still reports storage trouble
        with pytest.raises(StoreUnavailableError):
            await service.get_page(document_id, 2, owner)

    @pytest.mark.asyncio
    async def test_slow_read_ahead_does_not_delay_response(
        self, service, scripted, cache, tasks, owner, document_id
    ):
        service.prefetch_timeout = 0.05
        scripted.chunk_delays[1] = 1.0

        page = await asyncio.wait_for(service.get_page(document_id, 0, owner), timeout=0.5)
        assert page.text == "ABC"

        assert await tasks.drain(timeout=1.0) == 0
        assert cache.get(document_id, 1) is None


class TestDeletion:
    @pytest.mark.asyncio
    async def test_deleted_document_is_not_found(self, service, cache, tasks, owner, document_id):
        await service.get_page(document_id, 0, owner)
        await tasks.drain(timeout=1.0)
        assert len(cache) == 2

        assert await service.delete_document(document_id, owner) is True
        assert len(cache) == 0
        for index in range(4):
            assert await service.get_page(document_id, index, owner) is None

    @pytest.mark.asyncio
    async def test_other_owner_cannot_delete(self, service, store, stranger, document_id):
        assert await service.delete_document(document_id, stranger) is False
        assert await store.get_document_meta(document_id) is not None

    @pytest.mark.asyncio
    async def test_in_flight_read_ahead_cannot_repopulate_deleted_document(
        self, service, scripted, cache, tasks, owner, document_id
    ):
        gate = asyncio.Event()
        scripted.chunk_gates[1] = gate

        await service.get_page(document_id, 0, owner)
        await asyncio.sleep(0.05)  # read-ahead has fetched page 1 and is parked

        assert await service.delete_document(document_id, owner) is True
        gate.set()
        await tasks.drain(timeout=1.0)

        assert cache.get(document_id, 1) is None
        assert await service.get_page(document_id, 1, owner) is None
