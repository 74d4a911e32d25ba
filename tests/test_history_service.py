"""Tests for the reading-history upsert, enrichment and deletes."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
import requests
from sqlalchemy.exc import IntegrityError

from analytics_service.errors import NotFoundError, ValidationError
from analytics_service.models import History, LibraryEntry
from analytics_service.repositories import HistoryRepository, LibraryRepository
from analytics_service.services.history import HistoryService
from tests.conftest import FIXED_NOW, OTHER_USER_ID, TEST_USER_ID, seed_history, serve_catalog

NOVELS_BATCH = '/api/v1/novels/batch/get'
CHAPTERS_BATCH = '/api/v1/chapters/batch/get'


@pytest.fixture
def service(session, gateways, clock):
    return HistoryService(
        HistoryRepository(session),
        LibraryRepository(session),
        gateways.user,
        gateways.content,
        clock=clock,
    )


@pytest.fixture
def catalog(upstreams):
    serve_catalog(upstreams)
    return upstreams


def _naive(ts):
    return ts.replace(tzinfo=None)


class TestAddOrUpdateHistory:
    def test_first_read_creates_record(self, service, catalog, session):
        history = service.add_or_update_history(TEST_USER_ID, 42, 3)

        assert history.id is not None
        assert history.chapter_id == 3
        assert session.query(History).count() == 1

    def test_second_read_moves_chapter_pointer(self, service, catalog, session, clock):
        first = service.add_or_update_history(TEST_USER_ID, 42, 3)
        first_id, first_uuid = first.id, first.uuid

        clock.advance(timedelta(seconds=10))
        second = service.add_or_update_history(TEST_USER_ID, 42, 7)

        assert second.id == first_id
        assert second.uuid == first_uuid
        assert second.chapter_id == 7
        assert _naive(second.create_time) == _naive(FIXED_NOW)
        assert _naive(second.update_time) == _naive(FIXED_NOW + timedelta(seconds=10))
        assert session.query(History).count() == 1

    def test_repeat_is_idempotent(self, service, catalog, session):
        service.add_or_update_history(TEST_USER_ID, 42, 3)
        service.add_or_update_history(TEST_USER_ID, 42, 3)
        assert session.query(History).count() == 1

    def test_one_record_per_novel(self, service, catalog, session):
        service.add_or_update_history(TEST_USER_ID, 42, 3)
        service.add_or_update_history(TEST_USER_ID, 43, 11)
        assert session.query(History).count() == 2

    def test_unknown_user(self, service, catalog, session):
        with pytest.raises(NotFoundError, match='User not found'):
            service.add_or_update_history(OTHER_USER_ID, 42, 3)
        assert session.query(History).count() == 0

    def test_user_service_down_is_not_found(self, service, catalog, session):
        catalog.user.fail('GET', f'/api/v1/users/{TEST_USER_ID}', requests.ConnectionError('refused'))
        with pytest.raises(NotFoundError):
            service.add_or_update_history(TEST_USER_ID, 42, 3)
        assert session.query(History).count() == 0

    def test_unknown_novel(self, service, catalog, session):
        with pytest.raises(NotFoundError, match='Novel not found with id: 99'):
            service.add_or_update_history(TEST_USER_ID, 99, 3)
        assert session.query(History).count() == 0

    def test_unknown_chapter(self, service, catalog, session):
        with pytest.raises(NotFoundError, match='Chapter not found'):
            service.add_or_update_history(TEST_USER_ID, 42, 999)
        assert session.query(History).count() == 0

    def test_chapter_of_another_novel(self, service, catalog, session):
        with pytest.raises(ValidationError, match="Chapter doesn't belong to novel id: 42"):
            service.add_or_update_history(TEST_USER_ID, 42, 11)
        assert session.query(History).count() == 0

    def test_concurrent_first_insert_falls_back_to_update(self, catalog, gateways, clock):
        existing = History(user_id=TEST_USER_ID, novel_id=42, chapter_id=3)
        repo = MagicMock()
        repo.find_by_user_and_novel.side_effect = [None, existing]
        repo.save.side_effect = [
            IntegrityError('INSERT INTO history', {}, Exception('UNIQUE constraint failed')),
            existing,
        ]
        service = HistoryService(repo, MagicMock(), gateways.user, gateways.content, clock=clock)

        result = service.add_or_update_history(TEST_USER_ID, 42, 7)

        assert result is existing
        assert existing.chapter_id == 7
        repo.rollback.assert_called_once()


class TestGetUserHistory:
    def _seed_three(self):
        seed_history(TEST_USER_ID, 42, 7, FIXED_NOW - timedelta(hours=2))
        seed_history(TEST_USER_ID, 43, 11, FIXED_NOW)
        seed_history(TEST_USER_ID, 44, 21, FIXED_NOW - timedelta(hours=1))
        seed_history(OTHER_USER_ID, 42, 3, FIXED_NOW)

    def test_enriched_page(self, service, catalog, session):
        self._seed_three()
        session.add(LibraryEntry(user_id=TEST_USER_ID, novel_id=44))
        session.commit()

        page = service.get_user_history(TEST_USER_ID, 0, 20)

        assert page.total_elements == 3
        assert page.total_pages == 1
        assert [v.novel_id for v in page.content] == [43, 44, 42]
        mystery = page.content[1]
        assert mystery.novel_title == 'Lord of Mysteries'
        assert mystery.category_name == 'Mystery'
        assert mystery.chapter_number == 1
        assert mystery.in_library is True
        assert page.content[2].novel_cover == 'https://cdn.example.com/42.jpg'
        assert page.content[2].chapter_number == 7
        assert page.content[2].in_library is False

    def test_pagination(self, service, catalog):
        self._seed_three()

        first = service.get_user_history(TEST_USER_ID, 0, 2)
        second = service.get_user_history(TEST_USER_ID, 1, 2)

        assert first.total_pages == 2
        assert [v.novel_id for v in first.content] == [43, 44]
        assert [v.novel_id for v in second.content] == [42]
        assert second.current_page == 1

    def test_batches_deduplicate_ids(self, service, catalog):
        self._seed_three()
        service.get_user_history(TEST_USER_ID, 0, 20)
        (_, _, _, novel_ids), = catalog.content.calls_to(NOVELS_BATCH)
        assert sorted(novel_ids) == [42, 43, 44]

    def test_empty_page_skips_upstreams(self, service, catalog):
        self._seed_three()
        page = service.get_user_history(TEST_USER_ID, 5, 20)
        assert page.content == ()
        assert page.total_elements == 3
        assert catalog.content.calls == []

    def test_survives_content_outage(self, service, catalog):
        self._seed_three()
        catalog.content.fail('POST', NOVELS_BATCH, requests.ConnectionError('refused'))

        page = service.get_user_history(TEST_USER_ID, 0, 20)

        assert page.total_elements == 3
        assert page.size == 20
        assert len(page.content) == 3
        for view in page.content:
            assert view.novel_title is None
            assert view.novel_cover is None
            assert view.category_name is None
        # Chapter batch still answered
        assert page.content[0].chapter_number == 1

    def test_survives_open_breaker(self, service, catalog, gateways):
        self._seed_three()
        gateways.content.breaker.force_open()

        page = service.get_user_history(TEST_USER_ID, 0, 20)

        assert [v.novel_id for v in page.content] == [43, 44, 42]
        assert all(v.novel_title is None and v.chapter_number is None for v in page.content)
        assert catalog.content.calls == []

    def test_dangling_novel_left_unenriched(self, service, catalog):
        seed_history(TEST_USER_ID, 77, 3, FIXED_NOW)
        page = service.get_user_history(TEST_USER_ID, 0, 20)
        assert page.content[0].novel_id == 77
        assert page.content[0].novel_title is None


class TestDeleteHistory:
    def test_owner_can_delete(self, service, session):
        record = seed_history(TEST_USER_ID, 42, 3, FIXED_NOW)
        service.delete_history(TEST_USER_ID, record.id)
        assert session.query(History).count() == 0

    def test_missing_and_foreign_records_fail_identically(self, service, session):
        foreign = seed_history(OTHER_USER_ID, 42, 3, FIXED_NOW)

        with pytest.raises(NotFoundError) as missing:
            service.delete_history(TEST_USER_ID, 12345)
        with pytest.raises(NotFoundError) as not_owned:
            service.delete_history(TEST_USER_ID, foreign.id)

        assert missing.value.message == not_owned.value.message
        assert session.query(History).count() == 1

    def test_clear_history(self, service, session):
        seed_history(TEST_USER_ID, 42, 3, FIXED_NOW)
        seed_history(TEST_USER_ID, 43, 11, FIXED_NOW)
        seed_history(OTHER_USER_ID, 42, 3, FIXED_NOW)

        assert service.clear_history(TEST_USER_ID) == 2
        assert session.query(History).filter_by(user_id=OTHER_USER_ID).count() == 1
