"""Reading history: validated upsert, enriched paging, owner-only deletes.

Writes need certainty, reads are best-effort. ``add_or_update_history``
fails outright when an upstream cannot confirm the user, novel or chapter;
``get_user_history`` degrades field by field when an upstream is down.

The upstream checks and the local write are not one transaction: a novel
deleted right after it was confirmed can still be recorded. History
tolerates such dangling references on read.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy.exc import IntegrityError

from analytics_service.errors import NotFoundError, ValidationError
from analytics_service.models.history import History
from analytics_service.schemas import Page, index_by
from analytics_service.services.concurrency import run_concurrently

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoryView:
    history_id: int
    uuid: str
    novel_id: int
    chapter_id: int
    view_time: datetime
    novel_title: Optional[str] = None
    novel_cover: Optional[str] = None
    synopsis: Optional[str] = None
    avg_rating: Optional[float] = None
    chapter_cnt: Optional[int] = None
    category_id: Optional[int] = None
    category_name: Optional[str] = None
    chapter_number: Optional[int] = None
    in_library: bool = False


def _utcnow():
    return datetime.now(timezone.utc)


class HistoryService:
    def __init__(self, history_repo, library_repo, user_gateway, content_gateway, clock=_utcnow):
        self.history_repo = history_repo
        self.library_repo = library_repo
        self.user_gateway = user_gateway
        self.content_gateway = content_gateway
        self.clock = clock

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def add_or_update_history(self, user_id, novel_id, chapter_id):
        """Record that ``user_id`` read ``chapter_id`` of ``novel_id``.

        Creates the (user, novel) record on first read; afterwards only
        moves its chapter pointer and ``update_time`` forward.
        """
        if not self.user_gateway.validate_user(user_id):
            raise NotFoundError(f'User not found with id: {user_id}')

        if not self.content_gateway.get_novel_by_id(novel_id).has_data:
            raise NotFoundError(f'Novel not found with id: {novel_id}')

        chapters = index_by(self.content_gateway.get_chapters_batch([chapter_id]).payload_or(()))
        chapter = chapters.get(chapter_id)
        if chapter is None:
            raise NotFoundError(f'Chapter not found with id: {chapter_id}')
        if chapter.novel_id != novel_id:
            raise ValidationError(f"Chapter doesn't belong to novel id: {novel_id}")

        return self._upsert(user_id, novel_id, chapter_id)

    def _upsert(self, user_id, novel_id, chapter_id):
        now = self.clock()
        existing = self.history_repo.find_by_user_and_novel(user_id, novel_id)
        if existing is not None:
            return self._advance(existing, chapter_id, now)

        history = History(
            uuid=str(uuid4()),
            user_id=user_id,
            novel_id=novel_id,
            chapter_id=chapter_id,
            create_time=now,
            update_time=now,
        )
        try:
            return self.history_repo.save(history)
        except IntegrityError:
            # A concurrent first read of the same novel won the insert.
            self.history_repo.rollback()
            existing = self.history_repo.find_by_user_and_novel(user_id, novel_id)
            if existing is None:
                raise
            logger.info('Concurrent history insert for user %s novel %s, updating', user_id, novel_id)
            return self._advance(existing, chapter_id, now)

    def _advance(self, history, chapter_id, now):
        history.chapter_id = chapter_id
        history.update_time = now
        return self.history_repo.save(history)

    def delete_history(self, user_id, history_id):
        """Delete one record owned by ``user_id``.

        A missing record and someone else's record fail identically.
        """
        history = self.history_repo.find_by_id(history_id)
        if history is None or history.user_id != str(user_id):
            raise NotFoundError(
                "History record not found or you don't have permission to delete it."
            )
        self.history_repo.delete(history)

    def clear_history(self, user_id):
        return self.history_repo.delete_by_user(user_id)

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    def get_user_history(self, user_id, page, size):
        total = self.history_repo.count_by_user(user_id)
        records = self.history_repo.find_by_user_paginated(user_id, page * size, size)
        if not records:
            return Page.build([], total, page, size)

        novel_ids = list(dict.fromkeys(r.novel_id for r in records))
        chapter_ids = list(dict.fromkeys(r.chapter_id for r in records))

        novels_response, chapters_response = run_concurrently(
            lambda: self.content_gateway.get_novels_batch(novel_ids),
            lambda: self.content_gateway.get_chapters_batch(chapter_ids),
        )
        if not novels_response.has_data:
            logger.info('Novel metadata unavailable for history page: %s', novels_response.message)
        if not chapters_response.has_data:
            logger.info('Chapter metadata unavailable for history page: %s', chapters_response.message)

        novels = index_by(novels_response.payload_or(()))
        chapters = index_by(chapters_response.payload_or(()))
        in_library = self.library_repo.check_novels_in_library(user_id, novel_ids)

        views = [self._to_view(r, novels, chapters, in_library) for r in records]
        return Page.build(views, total, page, size)

    @staticmethod
    def _to_view(record, novels, chapters, in_library):
        novel = novels.get(record.novel_id)
        chapter = chapters.get(record.chapter_id)
        return HistoryView(
            history_id=record.id,
            uuid=record.uuid,
            novel_id=record.novel_id,
            chapter_id=record.chapter_id,
            view_time=record.update_time,
            novel_title=novel.title if novel else None,
            novel_cover=novel.cover_img_url if novel else None,
            synopsis=novel.synopsis if novel else None,
            avg_rating=novel.avg_rating if novel else None,
            chapter_cnt=novel.chapter_cnt if novel else None,
            category_id=novel.category_id if novel else None,
            category_name=novel.category_name if novel else None,
            chapter_number=chapter.chapter_number if chapter else None,
            in_library=in_library.get(record.novel_id, False),
        )
