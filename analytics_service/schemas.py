"""Immutable snapshots of upstream payloads.

Instances are built only by ``from_dict`` at the deserialization boundary
(the gateways). Every field is optional: upstreams omit or null out fields
freely, and a dangling reference simply yields ``None``. ``from_dict``
raises ``TypeError`` when the payload is not a JSON object, which the
gateways treat as a malformed response.
"""

import math
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional


def _mapping(data, kind):
    if not isinstance(data, dict):
        raise TypeError(f'{kind} payload must be an object, got {type(data).__name__}')
    return data


def decode_list(decoder: Callable) -> Callable:
    """Wrap an item decoder so it decodes a JSON array into a tuple."""
    def decode(data):
        if not isinstance(data, list):
            raise TypeError(f'expected a list, got {type(data).__name__}')
        return tuple(decoder(item) for item in data)
    return decode


def decode_scalar(kind: type) -> Callable:
    def decode(data):
        if isinstance(data, bool) or not isinstance(data, (int, float)):
            raise TypeError(f'expected a number, got {type(data).__name__}')
        if not math.isfinite(data):
            raise ValueError(f'expected a finite number, got {data!r}')
        return kind(data)
    return decode


def index_by(items: Iterable, attr: str = 'id') -> dict:
    """Key a batch result by id.

    Upstream batch endpoints do not preserve request order, so results must
    never be matched to requests by position. Items without the key are
    dropped; on duplicate keys the first item wins.
    """
    indexed = {}
    for item in items:
        key = getattr(item, attr, None)
        if key is not None and key not in indexed:
            indexed[key] = item
    return indexed


@dataclass(frozen=True)
class UserProfile:
    uuid: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    status: Optional[str] = None
    is_author: Optional[bool] = None
    create_time: Optional[str] = None

    @classmethod
    def from_dict(cls, data):
        data = _mapping(data, 'user')
        return cls(
            uuid=data.get('uuid'),
            username=data.get('username'),
            email=data.get('email'),
            avatar_url=data.get('avatarUrl'),
            status=data.get('status'),
            is_author=data.get('isAuthor'),
            create_time=data.get('createTime'),
        )


@dataclass(frozen=True)
class NovelSummary:
    id: Optional[int] = None
    uuid: Optional[str] = None
    title: Optional[str] = None
    author_id: Optional[str] = None
    author_username: Optional[str] = None
    category_id: Optional[int] = None
    category_name: Optional[str] = None
    synopsis: Optional[str] = None
    cover_img_url: Optional[str] = None
    status: Optional[str] = None
    is_completed: Optional[bool] = None
    chapter_cnt: Optional[int] = None
    word_cnt: Optional[int] = None
    avg_rating: Optional[float] = None
    review_cnt: Optional[int] = None
    view_cnt: Optional[int] = None
    vote_cnt: Optional[int] = None

    @classmethod
    def from_dict(cls, data):
        data = _mapping(data, 'novel')
        return cls(
            id=data.get('id'),
            uuid=data.get('uuid'),
            title=data.get('title'),
            author_id=data.get('authorId'),
            author_username=data.get('authorUsername'),
            category_id=data.get('categoryId'),
            category_name=data.get('categoryName'),
            synopsis=data.get('synopsis'),
            cover_img_url=data.get('coverImgUrl'),
            status=data.get('status'),
            is_completed=data.get('isCompleted'),
            chapter_cnt=data.get('chapterCnt'),
            word_cnt=data.get('wordCnt'),
            avg_rating=data.get('avgRating'),
            review_cnt=data.get('reviewCnt'),
            view_cnt=data.get('viewCnt'),
            vote_cnt=data.get('voteCnt'),
        )


@dataclass(frozen=True)
class ChapterSummary:
    id: Optional[int] = None
    uuid: Optional[str] = None
    novel_id: Optional[int] = None
    chapter_number: Optional[int] = None
    title: Optional[str] = None
    word_cnt: Optional[int] = None
    is_premium: Optional[bool] = None
    publish_time: Optional[str] = None

    @classmethod
    def from_dict(cls, data):
        data = _mapping(data, 'chapter')
        return cls(
            id=data.get('id'),
            uuid=data.get('uuid'),
            novel_id=data.get('novelId'),
            chapter_number=data.get('chapterNumber'),
            title=data.get('title'),
            word_cnt=data.get('wordCnt'),
            is_premium=data.get('isPremium'),
            publish_time=data.get('publishTime'),
        )


@dataclass(frozen=True)
class CategorySummary:
    id: Optional[int] = None
    name: Optional[str] = None
    description: Optional[str] = None
    slug: Optional[str] = None
    is_active: Optional[bool] = None

    @classmethod
    def from_dict(cls, data):
        data = _mapping(data, 'category')
        return cls(
            id=data.get('id'),
            name=data.get('name'),
            description=data.get('description'),
            slug=data.get('slug'),
            is_active=data.get('isActive'),
        )


@dataclass(frozen=True)
class CategoryStatistics:
    novel_count: Optional[int] = None
    total_views: Optional[int] = None
    total_chapters: Optional[int] = None

    @classmethod
    def from_dict(cls, data):
        data = _mapping(data, 'category statistics')
        return cls(
            novel_count=data.get('novelCount'),
            total_views=data.get('totalViews'),
            total_chapters=data.get('totalChapters'),
        )


@dataclass(frozen=True)
class RatingStats:
    average_rating: Optional[float] = None
    total_reviews: Optional[int] = None
    rating1_count: Optional[int] = None
    rating2_count: Optional[int] = None
    rating3_count: Optional[int] = None
    rating4_count: Optional[int] = None
    rating5_count: Optional[int] = None

    @classmethod
    def from_dict(cls, data):
        data = _mapping(data, 'rating stats')
        return cls(
            average_rating=data.get('averageRating'),
            total_reviews=data.get('totalReviews'),
            rating1_count=data.get('rating1Count'),
            rating2_count=data.get('rating2Count'),
            rating3_count=data.get('rating3Count'),
            rating4_count=data.get('rating4Count'),
            rating5_count=data.get('rating5Count'),
        )


@dataclass(frozen=True)
class Review:
    id: Optional[int] = None
    novel_id: Optional[int] = None
    user_id: Optional[str] = None
    rating: Optional[int] = None
    content: Optional[str] = None
    like_count: Optional[int] = None
    create_time: Optional[str] = None

    @classmethod
    def from_dict(cls, data):
        data = _mapping(data, 'review')
        return cls(
            id=data.get('id'),
            novel_id=data.get('novelId'),
            user_id=data.get('userId'),
            rating=data.get('rating'),
            content=data.get('content'),
            like_count=data.get('likeCount'),
            create_time=data.get('createTime'),
        )


@dataclass(frozen=True)
class CommentStatistics:
    total_comments: Optional[int] = None
    spoiler_comments: Optional[int] = None
    recent_comments: Optional[int] = None

    @classmethod
    def from_dict(cls, data):
        data = _mapping(data, 'comment statistics')
        return cls(
            total_comments=data.get('totalComments'),
            spoiler_comments=data.get('spoilerComments'),
            recent_comments=data.get('recentComments'),
        )


@dataclass(frozen=True)
class ModerationStatistics:
    total_comments: Optional[int] = None
    pending_reports: Optional[int] = None
    resolved_reports: Optional[int] = None
    flagged_comments: Optional[int] = None

    @classmethod
    def from_dict(cls, data):
        data = _mapping(data, 'moderation statistics')
        return cls(
            total_comments=data.get('totalComments'),
            pending_reports=data.get('pendingReports'),
            resolved_reports=data.get('resolvedReports'),
            flagged_comments=data.get('flaggedComments'),
        )


@dataclass(frozen=True)
class GamificationStats:
    user_id: Optional[str] = None
    level: Optional[int] = None
    current_exp: Optional[int] = None
    total_exp_for_next_level: Optional[int] = None
    yuan_balance: Optional[int] = None

    @classmethod
    def from_dict(cls, data):
        data = _mapping(data, 'gamification stats')
        return cls(
            user_id=data.get('userId'),
            level=data.get('level'),
            current_exp=data.get('currentExp'),
            total_exp_for_next_level=data.get('totalExpForNextLevel'),
            yuan_balance=data.get('yuanBalance'),
        )


@dataclass(frozen=True)
class Page:
    """One page of results, upstream or local."""

    content: tuple = field(default_factory=tuple)
    total_elements: int = 0
    total_pages: int = 0
    current_page: int = 0
    size: int = 0

    @classmethod
    def build(cls, content, total_elements, page, size):
        total_pages = math.ceil(total_elements / size) if size > 0 else 0
        return cls(
            content=tuple(content),
            total_elements=total_elements,
            total_pages=total_pages,
            current_page=page,
            size=size,
        )

    @classmethod
    def decoder(cls, item_decoder: Callable) -> Callable:
        def decode(data):
            data = _mapping(data, 'page')
            return cls(
                content=decode_list(item_decoder)(data.get('content') or []),
                total_elements=data.get('totalElements') or 0,
                total_pages=data.get('totalPages') or 0,
                current_page=data.get('currentPage') or 0,
                size=data.get('size') or 0,
            )
        return decode
