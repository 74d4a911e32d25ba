"""Read-only analytics views over local history plus upstream enrichment.

Partial-result policy: a quantity sourced from an upstream that is not
available (degraded envelope, non-success code, no payload) becomes 0 or
an empty collection for that field only. The view itself fails only if
the local store cannot answer.
"""

import calendar
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from analytics_service.errors import ValidationError
from analytics_service.repositories.analytics import day_bounds
from analytics_service.schemas import index_by
from analytics_service.services.concurrency import run_concurrently
from analytics_service.services.trends import (
    PERIODS,
    find_peak,
    growth_rate,
    summarize_trend,
)

logger = logging.getLogger(__name__)

# No upstream aggregate exists for these yet; reported as None, never 0.
UNAVAILABLE_REVIEW_FIELDS = ('average_rating', 'total_reviews')

# "All time" is approximated by a window reaching back a century.
ALL_TIME = timedelta(days=365 * 100)


@dataclass(frozen=True)
class TrendReport:
    period: str
    start_date: datetime
    end_date: datetime
    data_points: list
    total_count: int
    average_growth: float
    peak_value: Optional[int] = None
    peak_date: Optional[str] = None


@dataclass(frozen=True)
class ReadingActivityReport:
    period: str
    start_date: datetime
    end_date: datetime
    data_points: list
    total_activity: int
    average_activity: float
    peak_activity: Optional[int] = None
    peak_date: Optional[str] = None


@dataclass(frozen=True)
class ActivitySummary:
    start_date: datetime
    end_date: datetime
    period: str
    active_users: int
    unique_novels_read: int
    total_reading_sessions: int
    user_growth_rate: float
    novel_growth_rate: float
    session_growth_rate: float
    total_comments: int
    total_reviews: Optional[int] = None
    average_rating: Optional[float] = None
    unavailable_fields: Tuple[str, ...] = UNAVAILABLE_REVIEW_FIELDS


@dataclass(frozen=True)
class PlatformStatistics:
    timestamp: datetime
    daily_active_users: int
    weekly_active_users: int
    monthly_active_users: int
    total_reading_sessions: int
    total_novels: int
    total_comments: int
    total_reviews: Optional[int] = None
    unavailable_fields: Tuple[str, ...] = ('total_reviews',)


@dataclass(frozen=True)
class DailyActiveUsersReport:
    date: datetime
    dau: int
    wau: int
    mau: int
    hourly_breakdown: list


@dataclass(frozen=True)
class TopNovel:
    id: int
    read_count: int
    title: Optional[str] = None
    author_name: Optional[str] = None
    category_name: Optional[str] = None
    view_count: int = 0
    vote_count: int = 0
    rating: float = 0.0
    chapter_count: int = 0
    word_count: int = 0


@dataclass(frozen=True)
class TopCategory:
    name: str
    read_count: int
    novel_count: int


@dataclass(frozen=True)
class TopReader:
    user_id: str
    novels_read: int
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    level: Optional[int] = None
    current_exp: Optional[int] = None


@dataclass(frozen=True)
class TopContent:
    date: datetime
    top_novels: List[TopNovel] = field(default_factory=list)
    top_categories: List[TopCategory] = field(default_factory=list)
    top_readers: List[TopReader] = field(default_factory=list)


def _utcnow():
    return datetime.now(timezone.utc)


def _one_month_before(moment):
    year, month = (moment.year - 1, 12) if moment.month == 1 else (moment.year, moment.month - 1)
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


class AnalyticsService:
    def __init__(self, analytics_repo, content_gateway, engagement_gateway,
                 user_gateway, gamification_gateway, clock=_utcnow,
                 default_window_days=30, default_top_limit=10):
        self.analytics_repo = analytics_repo
        self.content_gateway = content_gateway
        self.engagement_gateway = engagement_gateway
        self.user_gateway = user_gateway
        self.gamification_gateway = gamification_gateway
        self.clock = clock
        self.default_window_days = default_window_days
        self.default_top_limit = default_top_limit

    def _resolve_window(self, start, end):
        end = end or self.clock()
        start = start or end - timedelta(days=self.default_window_days)
        if start >= end:
            raise ValidationError('start_date must be before end_date')
        return start, end

    @staticmethod
    def _resolve_period(period):
        period = period or 'day'
        if period not in PERIODS:
            raise ValidationError(f"period must be one of {', '.join(PERIODS)}")
        return period

    def _total_comments(self):
        stats = self.engagement_gateway.get_moderation_statistics().payload_or(None)
        if stats is None or stats.total_comments is None:
            return 0
        return stats.total_comments

    # ------------------------------------------------------------------
    # Trends
    # ------------------------------------------------------------------

    def get_user_trends(self, start=None, end=None, period=None):
        start, end = self._resolve_window(start, end)
        period = self._resolve_period(period)
        points = self.analytics_repo.get_user_activity_trends(start, end, period)
        summary = summarize_trend(points)
        return TrendReport(
            period=period,
            start_date=start,
            end_date=end,
            data_points=points,
            total_count=summary.total_count,
            average_growth=summary.average_growth,
            peak_value=summary.peak_value,
            peak_date=summary.peak_label,
        )

    def get_reading_activity_trends(self, start=None, end=None, period=None):
        start, end = self._resolve_window(start, end)
        period = self._resolve_period(period)
        points = self.analytics_repo.get_reading_activity_trends(start, end, period)

        total = sum(p.total_activity or 0 for p in points)
        peak = find_peak(points, value=lambda p: p.total_activity or 0)
        return ReadingActivityReport(
            period=period,
            start_date=start,
            end_date=end,
            data_points=points,
            total_activity=total,
            average_activity=total / len(points) if points else 0.0,
            peak_activity=(peak.total_activity or 0) if peak else None,
            peak_date=peak.period_label if peak else None,
        )

    # ------------------------------------------------------------------
    # Summary views
    # ------------------------------------------------------------------

    def get_analytics_summary(self, start=None, end=None, period=None):
        start, end = self._resolve_window(start, end)
        period = self._resolve_period(period)
        repo = self.analytics_repo

        active_users = repo.get_active_user_count(start, end)
        unique_novels = repo.get_unique_novels_read(start, end)
        sessions = repo.get_total_reading_sessions(start, end)

        previous_start = start - (end - start)
        previous_users = repo.get_active_user_count(previous_start, start)
        previous_novels = repo.get_unique_novels_read(previous_start, start)
        previous_sessions = repo.get_total_reading_sessions(previous_start, start)

        return ActivitySummary(
            start_date=start,
            end_date=end,
            period=period,
            active_users=active_users,
            unique_novels_read=unique_novels,
            total_reading_sessions=sessions,
            user_growth_rate=growth_rate(previous_users, active_users),
            novel_growth_rate=growth_rate(previous_novels, unique_novels),
            session_growth_rate=growth_rate(previous_sessions, sessions),
            total_comments=self._total_comments(),
        )

    def get_platform_statistics(self):
        now = self.clock()
        repo = self.analytics_repo

        daily = repo.get_daily_active_users(now)
        weekly = repo.get_active_user_count(now - timedelta(days=7), now)
        monthly = repo.get_active_user_count(_one_month_before(now), now)
        sessions = repo.get_total_reading_sessions(now - ALL_TIME, now)

        novel_count_response, total_comments = run_concurrently(
            self.content_gateway.get_novel_count,
            self._total_comments,
        )
        return PlatformStatistics(
            timestamp=now,
            daily_active_users=daily,
            weekly_active_users=weekly,
            monthly_active_users=monthly,
            total_reading_sessions=sessions,
            total_novels=novel_count_response.payload_or(0),
            total_comments=total_comments,
        )

    def get_daily_active_users(self, date=None):
        date = date or self.clock()
        repo = self.analytics_repo
        _, day_end = day_bounds(date)
        return DailyActiveUsersReport(
            date=date,
            dau=repo.get_daily_active_users(date),
            wau=repo.get_active_user_count(day_end - timedelta(days=7), day_end),
            mau=repo.get_active_user_count(_one_month_before(day_end), day_end),
            hourly_breakdown=repo.get_hourly_active_users(date),
        )

    # ------------------------------------------------------------------
    # Top content
    # ------------------------------------------------------------------

    def get_top_content(self, limit=None):
        if limit is None or limit <= 0:
            limit = self.default_top_limit

        top_novels = self._top_novels(self.analytics_repo.get_most_read_novels(limit))
        return TopContent(
            date=self.clock(),
            top_novels=top_novels,
            top_categories=self._top_categories(top_novels),
            top_readers=self._top_readers(self.analytics_repo.get_most_active_users(limit)),
        )

    def _top_novels(self, ranked):
        if not ranked:
            return []
        response = self.content_gateway.get_novels_batch([novel_id for novel_id, _ in ranked])
        if not response.has_data:
            logger.info('Top content left unenriched: %s', response.message)
            return []

        novels = index_by(response.data)
        top = []
        for novel_id, read_count in ranked:
            novel = novels.get(novel_id)
            if novel is None:
                continue
            top.append(TopNovel(
                id=novel_id,
                read_count=read_count,
                title=novel.title,
                author_name=novel.author_username,
                category_name=novel.category_name,
                view_count=novel.view_cnt or 0,
                vote_count=novel.vote_cnt or 0,
                rating=float(novel.avg_rating or 0.0),
                chapter_count=novel.chapter_cnt or 0,
                word_count=novel.word_cnt or 0,
            ))
        return top

    @staticmethod
    def _top_categories(top_novels):
        totals = {}
        for novel in top_novels:
            if not novel.category_name:
                continue
            reads, count = totals.get(novel.category_name, (0, 0))
            totals[novel.category_name] = (reads + novel.read_count, count + 1)
        ranked = sorted(totals.items(), key=lambda item: (-item[1][0], item[0]))
        return [
            TopCategory(name=name, read_count=reads, novel_count=count)
            for name, (reads, count) in ranked
        ]

    def _top_readers(self, ranked):
        if not ranked:
            return []
        user_ids = [user_id for user_id, _ in ranked]
        users_response, stats_response = run_concurrently(
            lambda: self.user_gateway.get_users_batch(user_ids),
            lambda: self.gamification_gateway.get_batch_users_stats(user_ids),
        )
        users = index_by(users_response.payload_or(()), 'uuid')
        stats = index_by(stats_response.payload_or(()), 'user_id')

        readers = []
        for user_id, novels_read in ranked:
            user = users.get(user_id)
            stat = stats.get(user_id)
            readers.append(TopReader(
                user_id=user_id,
                novels_read=novels_read,
                username=user.username if user else None,
                avatar_url=user.avatar_url if user else None,
                level=stat.level if stat else None,
                current_exp=stat.current_exp if stat else None,
            ))
        return readers
