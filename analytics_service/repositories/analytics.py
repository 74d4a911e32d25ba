"""Read-only analytics queries over the ``history`` table.

Every time window is half-open: ``start <= update_time < end``. A history
row counts as one reading session, attributed to its latest update.
"""

from collections import OrderedDict
from datetime import datetime, time, timedelta

from sqlalchemy import func

from analytics_service.models.history import History
from analytics_service.services.trends import (
    ActivityDataPoint,
    HourlyActivityPoint,
    TrendDataPoint,
)

_PERIOD_LABELS = {
    'day': lambda ts: ts.strftime('%Y-%m-%d'),
    'week': lambda ts: '{0}-W{1:02d}'.format(*ts.isocalendar()[:2]),
    'month': lambda ts: ts.strftime('%Y-%m'),
}


def period_label(ts, period):
    try:
        return _PERIOD_LABELS[period](ts)
    except KeyError:
        raise ValueError(f'Unsupported period: {period}') from None


def day_bounds(day):
    """[midnight, next midnight) for the day containing ``day``."""
    if isinstance(day, datetime):
        start = datetime.combine(day.date(), time.min, tzinfo=day.tzinfo)
    else:
        start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


class AnalyticsRepository:
    def __init__(self, session):
        self.session = session

    def _in_range(self, query, start, end):
        return query.filter(History.update_time >= start, History.update_time < end)

    def _bucketed(self, start, end, period):
        """Yield (label, user_id) pairs in chronological order."""
        rows = (
            self._in_range(self.session.query(History.update_time, History.user_id), start, end)
            .order_by(History.update_time.asc())
            .all()
        )
        for update_time, user_id in rows:
            yield period_label(update_time, period), user_id

    def get_user_activity_trends(self, start, end, period):
        """Distinct active users per bucket."""
        buckets = OrderedDict()
        for label, user_id in self._bucketed(start, end, period):
            buckets.setdefault(label, set()).add(user_id)
        return [TrendDataPoint(period_label=label, count=len(users)) for label, users in buckets.items()]

    def get_reading_activity_trends(self, start, end, period):
        """Reading sessions per bucket."""
        buckets = OrderedDict()
        for label, _ in self._bucketed(start, end, period):
            buckets[label] = buckets.get(label, 0) + 1
        return [ActivityDataPoint(period_label=label, total_activity=count) for label, count in buckets.items()]

    def get_active_user_count(self, start, end):
        query = self.session.query(func.count(func.distinct(History.user_id)))
        return self._in_range(query, start, end).scalar() or 0

    def get_daily_active_users(self, day):
        start, end = day_bounds(day)
        return self.get_active_user_count(start, end)

    def get_hourly_active_users(self, day):
        start, end = day_bounds(day)
        rows = self._in_range(
            self.session.query(History.update_time, History.user_id), start, end
        ).all()
        hours = {}
        for update_time, user_id in rows:
            hours.setdefault(update_time.hour, set()).add(user_id)
        return [
            HourlyActivityPoint(hour=hour, active_users=len(users))
            for hour, users in sorted(hours.items())
        ]

    def get_unique_novels_read(self, start, end):
        query = self.session.query(func.count(func.distinct(History.novel_id)))
        return self._in_range(query, start, end).scalar() or 0

    def get_total_reading_sessions(self, start, end):
        query = self.session.query(func.count(History.id))
        return self._in_range(query, start, end).scalar() or 0

    def get_most_read_novels(self, limit, start=None, end=None):
        """[(novel_id, readers)] by reader count, ties by lower novel id."""
        readers = func.count(History.id).label('readers')
        query = self.session.query(History.novel_id, readers)
        if start is not None and end is not None:
            query = self._in_range(query, start, end)
        rows = (
            query.group_by(History.novel_id)
            .order_by(readers.desc(), History.novel_id.asc())
            .limit(limit)
            .all()
        )
        return [(novel_id, count) for novel_id, count in rows]

    def get_most_active_users(self, limit):
        """[(user_id, novels_read)] by number of novels read."""
        novels = func.count(History.id).label('novels')
        rows = (
            self.session.query(History.user_id, novels)
            .group_by(History.user_id)
            .order_by(novels.desc(), History.user_id.asc())
            .limit(limit)
            .all()
        )
        return [(user_id, count) for user_id, count in rows]
