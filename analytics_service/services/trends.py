"""Growth-rate and peak detection over time-bucketed counts."""

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

PERIODS = ('day', 'week', 'month')


@dataclass
class TrendDataPoint:
    period_label: str
    count: int
    growth_rate: Optional[float] = None


@dataclass(frozen=True)
class ActivityDataPoint:
    period_label: str
    total_activity: Optional[int] = None


@dataclass(frozen=True)
class HourlyActivityPoint:
    hour: int
    active_users: int


@dataclass(frozen=True)
class TrendSummary:
    total_count: int
    average_growth: float
    peak_value: Optional[int]
    peak_label: Optional[str]


def growth_rate(previous, current) -> float:
    """Period-over-period growth in percent.

    previous 0/None -> 100.0 if current > 0 else 0.0
    current None    -> -100.0
    otherwise       -> (current - previous) / previous * 100
    """
    if not previous:
        return 100.0 if current is not None and current > 0 else 0.0
    if current is None:
        return -100.0
    return (current - previous) / previous * 100.0


def annotate_growth_rates(points: List[TrendDataPoint]) -> List[TrendDataPoint]:
    """Set each point's growth rate against its predecessor; the first gets 0.0."""
    previous = None
    for point in points:
        point.growth_rate = 0.0 if previous is None else growth_rate(previous.count, point.count)
        previous = point
    return points


def average_growth(points: Sequence[TrendDataPoint]) -> float:
    rates = [p.growth_rate for p in points if p.growth_rate is not None]
    if not rates:
        return 0.0
    return sum(rates) / len(rates)


def find_peak(points: Sequence, value: Callable = lambda p: p.count):
    """Return the point with the largest value; the earliest one wins ties."""
    peak = None
    peak_value = None
    for point in points:
        current = value(point)
        if peak is None or current > peak_value:
            peak, peak_value = point, current
    return peak


def summarize_trend(points: List[TrendDataPoint]) -> TrendSummary:
    annotate_growth_rates(points)
    peak = find_peak(points)
    return TrendSummary(
        total_count=sum(p.count for p in points),
        average_growth=average_growth(points),
        peak_value=peak.count if peak else None,
        peak_label=peak.period_label if peak else None,
    )
