"""Work-hours aggregation over travel segments"""

from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List

from trip_reports.domain.models import TravelSegment
from trip_reports.utils.date_utils import hours_between


def calculate_work_hours(segments: Iterable[TravelSegment]) -> float:
    """
    Total worked hours, door to door per day.

    Requirements:
    - Segments are bucketed by calendar date
    - Per date: earliest start to latest end among segments carrying both times
    - A negative span counts as zero
    - Segments missing a time are skipped for their date's min/max only

    Example:
        08:00-10:00, 09:30-11:00, 14:00-15:00 on one day -> 7.0 (not 4.5)
    """
    by_date: Dict[date, List[TravelSegment]] = defaultdict(list)
    for segment in segments:
        by_date[segment.date].append(segment)

    total_hours = 0.0
    for day, day_segments in by_date.items():
        timed = [s for s in day_segments if s.start_time is not None and s.end_time is not None]
        if not timed:
            continue

        earliest_start = min(s.start_time for s in timed)
        latest_end = max(s.end_time for s in timed)
        total_hours += max(hours_between(day, earliest_start, latest_end), 0.0)

    return total_hours
