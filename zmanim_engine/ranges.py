"""Evaluation of calendar queries across a range of dates."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Dict, Iterator, List, Optional, Tuple

from joblib import Parallel, cpu_count, delayed

from .calendar import AstronomicalCalendar
from .errors import InvalidArgumentError

__all__ = ["compute_range", "range_dates"]


def range_dates(start: date, end: date) -> Iterator[date]:
    """Yield every date from *start* to *end*, both inclusive."""

    if end < start:
        raise InvalidArgumentError(f"End date {end} is before start date {start}")
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def _evaluate(calendar: AstronomicalCalendar, day: date, query: str, args: Tuple[Any, ...]) -> Tuple[date, Any]:
    calendar.date = day
    return day, getattr(calendar, query)(*args)


def compute_range(
    calendar: AstronomicalCalendar,
    start: date,
    end: date,
    query: str,
    *args: Any,
    n_jobs: int = 1,
    backend: Optional[str] = None,
) -> Dict[date, Any]:
    """Run the calendar method named *query* for every date in ``[start, end]``.

    Every date is evaluated on its own clone of *calendar*, which is left
    untouched, so the work can be spread over ``n_jobs`` workers with
    :mod:`joblib` (``-1`` uses every CPU).

    Returns
    -------
    dict
        Mapping of each date to the query result (``None`` where the event
        does not occur).
    """

    if not callable(getattr(calendar, query, None)):
        raise InvalidArgumentError(f"Unknown calendar query: {query!r}")

    days: List[date] = list(range_dates(start, end))
    if n_jobs < 0:
        n_jobs = max(1, cpu_count() + 1 + n_jobs)
    n_jobs = max(1, min(n_jobs, len(days)))

    if n_jobs == 1:
        return dict(_evaluate(calendar.clone(), day, query, args) for day in days)

    results = Parallel(n_jobs=n_jobs, backend=backend)(
        delayed(_evaluate)(calendar.clone(), day, query, args) for day in days
    )
    return dict(results)
