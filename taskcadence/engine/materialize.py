"""Bounded materialization of a recurrence rule into occurrence dates.

Occurrences are produced strictly after `series_start`, so a caller extending an
already-materialized window passes the last stored occurrence as `series_start`
(and the number already stored as `already_materialized`) and never gets a duplicate.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterator, List, Optional

from taskcadence.engine.occurrence import DateLike, _as_datetime, next_occurrence, should_continue
from taskcadence.engine.validator import validate_rule
from taskcadence.models.constants import DEFAULT_HORIZON_DAYS, DEFAULT_MAX_INSTANCES
from taskcadence.models.recurrence import RecurrenceRule


def iter_occurrences(
    rule: RecurrenceRule,
    series_start: DateLike,
    *,
    anchor: Optional[DateLike] = None,
    already_materialized: int = 0,
) -> Iterator[datetime]:
    """Lazily yield occurrences after `series_start` until the end condition stops the series.

    With a `NeverEnds` rule this generator is infinite; bound it (see `materialize`).
    `anchor` is the original series origin when `series_start` is a later resume point.
    """
    validate_rule(rule)
    start = _as_datetime(series_start)
    origin = _as_datetime(anchor) if anchor is not None else start
    count = already_materialized
    last = start
    while True:
        candidate = next_occurrence(rule, last, origin)
        if candidate is None:
            return
        if not should_continue(rule, count, candidate):
            return
        yield candidate
        count += 1
        last = candidate


def materialize(
    rule: RecurrenceRule,
    series_start: Optional[DateLike] = None,
    max_instances: int = DEFAULT_MAX_INSTANCES,
    horizon: timedelta = timedelta(days=DEFAULT_HORIZON_DAYS),
    *,
    anchor: Optional[DateLike] = None,
    already_materialized: int = 0,
) -> List[datetime]:
    """Turn a rule into a finite, ordered list of occurrence dates.

    Stops at whichever bound triggers first:
    - `max_instances` dates produced
    - the next candidate falls after `series_start + horizon`
    - the rule's end condition (end date passed or occurrence count reached)

    Args:
        rule: Recurrence rule (validated before use)
        series_start: Point to materialize from (exclusive); defaults to now
        max_instances: Maximum number of dates to return
        horizon: Time window, measured from `series_start`
        anchor: Original series origin, if `series_start` is a resume point
        already_materialized: Occurrences produced by earlier calls (counts toward AfterCount)

    Returns:
        Occurrence datetimes in increasing order.
    """
    if max_instances < 0:
        raise ValueError(f"max_instances must be >= 0, got {max_instances}")
    if horizon < timedelta(0):
        raise ValueError(f"horizon must not be negative, got {horizon}")

    start = _as_datetime(series_start) if series_start is not None else datetime.utcnow()
    window_end = start + horizon

    dates: List[datetime] = []
    if max_instances == 0:
        return dates
    for occurrence in iter_occurrences(
        rule, start, anchor=anchor, already_materialized=already_materialized
    ):
        if occurrence > window_end:
            break
        dates.append(occurrence)
        if len(dates) >= max_instances:
            break
    return dates
