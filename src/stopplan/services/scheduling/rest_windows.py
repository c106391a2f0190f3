"""Partition of a trip into drive-limit windows with eligible rest stops."""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from ...models.domain import RestStyle, RestWindow, StopCandidate
from ..timing import add_minutes, minutes_between

DRIVE_LIMIT_MIN = 240
EXTENDED_DRIVE_LIMIT_MIN = 270
BREAK_MIN = 30
PRIMARY_LIMIT = 8
BACKUP_LIMIT = 4

BREAK_SEGMENTS: dict[RestStyle, list[int]] = {
    RestStyle.SINGLE_30: [30],
    RestStyle.MULTI_10: [10, 10, 10],
}


def drive_limit_minutes(allow_extended_drive: bool) -> int:
    return EXTENDED_DRIVE_LIMIT_MIN if allow_extended_drive else DRIVE_LIMIT_MIN


def build_rest_windows(
    *,
    total_duration_min: float,
    depart_at: datetime,
    allow_extended_drive: bool,
    rest_style: RestStyle,
    rest_candidates: Sequence[StopCandidate],
) -> list[RestWindow]:
    """Emit one window per drive-limit interval until the trip (plus one break) is covered.

    Window ``n`` spans ``[max(n*limit - 30, 30), n*limit]`` minutes from
    departure. Its candidates are the rest stops whose ETA falls in that
    band, nearest to the route first. Windows are independent, so a stop can
    appear in several of them, and the final window may lie past arrival.
    """
    drive_limit = drive_limit_minutes(allow_extended_drive)
    minutes_from_start = [
        (candidate, minutes_between(depart_at, candidate.eta))
        for candidate in rest_candidates
        if candidate.distance_from_start_km >= 0
    ]

    windows: list[RestWindow] = []
    elapsed = drive_limit
    window_id = 1
    while elapsed < total_duration_min + BREAK_MIN:
        start = max(elapsed - BREAK_MIN, BREAK_MIN)
        end = elapsed
        eligible = sorted(
            (candidate for candidate, minutes in minutes_from_start if start <= minutes <= end),
            key=lambda candidate: candidate.distance_from_route_km,
        )
        windows.append(
            RestWindow(
                window_id=window_id,
                target_drive_limit_min=drive_limit,
                start_after_min=start,
                end_by_min=end,
                target_break_min=BREAK_MIN,
                break_segments_min=list(BREAK_SEGMENTS[rest_style]),
                eta=add_minutes(depart_at, elapsed),
                primary_candidates=eligible[:PRIMARY_LIMIT],
                backup_candidates=eligible[PRIMARY_LIMIT : PRIMARY_LIMIT + BACKUP_LIMIT],
            )
        )
        window_id += 1
        elapsed += drive_limit

    return windows
