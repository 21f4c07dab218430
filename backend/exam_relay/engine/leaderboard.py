"""Leaderboard ordering for attempt snapshots."""

import math
import re

FINISHED_STATE = "Finished"
_UNTIMED = {"", "-", "Not yet graded"}

_HOURS = re.compile(r"(\d+)\s*hour", re.IGNORECASE)
_MINUTES = re.compile(r"(\d+)\s*min", re.IGNORECASE)
_SECONDS = re.compile(r"(\d+)\s*sec", re.IGNORECASE)


def parse_time_taken(value: str | None) -> float:
    """Convert a 'Time taken' cell such as '1 hour 2 mins 5 secs' to minutes.

    Missing, placeholder or zero durations sort last, so they map to infinity.
    """
    if value is None or value in _UNTIMED:
        return math.inf

    total = 0.0
    hours = _HOURS.search(value)
    if hours:
        total += int(hours.group(1)) * 60
    minutes = _MINUTES.search(value)
    if minutes:
        total += int(minutes.group(1))
    seconds = _SECONDS.search(value)
    if seconds:
        total += int(seconds.group(1)) / 60
    return total if total else math.inf


def rank(rows: list[dict[str, str]]) -> list[dict[str, str]]:
    """Finished attempts first, then fastest first within each group.

    Returns a new list; ties keep their incoming order.
    """
    return sorted(
        rows,
        key=lambda row: (row.get("State") != FINISHED_STATE, parse_time_taken(row.get("Time taken"))),
    )
