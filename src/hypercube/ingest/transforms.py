"""
Record transforms applied before cells are inserted.

add_date_facts derives calendar dimensions from a record's timestamp so
cubes can be sliced and grouped by year, month, ISO week, weekday or hour.
Records follow the plain shape used by Cube.serialize:

    {"time": <ms>, "facts": {...}, "measures": {...}}
"""

import logging
from collections.abc import MutableMapping
from datetime import datetime
from typing import Any, Dict, List

from hypercube.cube.aggregate import is_number

logger = logging.getLogger(__name__)

DAYS_OF_WEEK = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


def date_facts(time_ms: float) -> Dict[str, Any]:
    """Calendar facts for a millisecond timestamp, in local time."""
    date = datetime.fromtimestamp(time_ms / 1000)
    iso_year, iso_week, _ = date.isocalendar()
    return {
        "year": date.year,
        "month": date.month,
        "day": date.day,
        "hour": date.hour,
        "iso_week": f"{iso_year}-W{iso_week:02d}",
        # isoweekday: Mon=1 .. Sun=7
        "day_of_week": DAYS_OF_WEEK[date.isoweekday() % 7],
    }


def add_date_facts(data: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Add local-time date facts to every record, down to the hourly grain.

    Sets year, month (1-based), day, hour, iso_week ("YYYY-Www") and
    day_of_week ("Sun".."Sat") in each record's facts. Records without a
    numeric time or a facts mapping, or whose time is out of range, are
    reported and left untouched.

    Args:
        data: Records to enrich; modified in place

    Returns:
        The same list, for chaining
    """
    skipped = 0
    for i, record in enumerate(data):
        if (not isinstance(record, MutableMapping) or not record.get("time")
                or not is_number(record["time"])
                or not isinstance(record.get("facts"), MutableMapping)):
            logger.warning(f"Record {i} is missing a numeric time or facts, skipping: {record!r}")
            skipped += 1
            continue
        try:
            facts = date_facts(record["time"])
        except (OverflowError, OSError, ValueError) as e:
            logger.warning(f"Record {i} has an unusable time, skipping: {e}")
            skipped += 1
            continue
        record["facts"].update(facts)

    if skipped:
        logger.info(f"Added date facts to {len(data) - skipped} records ({skipped} skipped)")
    return data
