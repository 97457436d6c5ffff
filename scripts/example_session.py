#!/usr/bin/env python3
"""
Example: exploring a cube of video views.

This script demonstrates how to:
1. Stream raw timestamped records into a cube with date facts
2. Slice, dice and group the cube
3. Rank groups and cells by a measure
4. Round-trip the cube through plain records
"""

import logging
import os
import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import numpy as np

from hypercube.cube.engine import Cube
from hypercube.ingest.stream import CubeStream, StreamConfig

HOUR_MS = 3600 * 1000


def create_sample_records():
    """Create a week of hourly view counts for a few titles."""
    np.random.seed(42)

    titles = {
        "Alien": "horror",
        "Terminator 2": "action",
        "Amelie": "comedy",
        "Casablanca": "drama",
    }
    start = 1704067200000  # 2024-01-01 00:00 UTC

    records = []
    for hour in range(7 * 24):
        for title, genre in titles.items():
            base = 50 + np.random.normal(0, 10)

            # Evening peak
            if hour % 24 in range(18, 23):
                base *= 2.5

            # Genre effect
            if genre == "action":
                base *= 1.4

            views = max(0, int(base))
            records.append({
                "time": start + hour * HOUR_MS,
                "facts": {"title": title, "genre": genre},
                "measures": {"views": views, "minutes": views * np.random.uniform(20, 90)},
            })
    return records


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    print("=" * 60)
    print("hypercube example session")
    print("=" * 60)

    # Step 1: ingest
    stream = CubeStream(config=StreamConfig(
        measure_names=["views", "minutes"],
        add_date_facts=True
    ))
    stream.feed(create_sample_records())
    cube = stream.cube
    print(f"\nCells: {cube.count()}")
    print(f"Facts: {', '.join(cube.get_fact_names())}")

    # Step 2: slice and dice
    horror = cube.slice({"genre": "horror"})
    print(f"\nHorror views: {horror.sum(4)['views']}")
    print(f"Everything else: {cube.dice({'genre': 'horror'}).sum(4)['views']}")

    # Step 3: group and rank
    print("\nViews by weekday (hourly average):")
    for day, day_cube in cube.group_by("day_of_week").items():
        hours = len(day_cube.get_fact_values("hour"))
        print(f"  {day}: {day_cube.avg(hours, 3)['views']}")

    print("\nTop genres by minutes watched:")
    for genre, genre_cube in cube.sort_by("genre", "minutes", 3).items():
        print(f"  {genre}: {genre_cube.sum(3)['minutes']}")

    top = cube.slice_top(3, lambda measures: -measures["views"])
    print("\nBusiest title-hours:")
    for cell in top:
        print(f"  {cell.facts['title']} {cell.facts['day_of_week']} "
              f"{cell.facts['hour']:02d}:00 -> {cell.value('views')}")

    # Step 4: round trip
    restored = Cube.deserialize(cube.serialize(), cube.measure_names, time_scale=1)
    assert restored.sum() == cube.sum()
    print(f"\nRound trip OK: {restored.count()} cells")
    print(restored.to_frame().groupby("genre")["views"].sum())


if __name__ == "__main__":
    main()
