"""
Unit tests for the cube engine.
"""

import itertools

import pytest
import pandas as pd
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from hypercube.cube.cell import Cell
from hypercube.cube.engine import Cube


@pytest.fixture
def genre_cube():
    """Two-cell cube from the drama/comedy scenario."""
    cube = Cube()
    cube.insert(Cell(facts={"genre": "drama"}, measures={"views": 10}))
    cube.insert(Cell(facts={"genre": "comedy"}, measures={"views": 5}))
    return cube


@pytest.fixture
def sales_cube():
    """Small sales cube with three dimensions and two measures."""
    rows = [
        ("CA", "Foods", "2023", 100, 10.0, 1000),
        ("CA", "Hobbies", "2023", 200, 25.0, 2000),
        ("TX", "Foods", "2023", 150, 12.5, 3000),
        ("TX", "Hobbies", "2024", 250, 30.0, 4000),
        ("WI", "Foods", "2024", 120, 11.0, 5000),
        ("CA", "Foods", "2024", 180, 14.0, 6000),
    ]
    cube = Cube(["units", "revenue"])
    for state, category, year, units, revenue, time in rows:
        cube.insert(Cell(
            facts={"state": state, "category": category, "year": year},
            measures={"units": units, "revenue": revenue},
            time=time
        ))
    return cube


def positions_of(source, derived):
    """Positions in ``source`` of the cells referenced by ``derived``."""
    ids = {id(cell): i for i, cell in enumerate(source.cells)}
    return [ids[id(cell)] for cell in derived.cells]


class TestInsert:
    def test_count(self, sales_cube):
        assert sales_cube.count() == 6
        assert len(sales_cube) == 6
        assert len(Cube()) == 0

    def test_fact_names_sorted(self, sales_cube):
        assert sales_cube.get_fact_names() == ["category", "state", "year"]

    def test_fact_names_refresh_after_insert(self, genre_cube):
        assert genre_cube.get_fact_names() == ["genre"]
        genre_cube.insert(Cell(facts={"author": "x"}, measures={"views": 1}))
        assert genre_cube.get_fact_names() == ["author", "genre"]

    def test_heterogeneous_facts(self):
        cube = Cube()
        cube.insert(Cell(facts={"a": "1"}, measures={}))
        cube.insert(Cell(facts={"b": "2"}, measures={}))
        assert cube.get_fact_names() == ["a", "b"]
        assert cube.slice({"a": "1"}).count() == 1
        assert cube.slice({"a": "1", "b": "2"}).count() == 0

    def test_fact_names_copy_does_not_touch_cache(self, sales_cube):
        names = sales_cube.get_fact_names()
        names.append("bogus")
        assert sales_cube.get_fact_names() == ["category", "state", "year"]

    def test_fact_values_unique_first_seen(self, sales_cube):
        assert sales_cube.get_fact_values("state") == ["CA", "TX", "WI"]
        assert sales_cube.get_fact_values("missing") == []

    def test_fact_values_skip_empty(self):
        cube = Cube()
        cube.insert(Cell(facts={"tag": ""}, measures={}))
        cube.insert(Cell(facts={"tag": None}, measures={}))
        cube.insert(Cell(facts={"hour": 0}, measures={}))
        assert cube.get_fact_values("tag") == []
        assert cube.get_fact_values("hour") == [0]


class TestSliceDice:
    def test_scenario(self, genre_cube):
        assert genre_cube.slice({"genre": "drama"}).sum() == {"views": 10}
        assert genre_cube.dice({"genre": "drama"}).sum() == {"views": 5}

    def test_multi_fact_slice(self, sales_cube):
        result = sales_cube.slice({"state": "CA", "category": "Foods"})
        assert positions_of(sales_cube, result) == [0, 5]
        assert result.sum() == {"units": 280, "revenue": 24.0}

    def test_unknown_dimension_or_value(self, sales_cube):
        assert sales_cube.slice({"planet": "Mars"}).count() == 0
        assert sales_cube.slice({"state": "NY"}).count() == 0
        assert sales_cube.slice({"state": "CA", "planet": "Mars"}).count() == 0
        assert sales_cube.dice({"state": "NY"}).count() == 6

    def test_empty_intersection(self, sales_cube):
        assert sales_cube.slice({"state": "WI", "category": "Hobbies"}).count() == 0

    def test_order_independent(self, sales_cube):
        query = {"state": "CA", "category": "Foods", "year": "2024"}
        expected = sales_cube._get_pos(query)
        assert expected == [5]
        for keys in itertools.permutations(query):
            permuted = {k: query[k] for k in keys}
            assert sales_cube._get_pos(permuted) == expected

    @pytest.mark.parametrize("query", [
        {"state": "CA"},
        {"category": "Foods", "year": "2024"},
        {"state": "TX", "year": "2023"},
        {"state": "NY"},
        {"nope": "x"},
    ])
    def test_partition(self, sales_cube, query):
        sliced = positions_of(sales_cube, sales_cube.slice(query))
        diced = positions_of(sales_cube, sales_cube.dice(query))
        assert not set(sliced) & set(diced)
        assert sorted(sliced + diced) == list(range(sales_cube.count()))

    def test_derived_cube_shares_cells(self, sales_cube):
        result = sales_cube.slice({"state": "TX"})
        assert result.cells[0] is sales_cube.cells[2]
        assert result.measure_names == ["units", "revenue"]

    def test_derived_cube_does_not_touch_source(self, sales_cube):
        result = sales_cube.slice({"state": "TX"})
        result.insert(Cell(facts={"state": "NY"}, measures={"units": 1}))
        assert sales_cube.count() == 6
        assert sales_cube.slice({"state": "NY"}).count() == 0

    def test_non_mapping_query(self, sales_cube):
        with pytest.raises(TypeError):
            sales_cube.slice([("state", "CA")])
        with pytest.raises(TypeError):
            sales_cube.dice("state")

    def test_unhashable_value(self, sales_cube):
        with pytest.raises(TypeError, match="hashable"):
            sales_cube.slice({"state": ["CA"]})


class TestSliceTimeAndBy:
    def test_half_open_interval(self, sales_cube):
        result = sales_cube.slice_time(2000, 4000)
        assert [c.time for c in result.cells] == [2000, 3000]

    def test_cells_without_time_never_match(self):
        cube = Cube()
        cube.insert(Cell(facts={}, measures={"x": 1}))
        cube.insert(Cell(facts={}, measures={"x": 2}, time=0))
        result = cube.slice_time(0, 10)
        assert result.count() == 1
        assert result.cells[0].time == 0

    def test_slice_by_predicate(self, sales_cube):
        result = sales_cube.slice_by(lambda cell, i: cell.value("units") > 150)
        assert [c.value("units") for c in result.cells] == [200, 250, 180]

    def test_slice_by_position(self, sales_cube):
        result = sales_cube.slice_by(lambda cell, i: i % 2 == 0)
        assert positions_of(sales_cube, result) == [0, 2, 4]

    def test_for_each(self, sales_cube):
        seen = []
        assert sales_cube.for_each(lambda cell, i: seen.append(i)) is sales_cube
        assert seen == list(range(6))


class TestGroupSort:
    def test_group_by_scenario(self, genre_cube):
        groups = genre_cube.group_by("genre")
        assert set(groups) == {"drama", "comedy"}
        assert all(group.count() == 1 for group in groups.values())

    def test_group_completeness(self, sales_cube):
        groups = sales_cube.group_by("state")
        assert list(groups) == ["CA", "TX", "WI"]
        assert sum(g.count() for g in groups.values()) == sales_cube.count()
        seen = [p for g in groups.values() for p in positions_of(sales_cube, g)]
        assert sorted(seen) == list(range(sales_cube.count()))

    def test_group_by_excludes_cells_without_fact(self, genre_cube):
        genre_cube.insert(Cell(facts={"author": "x"}, measures={"views": 3}))
        groups = genre_cube.group_by("genre")
        assert sum(g.count() for g in groups.values()) == 2

    def test_sort_by(self, sales_cube):
        ranked = sales_cube.sort_by("state", "units")
        assert list(ranked) == ["CA", "TX", "WI"]
        assert ranked["CA"].sum()["units"] == 480

    def test_sort_by_limit(self, sales_cube):
        assert list(sales_cube.sort_by("state", "units", 2)) == ["CA", "TX"]
        assert list(sales_cube.sort_by("state", "units", 0)) == ["CA", "TX", "WI"]

    def test_sort_by_ties_keep_group_order(self):
        cube = Cube()
        for name in ["b", "a", "c"]:
            cube.insert(Cell(facts={"k": name}, measures={"m": 1}))
        assert list(cube.sort_by("k", "m")) == ["b", "a", "c"]

    def test_sort_cells(self, sales_cube):
        ordered = sales_cube.sort_cells("revenue", descending=True)
        assert [c.value("revenue") for c in ordered] == [30.0, 25.0, 14.0, 12.5, 11.0, 10.0]


class TestMerge:
    def test_merge_in_place(self, genre_cube):
        other = Cube()
        other.insert(Cell(facts={"genre": "drama"}, measures={"views": 7}))
        genre_cube.merge(other)
        assert genre_cube.count() == 3
        assert genre_cube.cells[2] is other.cells[0]
        assert genre_cube.slice({"genre": "drama"}).sum() == {"views": 17}

    def test_aggregate_additivity(self, sales_cube):
        a = sales_cube.slice({"year": "2023"})
        b = sales_cube.slice({"year": "2024"})
        expected = {k: a.sum()[k] + b.sum()[k] for k in a.sum()}
        a.merge(b)
        assert a.sum() == expected

    def test_merge_rejects_non_cube(self, genre_cube):
        with pytest.raises(TypeError):
            genre_cube.merge([Cell()])


class TestAggregation:
    def test_sum(self, sales_cube):
        assert sales_cube.sum() == {"units": 1000, "revenue": 102.5}

    def test_sum_precision_rounds_before_adding(self):
        cube = Cube()
        cube.insert(Cell(facts={}, measures={"x": 1.26}))
        cube.insert(Cell(facts={}, measures={"x": 1.26}))
        assert cube.sum(2) == {"x": pytest.approx(2.6)}

    def test_sum_precision_rounds_ties_up(self):
        cube = Cube()
        cube.insert(Cell(facts={}, measures={"x": 2.5}))
        assert cube.sum(1) == {"x": 3.0}
        assert cube.avg(1, 1) == {"x": 3.0}

    def test_avg(self, sales_cube):
        assert sales_cube.avg(4) == {"units": 250, "revenue": pytest.approx(25.625)}

    def test_avg_precision(self, sales_cube):
        assert sales_cube.avg(3, 3) == {"units": 333.0, "revenue": 34.2}

    def test_avg_falsy_count(self, genre_cube):
        assert genre_cube.avg(0) == {"views": 15}
        assert genre_cube.avg(None) == {"views": 15}

    def test_empty_cube_boundary(self):
        cube = Cube(["views"])
        assert cube.sum() == {"views": 0}
        assert cube.avg(10) == {"views": 0}
        assert Cube().sum() == {}
        assert Cube().avg(10) == {}

    def test_empty_slice_keeps_expected_measures(self, sales_cube):
        empty = sales_cube.slice({"state": "NY"})
        assert empty.sum() == {"units": 0, "revenue": 0}

    def test_non_numeric_measures_count_as_zero(self):
        cube = Cube()
        cube.insert(Cell(facts={}, measures={"x": 2}))
        cube.insert(Cell(facts={}, measures={"x": "n/a"}))
        assert cube.sum() == {"x": 2}


class TestSliceTop:
    def test_ascending_score(self, sales_cube):
        top = sales_cube.slice_top(2, lambda m: m["units"])
        assert [c.value("units") for c in top.cells] == [100, 120]

    def test_negated_score_ranks_descending(self, sales_cube):
        top = sales_cube.slice_top(3, lambda m: -m["revenue"])
        assert [c.value("revenue") for c in top.cells] == [30.0, 25.0, 14.0]

    def test_limit_bounds(self, sales_cube):
        assert sales_cube.slice_top(0, lambda m: 0).count() == 0
        assert sales_cube.slice_top(None, lambda m: 0).count() == 6
        assert sales_cube.slice_top(100, lambda m: 0).count() == 6

    def test_stable_on_ties(self, sales_cube):
        top = sales_cube.slice_top(6, lambda m: 0)
        assert top.cells == sales_cube.cells


class TestSerialization:
    def test_serialize(self, genre_cube):
        genre_cube.insert(Cell(facts={"genre": "horror"}, measures={"views": 1}, time=5000))
        data = genre_cube.serialize()
        assert data[0] == {"facts": {"genre": "drama"}, "measures": {"views": 10}}
        assert data[2]["time"] == 5000

    def test_deserialize_reads_seconds(self):
        cube = Cube.deserialize([
            {"time": 5, "facts": {"a": "x"}, "measures": {"m": 1}},
            {"facts": {"a": "y"}, "measures": {"m": 2}},
        ], ["m"])
        assert cube.cells[0].time == 5000
        assert cube.cells[1].time is None
        assert cube.measure_names == ["m"]
        assert cube.slice({"a": "y"}).sum() == {"m": 2}

    def test_round_trip(self, sales_cube):
        restored = Cube.deserialize(sales_cube.serialize(), time_scale=1)
        for original, copy in zip(sales_cube.cells, restored.cells):
            assert copy.facts == original.facts
            assert copy.measures == original.measures
            assert copy.time == original.time
        assert restored.get_fact_names() == sales_cube.get_fact_names()

    def test_to_frame(self, sales_cube):
        df = sales_cube.to_frame()
        assert list(df.columns) == ["time", "category", "state", "year", "units", "revenue"]
        assert len(df) == 6
        assert df["units"].sum() == 1000

    def test_from_frame(self):
        df = pd.DataFrame({
            "ts": [1000, 2000, 3000],
            "state": ["CA", "TX", "CA"],
            "units": [1, 2, 3],
        })
        cube = Cube.from_frame(df, ["state"], ["units"], time_column="ts")
        assert cube.count() == 3
        assert cube.cells[1].time == 2000
        assert cube.slice({"state": "CA"}).sum() == {"units": 4}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
