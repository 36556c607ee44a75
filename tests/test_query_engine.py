"""
Tests for the query engine: filtering, sorting and processing a view.

Includes property-based checks that sorting is idempotent and stable and that
filtering never invents or reorders entries.
"""

import pytest
from hypothesis import given, settings, strategies as st

from project_tracker.models.entities import Project
from project_tracker.query.criteria import NumberRange, QuerySession, SortDirection
from project_tracker.query.engine import QueryEngine

from conftest import make_entry


@pytest.fixture
def engine(schema):
    return QueryEngine(schema)


@pytest.fixture
def status_entries():
    return [
        make_entry(1, status="open", priority=5),
        make_entry(2, status="closed", priority=3),
    ]


def ids(entries):
    return [entry.id for entry in entries]


class TestFiltering:
    """Test filter_entries."""

    def test_text_filter(self, engine, status_entries):
        assert ids(engine.filter_entries(status_entries, {"status": "open"})) == ["1"]

    def test_text_filter_case_insensitive_substring(self, engine, sample_entries):
        assert ids(engine.filter_entries(sample_entries, {"title": "PATCH"})) == ["entry_3_3"]

    def test_dropdown_filter_matches_stored_code(self, engine, sample_entries):
        # entry_4_4 has no riskRating and is not constrained by it
        assert ids(engine.filter_entries(sample_entries, {"riskRating": "med"})) == ["entry_3_3", "entry_4_4"]
        assert ids(engine.filter_entries(sample_entries[:3], {"riskRating": "med"})) == ["entry_3_3"]

    def test_no_criteria_returns_everything(self, engine, sample_entries):
        assert engine.filter_entries(sample_entries, {}) == sample_entries
        assert engine.filter_entries(sample_entries, None) == sample_entries

    def test_numeric_range_on_text_values(self, engine):
        entries = [make_entry("a", priority="5")]
        assert ids(engine.filter_entries(entries, {"priority": {"min": 1, "max": 10}})) == ["a"]
        assert engine.filter_entries(entries, {"priority": {"min": 6, "max": 10}}) == []

    def test_numeric_range_excludes_non_numeric(self, engine):
        entries = [make_entry("a", priority="high"), make_entry("b", priority="2")]
        assert ids(engine.filter_entries(entries, {"priority": NumberRange(min=1)})) == ["b"]

    def test_blank_value_excluded_by_range(self, engine, sample_entries):
        result = engine.filter_entries(sample_entries, {"priority": {"min": 1}})
        assert "entry_4_4" not in ids(result)

    def test_missing_field_satisfies_criterion(self, engine, sample_entries):
        # entry_3_3 and entry_4_4 have no assignedTo
        result = engine.filter_entries(sample_entries, {"assignedTo": "Dana"})
        assert ids(result) == ["entry_1_1", "entry_3_3", "entry_4_4"]

    def test_date_range(self, engine, sample_entries):
        result = engine.filter_entries(sample_entries, {"dueDate": {"from": "2024-01-15", "to": "2024-02-15"}})
        assert ids(result) == ["entry_2_2", "entry_3_3"]

    def test_unparseable_date_excluded(self, engine, sample_entries):
        result = engine.filter_entries(sample_entries, {"dueDate": {"from": "2000-01-01"}})
        assert "entry_4_4" not in ids(result)
        assert len(result) == 3

    def test_all_criteria_must_match(self, engine, sample_entries):
        result = engine.filter_entries(sample_entries, {"status": "open", "priority": {"max": 6}})
        assert ids(result) == ["entry_1_1"]

    def test_input_not_modified(self, engine, sample_entries):
        before = list(sample_entries)
        engine.filter_entries(sample_entries, {"status": "open"})
        assert sample_entries == before


class TestSorting:
    """Test sort_entries."""

    def test_numeric_sort(self, engine, status_entries):
        assert ids(engine.sort_entries(status_entries, "priority", "asc")) == ["2", "1"]
        assert ids(engine.sort_entries(status_entries, "priority", "desc")) == ["1", "2"]

    def test_numeric_text_sorts_as_numbers(self, engine, sample_entries):
        result = engine.sort_entries(sample_entries[:3], "priority", SortDirection.ASCENDING)
        assert ids(result) == ["entry_2_2", "entry_1_1", "entry_3_3"]

    def test_date_sort(self, engine, sample_entries):
        result = engine.sort_entries(sample_entries[:3], "dueDate")
        assert ids(result) == ["entry_2_2", "entry_3_3", "entry_1_1"]

    def test_text_sort_case_insensitive(self, engine):
        entries = [make_entry("a", title="beta"), make_entry("b", title="Alpha"), make_entry("c", title="gamma")]
        assert ids(engine.sort_entries(entries, "title")) == ["b", "a", "c"]

    def test_no_sort_field_keeps_order(self, engine, sample_entries):
        assert engine.sort_entries(sample_entries, None) == sample_entries

    def test_ties_keep_input_order_both_directions(self, engine):
        entries = [make_entry("a", status="open"), make_entry("b", status="closed"),
                   make_entry("c", status="open"), make_entry("d", status="closed")]
        assert ids(engine.sort_entries(entries, "status", "asc")) == ["b", "d", "a", "c"]
        assert ids(engine.sort_entries(entries, "status", "desc")) == ["a", "c", "b", "d"]

    def test_sort_by_timestamp(self, engine):
        entries = [
            make_entry("a").model_copy(update={"timestamp": "2024-02-01T00:00:00.000Z"}),
            make_entry("b").model_copy(update={"timestamp": "2024-01-01T00:00:00.000Z"}),
        ]
        assert ids(engine.sort_entries(entries, "timestamp")) == ["b", "a"]

    def test_input_not_modified(self, engine, sample_entries):
        before = list(sample_entries)
        engine.sort_entries(sample_entries, "priority", "desc")
        assert sample_entries == before


entry_values = st.fixed_dictionaries({
    "status": st.sampled_from(["open", "closed"]),
    "priority": st.one_of(st.integers(min_value=1, max_value=10).map(str), st.just(""), st.just("n/a")),
    "title": st.text(alphabet="abcABC ", max_size=5),
})


@st.composite
def entry_lists(draw):
    values = draw(st.lists(entry_values, max_size=15))
    return [make_entry(f"entry_{index}", **item) for index, item in enumerate(values)]


class TestQueryProperties:
    """Property-based tests for filter and sort."""

    @given(entries=entry_lists(), field=st.sampled_from(["status", "priority", "title"]),
           direction=st.sampled_from(["asc", "desc"]))
    @settings(max_examples=60)
    def test_sort_is_idempotent(self, schema, entries, field, direction):
        engine = QueryEngine(schema)
        once = engine.sort_entries(entries, field, direction)
        assert engine.sort_entries(once, field, direction) == once

    @given(entries=entry_lists(), direction=st.sampled_from(["asc", "desc"]))
    @settings(max_examples=60)
    def test_sort_is_stable(self, schema, entries, direction):
        engine = QueryEngine(schema)
        result = engine.sort_entries(entries, "status", direction)
        positions = {entry.id: index for index, entry in enumerate(entries)}
        for earlier, later in zip(result, result[1:]):
            if earlier.get("status") == later.get("status"):
                assert positions[earlier.id] < positions[later.id]

    @given(entries=entry_lists(), low=st.integers(min_value=1, max_value=10))
    @settings(max_examples=60)
    def test_filter_is_ordered_subset(self, schema, entries, low):
        engine = QueryEngine(schema)
        result = engine.filter_entries(entries, {"priority": {"min": low}, "status": "o"})
        assert [entry for entry in entries if entry in result] == result
        for entry in result:
            assert float(entry.get("priority")) >= low

    @given(entries=entry_lists())
    @settings(max_examples=30)
    def test_sort_is_permutation(self, schema, entries):
        result = QueryEngine(schema).sort_entries(entries, "priority", "desc")
        assert sorted(ids(result)) == sorted(ids(entries))


class TestProcess:
    """Test processing a project through a session."""

    def test_process_filters_then_sorts(self, engine, sample_entries):
        session = QuerySession(project_id="1234567")
        session.apply_filters({"status": "open"})
        session.set_sort("priority", "desc")
        assert ids(engine.process(sample_entries, session)) == ["entry_3_3", "entry_1_1", "entry_4_4"]

    def test_query_project_metadata(self, engine, sample_entries):
        project = Project(id="1234567", entries=sample_entries)
        session = QuerySession(project_id="1234567")
        session.apply_filters({"status": "closed"})

        result = engine.query_project(project, session)

        assert ids(result.entries) == ["entry_2_2"]
        assert result.total_count == 4
        assert result.matched_count == 1
        assert result.query_metadata["found"] is True
        assert result.query_metadata["criteria"] == {"status": "closed"}

    def test_query_missing_project(self, engine):
        result = engine.query_project(None, QuerySession(project_id="7654321"))
        assert result.entries == []
        assert result.query_metadata == {"project_id": "7654321", "found": False}
