"""Tests for coverage analysis."""

from __future__ import annotations

from queryshape.analyzer import analyze, match, referenced_fields
from queryshape.analyzer.models import MatchResult
from queryshape.parser import parse_query
from queryshape.registry import IndexSpec


def covered(raw_filter, projection, keys, sort=None, id_field="_id") -> bool:
    query = parse_query("users", raw_filter, projection, sort)
    result = match(query, [IndexSpec.from_keys(keys)], id_field=id_field)
    return analyze(query, result, id_field=id_field).is_covered


class TestCoverage:
    """An index covers when it stores every referenced field."""

    def test_identifier_excluded_and_fields_indexed(self) -> None:
        assert covered({"name": "John"}, {"_id": 0, "name": 1}, {"name": 1})

    def test_identifier_requested_but_not_indexed(self) -> None:
        assert not covered({"name": "John"}, {"name": 1}, {"name": 1})

    def test_identifier_requested_and_indexed(self) -> None:
        assert covered({"name": "John"}, {"name": 1}, {"name": 1, "_id": 1})

    def test_projected_field_not_indexed(self) -> None:
        assert not covered({"age": {"$gt": 20}}, {"_id": 0, "name": 1, "age": 1}, {"age": 1})

    def test_filter_field_outside_prefix_but_indexed(self) -> None:
        """Every referenced field counts, not only the matched prefix."""
        assert covered({"a": 1, "c": 3}, {"_id": 0, "a": 1}, {"a": 1, "b": 1, "c": 1})

    def test_sort_field_not_indexed(self) -> None:
        assert not covered(
            {"name": "x"}, {"_id": 0, "name": 1}, {"name": 1}, sort={"age": 1}
        )

    def test_sort_field_indexed(self) -> None:
        assert covered(
            {"name": "x"}, {"_id": 0, "name": 1}, {"name": 1, "age": 1}, sort={"age": 1}
        )

    def test_no_projection_is_never_covered(self) -> None:
        assert not covered({"name": "John"}, None, {"name": 1})

    def test_exclusion_projection_is_never_covered(self) -> None:
        assert not covered({"name": "John"}, {"_id": 0}, {"name": 1})
        assert not covered({"name": "John"}, {"password": 0}, {"name": 1})

    def test_collection_scan_is_never_covered(self) -> None:
        query = parse_query("users", {"name": "John"}, {"_id": 0, "name": 1})

        assert not analyze(query, MatchResult()).is_covered

    def test_custom_identifier_field(self) -> None:
        assert covered({"name": "x"}, {"name": 1}, {"name": 1, "uuid": 1}, id_field="uuid")

    def test_analyze_returns_a_copy(self) -> None:
        query = parse_query("users", {"name": "John"}, {"_id": 0, "name": 1})
        result = match(query, [IndexSpec.from_keys({"name": 1})])

        analyzed = analyze(query, result)

        assert analyzed is not result
        assert not result.is_covered
        assert analyzed.is_covered
        assert analyzed.chosen == result.chosen


class TestReferencedFields:
    def test_order_and_identifier(self) -> None:
        query = parse_query(
            "users", {"a": 1, "b": {"$gt": 1}}, {"c": 1, "a": 1}, {"d": 1}
        )

        assert referenced_fields(query) == ("a", "b", "d", "c", "_id")

    def test_exclusion_projection_fields_are_not_referenced(self) -> None:
        query = parse_query("users", {"a": 1}, {"secret": 0})

        assert referenced_fields(query) == ("a",)
