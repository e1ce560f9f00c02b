"""Tests for aggregation pipeline prefix folding."""

from __future__ import annotations

import pytest

from queryshape.exceptions import MalformedFilter
from queryshape.parser import Direction, parse_pipeline


class TestPipelinePrefix:
    """Leading index-eligible stages fold into one descriptor."""

    def test_full_prefix(self) -> None:
        """$match, $sort, $project and $limit fold; the rest is reported."""
        query = parse_pipeline(
            "orders",
            [
                {"$match": {"status": "A"}},
                {"$sort": {"created": -1}},
                {"$project": {"_id": 0, "status": 1, "created": 1}},
                {"$limit": 10},
                {"$group": {"_id": "$customer"}},
                {"$sort": {"total": -1}},
            ],
        )

        assert query.equality_fields == ("status",)
        assert query.sort_fields == ("created",)
        assert query.sort[0].direction == Direction.DESCENDING
        assert query.projection is not None
        assert not query.projection.include_id
        assert query.limit == 10
        assert query.unanalyzed_stages == ("$group", "$sort")

    def test_consecutive_matches_are_combined(self) -> None:
        query = parse_pipeline(
            "orders",
            [{"$match": {"a": 1}}, {"$match": {"b": {"$gt": 1}}}],
        )

        assert query.equality_fields == ("a",)
        assert query.range_fields == ("b",)
        assert query.unanalyzed_stages == ()

    def test_match_after_project_ends_prefix(self) -> None:
        """A $match after $project may reference computed fields."""
        query = parse_pipeline(
            "orders",
            [{"$project": {"a": 1}}, {"$match": {"a": 1}}],
        )

        assert query.is_match_all
        assert query.unanalyzed_stages == ("$match",)

    def test_second_sort_ends_prefix(self) -> None:
        query = parse_pipeline(
            "orders",
            [{"$sort": {"a": 1}}, {"$sort": {"b": 1}}],
        )

        assert query.sort_fields == ("a",)
        assert query.unanalyzed_stages == ("$sort",)

    def test_match_after_limit_ends_prefix(self) -> None:
        """A $match after $limit filters the limited documents only."""
        query = parse_pipeline(
            "orders",
            [{"$limit": 5}, {"$match": {"a": 1}}],
        )

        assert query.limit == 5
        assert query.is_match_all
        assert query.unanalyzed_stages == ("$match",)

    def test_sort_after_limit_ends_prefix(self) -> None:
        query = parse_pipeline(
            "orders",
            [{"$match": {"b": 2}}, {"$limit": 5}, {"$sort": {"a": 1}}],
        )

        assert query.equality_fields == ("b",)
        assert query.limit == 5
        assert query.sort == ()
        assert query.unanalyzed_stages == ("$sort",)

    @pytest.mark.parametrize(
        "body",
        [
            {"t": {"$add": ["$x", 1]}},
            {"name": 1, "label": "$title"},
            {"total": {"$sum": "$items.price"}, "_id": 0},
        ],
    )
    def test_computed_project_ends_prefix(self, body: dict) -> None:
        """A $project that computes or renames fields is not a field selection."""
        query = parse_pipeline(
            "orders",
            [{"$match": {"a": 1}}, {"$project": body}, {"$limit": 3}],
        )

        assert query.equality_fields == ("a",)
        assert query.projection is None
        assert query.limit is None
        assert query.unanalyzed_stages == ("$project", "$limit")

    def test_first_stage_not_eligible(self) -> None:
        query = parse_pipeline(
            "orders",
            [{"$unwind": "$items"}, {"$match": {"items.sku": "x"}}],
        )

        assert query.is_match_all
        assert query.unanalyzed_stages == ("$unwind", "$match")

    def test_empty_pipeline(self) -> None:
        query = parse_pipeline("orders", [])

        assert query.is_match_all
        assert query.unanalyzed_stages == ()

    def test_disjunctive_match(self) -> None:
        query = parse_pipeline("orders", [{"$match": {"$or": [{"a": 1}, {"b": 2}]}}])

        assert query.is_disjunctive


class TestPipelineErrors:
    """Malformed stages fail with their position."""

    @pytest.mark.parametrize(
        "stage",
        [
            {"$match": {}, "$sort": {"a": 1}},
            {"match": {"a": 1}},
            "$match",
            {},
        ],
    )
    def test_malformed_stage(self, stage: object) -> None:
        with pytest.raises(MalformedFilter) as exc_info:
            parse_pipeline("orders", [{"$limit": 5}, stage])  # type: ignore[list-item]

        assert exc_info.value.field_path == "pipeline[1]"

    def test_pipeline_must_be_list(self) -> None:
        with pytest.raises(MalformedFilter) as exc_info:
            parse_pipeline("orders", {"$match": {"a": 1}})  # type: ignore[arg-type]

        assert exc_info.value.field_path == "pipeline"

    def test_match_requires_document(self) -> None:
        with pytest.raises(MalformedFilter):
            parse_pipeline("orders", [{"$match": [1, 2]}])

    def test_invalid_limit_stage(self) -> None:
        with pytest.raises(MalformedFilter) as exc_info:
            parse_pipeline("orders", [{"$limit": -3}])

        assert exc_info.value.field_path == "limit"
