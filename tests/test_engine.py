"""
End-to-end tests for QueryAdvisor.

Covers the four reference scenarios, idempotence, validation ordering,
configuration defaults and concurrent use.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from queryshape.analyzer import BenefitLevel, RecommendationKind
from queryshape.config import Config
from queryshape.engine import QueryAdvisor
from queryshape.exceptions import DuplicateIndex, MalformedFilter, UnknownCollection
from queryshape.parser import parse_query
from queryshape.registry import IndexSpec, SchemaRegistry


class TestScenarios:
    """Reference scenarios."""

    def test_equality_with_identifier_excluded_is_covered(self, advisor: QueryAdvisor) -> None:
        report = advisor.analyze("users", {"name": "John"}, {"_id": 0, "name": 1})

        assert report.match_result.chosen == IndexSpec.from_keys({"name": 1})
        assert report.match_result.is_covered
        assert report.recommendations == ()
        assert report.is_optimal

    def test_range_with_unindexed_projection(self, advisor: QueryAdvisor) -> None:
        report = advisor.analyze("users", {"age": {"gt": 20}}, {"name": 1, "age": 1})

        assert report.match_result.chosen == IndexSpec.from_keys({"age": 1})
        assert not report.match_result.is_covered
        assert not report.is_optimal

        covering = [
            r for r in report.recommendations if r.kind == RecommendationKind.COVERING
        ]
        assert len(covering) == 1
        assert covering[0].index == IndexSpec.from_keys({"age": 1, "name": 1})
        assert covering[0].benefit == BenefitLevel.FULL_COVERAGE

    def test_empty_collection(self, advisor: QueryAdvisor) -> None:
        report = advisor.analyze(
            "events", {"type": "click", "ts": {"$gte": 0}}, sort={"user": 1}
        )

        assert report.match_result.chosen is None
        assert report.requires_collection_scan
        assert report.requires_in_memory_sort
        assert report.recommendations[0].index == IndexSpec.from_keys(
            {"type": 1, "ts": 1, "user": 1}
        )

    def test_disjunction(self, advisor: QueryAdvisor) -> None:
        report = advisor.analyze("users", {"$or": [{"name": "a"}, {"age": 3}]})

        assert report.query.is_disjunctive
        assert report.match_result.chosen is None
        assert report.recommendations == ()
        assert any("$or" in note for note in report.notes)


class TestAdvisorBehavior:
    def test_unknown_collection(self, advisor: QueryAdvisor) -> None:
        with pytest.raises(UnknownCollection) as exc_info:
            advisor.analyze("ghosts", {"a": 1})

        assert exc_info.value.collection == "ghosts"

    def test_malformed_filter_is_raised_before_lookup(self, advisor: QueryAdvisor) -> None:
        """Validation fails before the registry is consulted."""
        with pytest.raises(MalformedFilter):
            advisor.analyze("ghosts", {"a": {"$bogus": 1}})

    def test_idempotent(self, advisor: QueryAdvisor) -> None:
        descriptor = parse_query(
            "users", {"name": "x", "age": {"$lt": 9}}, {"name": 1, "city": 1}, {"age": -1}
        )

        first = advisor.analyze_query(descriptor)
        second = advisor.analyze_query(descriptor)

        assert first == second
        assert first.match_result == second.match_result
        assert first.recommendations == second.recommendations

    def test_declaration_is_visible_to_later_analyses(self, advisor: QueryAdvisor) -> None:
        query = ("users", {"age": {"$gt": 20}}, {"_id": 0, "name": 1, "age": 1})
        before = advisor.analyze(*query)
        assert not before.is_optimal

        advisor.declare_index("users", before.recommendations[0].index)
        after = advisor.analyze(*query)

        assert after.registry_version == before.registry_version + 1
        assert after.match_result.is_covered
        assert after.recommendations == ()

    def test_duplicate_declaration(self, advisor: QueryAdvisor) -> None:
        with pytest.raises(DuplicateIndex):
            advisor.declare_index("users", IndexSpec.from_keys({"name": 1}))

    def test_recommend_flag(self, advisor: QueryAdvisor) -> None:
        report = advisor.analyze("events", {"type": "x"}, recommend=False)

        assert report.recommendations == ()

    def test_recommendations_disabled_in_config(self, registry: SchemaRegistry) -> None:
        advisor = QueryAdvisor(registry, Config(recommendations_enabled=False))

        assert advisor.analyze("events", {"type": "x"}).recommendations == ()
        assert advisor.analyze("events", {"type": "x"}, recommend=True).recommendations

    def test_custom_identifier_field(self) -> None:
        advisor = QueryAdvisor(config=Config(id_field="uuid"))
        advisor.declare_index("users", IndexSpec.from_keys({"name": 1}))

        report = advisor.analyze("users", {"name": "x"}, {"uuid": 0, "name": 1})

        assert report.match_result.is_covered

    def test_parser_limits_from_config(self) -> None:
        advisor = QueryAdvisor(config=Config(max_predicates=1))
        advisor.declare_collection("users")

        with pytest.raises(MalformedFilter):
            advisor.analyze("users", {"a": 1, "b": 2})

    def test_partial_and_sparse_notes(self) -> None:
        advisor = QueryAdvisor(config=Config())
        advisor.declare_index(
            "users",
            IndexSpec.from_keys({"age": 1}, sparse=True, partial_filter={"age": {"$gt": 0}}),
        )

        report = advisor.analyze("users", {"age": 5})

        assert any("partial" in note for note in report.notes)
        assert any("sparse" in note for note in report.notes)

    def test_identifier_only_gap_is_a_note(self, advisor: QueryAdvisor) -> None:
        """A declared index that lacks only the identifier is not re-recommended."""
        report = advisor.analyze("users", {"name": "John"}, {"name": 1})

        assert report.match_result.chosen == IndexSpec.from_keys({"name": 1})
        assert not report.match_result.is_covered
        assert report.recommendations == ()
        assert any(
            "{_id: 0}" in note and "name_1" in note for note in report.notes
        )

    def test_declared_covering_index_is_not_re_recommended(self, config: Config) -> None:
        advisor = QueryAdvisor(config=config)
        advisor.declare_index("users", IndexSpec.from_keys({"age": 1, "name": 1}))

        report = advisor.analyze("users", {"age": {"$gt": 20}}, {"name": 1, "age": 1})

        assert report.match_result.chosen == IndexSpec.from_keys({"age": 1, "name": 1})
        assert report.recommendations == ()
        assert any("{_id: 0}" in note for note in report.notes)

    def test_sort_only_query(self, advisor: QueryAdvisor) -> None:
        before = advisor.analyze("events", sort={"ts": -1})

        assert before.requires_in_memory_sort
        assert [r.index for r in before.recommendations] == [
            IndexSpec.from_keys({"ts": -1})
        ]

        advisor.declare_index("events", before.recommendations[0].index)
        after = advisor.analyze("events", sort={"ts": -1})

        assert not after.requires_in_memory_sort
        assert after.recommendations == ()
        assert any("sort order" in note for note in after.notes)

    def test_pipeline(self, advisor: QueryAdvisor) -> None:
        report = advisor.analyze_pipeline(
            "users",
            [{"$match": {"name": "x"}}, {"$project": {"_id": 0, "name": 1}}, {"$count": "n"}],
        )

        assert report.match_result.is_covered
        assert any("$count" in note for note in report.notes)

    def test_concurrent_analyses_and_declarations(self, config: Config) -> None:
        advisor = QueryAdvisor(config=config)
        advisor.declare_collection("users")
        descriptor = parse_query("users", {"f5": 1})

        def analyze(_: int):
            return advisor.analyze_query(descriptor)

        with ThreadPoolExecutor(max_workers=8) as pool:
            reports = pool.map(analyze, range(100))
            for i in range(10):
                advisor.declare_index("users", IndexSpec.from_keys({f"f{i}": 1}))
            reports = list(reports)

        for report in reports:
            chosen = report.match_result.chosen
            # Version 7 is the first that includes {f5: 1}.
            if report.registry_version >= 7:
                assert chosen == IndexSpec.from_keys({"f5": 1})
            else:
                assert chosen is None
