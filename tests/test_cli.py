"""Tests for the queryshape CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from queryshape import __version__
from queryshape.cli.main import app

runner = CliRunner()


class TestAnalyzeCommand:
    def test_text_output(self, fixtures_dir: Path) -> None:
        result = runner.invoke(
            app,
            [
                "analyze",
                str(fixtures_dir / "query_uncovered.json"),
                "--indexes",
                str(fixtures_dir / "indexes.yaml"),
            ],
        )

        assert result.exit_code == 0, result.output
        assert "Chosen index: {age: 1}" in result.output
        assert "db.users.createIndex({age: 1, name: 1})" in result.output

    def test_json_output(self, fixtures_dir: Path) -> None:
        result = runner.invoke(
            app,
            [
                "analyze",
                str(fixtures_dir / "query_covered.json"),
                "-i",
                str(fixtures_dir / "indexes.json"),
                "--format",
                "json",
            ],
        )

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["match"]["is_covered"] is True
        assert data["is_optimal"] is True

    def test_markdown_output(self, fixtures_dir: Path) -> None:
        result = runner.invoke(
            app,
            [
                "analyze",
                str(fixtures_dir / "query_sorted.yaml"),
                "-i",
                str(fixtures_dir / "indexes.yaml"),
                "-f",
                "markdown",
            ],
        )

        assert result.exit_code == 0, result.output
        assert "# queryshape report: `orders`" in result.output
        assert "db.orders.createIndex({status: 1, total: 1, created: -1})" in result.output

    def test_no_recommend(self, fixtures_dir: Path) -> None:
        result = runner.invoke(
            app,
            [
                "analyze",
                str(fixtures_dir / "query_uncovered.json"),
                "-i",
                str(fixtures_dir / "indexes.yaml"),
                "-f",
                "json",
                "--no-recommend",
            ],
        )

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["recommendations"] == []

    def test_pipeline_query(self, fixtures_dir: Path) -> None:
        result = runner.invoke(
            app,
            [
                "analyze",
                str(fixtures_dir / "query_pipeline.yaml"),
                "-i",
                str(fixtures_dir / "indexes.yaml"),
                "-f",
                "json",
            ],
        )

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["match"]["chosen"]["keys"] == {"status": 1, "created": -1}
        assert data["match"]["sort_satisfied"] is True
        assert data["unanalyzed_stages"] == ["$group"]

    @pytest.mark.parametrize(
        ("query", "message"),
        [
            ("query_unknown_collection.json", "Unknown collection"),
            ("query_malformed.json", "Unknown operator"),
            ("query_broken.json", "Invalid document"),
        ],
    )
    def test_errors_exit_nonzero(self, fixtures_dir: Path, query: str, message: str) -> None:
        result = runner.invoke(
            app,
            ["analyze", str(fixtures_dir / query), "-i", str(fixtures_dir / "indexes.yaml")],
        )

        assert result.exit_code == 1
        assert message in result.output

    def test_duplicate_index_document(self, fixtures_dir: Path) -> None:
        result = runner.invoke(
            app,
            [
                "analyze",
                str(fixtures_dir / "query_covered.json"),
                "-i",
                str(fixtures_dir / "indexes_duplicate.json"),
            ],
        )

        assert result.exit_code == 1
        assert "already declared" in result.output


class TestIndexesCommand:
    def test_table(self, fixtures_dir: Path) -> None:
        result = runner.invoke(app, ["indexes", str(fixtures_dir / "indexes.yaml")])

        assert result.exit_code == 0, result.output
        assert "users" in result.output
        assert "orders" in result.output
        assert "events" in result.output

    def test_json(self, fixtures_dir: Path) -> None:
        result = runner.invoke(app, ["indexes", str(fixtures_dir / "indexes.yaml"), "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert [i["keys"] for i in data["users"]] == [{"name": 1}, {"age": 1}, {"email": 1}]
        assert data["orders"][1]["name"] == "by_customer"
        assert data["events"] == []

    def test_malformed(self, fixtures_dir: Path) -> None:
        result = runner.invoke(app, ["indexes", str(fixtures_dir / "indexes_malformed.yaml")])

        assert result.exit_code == 1
        assert "Invalid index direction" in result.output


class TestGlobalOptions:
    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_verbose(self, fixtures_dir: Path) -> None:
        result = runner.invoke(
            app,
            [
                "--verbose",
                "analyze",
                str(fixtures_dir / "query_covered.json"),
                "-i",
                str(fixtures_dir / "indexes.json"),
                "-f",
                "json",
            ],
        )

        assert result.exit_code == 0, result.output
