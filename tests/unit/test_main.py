"""Tests for CLI argument parsing and settings loading."""

from datetime import date
from pathlib import Path

import pytest

from main import DEFAULT_CONFIG, load_settings, parse_args


class TestParseArgs:
    def test_browse_options(self) -> None:
        args = parse_args([
            "browse", "--all", "--origin", "JFK,ORD", "--max-price", "300",
            "--date-start", "2025-06-01", "--sort-key", "price", "--order", "descending",
            "--algorithm", "quick",
        ])
        assert args.command == "browse"
        assert args.all is True
        assert args.origin == "JFK,ORD"
        assert args.max_price == 300.0
        assert args.min_price is None
        assert args.date_start == date(2025, 6, 1)
        assert args.sort_key == "price"
        assert args.order == "descending"
        assert args.algorithm == "quick"
        assert args.config == DEFAULT_CONFIG
        assert args.limit == 20

    def test_search_defaults(self) -> None:
        args = parse_args(["search", "JFK"])
        assert args.query == "JFK"
        assert args.field == "origin"
        assert args.algorithm == "linear"
        assert args.benchmark is False

    def test_ask(self) -> None:
        args = parse_args(["ask", "cheap flights to LAX", "-v"])
        assert args.text == "cheap flights to LAX"
        assert args.verbose is True

    def test_invalid_algorithm(self) -> None:
        with pytest.raises(SystemExit):
            parse_args(["browse", "--algorithm", "bogo"])

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            parse_args([])


class TestLoadSettings:
    def test_missing_default_uses_defaults(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        settings = load_settings(parse_args(["search", "JFK"]))
        assert settings.database.path == "data/flights.db"

    def test_db_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        settings = load_settings(parse_args(["browse", "--db", "other.db"]))
        assert settings.database.path == "other.db"

    def test_explicit_missing_config(self, tmp_path: Path) -> None:
        args = parse_args(["browse", "--config", str(tmp_path / "nope.yaml")])
        with pytest.raises(FileNotFoundError):
            load_settings(args)

    def test_explicit_config(self, tmp_path: Path) -> None:
        config = tmp_path / "settings.yaml"
        config.write_text("pagination:\n  page_size: 42\n")
        settings = load_settings(parse_args(["browse", "--config", str(config)]))
        assert settings.pagination.page_size == 42
