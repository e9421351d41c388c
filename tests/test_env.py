"""
Tests for env.py (.env loading and environment lookups).

Tests cover:
- Loading key=value pairs without overriding real variables
- Comments, blank lines, ``export`` prefixes and quoted values
- Stopping after the first existing file
- read_key() trimming and env_flag() truthiness
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Generator

import pytest

from bwwriter.env import env_flag, load_default_env, load_env_if_present, read_key

TEST_KEYS = ["BWW_TEST_A", "BWW_TEST_B", "BWW_TEST_C", "BWW_TEST_EXISTING", "BWW_COMMENTED"]


@pytest.fixture(autouse=True)
def clean_env() -> Generator[None, None, None]:
    """Remove test env vars after each test."""
    yield
    for key in TEST_KEYS:
        os.environ.pop(key, None)


def write_env(directory: Path, text: str, name: str = ".env") -> Path:
    path = directory / name
    path.write_text(text)
    return path


class TestLoadEnvIfPresent:
    def test_loads_pairs_and_returns_path(self, tmp_path: Path) -> None:
        env = write_env(tmp_path, "BWW_TEST_A=hello\nBWW_TEST_B=world\n")

        assert load_env_if_present([env]) == env
        assert os.environ["BWW_TEST_A"] == "hello"
        assert os.environ["BWW_TEST_B"] == "world"

    def test_missing_files_and_directories_skipped(self, tmp_path: Path) -> None:
        assert load_env_if_present([Path("/nonexistent/.env"), tmp_path]) is None

    def test_comments_blank_and_malformed_lines(self, tmp_path: Path) -> None:
        env = write_env(
            tmp_path,
            "# comment\n\nBWW_TEST_A=value\n# BWW_COMMENTED=nope\nno_equals_here\n=no_key\n",
        )
        load_env_if_present([env])

        assert os.environ["BWW_TEST_A"] == "value"
        assert "BWW_COMMENTED" not in os.environ

    def test_does_not_overwrite_existing(self, tmp_path: Path) -> None:
        os.environ["BWW_TEST_EXISTING"] = "original"
        load_env_if_present([write_env(tmp_path, "BWW_TEST_EXISTING=overwritten\n")])

        assert os.environ["BWW_TEST_EXISTING"] == "original"

    def test_export_prefix_and_quotes(self, tmp_path: Path) -> None:
        env = write_env(tmp_path, "export BWW_TEST_A='single'\nBWW_TEST_B=\"double\"\n")
        load_env_if_present([env])

        assert os.environ["BWW_TEST_A"] == "single"
        assert os.environ["BWW_TEST_B"] == "double"

    def test_value_with_equals_sign(self, tmp_path: Path) -> None:
        load_env_if_present([write_env(tmp_path, "BWW_TEST_A=a=b=c\n")])

        assert os.environ["BWW_TEST_A"] == "a=b=c"

    def test_stops_after_first_existing_file(self, tmp_path: Path) -> None:
        first = write_env(tmp_path, "BWW_TEST_A=first\n", "first.env")
        second = write_env(tmp_path, "BWW_TEST_A=second\nBWW_TEST_C=second\n", "second.env")

        assert load_env_if_present([first, second]) == first
        assert os.environ["BWW_TEST_A"] == "first"
        assert "BWW_TEST_C" not in os.environ


class TestLoadDefaultEnv:
    def test_no_file_is_fine(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        load_default_env()

    def test_loads_from_cwd(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        write_env(tmp_path, "BWW_TEST_C=from_cwd\n")

        load_default_env()

        assert os.environ["BWW_TEST_C"] == "from_cwd"


class TestReadKey:
    def test_trims_whitespace(self) -> None:
        assert read_key("K", {"K": "  sk-123 \n"}) == "sk-123"

    def test_unset_and_blank_are_empty(self) -> None:
        assert read_key("K", {}) == ""
        assert read_key("K", {"K": "   "}) == ""

    def test_defaults_to_process_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BWW_TEST_A", "live")
        assert read_key("BWW_TEST_A") == "live"


class TestEnvFlag:
    @pytest.mark.parametrize("raw", ["1", "true", "TRUE", "yes", "on", " True "])
    def test_truthy(self, raw: str) -> None:
        assert env_flag("F", environ={"F": raw}) is True

    @pytest.mark.parametrize("raw", ["0", "false", "no", "", "maybe"])
    def test_falsy(self, raw: str) -> None:
        assert env_flag("F", environ={"F": raw}) is False

    def test_default_when_unset(self) -> None:
        assert env_flag("F", environ={}) is False
        assert env_flag("F", default=True, environ={}) is True
