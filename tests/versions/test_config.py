"""Unit tests for required_version extraction (temporary directories only)."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from tfbox.errors import ConfigReadError
from tfbox.versions.config import read_required_versions


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_single_constraint(tmp_path: Path) -> None:
    _write(
        tmp_path / "versions.tf",
        """
terraform {
  required_version = ">= 1.8.0, < 1.9.0"
}
""",
    )

    assert read_required_versions(tmp_path) == [">= 1.8.0, < 1.9.0"]


def test_constraints_from_multiple_files(tmp_path: Path) -> None:
    _write(tmp_path / "a.tf", 'terraform {\n  required_version = ">= 1.5"\n}\n')
    _write(tmp_path / "b.tf", 'terraform {\n  required_version = "< 2.0"\n}\n')

    assert read_required_versions(tmp_path) == [">= 1.5", "< 2.0"]


def test_json_syntax(tmp_path: Path) -> None:
    _write(tmp_path / "main.tf.json", json.dumps({"terraform": {"required_version": "~> 1.7"}}))

    assert read_required_versions(tmp_path) == ["~> 1.7"]


def test_no_terraform_block(tmp_path: Path) -> None:
    _write(
        tmp_path / "main.tf",
        """
resource "null_resource" "noop" {}
""",
    )

    assert read_required_versions(tmp_path) == []


def test_empty_directory(tmp_path: Path) -> None:
    assert read_required_versions(tmp_path) == []


def test_missing_directory(tmp_path: Path) -> None:
    with pytest.raises(ConfigReadError, match="not found"):
        read_required_versions(tmp_path / "nope")


def test_unparsable_hcl(tmp_path: Path) -> None:
    _write(tmp_path / "broken.tf", "terraform {\n  required_version = \n")

    with pytest.raises(ConfigReadError, match="broken.tf"):
        read_required_versions(tmp_path)


def test_unparsable_json(tmp_path: Path) -> None:
    _write(tmp_path / "main.tf.json", "{not json")

    with pytest.raises(ConfigReadError):
        read_required_versions(tmp_path)
