"""
Tests for the blobfs CLI.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from blobfs import __version__
from blobfs.cli.main import app

runner = CliRunner()


@pytest.fixture
def cli_env(temp_dir: Path) -> dict[str, str]:
    """Environment pointing the CLI at a temporary database."""
    return {
        "BLOBFS_DB_PATH": str(temp_dir / "cli.db"),
        "BLOBFS_BLOCK_SIZE": "4",
        "BLOBFS_LOG_LEVEL": "ERROR",
    }


def invoke(env: dict[str, str], *args: str, input: bytes | None = None):
    return runner.invoke(app, list(args), env=env, input=input)


class TestCLI:
    """Test CLI commands end to end against SQLite."""

    def test_version(self) -> None:
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_init(self, cli_env: dict[str, str], temp_dir: Path) -> None:
        result = invoke(cli_env, "init")
        assert result.exit_code == 0
        assert "block size 4" in result.output
        assert (temp_dir / "cli.db").exists()

    def test_write_and_cat(self, cli_env: dict[str, str]) -> None:
        """Test creating a node, writing text and printing it back."""
        assert invoke(cli_env, "mknode", "notes", "--id", "f1").exit_code == 0

        result = invoke(cli_env, "write", "f1", "--text", "hello")
        assert result.exit_code == 0
        assert "Wrote 5 bytes" in result.output

        result = invoke(cli_env, "write", "f1", "--text", " world")
        assert result.exit_code == 0

        result = invoke(cli_env, "cat", "f1")
        assert result.exit_code == 0
        assert result.stdout == "hello world"

        result = invoke(cli_env, "cat", "f1", "--offset", "6", "--length", "3")
        assert result.stdout == "wor"

    def test_write_from_file_and_stdin(self, cli_env: dict[str, str], temp_dir: Path) -> None:
        source = temp_dir / "payload.bin"
        source.write_bytes(b"abcdef")
        invoke(cli_env, "mknode", "payload", "--id", "f1")

        assert invoke(cli_env, "write", "f1", str(source)).exit_code == 0
        result = invoke(cli_env, "write", "f1", "--position", "2", input=b"XY")
        assert result.exit_code == 0

        assert invoke(cli_env, "cat", "f1").stdout == "abXYef"

    def test_stat_and_blocks(self, cli_env: dict[str, str]) -> None:
        invoke(cli_env, "mknode", "root", "--id", "0", "--dir")
        invoke(cli_env, "mknode", "a", "--id", "f1", "--parent", "0")
        invoke(cli_env, "write", "f1", "--text", "hello")

        result = invoke(cli_env, "stat", "f1")
        assert result.exit_code == 0
        assert "size" in result.output
        assert "5" in result.output

        result = invoke(cli_env, "blocks", "f1")
        assert result.exit_code == 0
        assert "0 1" in result.output

    def test_mknode_generates_id(self, cli_env: dict[str, str]) -> None:
        result = invoke(cli_env, "mknode", "anon")
        assert result.exit_code == 0
        assert result.output.strip().startswith("node_")

    def test_missing_parent_fails(self, cli_env: dict[str, str]) -> None:
        result = invoke(cli_env, "mknode", "a", "--parent", "ghost")
        assert result.exit_code == 1
        assert "Parent node does not exist" in result.output

    def test_cat_missing_node_fails(self, cli_env: dict[str, str]) -> None:
        result = invoke(cli_env, "cat", "ghost")
        assert result.exit_code == 1
        assert "Node not found" in result.output

    def test_config(self, cli_env: dict[str, str]) -> None:
        result = invoke(cli_env, "config")
        assert result.exit_code == 0
        assert "BLOCK_SIZE" in result.output

    def test_invalid_config(self, cli_env: dict[str, str]) -> None:
        env = dict(cli_env, BLOBFS_BLOCK_SIZE="0")
        result = invoke(env, "config")
        assert result.exit_code == 1
        assert "invalid" in result.output
