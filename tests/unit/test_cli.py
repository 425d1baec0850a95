"""Unit tests for the command-line interface."""

from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from contextflow import __version__
from contextflow.cli import app
from contextflow.config import get_settings

runner = CliRunner()


@pytest.fixture(autouse=True)
def cli_env(tmp_path, monkeypatch):
    """Point the CLI at a temporary database and clear cached settings."""
    monkeypatch.setenv("CONTEXTFLOW_DATABASE_PATH", str(tmp_path / "contextflow.db"))
    monkeypatch.setenv("CONTEXTFLOW_OLLAMA_API_KEY", "")
    monkeypatch.delenv("OLLAMA_API_KEY", raising=False)
    get_settings.cache_clear()
    yield tmp_path
    get_settings.cache_clear()


class TestCommands:
    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_status_before_first_note(self):
        result = runner.invoke(app, ["status"])
        assert result.exit_code == 0
        assert "not yet initialized" in result.output

    def test_add_and_list(self):
        result = runner.invoke(app, ["add", "Dentist", "-s", "Tuesday", "--no-insight"])
        assert result.exit_code == 0
        assert "Added note" in result.output

        result = runner.invoke(app, ["list", "--search", "dent"])
        assert result.exit_code == 0
        assert "Dentist" in result.output

    def test_notes_are_scoped_by_user(self):
        runner.invoke(app, ["--user", "bob", "add", "Secret", "--no-insight"])

        result = runner.invoke(app, ["--user", "alice", "list"])

        assert "No notes found" in result.output

    def test_add_blank_title(self):
        result = runner.invoke(app, ["add", "   "])
        assert result.exit_code == 1

    def test_today_without_notes(self):
        result = runner.invoke(app, ["today"])
        assert result.exit_code == 0
        assert "No notes added today" in result.output

    def test_ingest_unsupported_file(self, cli_env):
        path = cli_env / "tool.exe"
        path.write_bytes(b"MZ")

        result = runner.invoke(app, ["ingest", str(path), "--no-insights"])

        assert result.exit_code == 1
        assert "No files could be processed" in result.output

    def test_dismiss_unknown_insight(self):
        result = runner.invoke(app, ["dismiss", "42"])
        assert result.exit_code == 1
        assert "not found" in result.output


class TestConfigCheck:
    """Tests for the Ollama connection check."""

    @pytest.fixture
    def mock_ollama(self):
        with patch("contextflow.cli.OllamaService") as mock:
            service = mock.return_value
            service.configured = True
            service.host = "https://ollama.com"
            service.model_name = "gpt-oss:120b-cloud"
            yield service

    def test_config_without_check_does_not_connect(self, mock_ollama):
        result = runner.invoke(app, ["config"])
        assert result.exit_code == 0
        mock_ollama.check_connection.assert_not_called()

    def test_check_lists_models(self, mock_ollama):
        mock_ollama.check_connection.return_value = True
        mock_ollama.list_models.return_value = ["gpt-oss:120b-cloud", "mistral"]

        result = runner.invoke(app, ["config", "--check"])

        assert result.exit_code == 0
        assert "Connected to Ollama" in result.output
        assert "mistral" in result.output
        assert "not listed" not in result.output

    def test_check_unreachable(self, mock_ollama):
        mock_ollama.check_connection.return_value = False

        result = runner.invoke(app, ["config", "--check"])

        assert result.exit_code == 1
        assert "Cannot connect" in result.output
        mock_ollama.list_models.assert_not_called()
