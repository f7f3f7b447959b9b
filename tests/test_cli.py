"""Tests for the command-line interface."""

from typer.testing import CliRunner

from gpteo_scanner import __version__
from gpteo_scanner.cli import app

runner = CliRunner()


class TestCli:
    """Test cases for the typer app."""

    def test_version(self):
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_checks_lists_registry(self):
        result = runner.invoke(app, ["checks"])

        assert result.exit_code == 0
        assert "seo.meta.title" in result.output
        assert "gpteo.feed.present" in result.output

    def test_scan_rejects_invalid_request(self):
        """Test that validation errors exit with status 2 before any fetch."""
        result = runner.invoke(app, ["scan", "intranet", "https://intranet/"])

        assert result.exit_code == 2
        assert "Invalid domain" in result.output
