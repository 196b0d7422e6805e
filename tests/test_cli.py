"""Tests for cli.py -- Click CLI interface."""

import sys
from unittest.mock import patch

import pytest
from click.testing import CliRunner
from loguru import logger

from panforge import __version__
from panforge.cli import main
from panforge.deps import CheckResult
from panforge.errors import ExternalToolError, PanforgeError
from panforge.executor import SubprocessExecutor


@pytest.fixture(autouse=True)
def _isolated(workdir, monkeypatch):
    """Run in tmp_path and drop loguru sinks bound to CliRunner streams."""
    monkeypatch.setenv("HOME", str(workdir))
    yield
    logger.remove()


@pytest.fixture
def doc(write_doc):
    return write_doc("title: CLI\noutputs: [html]")


class TestHelpOutput:
    def test_help_flag(self):
        result = CliRunner().invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "A wrapper for pandoc" in result.output
        assert "init" in result.output
        assert "check" in result.output

    def test_convert_help(self):
        result = CliRunner().invoke(main, ["convert", "--help"])
        assert result.exit_code == 0
        assert "--concurrency" in result.output
        assert "--dry-run" in result.output

    def test_version(self):
        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_convert_without_args_prints_help(self):
        result = CliRunner().invoke(main, ["convert"])
        assert result.exit_code == 0
        assert "Usage" in result.output

    def test_targets_without_input(self):
        result = CliRunner().invoke(main, ["convert", "-t", "pdf"])
        assert result.exit_code != 0
        assert "no input file found" in result.output


@patch("panforge.cli.get_supported_formats", return_value=["html", "pdf"])
@patch("panforge.cli.run")
class TestConvert:
    def test_default_command(self, mock_run, mock_formats, doc):
        result = CliRunner().invoke(main, [str(doc)])
        assert result.exit_code == 0, result.output + str(result.exception or "")
        args, settings, executor = mock_run.call_args.args
        assert args == [str(doc)]
        assert settings.targets == []
        assert isinstance(executor, SubprocessExecutor)

    def test_flags_to_settings(self, mock_run, mock_formats, doc, tmp_path):
        log_file = tmp_path / "calls.log"
        result = CliRunner().invoke(
            main,
            [str(doc), "-t", "html,pdf", "-t", "epub", "-f", "-c", "2", "--log", str(log_file)],
        )
        assert result.exit_code == 0, result.output + str(result.exception or "")
        settings = mock_run.call_args.args[1]
        assert settings.targets == ["html", "pdf", "epub"]
        assert settings.force is True
        assert settings.concurrency == 2
        assert settings.log_file == log_file

    def test_passthrough_args(self, mock_run, mock_formats, doc):
        result = CliRunner().invoke(main, [str(doc), "--", "--from", "gfm", "-t", "html5"])
        assert result.exit_code == 0, result.output + str(result.exception or "")
        assert mock_run.call_args.args[0] == [str(doc), "--from", "gfm", "-t", "html5"]

    def test_unknown_options_forwarded(self, mock_run, mock_formats, doc):
        result = CliRunner().invoke(main, [str(doc), "--toc"])
        assert result.exit_code == 0, result.output + str(result.exception or "")
        assert mock_run.call_args.args[0] == [str(doc), "--toc"]

    def test_dry_run_skips_pandoc_lookup(self, mock_run, mock_formats, doc):
        result = CliRunner().invoke(main, [str(doc), "--dry-run"])
        assert result.exit_code == 0, result.output + str(result.exception or "")
        mock_formats.assert_not_called()
        executor = mock_run.call_args.args[2]
        assert executor.dry_run is True

    def test_env_var_applies(self, mock_run, mock_formats, doc, monkeypatch):
        monkeypatch.setenv("PANFORGE_FORCE", "true")
        result = CliRunner().invoke(main, [str(doc)])
        assert result.exit_code == 0, result.output + str(result.exception or "")
        assert mock_run.call_args.args[1].force is True

    def test_stdin_dash(self, mock_run, mock_formats):
        result = CliRunner().invoke(main, ["-", "-t", "html"], input="# Piped\n")
        assert result.exit_code == 0, result.output + str(result.exception or "")
        assert mock_run.call_args.args[0] == ["-"]
        assert mock_run.call_args.kwargs["stdin"] is not None

    def test_stdin_is_process_stream(self, mock_run, mock_formats):
        seen = {}

        def capture(args, settings, executor, stdin=None):
            seen["same"] = stdin is sys.stdin
            seen["text"] = stdin.read()

        mock_run.side_effect = capture
        result = CliRunner().invoke(main, ["-", "-t", "html"], input="# Piped\n")
        assert result.exit_code == 0, result.output + str(result.exception or "")
        assert seen == {"same": True, "text": "# Piped\n"}

    def test_pandoc_missing(self, mock_run, mock_formats, doc):
        mock_formats.return_value = []
        result = CliRunner().invoke(main, [str(doc)])
        assert result.exit_code == 1
        assert "pandoc not found" in result.output
        mock_run.assert_not_called()

    def test_run_error_exit_code(self, mock_run, mock_formats, doc):
        mock_run.side_effect = ExternalToolError("pandoc", 43, "Error producing PDF.")
        result = CliRunner().invoke(main, [str(doc)])
        assert result.exit_code == 1
        assert "pandoc exited with code 43" in result.output

    def test_config_error_exit_code(self, mock_run, mock_formats, doc):
        mock_run.side_effect = PanforgeError("could not find file custom.yaml")
        result = CliRunner().invoke(main, [str(doc)])
        assert result.exit_code == 1
        assert "could not find file" in result.output

    def test_negative_concurrency_rejected(self, mock_run, mock_formats, doc):
        result = CliRunner().invoke(main, [str(doc), "-c", "-1"])
        assert result.exit_code == 2
        mock_run.assert_not_called()


class TestInit:
    def test_config_file(self, workdir):
        result = CliRunner().invoke(main, ["init"])
        assert result.exit_code == 0, result.output
        assert (workdir / ".panforge.yaml").exists()
        assert "Created .panforge.yaml" in result.output

    def test_markdown_scaffold(self, workdir):
        result = CliRunner().invoke(main, ["init", "-m", "-t", "html,epub"])
        assert result.exit_code == 0, result.output
        content = (workdir / "input.md").read_text()
        assert "- html" in content
        assert "- epub" in content

    def test_refuses_overwrite(self, workdir):
        (workdir / ".panforge.yaml").write_text("keep: me\n")
        result = CliRunner().invoke(main, ["init"])
        assert result.exit_code == 1
        assert "already exists" in result.output
        assert (workdir / ".panforge.yaml").read_text() == "keep: me\n"

    def test_force_overwrites(self, workdir):
        (workdir / ".panforge.yaml").write_text("keep: me\n")
        result = CliRunner().invoke(main, ["init", "--force"])
        assert result.exit_code == 0
        assert "panforge" in (workdir / ".panforge.yaml").read_text()


class TestCheck:
    @patch("panforge.cli.check_tool")
    def test_all_known_tools(self, mock_check):
        mock_check.side_effect = lambda name: CheckResult(name=name, found=False, error="not found")
        result = CliRunner().invoke(main, ["check"])
        assert result.exit_code == 0
        assert "pandoc" in result.output
        assert "typst" in result.output
        assert "MISSING" in result.output

    @patch("panforge.cli.check_tool")
    def test_file_limits_tools(self, mock_check, write_doc):
        mock_check.side_effect = lambda name: CheckResult(
            name=name, found=True, path=f"/usr/bin/{name}", version=f"{name} 1.0"
        )
        doc = write_doc("outputs: [pdf]\npdf-engine: xelatex")
        result = CliRunner().invoke(main, ["check", str(doc)])
        assert result.exit_code == 0, result.output
        checked = [c.args[0] for c in mock_check.call_args_list]
        assert checked == ["pandoc", "xelatex"]
        assert "xelatex 1.0" in result.output
        assert "FOUND" in result.output
