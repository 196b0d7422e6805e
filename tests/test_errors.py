"""Tests for errors.py -- exception hierarchy."""

from panforge.errors import (
    ConfigError,
    ExternalToolError,
    PanforgeError,
    PathResolutionError,
    RunCancelled,
)


class TestExceptionHierarchy:
    def test_all_inherit_from_panforge_error(self):
        assert issubclass(ConfigError, PanforgeError)
        assert issubclass(PathResolutionError, PanforgeError)
        assert issubclass(ExternalToolError, PanforgeError)
        assert issubclass(RunCancelled, PanforgeError)

    def test_panforge_error_is_exception(self):
        assert issubclass(PanforgeError, Exception)


class TestExternalToolError:
    def test_attributes(self):
        err = ExternalToolError("pandoc", 43, "Error producing PDF.")
        assert err.tool == "pandoc"
        assert err.exit_code == 43
        assert err.stderr == "Error producing PDF."
        assert str(err) == "pandoc exited with code 43: Error producing PDF."


class TestPathResolutionError:
    def test_message(self):
        err = PathResolutionError("out.html", "bad path")
        assert err.path == "out.html"
        assert err.reason == "bad path"
        assert str(err) == "failed to resolve output file path out.html: bad path"
