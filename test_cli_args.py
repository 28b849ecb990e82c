"""Tests for command line parsing."""

import pytest

from base_plugin import UsageError
from cli_args import build_parser, parse_args


class TestFlags:
    @pytest.mark.parametrize(
        "argv, key, expected",
        [
            (["-p", "8080"], "port", 8080),
            (["--port", "8080"], "port", 8080),
            (["-s", "/tmp/a.sock"], "socket", "/tmp/a.sock"),
            (["--socket", "/tmp/a.sock"], "socket", "/tmp/a.sock"),
            (["-a", "0.0.0.0"], "address", "0.0.0.0"),
            (["--address", "0.0.0.0"], "address", "0.0.0.0"),
            (["-r", "/api"], "prefix", "/api"),
            (["--prefix", "/api"], "prefix", "/api"),
            (["-l", "info"], "log_level", "info"),
            (["--log-level", "info"], "log_level", "info"),
            (["-P"], "pretty_logs", True),
            (["--pretty-logs"], "pretty_logs", True),
            (["-o"], "options", True),
            (["--options"], "options", True),
            (["--no-pretty-logs"], "pretty_logs", False),
            (["--no-options"], "options", False),
            (["--body-limit", "1024"], "body_limit", 1024),
        ],
    )
    def test_flag(self, argv, key, expected):
        args = parse_args(["app.py", *argv])
        assert args.options[key] == expected
        assert args.files == ["app.py"]

    def test_absent_flags_are_not_reported(self):
        args = parse_args(["app.py"])
        assert args.options == {}
        assert args.help is False

    def test_help(self):
        assert parse_args(["-h"]).help is True
        assert parse_args(["--help", "app.py"]).help is True


class TestPositionals:
    def test_no_arguments(self):
        args = parse_args([])
        assert args.files == []

    def test_none_argv(self):
        assert parse_args(None).files == []

    def test_intermixed(self):
        args = parse_args(["-p", "1", "app.py", "-l", "info", "other.py"])
        assert args.files == ["app.py", "other.py"]
        assert args.options == {"port": 1, "log_level": "info"}


class TestPermissive:
    def test_unknown_flags_are_kept(self):
        args = parse_args(["app.py", "--verbose", "-x"])
        assert args.files == ["app.py"]
        assert args.unknown == ["--verbose", "-x"]

    def test_bad_integer_is_usage_error(self):
        with pytest.raises(UsageError):
            parse_args(["app.py", "--port", "abc"])

    def test_missing_value_is_usage_error(self):
        with pytest.raises(UsageError):
            parse_args(["app.py", "--port"])


class TestHelpText:
    def test_lists_flags_and_environment(self):
        text = build_parser().format_help()
        assert "plugstart <file> [options]" in text
        for flag in ("--port", "--socket", "--address", "--prefix", "--log-level",
                     "--pretty-logs", "--options", "--body-limit", "--help"):
            assert flag in text
        assert "FASTIFY_PORT" in text
        assert "FASTIFY_BODY_LIMIT" in text
