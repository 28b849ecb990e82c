"""Tests for environment reading and settings precedence."""

import pytest

from launch_settings import (
    ENV_VARS,
    Settings,
    _parse_bool,
    load_settings,
    merge_settings,
    read_env,
)


class TestParseBool:
    def test_true_values(self):
        for val in ("true", "True", "1", "yes", "on", " TRUE "):
            assert _parse_bool(val) is True

    def test_false_values(self):
        for val in ("false", "0", "no", "off", "random"):
            assert _parse_bool(val) is False


class TestReadEnv:
    def test_empty_environment(self):
        assert read_env({}) == {}

    def test_unrelated_variables_ignored(self):
        assert read_env({"PORT": "9000", "HOME": "/root"}) == {}

    def test_all_variables(self):
        env = {
            "FASTIFY_PORT": "8080",
            "FASTIFY_SOCKET": "/tmp/app.sock",
            "FASTIFY_OPTIONS": "true",
            "FASTIFY_ADDRESS": "0.0.0.0",
            "FASTIFY_PREFIX": "/api",
            "FASTIFY_LOG_LEVEL": "info",
            "FASTIFY_PRETTY_LOGS": "1",
            "FASTIFY_BODY_LIMIT": "2048",
        }
        assert read_env(env) == {
            "port": 8080,
            "socket": "/tmp/app.sock",
            "options": True,
            "address": "0.0.0.0",
            "prefix": "/api",
            "log_level": "info",
            "pretty_logs": True,
            "body_limit": 2048,
        }

    def test_empty_values_are_absent(self):
        assert read_env({"FASTIFY_PREFIX": "", "FASTIFY_PORT": ""}) == {}

    def test_false_boolean_is_present(self):
        assert read_env({"FASTIFY_PRETTY_LOGS": "false"}) == {"pretty_logs": False}

    def test_invalid_integer_is_skipped(self):
        assert read_env({"FASTIFY_PORT": "abc", "FASTIFY_PREFIX": "/x"}) == {"prefix": "/x"}

    def test_legacy_body_limit_name(self):
        assert read_env({"FASTIFT_BODY_LIMIT": "100"}) == {"body_limit": 100}

    def test_canonical_body_limit_wins_over_legacy(self):
        env = {"FASTIFY_BODY_LIMIT": "200", "FASTIFT_BODY_LIMIT": "100"}
        assert read_env(env) == {"body_limit": 200}

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("FASTIFY_PORT", "4567")
        assert read_env()["port"] == 4567


class TestMergeSettings:
    def test_defaults(self):
        settings = merge_settings("app.py", {}, {})
        assert settings == Settings(file="app.py")
        assert settings.port == 3000
        assert settings.log_level == "fatal"
        assert settings.pretty_logs is False
        assert settings.options is False
        assert settings.socket is None
        assert settings.address is None
        assert settings.prefix is None
        assert settings.body_limit is None

    def test_env_fills_missing(self):
        settings = merge_settings("app.py", {}, {"port": 9000, "prefix": "/v1"})
        assert settings.port == 9000
        assert settings.prefix == "/v1"

    @pytest.mark.parametrize(
        "key, env_value, cli_value",
        [
            ("port", 4000, 5000),
            ("socket", "/tmp/env.sock", "/tmp/cli.sock"),
            ("address", "0.0.0.0", "127.0.0.1"),
            ("prefix", "/env", "/cli"),
            ("log_level", "error", "debug"),
            ("pretty_logs", False, True),
            ("body_limit", 10, 20),
            ("options", False, True),
        ],
    )
    def test_cli_overrides_env(self, key, env_value, cli_value):
        settings = merge_settings("app.py", {key: cli_value}, {key: env_value})
        assert getattr(settings, key) == cli_value

    def test_cli_none_does_not_override(self):
        settings = merge_settings("app.py", {"port": None}, {"port": 8000})
        assert settings.port == 8000

    def test_unknown_keys_ignored(self):
        settings = merge_settings("app.py", {"help": True}, {"bogus": 1})
        assert settings == Settings(file="app.py")

    def test_frozen(self):
        settings = Settings(file="app.py")
        with pytest.raises(AttributeError):
            settings.port = 8080

    def test_every_option_has_an_env_variable(self):
        fields = set(Settings.__dataclass_fields__) - {"file"}
        assert set(ENV_VARS) == fields


class TestLoadSettings:
    def test_env_and_cli(self):
        env = {"FASTIFY_PORT": "4000", "FASTIFY_LOG_LEVEL": "warn"}
        settings = load_settings("app.py", {"port": 5000}, env)
        assert settings.port == 5000
        assert settings.log_level == "warn"
