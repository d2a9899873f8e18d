"""
Tests for ledger_config: source precedence, validation and the bridges that
turn settings into kernel inputs.
"""

import pytest
import yaml

from ledger_config import ConfigError, LedgerSettings, get_active_config
from ledger_config.bridges import build_database, build_policy
from ledger_config.loader import env_overrides, merge


class TestDefaults:

    def test_packaged_defaults(self):
        settings = get_active_config(environ={})

        assert isinstance(settings, LedgerSettings)
        assert settings.numbering.padding == 6
        assert settings.numbering.prefixes == {
            "JOURNAL_ENTRY": "JE",
            "CREDIT_NOTE": "CN",
            "DEBIT_NOTE": "DN",
        }
        assert settings.money.decimal_places == 2
        assert settings.pagination.default_limit == 10
        assert settings.pagination.max_limit == 100
        assert settings.logging.level == "INFO"
        assert settings.sources == ("defaults",)


class TestPrecedence:

    def test_yaml_file_over_defaults(self, tmp_path):
        path = tmp_path / "ledger.yaml"
        path.write_text(yaml.safe_dump({"numbering": {"padding": 4}}))

        settings = get_active_config(path, environ={})

        assert settings.numbering.padding == 4
        assert settings.numbering.prefixes["JOURNAL_ENTRY"] == "JE"

    def test_config_file_from_environment(self, tmp_path):
        path = tmp_path / "ledger.yaml"
        path.write_text(yaml.safe_dump({"money": {"decimal_places": 3}}))

        settings = get_active_config(environ={"LEDGER_CONFIG_FILE": str(path)})

        assert settings.money.decimal_places == 3

    def test_environment_over_file(self, tmp_path):
        path = tmp_path / "ledger.yaml"
        path.write_text(yaml.safe_dump({"database_url": "sqlite:///from-file.db"}))

        settings = get_active_config(
            path,
            environ={"LEDGER_DATABASE_URL": "sqlite:///from-env.db", "LEDGER_LOG_LEVEL": "debug"},
        )

        assert settings.database_url == "sqlite:///from-env.db"
        assert settings.logging.level == "DEBUG"

    def test_database_url_fallback(self):
        settings = get_active_config(environ={"DATABASE_URL": "sqlite:///fallback.db"})
        assert settings.database_url == "sqlite:///fallback.db"

    def test_overrides_win(self):
        settings = get_active_config(
            overrides={"database_url": "sqlite://", "pagination": {"default_limit": 25}},
            environ={"LEDGER_DATABASE_URL": "sqlite:///from-env.db"},
        )

        assert settings.database_url == "sqlite://"
        assert settings.pagination.default_limit == 25
        assert settings.sources == ("defaults", "environment", "overrides")

    def test_config_loaded_logged(self, captured_logs):
        get_active_config(environ={})

        records = [r for r in captured_logs() if r["message"] == "config_loaded"]
        assert records[-1]["config_sources"] == ["defaults"]
        assert records[-1]["database_backend"] == "sqlite"


class TestValidation:

    @pytest.mark.parametrize(
        "overrides",
        [
            {"unknown": 1},
            {"numbering": {"width": 6}},
            {"numbering": {"padding": 0}},
            {"numbering": {"prefixes": {"JOURNAL_ENTRY": "X", "CREDIT_NOTE": "X"}}},
            {"money": {"decimal_places": -1}},
            {"pagination": {"default_limit": 200}},
            {"pagination": {"max_limit": "many"}},
            {"logging": {"level": "LOUD"}},
            {"echo_sql": "yes"},
            {"pool_size": True},
        ],
    )
    def test_invalid_settings_rejected(self, overrides):
        with pytest.raises(ConfigError):
            get_active_config(overrides=overrides, environ={})

    def test_config_error_is_value_error(self):
        assert issubclass(ConfigError, ValueError)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "missing.yaml", environ={})


class TestHelpers:

    def test_merge_is_deep_and_non_destructive(self):
        base = {"a": {"b": 1, "c": 2}, "d": 3}
        merged = merge(base, {"a": {"b": 10}})

        assert merged == {"a": {"b": 10, "c": 2}, "d": 3}
        assert base["a"]["b"] == 1

    def test_env_overrides_ignores_empty(self):
        assert env_overrides({"LEDGER_DATABASE_URL": ""}) == {}


class TestBridges:

    def test_build_policy(self):
        settings = get_active_config(
            overrides={"numbering": {"padding": 3}, "pagination": {"max_limit": 50}},
            environ={},
        )

        policy = build_policy(settings)

        assert policy.number_padding == 3
        assert policy.max_page_limit == 50
        assert policy.number_prefixes["CREDIT_NOTE"] == "CN"

    def test_build_database(self, tmp_path):
        settings = get_active_config(
            overrides={"database_url": f"sqlite:///{tmp_path / 'x.db'}"}, environ={}
        )

        database = build_database(settings)
        try:
            assert database.dialect_name == "sqlite"
        finally:
            database.dispose()
