from __future__ import annotations

import json

import pytest

from record_migrator.exceptions import ConfigError
from record_migrator.models.migration import LookupStrategy, Operation
from record_migrator.settings import (
    EnvironmentSettings,
    load_config,
    load_records,
    parse_config,
    save_config,
)


def _config_data(**overrides):
    data = {
        "entity_logical_name": "account",
        "field_mappings": [{"source_field": "name"}, {"source_field": "ownerid"}],
        "lookup_mappings": [
            {"field_name": "ownerid", "target_entity": "systemuser", "strategy": "manual",
             "manual_mappings": {"{U-1}": "T-1"}},
        ],
        "operations": ["create", "update"],
        "batch_size": 25,
    }
    data.update(overrides)
    return data


def _write(path, data):
    path.write_text(json.dumps(data))
    return path


def test_parse_config():
    config = parse_config(_config_data())

    assert config.field_mappings[0].target_field == "name"
    assert config.operations == [Operation.CREATE, Operation.UPDATE]
    assert config.lookup_mappings[0].strategy == LookupStrategy.MANUAL
    assert config.lookup_mappings[0].get_manual_mapping("u-1") == "T-1"
    assert config.filter_query is None


@pytest.mark.parametrize("overrides", [
    {"batch_size": 0},
    {"batch_size": 101},
    {"operations": []},
    {"operations": ["merge"]},
    {"field_mappings": []},
    {"entity_logical_name": ""},
])
def test_parse_config_rejects_invalid(overrides):
    with pytest.raises(ConfigError):
        parse_config(_config_data(**overrides))


def test_blank_filter_becomes_none():
    assert parse_config(_config_data(filter_query="  ")).filter_query is None
    assert parse_config(_config_data(filter_query="statecode eq 0")).filter_query == "statecode eq 0"


def test_save_and_load_config(tmp_path):
    path = tmp_path / "config.json"
    save_config(parse_config(_config_data()), path)

    config = load_config(path)
    assert config.entity_logical_name == "account"
    assert config.batch_size == 25


def test_load_config_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(tmp_path / "missing.json")


def test_load_config_invalid_json(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    with pytest.raises(ConfigError, match="Invalid JSON"):
        load_config(path)


def test_load_records_plain_list(tmp_path):
    path = _write(tmp_path / "records.json", [{"accountid": "A-1"}])
    assert load_records(path) == [{"accountid": "A-1"}]


def test_load_records_unwraps_preview_entries(tmp_path):
    path = _write(tmp_path / "records.json", {"records": [
        {"source_id": "A-1", "data": {"accountid": "A-1", "name": "Alpha"}},
        {"accountid": "A-2"},
    ]})
    assert load_records(path) == [{"accountid": "A-1", "name": "Alpha"}, {"accountid": "A-2"}]


def test_load_records_accepts_odata_value(tmp_path):
    path = _write(tmp_path / "records.json", {"value": [{"accountid": "A-1"}]})
    assert load_records(path) == [{"accountid": "A-1"}]


def test_load_records_rejects_non_list(tmp_path):
    path = _write(tmp_path / "records.json", {"accountid": "A-1"})
    with pytest.raises(ConfigError):
        load_records(path)


def test_environment_settings_from_env():
    environ = {
        "RECORD_MIGRATOR_SOURCE_URL": "https://src.example.com",
        "RECORD_MIGRATOR_SOURCE_TOKEN": "secret",
        "RECORD_MIGRATOR_API_VERSION": "v9.1",
    }
    settings = EnvironmentSettings.from_env("source", environ)

    assert settings.url == "https://src.example.com"
    assert settings.token == "secret"
    assert settings.api_version == "v9.1"
    assert settings.rate_limit == 0.0


def test_environment_settings_overrides_win():
    environ = {"RECORD_MIGRATOR_TARGET_URL": "https://env.example.com"}
    settings = EnvironmentSettings.from_env(
        "target", environ, url="https://cli.example.com", token=None, rate_limit=5
    )
    assert settings.url == "https://cli.example.com"
    assert settings.token is None
    assert settings.rate_limit == 5.0


def test_environment_settings_missing_url():
    with pytest.raises(ConfigError, match="RECORD_MIGRATOR_TARGET_URL"):
        EnvironmentSettings.from_env("target", {})
