from __future__ import annotations

import io
import json

import pytest

from record_migrator import cli
from record_migrator.engine import MigrationEngine
from record_migrator.models.record import MigrationProgress, MigrationRecord, RecordStatus
from record_migrator.models.schema import EntityField


CONFIG = {
    "entity_logical_name": "account",
    "field_mappings": [{"source_field": "name"}],
    "operations": ["create"],
    "batch_size": 2,
}


@pytest.fixture
def files(tmp_path):
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps(CONFIG))
    records_path = tmp_path / "records.json"
    records_path.write_text(json.dumps([
        {"accountid": "A-1", "name": "Alpha"},
        {"accountid": "A-2", "name": "Beta"},
        {"accountid": "A-3", "name": "Gamma"},
    ]))
    return config_path, records_path, tmp_path / "report.json"


@pytest.fixture
def engine(source_client, target_client, monkeypatch):
    engine = MigrationEngine(source_client, target_client)
    monkeypatch.setattr(cli, "create_engine", lambda args: engine)
    return engine


def test_parser_migrate_arguments():
    args = cli.build_parser().parse_args([
        "migrate", "--config", "c.json", "--records", "r.json", "--auto-map",
        "--source-url", "https://src", "--target-url", "https://dst", "-v",
    ])
    assert args.command == "migrate"
    assert args.auto_map is True
    assert args.source_url == "https://src"
    assert args.verbose is True


def test_parser_rejects_unknown_operation():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["init-config", "--entity", "account", "--operations", "merge"])


def test_main_without_command_prints_help(capsys):
    assert cli.main([]) == 2
    assert "migrate" in capsys.readouterr().out


def test_main_reports_config_errors(tmp_path, capsys):
    code = cli.main(["migrate", "--config", str(tmp_path / "missing.json")])
    assert code == 1
    assert "File not found" in capsys.readouterr().err


def test_migrate_writes_report(files, engine, target_client, capsys):
    config_path, records_path, report_path = files

    code = cli.main(["migrate", "--config", str(config_path), "--records", str(records_path),
                     "--report", str(report_path)])

    assert code == 0
    out = capsys.readouterr().out
    assert "Batch 2/2" in out
    assert "Succeeded: 3" in out

    report = json.loads(report_path.read_text())
    assert report["successful"] == 3
    assert report["is_in_progress"] is False
    assert len(target_client.writes()) == 3


def test_migrate_returns_one_on_failures(files, engine, target_client):
    config_path, records_path, _ = files
    target_client.add("account", "A-2", {"accountid": "A-2"})

    assert cli.main(["migrate", "--config", str(config_path), "--records", str(records_path)]) == 1


def test_migrate_queries_source_without_records_file(files, engine, source_client, target_client):
    config_path, _, _ = files
    source_client.add("account", "A-9", {"accountid": "A-9", "name": "Zeta"})

    assert cli.main(["migrate", "--config", str(config_path)]) == 0
    assert [c[2] for c in target_client.writes()] == ["A-9"]


def test_preview_prints_payloads(files, engine, target_client, capsys):
    config_path, records_path, _ = files

    assert cli.main(["preview", "--config", str(config_path), "--records", str(records_path)]) == 0
    assert '"name": "Alpha"' in capsys.readouterr().out
    assert target_client.writes() == []


def test_automap_saves_results(tmp_path, engine, source_client, target_client):
    source_client.add("businessunit", "B-1", {"businessunitid": "B-1", "name": "Contoso"})
    target_client.add("businessunit", "TB-1", {"businessunitid": "TB-1", "name": "Contoso"})
    output = tmp_path / "automap.json"

    assert cli.main(["automap", "--output", str(output)]) == 0

    saved = json.loads(output.read_text())
    assert saved["business_units"][0]["target_id"] == "TB-1"
    assert saved["users"] == []


class StubFieldClient:
    def fetch_entity_fields(self, entity):
        return [
            EntityField("accountid", "UniqueidentifierType", is_primary_id=True),
            EntityField("name", "StringType"),
        ]


def test_init_config_writes_default_config(tmp_path, monkeypatch):
    monkeypatch.setattr(cli, "create_client", lambda role, args: StubFieldClient())
    output = tmp_path / "config.json"

    code = cli.main(["init-config", "--entity", "account", "--operations", "create", "update",
                     "--output", str(output)])

    assert code == 0
    saved = json.loads(output.read_text())
    assert saved["operations"] == ["create", "update"]
    assert [m["is_enabled"] for m in saved["field_mappings"]] == [False, True]


def test_create_client_reads_environment(monkeypatch):
    monkeypatch.setenv("RECORD_MIGRATOR_TARGET_URL", "https://dst.example.com")
    monkeypatch.setenv("RECORD_MIGRATOR_TARGET_TOKEN", "secret")
    args = cli.build_parser().parse_args(["automap"])

    client = cli.create_client("target", args)

    assert client.api_url == "https://dst.example.com/api/data/v9.2"
    assert client.environment == "secondary"


def test_progress_printer_reports_batches_and_failures():
    stream = io.StringIO()
    printer = cli.ProgressPrinter(stream)
    ok = MigrationRecord("A-1", "Alpha", status=RecordStatus.SUCCESS)
    failed = MigrationRecord("A-2", "Beta", status=RecordStatus.ERROR, error_message="boom")

    printer(MigrationProgress(total=2, current_batch=1, total_batches=1))
    printer(MigrationProgress(total=2, processed=2, records=(ok, failed), current_batch=1, total_batches=1))
    printer(MigrationProgress(total=2, processed=2, records=(ok, failed), current_batch=1, total_batches=1))

    assert stream.getvalue().splitlines() == ["Batch 1/1", "  [error] Beta: boom"]
