import json

from click.testing import CliRunner

import hostspecializer.cli as cli_module
from hostspecializer.models import SpecializationStatus


def write_context(tmp_path, **overrides):
    payload = {"site_id": 1, "site_name": "orders", "environment": {"HS_CLI_SETTING": "applied"}}
    payload.update(overrides)
    context_file = tmp_path / "context.json"
    context_file.write_text(json.dumps(payload), encoding="utf-8")
    return context_file


class FakeHostEnvironment:
    def wait_until_ready(self, timeout=None):
        return True


class FakeMetrics:
    def __init__(self):
        self.written = []

    def write(self, report_file, extra=None):
        self.written.append((report_file, extra))


def fake_coordinator_class(captured, validation_error=None, accepted=True, status=SpecializationStatus.SUCCEEDED):
    class FakeCoordinator:
        def __init__(self, host_environment, settings):
            captured["settings"] = settings
            captured["instance"] = self
            self.host_environment = FakeHostEnvironment()
            self.metrics = FakeMetrics()
            self.status = status
            self.started = []

        def validate_context(self, context):
            captured["validated"] = context
            return validation_error

        def specialize_sidecar(self, context):
            return None

        def start_assignment(self, context):
            self.started.append(context)
            return accepted

        def wait(self, timeout=None):
            return True

        def get_instance_info(self):
            return {"HOST_SPECIALIZER_VERSION": "0.1.0"}

    return FakeCoordinator


def test_cli_uses_config_and_allows_cli_override(tmp_path, monkeypatch):
    config_file = tmp_path / ".hostspecializer.yml"
    config_file.write_text(
        "script_root: /srv/config\n" "temp_dir: /srv/tmp\n" "download_retries: 4\n",
        encoding="utf-8",
    )
    context_file = write_context(tmp_path)
    captured = {}
    monkeypatch.setattr(cli_module, "SpecializationCoordinator", fake_coordinator_class(captured))

    result = CliRunner().invoke(
        cli_module.main,
        ["--config", str(config_file), "--script-root", "/srv/cli", "assign", "--context", str(context_file)],
    )

    assert result.exit_code == 0, result.output
    settings = captured["settings"]
    assert settings.script_root == "/srv/cli"
    assert settings.temp_dir == "/srv/tmp"
    assert settings.download_retries == 4
    assert captured["instance"].started[0].site_name == "orders"


def test_cli_uses_default_config_file_when_present(tmp_path, monkeypatch):
    (tmp_path / ".hostspecializer.yml").write_text("command_timeout: 12\n", encoding="utf-8")
    context_file = write_context(tmp_path)
    captured = {}
    monkeypatch.setattr(cli_module, "SpecializationCoordinator", fake_coordinator_class(captured))
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(cli_module.main, ["validate", "--context", str(context_file)])

    assert result.exit_code == 0, result.output
    assert captured["settings"].command_timeout == 12
    assert "valid" in result.output


def test_validate_reports_error(tmp_path, monkeypatch):
    context_file = write_context(tmp_path, package_url="https://example.com/app.zip")
    captured = {}
    monkeypatch.setattr(
        cli_module,
        "SpecializationCoordinator",
        fake_coordinator_class(captured, validation_error="Invalid zip url specified (StatusCode: 404)"),
    )

    result = CliRunner().invoke(cli_module.main, ["validate", "--context", str(context_file)])

    assert result.exit_code == 1
    assert "StatusCode: 404" in result.output


def test_assign_stops_when_validation_fails(tmp_path, monkeypatch):
    context_file = write_context(tmp_path)
    captured = {}
    monkeypatch.setattr(
        cli_module,
        "SpecializationCoordinator",
        fake_coordinator_class(captured, validation_error="Invalid zip url specified (StatusCode: None)"),
    )

    result = CliRunner().invoke(cli_module.main, ["assign", "--context", str(context_file)])

    assert result.exit_code == 1
    assert captured["instance"].started == []


def test_assign_skip_validation_and_report(tmp_path, monkeypatch):
    context_file = write_context(tmp_path)
    captured = {}
    monkeypatch.setattr(
        cli_module,
        "SpecializationCoordinator",
        fake_coordinator_class(captured, validation_error="unreachable"),
    )
    report_file = tmp_path / "report.json"

    result = CliRunner().invoke(
        cli_module.main,
        ["assign", "--context", str(context_file), "--skip-validation", "--report-file", str(report_file)],
    )

    assert result.exit_code == 0, result.output
    assert "validated" not in captured
    assert captured["instance"].metrics.written == [(str(report_file), {"site_id": 1, "status": "succeeded"})]


def test_assign_rejected(tmp_path, monkeypatch):
    context_file = write_context(tmp_path)
    monkeypatch.setattr(cli_module, "SpecializationCoordinator", fake_coordinator_class({}, accepted=False))

    result = CliRunner().invoke(cli_module.main, ["assign", "--context", str(context_file)])

    assert result.exit_code == 1
    assert "rejected" in result.output


def test_assign_exits_non_zero_when_degraded(tmp_path, monkeypatch):
    context_file = write_context(tmp_path)
    monkeypatch.setattr(
        cli_module,
        "SpecializationCoordinator",
        fake_coordinator_class({}, status=SpecializationStatus.DEGRADED),
    )

    result = CliRunner().invoke(cli_module.main, ["assign", "--context", str(context_file)])

    assert result.exit_code == 1
    assert "degraded" in result.output


def test_assign_end_to_end_without_package(tmp_path, monkeypatch):
    monkeypatch.setenv("HS_CLI_SETTING", "original")
    context_file = write_context(tmp_path)
    report_file = tmp_path / "report.json"

    result = CliRunner().invoke(
        cli_module.main,
        [
            "--script-root",
            str(tmp_path / "wwwroot"),
            "--temp-dir",
            str(tmp_path / "tmp"),
            "assign",
            "--context",
            str(context_file),
            "--report-file",
            str(report_file),
            "--wait-timeout",
            "5",
        ],
    )

    assert result.exit_code == 0, result.output
    assert json.loads(report_file.read_text(encoding="utf-8"))["status"] == "succeeded"


def test_missing_context_file(tmp_path):
    result = CliRunner().invoke(cli_module.main, ["validate", "--context", str(tmp_path / "missing.json")])

    assert result.exit_code == 1
    assert "Assignment context file not found" in result.output


def test_info_prints_instance_info(monkeypatch):
    monkeypatch.setattr(cli_module, "SpecializationCoordinator", fake_coordinator_class({}))

    result = CliRunner().invoke(cli_module.main, ["info"])

    assert result.exit_code == 0
    assert "HOST_SPECIALIZER_VERSION=0.1.0" in result.output
