import json
from pathlib import Path

import pytest

from secscan import cli

SAMPLES = Path(__file__).resolve().parents[1] / "samples"


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    for name in (
        "SECSCAN_CONFIG",
        "SECSCAN_HISTORY_PATH",
        "SECSCAN_POLICY_PATH",
        "SECSCAN_MAX_HISTORY",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "secscan.yaml"
    path.write_text(
        f"history_path: {tmp_path / 'history.jsonl'}\npolicy_path: {tmp_path / 'policy.yaml'}\n",
        encoding="utf-8",
    )
    return path


def test_cli_generates_json_report_for_vulnerable_code(tmp_path, capsys):
    output_path = tmp_path / "scan.json"

    exit_code = cli.main(["--out", str(output_path), "code", str(SAMPLES / "vulnerable" / "app.js")])

    captured = capsys.readouterr()
    assert "Scan Summary" in captured.out
    assert "Policy check failed" in captured.err
    assert exit_code == 2
    data = json.loads(output_path.read_text(encoding="utf-8"))
    assert data["severityCounts"]["critical"] >= 1
    assert data["policyPassed"] is False
    assert data["kind"] == "code"


def test_cli_passes_on_clean_code(tmp_path, capsys):
    output_path = tmp_path / "clean.json"

    exit_code = cli.main(["--out", str(output_path), "code", str(SAMPLES / "safe")])

    captured = capsys.readouterr()
    assert "Scan Summary" in captured.out
    assert exit_code == 0
    data = json.loads(output_path.read_text(encoding="utf-8"))
    assert data["severityCounts"]["total"] == 0
    assert data["policyPassed"] is True


def test_cli_directory_scan_writes_one_result_per_file(tmp_path):
    output_path = tmp_path / "scan.json"

    cli.main(["--out", str(output_path), "code", str(SAMPLES / "vulnerable")])

    data = json.loads(output_path.read_text(encoding="utf-8"))
    assert isinstance(data, list)
    assert sorted(Path(item["name"].split(": ", 1)[1]).name for item in data) == ["app.js", "app.py"]


def test_cli_policy_without_blocking_exits_zero(config_path, capsys):
    assert cli.main(["--config", str(config_path), "policy", "set", "--no-block"]) == 0
    shown = json.loads(capsys.readouterr().out)
    assert shown["blockOnFailure"] is False

    exit_code = cli.main(["--config", str(config_path), "code", str(SAMPLES / "vulnerable" / "app.js")])

    assert exit_code == 0


def test_cli_policy_set_show_and_reset(config_path, capsys):
    cli.main(["--config", str(config_path), "policy", "set", "--fail-on", "high", "--max-high", "0"])
    capsys.readouterr()

    cli.main(["--config", str(config_path), "policy", "show"])
    shown = json.loads(capsys.readouterr().out)
    assert shown["failOnSeverity"] == "high"
    assert shown["maxHigh"] == 0
    assert shown["maxLow"] == 50

    cli.main(["--config", str(config_path), "policy", "reset"])
    reset = json.loads(capsys.readouterr().out)
    assert reset["failOnSeverity"] == "critical"


def test_cli_rejects_invalid_policy(config_path, capsys):
    exit_code = cli.main(["--config", str(config_path), "policy", "set", "--max-high", "-3"])

    assert exit_code == 1
    assert "error:" in capsys.readouterr().err


def test_cli_history_records_scans(config_path, capsys):
    cli.main(["--config", str(config_path), "code", str(SAMPLES / "safe" / "app.py")])
    cli.main(["--config", str(config_path), "dynamic", "--html", str(SAMPLES / "vulnerable" / "index.html")])
    capsys.readouterr()

    cli.main(["--config", str(config_path), "history", "--stats"])
    stats = json.loads(capsys.readouterr().out)
    assert stats["totalScans"] == 2
    assert stats["scansByKind"] == {"code": 1, "dynamic": 1}

    cli.main(["--config", str(config_path), "history", "--limit", "1"])
    lines = capsys.readouterr().out.strip().splitlines()
    assert len(lines) == 1
    assert "dynamic" in lines[0]

    cli.main(["--config", str(config_path), "history", "--clear"])
    capsys.readouterr()
    cli.main(["--config", str(config_path), "history", "--stats"])
    assert json.loads(capsys.readouterr().out)["totalScans"] == 0


def test_cli_reports_manifest_parse_errors_without_network(tmp_path, capsys):
    manifest = tmp_path / "package.json"
    manifest.write_text("{not json", encoding="utf-8")
    output_path = tmp_path / "deps.json"

    exit_code = cli.main(["--out", str(output_path), "deps", str(manifest)])

    assert exit_code == 0
    data = json.loads(output_path.read_text(encoding="utf-8"))
    assert [finding["ruleId"] for finding in data["findings"]] == ["parse_error"]
    assert data["findings"][0]["severity"] == "INFO"


def test_cli_missing_paths_are_errors(tmp_path, capsys):
    assert cli.main(["code", str(tmp_path / "nowhere")]) == 1
    assert cli.main(["deps", str(tmp_path / "package.json")]) == 1
    assert cli.main(["dynamic", "--html", str(tmp_path / "page.html")]) == 1
    assert "error:" in capsys.readouterr().err


def test_cli_custom_rules_bundle(tmp_path):
    source = tmp_path / "widget.js"
    source.write_text("debugger;\n", encoding="utf-8")
    rules = tmp_path / "rules.yaml"
    rules.write_text(
        "javascript:\n  - id: CUST-DBG\n    name: debugger\n    severity: high\n    pattern: debugger\n",
        encoding="utf-8",
    )
    output_path = tmp_path / "scan.json"

    cli.main(["--out", str(output_path), "code", str(source), "--rules", str(rules)])

    data = json.loads(output_path.read_text(encoding="utf-8"))
    assert [finding["ruleId"] for finding in data["findings"]] == ["CUST-DBG"]
