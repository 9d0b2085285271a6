"""
Tests for the command-line interface.
"""

import json

import yaml
from click.testing import CliRunner

from tidb_monitor.cli import cli


def test_render_to_stdout():
    runner = CliRunner()
    result = runner.invoke(cli, ["render", "-n", "ns1", "--target-regex", "myapp.*"])

    assert result.exit_code == 0, result.output
    config = yaml.safe_load(result.stdout)
    assert [job["job_name"] for job in config["scrape_configs"]] == ["tidb-cluster"]
    assert config["scrape_configs"][0]["kubernetes_sd_configs"][0]["namespaces"]["names"] == ["ns1"]
    assert "alerting" not in config


def test_render_tls_with_alerting_to_file(tmp_path):
    output = tmp_path / "out" / "prometheus.yml"
    runner = CliRunner()
    result = runner.invoke(cli, [
        "render",
        "-n", "ns1", "-n", "ns2",
        "--target-regex", "myapp.*",
        "--tls",
        "--alertmanager-url", "alertmgr:9093",
        "--output", str(output),
    ])

    assert result.exit_code == 0, result.output
    config = yaml.safe_load(output.read_text(encoding="utf-8"))
    assert len(config["scrape_configs"]) == 2
    assert config["scrape_configs"][0]["scheme"] == "https"
    assert config["alerting"]["alertmanagers"][0]["static_configs"][0]["targets"] == ["alertmgr:9093"]


def test_render_from_parameter_file(tmp_path):
    params = tmp_path / "monitor.yaml"
    params.write_text(
        yaml.safe_dump({"namespaces": ["from-file"], "enable_tls": True}),
        encoding="utf-8",
    )
    runner = CliRunner()
    result = runner.invoke(cli, ["-c", str(params), "render", "--no-tls"])

    assert result.exit_code == 0, result.output
    config = yaml.safe_load(result.stdout)
    assert len(config["scrape_configs"]) == 1
    assert config["scrape_configs"][0]["kubernetes_sd_configs"][0]["namespaces"]["names"] == ["from-file"]


def test_render_invalid_regex_fails():
    runner = CliRunner()
    result = runner.invoke(cli, ["render", "--target-regex", "(unclosed"])

    assert result.exit_code == 1
    assert "Invalid parameters" in result.output


def test_render_invalid_parameter_file_fails(tmp_path):
    params = tmp_path / "monitor.yaml"
    params.write_text("enable_tls: maybe-later\n", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(cli, ["-c", str(params), "render"])

    assert result.exit_code == 1
    assert "enable_tls" in result.output


def test_dashboard():
    runner = CliRunner()
    result = runner.invoke(cli, ["dashboard"])

    assert result.exit_code == 0, result.output
    document = json.loads(result.stdout)
    assert document["providers"][0]["options"]["path"] == "/grafana-dashboard-definitions/tidb"


def test_info():
    runner = CliRunner()
    result = runner.invoke(cli, ["info"])

    assert result.exit_code == 0, result.output
    assert "tidb-cluster-tikv" in result.output


def test_render_non_utf8_parameter_file_fails(tmp_path):
    params = tmp_path / "monitor.yaml"
    params.write_bytes(b"target_regex: \xff\xfe\n")
    runner = CliRunner()
    result = runner.invoke(cli, ["-c", str(params), "render"])

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "Invalid parameters" in result.output
