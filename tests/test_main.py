"""CLI tests via click's CliRunner."""

import json
import os
import signal
import tempfile

from click.testing import CliRunner

from promjsonl import __version__
from promjsonl.main import cli

PAYLOAD = """\
# TYPE temperature_celsius gauge
temperature_celsius{room="lab"} 21.5
# TYPE go_goroutines gauge
go_goroutines 12
"""


def test_version():
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_missing_required_options_exit_1():
    result = CliRunner().invoke(cli, [], env={"METRICS_ENDPOINT": None, "METRICS_FILE": None})
    assert result.exit_code == 1


def test_bad_interval_exit_1():
    with tempfile.TemporaryDirectory() as tmp:
        result = CliRunner().invoke(cli, [
            "--metrics", "localhost:1",
            "--metricsfile", os.path.join(tmp, "m.jsonl"),
            "--metricsinterval", "soon",
        ])
    assert result.exit_code == 1


def test_unwritable_output_dir_exit_1():
    with tempfile.TemporaryDirectory() as tmp:
        blocker = os.path.join(tmp, "file")
        with open(blocker, "w") as f:
            f.write("x")
        result = CliRunner().invoke(cli, [
            "--metrics", "localhost:1",
            "--metricsfile", os.path.join(blocker, "m.jsonl"),
        ])
    assert result.exit_code == 1


def test_preview_prints_filtered_samples(fake_server):
    fake_server.payload = PAYLOAD
    result = CliRunner().invoke(cli, [
        "--metrics", fake_server.url,
        "--metricsfilter", "temp*",
        "preview",
    ])
    assert result.exit_code == 0, result.output
    assert "temperature_celsius" in result.output
    assert "go_goroutines" not in result.output
    assert "1 samples from 2 families" in result.output


def test_preview_reads_endpoint_from_env(fake_server):
    fake_server.payload = PAYLOAD
    result = CliRunner().invoke(cli, ["preview"], env={"METRICS_ENDPOINT": fake_server.url})
    assert result.exit_code == 0, result.output
    assert "go_goroutines" in result.output


def test_preview_endpoint_error_exit_1(fake_server):
    fake_server.status = 404
    result = CliRunner().invoke(cli, ["--metrics", fake_server.url, "preview"])
    assert result.exit_code == 1


def test_export_command_flags_override_env(fake_server, monkeypatch):
    from promjsonl.collector.http_collector import HTTPCollector
    from promjsonl.exporter import JSONLExporter

    fake_server.payload = PAYLOAD
    stops = []
    closed = []

    def run_two_cycles(self, stop):
        self.export_once()
        self.export_once()
        stop.set()
        stops.append(stop)

    original_close = HTTPCollector.close

    def recording_close(self):
        closed.append(self.url)
        original_close(self)

    monkeypatch.setattr(JSONLExporter, "run", run_two_cycles)
    monkeypatch.setattr(HTTPCollector, "close", recording_close)

    saved_handlers = {s: signal.getsignal(s) for s in (signal.SIGINT, signal.SIGTERM)}
    try:
        with tempfile.TemporaryDirectory() as tmp:
            flag_path = os.path.join(tmp, "flag", "metrics.jsonl")
            env_path = os.path.join(tmp, "env", "metrics.jsonl")
            result = CliRunner().invoke(
                cli,
                ["--metrics", fake_server.url, "--metricsfile", flag_path, "--metricscompress"],
                env={"METRICS_FILE": env_path, "METRICS_COMPRESS": "false"},
            )
            assert result.exit_code == 0, result.output

            with open(flag_path, encoding="utf-8") as f:
                lines = [json.loads(line) for line in f]
            assert not os.path.exists(env_path)
    finally:
        for s, handler in saved_handlers.items():
            signal.signal(s, handler)

    # Compression came from the flag: the second cycle repeats nothing
    assert [line["name"] for line in lines] == ["temperature_celsius", "go_goroutines"]
    assert len(stops) == 1 and stops[0].is_set()
    assert closed == [fake_server.url + "/metrics"]


def test_export_command_reads_env_when_no_flags(fake_server, monkeypatch):
    from promjsonl.exporter import JSONLExporter

    fake_server.payload = PAYLOAD

    def run_two_cycles(self, stop):
        self.export_once()
        self.export_once()

    monkeypatch.setattr(JSONLExporter, "run", run_two_cycles)

    saved_handlers = {s: signal.getsignal(s) for s in (signal.SIGINT, signal.SIGTERM)}
    try:
        with tempfile.TemporaryDirectory() as tmp:
            env_path = os.path.join(tmp, "metrics.jsonl")
            result = CliRunner().invoke(cli, [], env={
                "METRICS_ENDPOINT": fake_server.url,
                "METRICS_FILE": env_path,
                "METRICS_FILTER": "go_*",
                "METRICS_COMPRESS": "false",
            })
            assert result.exit_code == 0, result.output

            with open(env_path, encoding="utf-8") as f:
                names = [json.loads(line)["name"] for line in f]
    finally:
        for s, handler in saved_handlers.items():
            signal.signal(s, handler)

    assert names == ["go_goroutines", "go_goroutines"]
