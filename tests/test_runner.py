"""Tests for running external commands and whole update cycles."""

import dataclasses
import io
import json
import sys
import textwrap

import pytest

from prompt_history.errors import DirectoryScanFailure, FetchStepFailure, SpawnFailure
from prompt_history.logs import configure_logging
from prompt_history.runner import UpdateRunner, run_command
from prompt_history.state import (
    ERROR_FILE, VERSIONS_FILE, Failure, Success, parse_timestamp, utc_timestamp,
)


def python_command(tmp_path, source):
    script = tmp_path / "cmd.py"
    script.write_text(textwrap.dedent(source), encoding="utf-8")
    return [sys.executable, str(script)]


class TestRunCommand:
    def test_streams_and_captures_both_outputs(self, tmp_path):
        argv = python_command(tmp_path, """
            import sys
            print("to stdout")
            print("to stderr", file=sys.stderr)
        """)
        out, err = io.StringIO(), io.StringIO()

        result = run_command(argv, cwd=tmp_path, stdout_sink=out, stderr_sink=err)

        assert result.returncode == 0
        assert result.stdout == "to stdout\n"
        assert result.stderr == "to stderr\n"
        assert out.getvalue() == "to stdout\n"
        assert err.getvalue() == "to stderr\n"

    def test_large_output_on_both_pipes(self, tmp_path):
        argv = python_command(tmp_path, """
            import sys
            for i in range(20000):
                sys.stdout.write("o" * 20 + "\\n")
                sys.stderr.write("e" * 20 + "\\n")
        """)
        result = run_command(argv, stdout_sink=io.StringIO(), stderr_sink=io.StringIO())
        assert len(result.stdout) == 20000 * 21
        assert len(result.stderr) == 20000 * 21

    def test_runs_in_cwd(self, tmp_path):
        argv = python_command(tmp_path, """
            import os
            print(os.getcwd())
        """)
        workdir = tmp_path / "work"
        workdir.mkdir()
        result = run_command(argv, cwd=workdir, stdout_sink=io.StringIO(), stderr_sink=io.StringIO())
        assert result.stdout.strip() == str(workdir.resolve())

    def test_nonzero_exit(self, tmp_path):
        argv = python_command(tmp_path, """
            import sys
            sys.stderr.write("package not found")
            sys.exit(4)
        """)
        with pytest.raises(FetchStepFailure) as excinfo:
            run_command(argv, stdout_sink=io.StringIO(), stderr_sink=io.StringIO())
        assert excinfo.value.returncode == 4
        assert str(excinfo.value) == "Command failed with code 4: package not found"

    def test_multibyte_split_across_chunks(self, tmp_path, monkeypatch):
        monkeypatch.setattr("prompt_history.runner._CHUNK_SIZE", 1)
        argv = python_command(tmp_path, """
            import sys
            sys.stdout.buffer.write("naïve → ✓\\n".encode("utf-8"))
            sys.stderr.buffer.write("Grüße 日本\\n".encode("utf-8"))
        """)
        out, err = io.StringIO(), io.StringIO()

        result = run_command(argv, stdout_sink=out, stderr_sink=err)

        assert result.stdout == "naïve → ✓\n"
        assert result.stderr == "Grüße 日本\n"
        assert out.getvalue() == "naïve → ✓\n"
        assert "\ufffd" not in result.stdout + result.stderr

    def test_missing_executable(self, tmp_path):
        with pytest.raises(SpawnFailure) as excinfo:
            run_command([str(tmp_path / "no-such-tool")])
        assert "no-such-tool" in excinfo.value.message


def make_runner(config):
    return UpdateRunner(config, stdout_sink=io.StringIO(), stderr_sink=io.StringIO())


class TestUpdateCycle:
    def test_success(self, data_dir, make_config, good_fetch):
        start = utc_timestamp()
        outcome = make_runner(make_config(good_fetch)).run_cycle()

        assert isinstance(outcome, Success)
        assert outcome.catalog.versions == ["1.0.0", "1.0.1", "1.0.2", "1.0.67"]
        assert not (data_dir / ERROR_FILE).exists()
        published = json.loads((data_dir / VERSIONS_FILE).read_text())
        assert [r["version"] for r in published["versions"]] == ["1.0.0", "1.0.1", "1.0.2", "1.0.67"]
        assert parse_timestamp(published["lastUpdated"]) > parse_timestamp(start)

    def test_creates_data_dir(self, data_dir, make_config, good_fetch):
        assert not data_dir.exists()
        make_runner(make_config(good_fetch)).run_cycle()
        assert data_dir.is_dir()

    def test_passes_version_range(self, data_dir, make_config, good_fetch):
        runner = make_runner(make_config(good_fetch, from_version="1.0.1"))
        runner.run_cycle()
        assert "from 1.0.1 to --latest" in runner.stdout_sink.getvalue()
        assert "rate limited" in runner.stderr_sink.getvalue()

    def test_failure_keeps_previous_catalog(self, data_dir, make_config, good_fetch, bad_fetch):
        make_runner(make_config(good_fetch)).run_cycle()
        before = (data_dir / VERSIONS_FILE).read_bytes()

        outcome = make_runner(make_config(bad_fetch)).run_cycle()

        assert isinstance(outcome, Failure)
        assert (data_dir / VERSIONS_FILE).read_bytes() == before
        error = json.loads((data_dir / ERROR_FILE).read_text())
        assert error["error"] == "Command failed with code 3: registry unreachable\n"
        assert error["timestamp"]

    def test_failure_without_previous_catalog(self, data_dir, make_config, bad_fetch):
        make_runner(make_config(bad_fetch)).run_cycle()
        assert (data_dir / ERROR_FILE).exists()
        assert not (data_dir / VERSIONS_FILE).exists()

    def test_recovers_after_failure(self, data_dir, make_config, good_fetch, bad_fetch):
        make_runner(make_config(bad_fetch)).run_cycle()
        assert (data_dir / ERROR_FILE).exists()

        outcome = make_runner(make_config(good_fetch)).run_cycle()

        assert isinstance(outcome, Success)
        assert not (data_dir / ERROR_FILE).exists()
        assert (data_dir / VERSIONS_FILE).exists()

    def test_spawn_failure_recorded(self, data_dir, make_config, tmp_path):
        outcome = make_runner(make_config((str(tmp_path / "missing-fetcher"),))).run_cycle()

        assert isinstance(outcome, Failure)
        error = json.loads((data_dir / ERROR_FILE).read_text())
        assert error["error"].startswith("Failed to start")

    def test_prepare_failure_skips_fetch(self, data_dir, make_config, good_fetch, bad_fetch):
        config = dataclasses.replace(make_config(good_fetch), prepare_commands=(bad_fetch,))
        outcome = make_runner(config).run_cycle()

        assert isinstance(outcome, Failure)
        assert not list(data_dir.glob("prompts-*.md"))

    def test_scan_failure_recorded(self, data_dir, make_config, good_fetch, monkeypatch):
        def broken_scan(path):
            raise DirectoryScanFailure(f"Cannot read data directory {path}: Permission denied")

        monkeypatch.setattr("prompt_history.runner.scan_versions", broken_scan)
        outcome = make_runner(make_config(good_fetch)).run_cycle()

        assert isinstance(outcome, Failure)
        assert "Permission denied" in outcome.error.error
        assert not (data_dir / VERSIONS_FILE).exists()

    def test_logs_steps_to_file(self, data_dir, make_config, good_fetch):
        configure_logging(data_dir)
        make_runner(make_config(good_fetch)).run_cycle()

        log = (data_dir / "logs.txt").read_text()
        assert "Starting update process..." in log
        assert "Fetching prompts from 1.0.0 to latest..." in log
        assert "Found 4 versions: 1.0.0, 1.0.1, 1.0.2, 1.0.67" in log
        assert "Update completed successfully. Found 4 versions." in log

    def test_logs_before_and_after_each_step(self, data_dir, make_config, good_fetch):
        prepare = (sys.executable, "-c", "pass")
        config = dataclasses.replace(make_config(good_fetch), prepare_commands=(prepare,))
        configure_logging(data_dir)
        make_runner(config).run_cycle()

        messages = [line.split("] ", 1)[1] for line in (data_dir / "logs.txt").read_text().splitlines()]
        command = " ".join(prepare)
        assert messages.index(f"Running {command}...") < messages.index(f"Finished {command}.")
        assert messages.index(f"Finished {command}.") < messages.index("Fetching prompts from 1.0.0 to latest...")
        assert messages.index("Fetching prompts from 1.0.0 to latest...") < messages.index("Fetch completed.")
        assert messages.index("Fetch completed.") < messages.index("Update completed successfully. Found 4 versions.")
