"""
Integration tests for the CLI interface.

Help text and argument validation run the real entry point in a subprocess;
handler tests call main() in-process with the browser side mocked out.
"""

import json
import subprocess
import sys
import pytest
from pathlib import Path
from unittest.mock import AsyncMock, patch

from devtools_sniffer.cli.main import main
from devtools_sniffer.config import Configuration
from devtools_sniffer.exceptions import CDPTargetNotFoundError, TriggerTimeoutError
from devtools_sniffer.session import Target


def run_cli(*args):
    """
    Helper to run CLI command and capture output.

    Returns:
        Tuple of (returncode, stdout, stderr)
    """
    cmd = [sys.executable, "-m", "devtools_sniffer.cli.main"] + list(args)
    result = subprocess.run(
        cmd,
        capture_output=True,
        text=True,
    )
    return result.returncode, result.stdout, result.stderr


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Keep ~/.snifferrc and SNIFFER_* variables out of in-process runs."""
    monkeypatch.setenv("HOME", str(tmp_path))
    for name in Configuration.ENV_MAPPINGS:
        monkeypatch.delenv(name, raising=False)
    return tmp_path


class TestCLIHelpText:

    def test_main_help(self):
        returncode, stdout, stderr = run_cli("--help")

        assert returncode == 0
        assert "capture its report" in stdout
        assert "run" in stdout
        assert "targets" in stdout

    def test_run_help(self):
        returncode, stdout, stderr = run_cli("run", "--help")

        assert returncode == 0
        assert "url" in stdout
        assert "--output" in stdout
        assert "--attach" in stdout
        assert "--arm-first" in stdout
        assert "--max-attempts" in stdout
        assert "--trigger-deadline" in stdout

    def test_targets_help(self):
        returncode, stdout, stderr = run_cli("targets", "--help")

        assert returncode == 0
        assert "--type" in stdout
        assert "--inspector" in stdout


class TestCLIArgumentValidation:

    def test_no_subcommand(self):
        returncode, stdout, stderr = run_cli()

        assert returncode != 0
        assert "required" in stderr.lower()

    def test_run_missing_url(self):
        returncode, stdout, stderr = run_cli("run")

        assert returncode != 0
        assert "url" in stderr.lower()

    def test_quiet_verbose_mutual_exclusion(self):
        returncode, stdout, stderr = run_cli("targets", "--quiet", "--verbose")

        assert returncode != 0
        assert "not allowed with argument" in stderr

    def test_max_attempts_must_be_positive(self):
        returncode, stdout, stderr = run_cli("run", "https://example.com", "--max-attempts", "0")

        assert returncode != 0
        assert "must be >= 1" in stderr


class TestRunCommand:

    def test_success_prints_report_path(self, isolated_config, capsys):
        output = isolated_config / "out" / "lhr.json"

        with patch("devtools_sniffer.cli.run_cmd.AuditRunner") as runner_cls:
            runner_cls.return_value.run = AsyncMock(return_value=output)
            returncode = main(["run", "https://example.com", "--output", str(output)])

        assert returncode == 0
        assert capsys.readouterr().out.strip() == str(output)
        runner_cls.return_value.run.assert_awaited_once_with("https://example.com")

    def test_flags_reach_configuration(self, isolated_config):
        with patch("devtools_sniffer.cli.run_cmd.AuditRunner") as runner_cls:
            runner_cls.return_value.run = AsyncMock(return_value=Path("lhr.json"))
            main([
                "run", "https://example.com",
                "--attach", "--chrome-port", "9333",
                "--arm-first", "--max-attempts", "5", "--trigger-deadline", "30",
                "--method", "_renderReport", "--inspector-index", "0",
            ])

        config = runner_cls.call_args[0][0]
        assert config.launch is False
        assert config.chrome_port == 9333
        assert config.arm_first is True
        assert config.max_attempts == 5
        assert config.trigger_deadline == 30.0
        assert config.method_name == "_renderReport"
        assert config.inspector_index == 0
        assert not hasattr(config, "headless")

    def test_json_format(self, isolated_config, capsys):
        with patch("devtools_sniffer.cli.run_cmd.AuditRunner") as runner_cls:
            runner_cls.return_value.run = AsyncMock(return_value=Path("latest-run/lhr.json"))
            returncode = main(["run", "https://example.com", "--format", "json"])

        assert returncode == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload == {"url": "https://example.com", "report": "latest-run/lhr.json"}

    def test_fatal_error_exit_code(self, isolated_config, capsys):
        error = CDPTargetNotFoundError(
            "No inspector found",
            url_pattern="devtools",
            details={"recovery": "Open DevTools for the page"},
        )
        with patch("devtools_sniffer.cli.run_cmd.AuditRunner") as runner_cls:
            runner_cls.return_value.run = AsyncMock(side_effect=error)
            returncode = main(["run", "https://example.com"])

        stderr = capsys.readouterr().err
        assert returncode == 1
        assert "Error: CDPTargetNotFoundError: No target matching URL pattern: devtools" in stderr
        assert "Recovery hint: Open DevTools for the page" in stderr

    def test_verbose_reraises(self, isolated_config):
        with patch("devtools_sniffer.cli.run_cmd.AuditRunner") as runner_cls:
            runner_cls.return_value.run = AsyncMock(
                side_effect=TriggerTimeoutError("Start control never became ready", attempts=3)
            )
            with pytest.raises(TriggerTimeoutError):
                main(["run", "https://example.com", "--verbose"])

    def test_invalid_receiver_exit_code(self, isolated_config, capsys):
        with patch("devtools_sniffer.cli.run_cmd.AuditRunner") as runner_cls:
            runner_cls.return_value.run = AsyncMock(
                side_effect=ValueError("Invalid remote object path: 'UI[0]'")
            )
            returncode = main(["run", "https://example.com", "--receiver", "UI[0]"])

        assert returncode == 2
        assert "Invalid remote object path" in capsys.readouterr().err


class TestTargetsCommand:

    TARGETS = [
        Target({"id": "A", "type": "other", "url": "devtools://devtools/bundled/devtools_app.html"}),
        Target({"id": "B", "type": "other", "url": "devtools://devtools/bundled/devtools_app.html"}),
    ]

    def test_text_output_is_indexed(self, isolated_config, capsys):
        with patch("devtools_sniffer.cli.targets_cmd.CDPSession") as session_cls:
            session_cls.return_value.list_targets.return_value = self.TARGETS
            returncode = main(["targets", "--inspector"])

        lines = capsys.readouterr().out.strip().splitlines()
        assert returncode == 0
        assert lines[0].split("\t")[:2] == ["0", "A"]
        assert lines[1].split("\t")[:2] == ["1", "B"]
        session_cls.return_value.list_targets.assert_called_once_with(
            target_type=None, url_pattern="devtools"
        )

    def test_json_output(self, isolated_config, capsys):
        with patch("devtools_sniffer.cli.targets_cmd.CDPSession") as session_cls:
            session_cls.return_value.list_targets.return_value = self.TARGETS[:1]
            returncode = main(["targets", "--type", "other", "--format", "json"])

        assert returncode == 0
        assert json.loads(capsys.readouterr().out)[0]["id"] == "A"

    @pytest.mark.integration
    def test_unreachable_browser(self, isolated_config):
        """Nothing listens on port 1, so the endpoint request fails."""
        returncode, stdout, stderr = run_cli("targets", "--chrome-port", "1")

        assert returncode == 1
        assert "Failed to connect to Chrome" in stderr


class TestRunLaunchOptions:

    def test_no_headless_flag(self):
        """Headless Chrome opens no inspector, so run does not offer it."""
        returncode, stdout, stderr = run_cli("run", "https://example.com", "--headless")

        assert returncode != 0
        assert "unrecognized arguments: --headless" in stderr
