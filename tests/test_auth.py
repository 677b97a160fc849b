"""test suite for launching claude's login flow."""
import subprocess
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from claude_switch.domain.errors import ExternalToolError
from claude_switch.profiles.auth import AuthenticationError, run_login


class TestRunLogin:
    def test_runs_login_subcommand(self):
        with patch("claude_switch.profiles.auth.subprocess.run") as run:
            run.return_value = subprocess.CompletedProcess(args=[], returncode=0)
            run_login("/opt/bin/claude")

        run.assert_called_once_with(["/opt/bin/claude", "/login"])

    def test_nonzero_exit(self):
        with patch("claude_switch.profiles.auth.subprocess.run") as run:
            run.return_value = subprocess.CompletedProcess(args=[], returncode=2)
            with pytest.raises(AuthenticationError) as exc_info:
                run_login("claude")

        assert "status 2" in str(exc_info.value)
        assert "claude-switch use <profile>" in str(exc_info.value)

    def test_missing_executable(self):
        with patch("claude_switch.profiles.auth.subprocess.run", side_effect=FileNotFoundError("nope")):
            with pytest.raises(AuthenticationError, match="failed to launch"):
                run_login("not-claude")

    def test_is_external_tool_error(self):
        assert issubclass(AuthenticationError, ExternalToolError)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
