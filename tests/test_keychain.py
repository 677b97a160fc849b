"""test suite for the macOS keychain wrapper."""
import json
import subprocess
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from claude_switch.claude.keychain import Keychain
from claude_switch.domain.errors import ExternalToolError


def completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class TestForPlatform:
    def test_none_off_macos(self):
        with patch("claude_switch.claude.keychain.sys.platform", "linux"):
            assert Keychain.for_platform({"USER": "me"}) is None

    def test_macos(self):
        with patch("claude_switch.claude.keychain.sys.platform", "darwin"):
            keychain = Keychain.for_platform({"USER": "me"})
        assert keychain is not None
        assert keychain.account == "me"

    def test_macos_without_user(self):
        with patch("claude_switch.claude.keychain.sys.platform", "darwin"):
            assert Keychain.for_platform({}) is None


class TestKeychain:
    @pytest.fixture
    def keychain(self):
        return Keychain("me")

    def test_read_oauth(self, keychain):
        doc = {"claudeAiOauth": {"accessToken": "a"}, "mcpOAuth": {}}
        with patch("claude_switch.claude.keychain.subprocess.run", return_value=completed(stdout=json.dumps(doc) + "\n")) as run:
            assert keychain.read_oauth() == {"accessToken": "a"}

        argv = run.call_args[0][0]
        assert argv[:2] == ["security", "find-generic-password"]
        assert "Claude Code-credentials" in argv

    def test_read_missing_entry(self, keychain):
        with patch("claude_switch.claude.keychain.subprocess.run", return_value=completed(returncode=44)):
            assert keychain.read_oauth() is None

    def test_read_without_security_binary(self, keychain):
        with patch("claude_switch.claude.keychain.subprocess.run", side_effect=FileNotFoundError):
            assert keychain.read_oauth() is None

    def test_write_preserves_other_keys(self, keychain):
        existing = {"claudeAiOauth": {"accessToken": "old"}, "mcpOAuth": {"x": 1}}
        with patch(
            "claude_switch.claude.keychain.subprocess.run",
            side_effect=[completed(stdout=json.dumps(existing)), completed()],
        ) as run:
            keychain.write_oauth({"accessToken": "new"})

        argv = run.call_args_list[1][0][0]
        assert argv[:3] == ["security", "add-generic-password", "-U"]
        written = json.loads(argv[argv.index("-w") + 1])
        assert written == {"claudeAiOauth": {"accessToken": "new"}, "mcpOAuth": {"x": 1}}

    def test_write_failure(self, keychain):
        with patch(
            "claude_switch.claude.keychain.subprocess.run",
            side_effect=[completed(returncode=44), completed(returncode=1, stderr="denied")],
        ):
            with pytest.raises(ExternalToolError, match="denied"):
                keychain.write_oauth({"accessToken": "new"})


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
