"""test suite for the command-line glue."""
import json
import sys
from pathlib import Path

import pytest
from typer.testing import CliRunner

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from claude_switch.cli.main import app, format_expiry
from claude_switch.config import Paths
from claude_switch.profiles.models import ActiveState, ApiKeyProfile, OAuthCredentials, OAuthProfile
from claude_switch.profiles.store import ProfileStore, StateStore

runner = CliRunner()


class ExecCalled(Exception):
    pass


@pytest.fixture
def paths(tmp_path, monkeypatch):
    home = tmp_path / "home"
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    monkeypatch.delenv("CLAUDE_CONFIG_DIR", raising=False)
    monkeypatch.delenv("CLAUDE_SWITCH_CLAUDE_BIN", raising=False)
    monkeypatch.setattr("claude_switch.claude.keychain.sys.platform", "linux")
    return Paths.from_env()


@pytest.fixture
def store(paths):
    return ProfileStore(paths.profiles_dir)


def oauth_profile() -> OAuthProfile:
    return OAuthProfile(credentials=OAuthCredentials(
        access_token="a",
        refresh_token="r",
        expires_at=4_102_444_800_000,  # 2100-01-01
        scopes=[],
    ))


class TestFormatExpiry:
    def test_none(self):
        assert format_expiry(None) == "-"

    def test_timestamp(self):
        assert format_expiry(4_102_444_800_000) == "2100-01-01 00:00 UTC"

    def test_out_of_range(self):
        assert format_expiry(10 ** 20) == "invalid"


class TestCli:
    def test_list_empty(self, paths):
        result = runner.invoke(app, ["list"])
        assert result.exit_code == 0
        assert "No profiles" in result.output

    def test_list_shows_profiles(self, paths, store):
        store.save("work", oauth_profile())
        store.save("ci", ApiKeyProfile(api_key="k"))
        store.path_for("broken").write_text("{")
        StateStore(paths.state_file).save(ActiveState(active_profile="work"))

        result = runner.invoke(app, ["list"])

        assert result.exit_code == 0
        assert "work" in result.output
        assert "ci" in result.output
        assert "broken" in result.output
        assert "error" in result.output
        assert "api_key" in result.output

    def test_remove_missing_profile_fails(self, paths):
        result = runner.invoke(app, ["remove", "ghost"])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_invalid_name_fails(self, paths):
        result = runner.invoke(app, ["use", ".."])
        assert result.exit_code == 1
        assert "invalid profile name" in result.output

    def test_use_api_key(self, paths, store):
        store.save("ci", ApiKeyProfile(api_key="sk-ant-api03-ci"))

        result = runner.invoke(app, ["use", "ci"])

        assert result.exit_code == 0
        assert "ANTHROPIC_API_KEY" in result.output
        assert json.loads(paths.state_file.read_text()) == {"active_profile": "ci"}

    def test_exec_passes_command_through(self, paths, store, monkeypatch):
        store.save("ci", ApiKeyProfile(api_key="sk-ant-api03-ci"))

        def fake_execvpe(file, args, env):
            raise ExecCalled(file, args, env)

        monkeypatch.setattr("claude_switch.profiles.manager.os.execvpe", fake_execvpe)

        result = runner.invoke(app, ["exec", "ci", "--", "mycommand", "--flag", "value"])

        assert isinstance(result.exception, ExecCalled)
        file, args, env = result.exception.args
        assert args == ["mycommand", "--flag", "value"]
        assert env["ANTHROPIC_API_KEY"] == "sk-ant-api03-ci"

    def test_exec_requires_command(self, paths):
        result = runner.invoke(app, ["exec", "ci"])
        assert result.exit_code != 0

    def test_add_without_active_profile(self, paths):
        result = runner.invoke(app, ["add", "new"])
        assert result.exit_code == 1
        assert "no active profile" in result.output


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
