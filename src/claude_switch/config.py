import os
from pathlib import Path
from typing import Mapping, NamedTuple, Optional

APP_NAME = "claude-switch"
DEFAULT_CLAUDE_BIN = "claude"


def _env(environ: Mapping[str, str], key: str) -> Optional[str]:
    """return the variable's value, treating empty strings as unset."""
    value = environ.get(key)
    return value or None


def _home(environ: Mapping[str, str]) -> Path:
    home = _env(environ, "HOME")
    if home:
        return Path(home)
    try:
        return Path.home()
    except RuntimeError:
        return Path(".")


def get_config_dir(environ: Optional[Mapping[str, str]] = None) -> Path:
    """root of our own store: $XDG_CONFIG_HOME/claude-switch or ~/.config/claude-switch."""
    environ = os.environ if environ is None else environ
    xdg = _env(environ, "XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else _home(environ) / ".config"
    return base / APP_NAME


def get_claude_config_dir(environ: Optional[Mapping[str, str]] = None) -> Path:
    """directory claude keeps .credentials.json in: $CLAUDE_CONFIG_DIR or ~/.claude."""
    environ = os.environ if environ is None else environ
    override = _env(environ, "CLAUDE_CONFIG_DIR")
    if override:
        return Path(override)
    return _home(environ) / ".claude"


class Paths(NamedTuple):
    """every on-disk location claude-switch reads or writes."""
    config_dir: Path
    profiles_dir: Path
    state_file: Path
    claude_config_dir: Path
    credentials_file: Path
    claude_json: Path
    claude_bin: str

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Paths":
        environ = os.environ if environ is None else environ
        config_dir = get_config_dir(environ)
        claude_config_dir = get_claude_config_dir(environ)
        return cls(
            config_dir=config_dir,
            profiles_dir=config_dir / "profiles",
            state_file=config_dir / "state.json",
            claude_config_dir=claude_config_dir,
            credentials_file=claude_config_dir / ".credentials.json",
            # always under $HOME, even when CLAUDE_CONFIG_DIR is set
            claude_json=_home(environ) / ".claude.json",
            claude_bin=_env(environ, "CLAUDE_SWITCH_CLAUDE_BIN") or DEFAULT_CLAUDE_BIN,
        )
