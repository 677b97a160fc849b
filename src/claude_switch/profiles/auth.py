import logging
import subprocess
from typing import Sequence

from rich.console import Console

from ..domain.errors import ExternalToolError

logger = logging.getLogger(__name__)

console = Console(stderr=True)

RESTORE_HINT = "use 'claude-switch use <profile>' to restore your previous session"


class AuthenticationError(ExternalToolError):
    """raised when claude's login flow fails or is cancelled."""
    pass


def run_login(claude_bin: str = "claude") -> None:
    """
    run claude's interactive login in the foreground.

    stdin/stdout/stderr are inherited so the operator talks to claude
    directly. blocks until claude exits.

    args:
        claude_bin: claude executable to launch

    raises:
        AuthenticationError: if claude can't be started or exits non-zero
    """
    argv: Sequence[str] = [claude_bin, "/login"]
    logger.debug(f"launching login flow: {' '.join(argv)}")

    console.print("[blue]Launching Claude login...[/blue]")

    try:
        result = subprocess.run(argv)
    except OSError as e:
        raise AuthenticationError(f"failed to launch {claude_bin}: {e}. {RESTORE_HINT}") from e

    if result.returncode != 0:
        raise AuthenticationError(
            f"{claude_bin} exited with status {result.returncode}. {RESTORE_HINT}"
        )
