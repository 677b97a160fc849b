"""macOS keychain access. claude on macOS keeps its OAuth tokens here instead of in .credentials.json."""
import json
import logging
import os
import subprocess
import sys
from typing import Any, Dict, Mapping, Optional

from ..domain.errors import ExternalToolError

logger = logging.getLogger(__name__)

SERVICE_NAME = "Claude Code-credentials"
OAUTH_KEY = "claudeAiOauth"


class Keychain:
    """reads and writes claude's generic-password entry via the `security` tool."""

    def __init__(self, account: str, service: str = SERVICE_NAME):
        self.account = account
        self.service = service

    @classmethod
    def for_platform(cls, environ: Optional[Mapping[str, str]] = None) -> Optional["Keychain"]:
        """a Keychain on macOS when $USER is known, otherwise None."""
        environ = os.environ if environ is None else environ
        if sys.platform != "darwin":
            return None
        account = environ.get("USER")
        if not account:
            return None
        return cls(account)

    def _read_document(self) -> Optional[Dict[str, Any]]:
        try:
            result = subprocess.run(
                ["security", "find-generic-password", "-s", self.service, "-a", self.account, "-w"],
                capture_output=True,
                text=True,
                timeout=10,
            )
        except (subprocess.TimeoutExpired, FileNotFoundError):
            return None

        if result.returncode != 0:
            return None

        try:
            doc = json.loads(result.stdout.strip())
        except ValueError:
            logger.warning(f"keychain entry '{self.service}' is not valid JSON")
            return None
        return doc if isinstance(doc, dict) else None

    def read_oauth(self) -> Optional[Dict[str, Any]]:
        """the raw claudeAiOauth object, or None if there isn't one."""
        doc = self._read_document()
        if doc is None:
            return None
        raw = doc.get(OAUTH_KEY)
        return raw if isinstance(raw, dict) else None

    def write_oauth(self, credentials: Dict[str, Any]) -> None:
        """replace claudeAiOauth in the keychain entry, keeping its other keys."""
        doc = self._read_document() or {}
        doc[OAUTH_KEY] = credentials

        try:
            result = subprocess.run(
                [
                    "security", "add-generic-password", "-U",
                    "-s", self.service, "-a", self.account,
                    "-w", json.dumps(doc),
                ],
                capture_output=True,
                text=True,
                timeout=10,
            )
        except (subprocess.TimeoutExpired, FileNotFoundError) as e:
            raise ExternalToolError(f"failed to update keychain: {e}") from e

        if result.returncode != 0:
            raise ExternalToolError(f"failed to update keychain: {result.stderr.strip()}")

        logger.debug(f"updated keychain entry '{self.service}' for {self.account}")
