import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import pydantic

from ..domain.errors import CorruptDataError, NotFoundError
from ..profiles.models import (
    ApiKeyProfile,
    OAuthAccount,
    OAuthCredentials,
    OAuthProfile,
    Profile,
)
from ..profiles.store import read_secure, write_secure
from .keychain import Keychain

logger = logging.getLogger(__name__)

OAUTH_KEY = "claudeAiOauth"
ACCOUNT_KEY = "oauthAccount"
API_KEY_KEY = "primaryApiKey"


class ClaudeConfig:
    """
    surgical edits to claude's own config files.

    only the keys claude-switch owns are touched; everything else in
    .credentials.json and ~/.claude.json is written back unchanged.
    """

    def __init__(self, credentials_file: Path, claude_json: Path, keychain: Optional[Keychain] = None):
        self.credentials_file = credentials_file
        self.claude_json = claude_json
        self.keychain = keychain

    def _load_document(self, path: Path) -> Optional[Dict[str, Any]]:
        """
        load a JSON object, or None if the file doesn't exist.

        raises:
            CorruptDataError: if the file isn't a JSON object
        """
        try:
            data = read_secure(path)
        except NotFoundError:
            return None

        try:
            doc = json.loads(data)
        except ValueError as e:
            raise CorruptDataError(path, str(e)) from e
        if not isinstance(doc, dict):
            raise CorruptDataError(path, f"expected a JSON object, got {type(doc).__name__}")
        return doc

    def _load_lenient(self, path: Path) -> Dict[str, Any]:
        try:
            return self._load_document(path) or {}
        except CorruptDataError as e:
            logger.warning(str(e))
            return {}

    def _save_document(self, path: Path, doc: Dict[str, Any]) -> None:
        write_secure(path, json.dumps(doc, indent=2).encode())

    # --- reading what claude has ---

    def read_oauth_credentials(self) -> Optional[OAuthCredentials]:
        """
        claude's current OAuth credentials, from the flat file or, failing that, the keychain.

        raises:
            CorruptDataError: if credentials exist but don't have the expected shape
        """
        source = self.credentials_file
        raw = self._load_lenient(self.credentials_file).get(OAUTH_KEY)
        if raw is None and self.keychain is not None:
            source = Path(f"keychain:{self.keychain.service}")
            raw = self.keychain.read_oauth()
        if raw is None:
            return None

        try:
            return OAuthCredentials.model_validate(raw)
        except pydantic.ValidationError as e:
            raise CorruptDataError(source, f"failed to parse OAuth credentials: {e.error_count()} error(s)") from e

    def read_oauth_account(self) -> OAuthAccount:
        raw = self._load_lenient(self.claude_json).get(ACCOUNT_KEY)
        if not isinstance(raw, dict):
            return OAuthAccount()
        try:
            return OAuthAccount.model_validate(raw)
        except pydantic.ValidationError:
            logger.warning(f"ignoring unreadable {ACCOUNT_KEY} in {self.claude_json}")
            return OAuthAccount()

    def read_api_key(self) -> Optional[str]:
        key = self._load_lenient(self.claude_json).get(API_KEY_KEY)
        return key if isinstance(key, str) and key else None

    def capture(self) -> Optional[Profile]:
        """
        build a profile from whatever session claude has right now.

        OAuth wins if both OAuth credentials and an API key are present.
        returns None if claude has neither.
        """
        credentials = self.read_oauth_credentials()
        if credentials is not None:
            return OAuthProfile(credentials=credentials, account=self.read_oauth_account())

        api_key = self.read_api_key()
        if api_key is not None:
            return ApiKeyProfile(api_key=api_key)

        return None

    # --- writing ---

    def write_oauth(self, credentials: OAuthCredentials, account: OAuthAccount) -> None:
        """
        make claude see this OAuth identity as logged in.

        a missing file is created; a malformed one aborts before anything is
        written. the keychain goes first, so a failing `security` call leaves
        both files untouched.
        """
        creds_doc = self._load_document(self.credentials_file) or {}
        claude_doc = self._load_document(self.claude_json) or {}

        creds_value = credentials.model_dump(mode="json", by_alias=True, exclude_none=True)
        creds_doc[OAUTH_KEY] = creds_value
        claude_doc[ACCOUNT_KEY] = account.model_dump(mode="json", by_alias=True, exclude_none=True)

        if self.keychain is not None:
            self.keychain.write_oauth(creds_value)

        self._save_document(self.credentials_file, creds_doc)
        self._save_document(self.claude_json, claude_doc)

    def clear_auth(self) -> None:
        """remove OAuth credentials and any API key so claude believes nobody is logged in."""
        creds_doc = self._load_document(self.credentials_file)
        if creds_doc is not None and OAUTH_KEY in creds_doc:
            del creds_doc[OAUTH_KEY]
            self._save_document(self.credentials_file, creds_doc)

        claude_doc = self._load_document(self.claude_json)
        if claude_doc is not None and (ACCOUNT_KEY in claude_doc or API_KEY_KEY in claude_doc):
            claude_doc.pop(ACCOUNT_KEY, None)
            claude_doc.pop(API_KEY_KEY, None)
            self._save_document(self.claude_json, claude_doc)

        logger.debug("cleared claude auth state")
