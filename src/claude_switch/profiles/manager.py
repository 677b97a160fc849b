import logging
import os
from typing import Callable, List, Mapping, NamedTuple, NoReturn, Optional, Sequence

from rich.console import Console
from rich.markup import escape

from ..claude.config import ClaudeConfig
from ..claude.keychain import Keychain
from ..config import Paths
from ..domain.errors import (
    ClaudeSwitchError,
    ExternalToolError,
    NoCredentialsError,
    TokenRefreshError,
    ValidationError,
)
from .auth import run_login
from .models import ActiveState, ApiKeyProfile, OAuthProfile, Profile
from .oauth import InvalidGrant, Refreshed, TokenRefresher, is_expired
from .store import ProfileStore, StateStore, validate_profile_name

logger = logging.getLogger(__name__)

OAUTH_TOKEN_ENV = "CLAUDE_CODE_OAUTH_TOKEN"
API_KEY_ENV = "ANTHROPIC_API_KEY"

ExecFn = Callable[[str, List[str], Mapping[str, str]], None]


class ProfileEntry(NamedTuple):
    """one row of `list`: either a loaded profile or the error that stopped it loading."""
    name: str
    active: bool
    profile: Optional[Profile] = None
    error: Optional[ClaudeSwitchError] = None


class ProfileManager:
    """
    drives the credential lifecycle for stored profiles.

    each public method is one command: it loads the active state, does its
    work, and saves the state back before returning. nothing is cached
    between calls.
    """

    def __init__(
        self,
        paths: Paths,
        store: Optional[ProfileStore] = None,
        state_store: Optional[StateStore] = None,
        claude: Optional[ClaudeConfig] = None,
        refresher: Optional[TokenRefresher] = None,
        login: Optional[Callable[[], None]] = None,
        execvpe: Optional[ExecFn] = None,
        environ: Optional[Mapping[str, str]] = None,
        console: Optional[Console] = None,
    ):
        self.paths = paths
        self.store = store or ProfileStore(paths.profiles_dir)
        self.state_store = state_store or StateStore(paths.state_file)
        self.claude = claude or ClaudeConfig(
            paths.credentials_file,
            paths.claude_json,
            keychain=Keychain.for_platform(),
        )
        self._refresher = refresher
        self.login = login or (lambda: run_login(paths.claude_bin))
        self.execvpe = execvpe or os.execvpe
        self.environ = os.environ if environ is None else environ
        self.console = console or Console(stderr=True)

    @property
    def refresher(self) -> TokenRefresher:
        if self._refresher is None:
            self._refresher = TokenRefresher()
        return self._refresher

    # --- commands ---

    def add(self, name: str) -> Profile:
        """
        log in to a new account through claude and save it as a profile.

        args:
            name: name for the new profile

        returns:
            the captured profile

        raises:
            ValidationError: if the name is invalid or taken, or nothing is active yet
            AuthenticationError: if claude's login flow fails
            NoCredentialsError: if the login flow left no credentials behind
        """
        self._ensure_new_name(name)

        state = self.state_store.load()
        if state.active_profile is None:
            # clearing claude's auth would lose the only session we know about
            raise ValidationError(
                "no active profile. run 'claude-switch import <name>' first "
                "to save your current session"
            )

        profile = self._login_and_capture()
        self.store.save(name, profile)
        self._activate(state, name)

        self._print_saved("Saved", name, profile)
        return profile

    def import_current(self, name: str) -> Profile:
        """
        save claude's current session as a new profile, without logging out.

        raises:
            ValidationError: if the name is invalid or taken
            NoCredentialsError: if claude isn't logged in
        """
        self._ensure_new_name(name)
        state = self.state_store.load()

        profile = self.claude.capture()
        if profile is None:
            raise NoCredentialsError("no credentials found. is Claude Code logged in?")

        self.store.save(name, profile)
        self._activate(state, name)

        self._print_saved("Imported current session as", name, profile)
        return profile

    def use(self, name: str) -> Profile:
        """
        switch claude over to a stored profile.

        OAuth profiles are refreshed if needed and written into claude's
        config. API key profiles can't be written there, so the operator
        gets the equivalent export/exec commands instead.

        raises:
            ProfileNotFoundError: if no such profile exists
            CorruptDataError: if the profile file can't be read
            TokenRefreshError: if the token endpoint fails transiently
            AuthenticationError: if re-authentication was needed and failed
        """
        profile = self.store.load(name)
        state = self.state_store.load()
        profile = self._resolve(name, profile, state)

        if isinstance(profile, OAuthProfile):
            self.claude.write_oauth(profile.credentials, profile.account)
            self._activate(state, name)
            self.console.print(f"[green]✓[/green] Switched to '{escape(name)}'")
        else:
            self._activate(state, name)
            self.console.print("[yellow]API key profiles can't be written to Claude's config files.[/yellow]")
            self.console.print("Use one of these instead:\n")
            self.console.print(f"  export {API_KEY_ENV}={escape(profile.api_key)}", soft_wrap=True)
            self.console.print(f"  claude-switch exec {escape(name)} -- claude", soft_wrap=True)

        return profile

    def exec(self, name: str, argv: Sequence[str]) -> NoReturn:
        """
        replace this process with argv, carrying the profile's credential in its environment.

        exactly one variable is added: the OAuth access token or the API key.
        claude's config files are not written (unless re-authentication runs).

        raises:
            ValidationError: if argv is empty
            ExternalToolError: if the command can't be executed
        """
        if not argv:
            raise ValidationError("no command specified")

        profile = self.store.load(name)
        state = self.state_store.load()
        profile = self._resolve(name, profile, state)

        if isinstance(profile, OAuthProfile):
            key, value = OAUTH_TOKEN_ENV, profile.credentials.access_token
        else:
            key, value = API_KEY_ENV, profile.api_key

        env = dict(self.environ)
        env[key] = value

        logger.debug(f"exec {argv[0]} with {key} set")
        try:
            self.execvpe(argv[0], list(argv), env)
        except OSError as e:
            raise ExternalToolError(f"exec failed: {argv[0]}: {e}") from e

        raise ExternalToolError(f"exec failed: {argv[0]} returned control")

    def remove(self, name: str) -> None:
        """
        delete a stored profile, clearing the active state if it pointed here.

        raises:
            ProfileNotFoundError: if no such profile exists
        """
        self.store.delete(name)

        state = self.state_store.load()
        if state.is_active(name):
            state.active_profile = None
            self.state_store.save(state)

        self.console.print(f"[green]✓[/green] Removed profile '{escape(name)}'")

    def list_profiles(self) -> List[ProfileEntry]:
        """every stored profile, in name order. unreadable profiles carry their error."""
        state = self.state_store.load()

        entries = []
        for name in self.store.list_names():
            active = state.is_active(name)
            try:
                entries.append(ProfileEntry(name, active, profile=self.store.load(name)))
            except ClaudeSwitchError as e:
                logger.debug(f"could not load profile '{name}': {e}")
                entries.append(ProfileEntry(name, active, error=e))
        return entries

    def get_active_profile(self) -> Optional[str]:
        return self.state_store.load().active_profile

    # --- credential lifecycle ---

    def _resolve(self, name: str, profile: Profile, state: ActiveState) -> Profile:
        """return a profile whose credentials are usable right now."""
        if isinstance(profile, ApiKeyProfile):
            return profile
        if not is_expired(profile.credentials):
            return profile

        self.console.print("[dim]Token expired, refreshing...[/dim]")
        result = self.refresher.refresh(profile.credentials)

        if isinstance(result, Refreshed):
            refreshed = profile.model_copy(update={"credentials": result.credentials})
            self.store.save(name, refreshed)
            return refreshed

        if isinstance(result, InvalidGrant):
            return self._reauthenticate(name, state)

        # transient: leave the stored profile exactly as it was
        raise TokenRefreshError(result.message)

    def _reauthenticate(self, name: str, state: ActiveState) -> Profile:
        self.console.print(
            f"[yellow]Refresh token expired for profile '{escape(name)}'. "
            "Please re-authenticate...[/yellow]"
        )

        profile = self._login_and_capture()
        self.store.save(name, profile)
        self._activate(state, name)

        self._print_saved("Re-authenticated", name, profile)
        return profile

    def _login_and_capture(self) -> Profile:
        # TODO: snapshot primaryApiKey before clearing so a failed login can put it back
        self.claude.clear_auth()
        self.login()

        profile = self.claude.capture()
        if profile is None:
            raise NoCredentialsError("no credentials found after login. did auth complete?")
        return profile

    # --- helpers ---

    def _ensure_new_name(self, name: str) -> None:
        validate_profile_name(name)
        if self.store.exists(name):
            raise ValidationError(f"profile '{name}' already exists (use 'remove' first)")

    def _activate(self, state: ActiveState, name: str) -> None:
        state.active_profile = name
        self.state_store.save(state)

    def _print_saved(self, action: str, name: str, profile: Profile) -> None:
        if isinstance(profile, OAuthProfile):
            detail = f"{profile.display_email}, {profile.display_subscription}"
        else:
            detail = "API key"
        self.console.print(f"[green]✓[/green] {action} '{escape(name)}' ({escape(detail)})")
