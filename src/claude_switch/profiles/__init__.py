"""profile storage and OAuth handling for Claude accounts."""
from .store import ProfileStore, StateStore
from .models import ActiveState, ApiKeyProfile, OAuthAccount, OAuthCredentials, OAuthProfile, Profile
from .oauth import TokenRefresher, is_expired
from .auth import run_login, AuthenticationError

# ProfileManager lives in .manager; it depends on ..claude, which depends on .models

__all__ = [
    "ProfileStore",
    "StateStore",
    "ActiveState",
    "ApiKeyProfile",
    "OAuthAccount",
    "OAuthCredentials",
    "OAuthProfile",
    "Profile",
    "TokenRefresher",
    "is_expired",
    "run_login",
    "AuthenticationError",
]
