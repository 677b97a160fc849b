from pathlib import Path
from typing import Optional


class ClaudeSwitchError(Exception):
    """base class for exceptions in claude-switch."""
    pass


class ValidationError(ClaudeSwitchError):
    """raised for bad input, before any I/O is attempted."""
    pass


class NotFoundError(ClaudeSwitchError):
    """raised when a file the operation needs does not exist."""
    def __init__(self, path: Path, message: Optional[str] = None):
        self.path = path
        super().__init__(message or f"{path} not found")


class ProfileNotFoundError(NotFoundError):
    def __init__(self, name: str, path: Path):
        self.name = name
        super().__init__(path, f"profile '{name}' not found")


class CorruptDataError(ClaudeSwitchError):
    """raised when a stored JSON document cannot be decoded."""
    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path} is malformed: {reason}")


class StorageError(ClaudeSwitchError):
    """raised when a file exists but the OS won't let us read or replace it."""
    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class TokenRefreshError(ClaudeSwitchError):
    """raised when the token endpoint fails for any reason other than invalid_grant."""
    pass


class ExternalToolError(ClaudeSwitchError):
    """raised when the claude login flow or an exec'd command fails."""
    pass


class NoCredentialsError(ClaudeSwitchError):
    """raised when claude's config holds neither OAuth credentials nor an API key."""
    pass
