"""access to the claude CLI's own config files."""
from .config import ClaudeConfig
from .keychain import Keychain

__all__ = ["ClaudeConfig", "Keychain"]
