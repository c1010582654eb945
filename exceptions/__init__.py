class WhitelistError(Exception):
    """Base whitelist exception."""

class NotFound(WhitelistError):
    """Raised when a code, entry or link does not exist."""

class InvalidState(WhitelistError):
    """Raised when a code is used/expired or an entry is inactive/expired."""

class Conflict(WhitelistError):
    """Raised when a uniqueness rule (link, code, entry) would be violated."""

class StorageError(WhitelistError):
    """Raised when the underlying database fails."""

class AccessTimeout(WhitelistError):
    """Raised when a bounded access check exceeds its deadline."""
