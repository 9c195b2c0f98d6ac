"""
Error taxonomy for the policy engine.

Remote failures surface as ``TransientRemoteError``; components catch
``PolicyError`` at their boundary and degrade to a safe default.
"""

from contextlib import contextmanager
from typing import Optional


class PolicyError(Exception):
    """Base class for policy engine errors."""


class TransientRemoteError(PolicyError):
    """Network or backend failure during a remote operation."""

    def __init__(self, operation: str, detail: Optional[str] = None):
        self.operation = operation
        self.detail = detail
        message = f"Remote operation '{operation}' failed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class QuotaExceeded(PolicyError):
    """Explicit quota denial, either from the server or from a zero local count."""

    def __init__(self, action: str, message: str):
        self.action = action
        self.message = message
        super().__init__(f"{action}: {message}")


class UnauthenticatedAccess(PolicyError):
    """A quota or tier check was attempted without a resolved user identity."""

    def __init__(self, message: str = "Login required"):
        self.message = message
        super().__init__(message)


class PersistenceConflict(PolicyError):
    """Concurrent creation of a row that must be unique (e.g. one daily reward per day)."""

    def __init__(self, resource: str, key: str):
        self.resource = resource
        self.key = key
        super().__init__(f"Conflicting write for {resource} {key}")


@contextmanager
def remote_operation(operation: str):
    """
    Wrap a backend call so any failure other than a ``PolicyError`` is
    reported as a ``TransientRemoteError`` for ``operation``.
    """
    try:
        yield
    except PolicyError:
        raise
    except Exception as e:
        raise TransientRemoteError(operation, str(e)) from e
