"""
User sessions: one set of policy components per signed-in user.
"""

from .session import PolicySession, SessionRegistry

__all__ = ["PolicySession", "SessionRegistry"]
