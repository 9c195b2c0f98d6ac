"""
Tier-gated feature access.
"""

from .models import AccessDecision, UpgradePath
from .gate import AccessGate

__all__ = ["AccessDecision", "UpgradePath", "AccessGate"]
