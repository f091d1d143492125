"""
Upstream catalog access: session identities, client factory, Storytel endpoints.
"""

from .http_client import build_client
from .stealth_headers import IdentityRotation, SessionIdentity, USER_AGENTS
from .storytel import StorytelCatalog

__all__ = ['build_client', 'IdentityRotation', 'SessionIdentity', 'USER_AGENTS', 'StorytelCatalog']
