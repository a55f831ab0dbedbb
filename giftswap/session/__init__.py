"""
Session Module - Runs gift-exchange sessions against the ledger store.

A session is one gift exchange:
- Created by a host, who becomes its admin player
- Joined by code while the lobby is open
- Advanced one committed action at a time
- Observed through change notifications

The store is the only authority; SessionView replicas are rebuilt from
notifications and never written back.
"""

from .manager import SessionManager, generate_session_code
from .view import SessionView

__all__ = [
    "SessionManager",
    "SessionView",
    "generate_session_code",
]
