"""Session handling: cookie cache, per-client state, login and expiry sweep."""

from qbitclient.session.cache import SessionCache
from qbitclient.session.locks import ReadWriteLock
from qbitclient.session.state import SessionState
from qbitclient.session.manager import SessionManager
from qbitclient.session.sweeper import ExpirySweeper

__all__ = [
    "ExpirySweeper",
    "ReadWriteLock",
    "SessionCache",
    "SessionManager",
    "SessionState",
]
