"""Session store implementations.

Three implementations of ISessionStore, selected by SESSION_STORE_PROVIDER:
    - InMemorySessionStore -- dict, lost on restart (default).
    - SQLiteSessionStore   -- sqlite3 file at SESSION_DB_PATH.
    - RedisSessionStore    -- one Redis list per session with EXPIRE.
"""

from newsrag.providers.session.memory_session_store import InMemorySessionStore
from newsrag.providers.session.redis_session_store import RedisSessionStore
from newsrag.providers.session.sqlite_session_store import SQLiteSessionStore

__all__ = ["InMemorySessionStore", "RedisSessionStore", "SQLiteSessionStore"]
