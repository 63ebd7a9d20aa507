from .session_store import (
    DEFAULT_SESSION_TTL,
    InMemoryIntroSessionStore,
    IntroSessionStore,
    SessionDraft,
    SessionRecord,
    SessionStoreError,
    new_session_token,
)
from .token_provider import TokenDecodeError, TokenExpiredError, TokenProvider

__all__ = [
    "DEFAULT_SESSION_TTL",
    "InMemoryIntroSessionStore",
    "IntroSessionStore",
    "SessionDraft",
    "SessionRecord",
    "SessionStoreError",
    "new_session_token",
    "TokenDecodeError",
    "TokenExpiredError",
    "TokenProvider",
]
