"""
Session exchange for browser-based OAuth.

The Google consent screen redirects to the API, not to the app. After the
callback resolves the user, the API stores a random, single-use session id
and redirects the browser to the app's custom scheme with that id. The app
then trades the id for a token pair.

A session id is pending until it is exchanged (consumed) or its five
minutes run out (expired). Neither end state leads back to pending.
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import urlencode, urlparse, urlunparse, parse_qsl

from .exceptions import ExpiredSessionError
from .models import OAuthProvider, TemporarySession
from .repository import AuthRepository

logger = logging.getLogger(__name__)


SESSION_ID_BYTES = 32
SESSION_TTL = timedelta(minutes=5)


def append_query_param(url: str, key: str, value: str) -> str:
    """Add a query parameter to a URL, keeping any existing ones."""
    parts = urlparse(url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.append((key, value))
    return urlunparse(parts._replace(query=urlencode(query)))


class SessionExchange:
    """Mints and redeems single-use OAuth handoff ids."""

    def __init__(self, repository: AuthRepository, ttl: timedelta = SESSION_TTL) -> None:
        self._repository = repository
        self._ttl = ttl

    def mint(
        self,
        user_id: str,
        provider: OAuthProvider,
        now: Optional[datetime] = None,
    ) -> TemporarySession:
        """Create and store a new pending session id for a resolved user."""
        now = now or datetime.now(timezone.utc)

        purged = self._repository.purge_expired_sessions(now)
        if purged:
            logger.debug("Purged %d expired exchange sessions", purged)

        session = TemporarySession(
            session_id=secrets.token_hex(SESSION_ID_BYTES),
            user_id=user_id,
            provider=provider,
            expires_at=now + self._ttl,
        )
        self._repository.create_temporary_session(session)
        return session

    def redirect_url(self, redirect_uri: str, session: TemporarySession) -> str:
        return append_query_param(redirect_uri, "sessionId", session.session_id)

    def exchange(self, session_id: str, now: Optional[datetime] = None) -> str:
        """
        Consume a session id and return the user id bound to it.

        Raises:
            ExpiredSessionError: If the id does not exist, has expired or was
                already exchanged. All three look the same to the caller.
        """
        now = now or datetime.now(timezone.utc)
        session = self._repository.consume_temporary_session(session_id, now)
        if session is None:
            raise ExpiredSessionError()
        return session.user_id
