"""
Auth repository for database access.

Encapsulates all Supabase queries and data mapping for auth-related tables:
- users
- otp_codes
- password_reset_tokens
- temporary_sessions

Single-use records (codes, reset tokens, session ids) are consumed with one
filtered UPDATE so that two concurrent requests can never both succeed.
"""

from datetime import datetime
from typing import Any, Optional

from shared.repository import BaseRepository

from .models import (
    OAuthProvider,
    OtpCode,
    OtpType,
    SocialIdentity,
    TemporarySession,
    User,
)


class AuthRepository(BaseRepository[User]):
    """
    Repository for users and their short-lived credentials.

    Note: This repository does NOT perform authorization checks.
    The service layer decides who may act on which account.
    """

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    def create_user(self, data: dict[str, Any]) -> User:
        """
        Insert a user row.

        Raises:
            postgrest.exceptions.APIError: code 23505 when the email, Google id
                or Apple id is already taken.
        """
        if data.get("email"):
            data = {**data, "email": data["email"].lower()}
        result = self._db.table("users").insert(data).execute()
        return self._map_to_user(result.data[0])

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        result = self._db.table("users").select("*").eq("id", user_id).execute()
        row = self._first(result.data)
        return self._map_to_user(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        result = (
            self._db.table("users")
            .select("*")
            .eq("email", email.lower())
            .execute()
        )
        row = self._first(result.data)
        return self._map_to_user(row) if row else None

    def update_user(self, user_id: str, fields: dict[str, Any]) -> Optional[User]:
        """Update a user and return the new row, or None if it does not exist."""
        data = {**fields, "updated_at": self._now().isoformat()}
        result = self._db.table("users").update(data).eq("id", user_id).execute()
        row = self._first(result.data)
        return self._map_to_user(row) if row else None

    def resolve_social_identity(self, identity: SocialIdentity) -> Optional[User]:
        """
        Find or create the user for a verified Google/Apple identity.

        Runs as one database function: match by provider id, otherwise link
        the provider id to an unlinked account with the same email, otherwise
        insert. The insert uses ON CONFLICT DO NOTHING, so concurrent first
        logins of the same identity converge on a single row.

        Returns:
            The resolved user, or None when the email already belongs to an
            account linked to a different identity at this provider.
        """
        result = self._db.rpc("resolve_social_identity", {
            "p_provider": identity.provider.value,
            "p_subject": identity.subject,
            "p_email": identity.email.lower() if identity.email else None,
            "p_email_verified": identity.email_verified,
            "p_first_name": identity.first_name,
            "p_last_name": identity.last_name,
            "p_picture": identity.picture,
        }).execute()
        row = self._first(result.data)
        return self._map_to_user(row) if row else None

    # -------------------------------------------------------------------------
    # One-time codes
    # -------------------------------------------------------------------------

    def create_otp(
        self,
        user_id: str,
        code: str,
        otp_type: OtpType,
        expires_at: datetime,
    ) -> OtpCode:
        result = self._db.table("otp_codes").insert({
            "user_id": user_id,
            "code": code,
            "type": otp_type.value,
            "expires_at": expires_at.isoformat(),
            "verified": False,
        }).execute()
        return self._map_to_otp(result.data[0])

    def get_last_otp_sent_at(self, user_id: str) -> Optional[datetime]:
        result = (
            self._db.table("otp_codes")
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        )
        row = self._first(result.data)
        if not row:
            return None
        return self._map_to_otp(row).created_at

    def invalidate_otps(self, user_id: str) -> None:
        """Mark every outstanding code for the user as spent."""
        (
            self._db.table("otp_codes")
            .update({"verified": True})
            .eq("user_id", user_id)
            .eq("verified", False)
            .execute()
        )

    def consume_otp(self, user_id: str, code: str, now: datetime) -> Optional[OtpCode]:
        """
        Atomically mark a matching, unexpired, unused code as verified.

        Returns:
            The consumed code, or None when no such code exists.
        """
        result = (
            self._db.table("otp_codes")
            .update({"verified": True})
            .eq("user_id", user_id)
            .eq("code", code)
            .eq("verified", False)
            .gt("expires_at", now.isoformat())
            .execute()
        )
        row = self._first(result.data)
        return self._map_to_otp(row) if row else None

    # -------------------------------------------------------------------------
    # Password reset tokens
    # -------------------------------------------------------------------------

    def create_reset_token(self, user_id: str, token: str, expires_at: datetime) -> None:
        self._db.table("password_reset_tokens").insert({
            "user_id": user_id,
            "token": token,
            "expires_at": expires_at.isoformat(),
            "used": False,
        }).execute()

    def consume_reset_token(self, token: str, now: datetime) -> Optional[str]:
        """
        Flip an unused, unexpired reset token to used.

        Returns:
            The owning user id, or None when the token cannot be used.
        """
        result = (
            self._db.table("password_reset_tokens")
            .update({"used": True})
            .eq("token", token)
            .eq("used", False)
            .gt("expires_at", now.isoformat())
            .execute()
        )
        row = self._first(result.data)
        return str(row["user_id"]) if row else None

    def purge_expired_reset_tokens(self, now: datetime) -> int:
        result = (
            self._db.table("password_reset_tokens")
            .delete()
            .lt("expires_at", now.isoformat())
            .execute()
        )
        return len(result.data or [])

    # -------------------------------------------------------------------------
    # Session exchange
    # -------------------------------------------------------------------------

    def create_temporary_session(self, session: TemporarySession) -> None:
        self._db.table("temporary_sessions").insert({
            "session_id": session.session_id,
            "user_id": session.user_id,
            "provider": session.provider.value,
            "expires_at": session.expires_at.isoformat(),
            "used": False,
        }).execute()

    def consume_temporary_session(
        self,
        session_id: str,
        now: datetime,
    ) -> Optional[TemporarySession]:
        """
        Mark a pending session id as used, if it is still pending.

        The filter on used=false and expires_at > now makes this the single
        check-and-set for the pending -> consumed transition.
        """
        result = (
            self._db.table("temporary_sessions")
            .update({"used": True})
            .eq("session_id", session_id)
            .eq("used", False)
            .gt("expires_at", now.isoformat())
            .execute()
        )
        row = self._first(result.data)
        return self._map_to_temporary_session(row) if row else None

    def purge_expired_sessions(self, now: datetime) -> int:
        result = (
            self._db.table("temporary_sessions")
            .delete()
            .lt("expires_at", now.isoformat())
            .execute()
        )
        return len(result.data or [])

    # -------------------------------------------------------------------------
    # Mapping helpers
    # -------------------------------------------------------------------------

    def _map_to_user(self, data: dict[str, Any]) -> User:
        """Map database row to User model."""
        return User(
            id=str(data["id"]),
            email=data.get("email"),
            password_hash=data.get("password_hash"),
            first_name=data.get("first_name") or "",
            last_name=data.get("last_name") or "",
            picture=data.get("picture"),
            email_verified=bool(data.get("email_verified", False)),
            google_id=data.get("google_id"),
            apple_id=data.get("apple_id"),
            personal_context=data.get("personal_context"),
            language=data.get("language") or "English",
            created_at=data.get("created_at"),
        )

    def _map_to_otp(self, data: dict[str, Any]) -> OtpCode:
        """Map database row to OtpCode model."""
        return OtpCode(
            id=str(data["id"]),
            user_id=str(data["user_id"]),
            code=data["code"],
            type=OtpType(data["type"]),
            expires_at=data["expires_at"],
            verified=data.get("verified", False),
            created_at=data["created_at"],
        )

    def _map_to_temporary_session(self, data: dict[str, Any]) -> TemporarySession:
        """Map database row to TemporarySession model."""
        return TemporarySession(
            session_id=data["session_id"],
            user_id=str(data["user_id"]),
            provider=OAuthProvider(data["provider"]),
            expires_at=data["expires_at"],
            used=data.get("used", False),
        )
