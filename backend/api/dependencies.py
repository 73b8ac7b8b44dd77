"""
Dependency injection setup for FastAPI.

This module provides the "container" that wires together all module
implementations. Each module exposes its service through an interface,
and this file creates the concrete implementations from one immutable
Settings value.

When we're ready to extract a module to a microservice, we only need
to change the implementation here to an HTTP client.
"""

from typing import TYPE_CHECKING, Optional

from shared.config import Settings, get_settings

# Type checking imports for interfaces (avoids circular imports)
if TYPE_CHECKING:
    from supabase import Client

    from modules.auth.interfaces import IAuthService
    from modules.auth.repository import AuthRepository
    from modules.auth.tokens import TokenIssuer
    from modules.coaching.interfaces import IModuleService
    from modules.subscriptions.interfaces import ISubscriptionService


class ServiceContainer:
    """
    Container for all service instances.

    This class manages the lifecycle of service instances and their
    dependencies. Services are created lazily on first access.

    All services are cached as singletons within the container.
    Use reset() to clear all cached services for testing.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings
        self._db: "Client | None" = None
        self._token_issuer: "TokenIssuer | None" = None
        self._auth_repository: "AuthRepository | None" = None
        self._auth_service: "IAuthService | None" = None
        self._module_service: "IModuleService | None" = None
        self._subscription_service: "ISubscriptionService | None" = None

    @property
    def settings(self) -> Settings:
        """Get the settings this container was built from."""
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    @property
    def db(self) -> "Client":
        """Get the service-role Supabase client."""
        if self._db is None:
            from shared.database import get_supabase_client
            self._db = get_supabase_client(self.settings)
        return self._db

    @property
    def token_issuer(self) -> "TokenIssuer":
        """Get the access/refresh token issuer."""
        if self._token_issuer is None:
            from modules.auth.tokens import TokenIssuer
            self._token_issuer = TokenIssuer.from_settings(self.settings)
        return self._token_issuer

    @property
    def auth_repository(self) -> "AuthRepository":
        """Get the auth repository instance."""
        if self._auth_repository is None:
            from modules.auth.repository import AuthRepository
            self._auth_repository = AuthRepository(self.db)
        return self._auth_repository

    @property
    def auth(self) -> "IAuthService":
        """Get the auth service instance."""
        if self._auth_service is None:
            from modules.auth.service import AuthService
            self._auth_service = AuthService.from_settings(self.settings, self.auth_repository)
        return self._auth_service

    @property
    def modules(self) -> "IModuleService":
        """Get the coaching module service instance."""
        if self._module_service is None:
            from modules.coaching.generator import ContentGenerator
            from modules.coaching.realtime import RealtimeSessionClient
            from modules.coaching.repository import CoachingRepository
            from modules.coaching.service import ModuleService
            self._module_service = ModuleService(
                repository=CoachingRepository(self.db),
                generator=ContentGenerator.from_settings(self.settings),
                realtime=RealtimeSessionClient(self.settings),
                auth=self.auth,
            )
        return self._module_service

    @property
    def subscriptions(self) -> "ISubscriptionService":
        """Get the subscription service instance."""
        if self._subscription_service is None:
            from modules.subscriptions.repository import SubscriptionRepository
            from modules.subscriptions.service import SubscriptionService
            self._subscription_service = SubscriptionService(
                repository=SubscriptionRepository(self.db),
            )
        return self._subscription_service

    def reset(self) -> None:
        """
        Reset all cached services.

        This is primarily for testing - allows tests to get fresh
        service instances with different mock dependencies.
        """
        self._db = None
        self._token_issuer = None
        self._auth_repository = None
        self._auth_service = None
        self._module_service = None
        self._subscription_service = None


# Module-level container singleton
_container: ServiceContainer | None = None


def get_container() -> ServiceContainer:
    """Get the singleton service container."""
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def reset_container() -> None:
    """
    Reset the service container.

    This clears the cached container, so the next call to get_container()
    will create a fresh container with new service instances.

    Primarily used for testing.
    """
    global _container
    _container = None


# FastAPI dependency functions
# These are the functions that should be used in route Depends() calls


def get_app_settings() -> Settings:
    """FastAPI dependency for the immutable settings."""
    return get_container().settings


def get_token_issuer() -> "TokenIssuer":
    """FastAPI dependency for the token issuer."""
    return get_container().token_issuer


def get_auth_service() -> "IAuthService":
    """FastAPI dependency for auth service."""
    return get_container().auth


def get_module_service() -> "IModuleService":
    """FastAPI dependency for coaching module service."""
    return get_container().modules


def get_subscription_service() -> "ISubscriptionService":
    """FastAPI dependency for subscription service."""
    return get_container().subscriptions
