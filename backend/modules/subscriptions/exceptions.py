"""
Subscription module exceptions.
"""

from shared.exceptions import AuthenticationError


class WebhookAuthError(AuthenticationError):
    """Raised when a webhook request does not carry the shared secret."""

    def __init__(self):
        super().__init__("Invalid webhook authorization")
