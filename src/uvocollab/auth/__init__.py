"""Session identity and webhook authentication."""

from uvocollab.auth.middleware import (
    get_caller,
    get_user,
    require_authenticated_user,
    require_webhook_secret,
)

__all__ = [
    "get_caller",
    "get_user",
    "require_authenticated_user",
    "require_webhook_secret",
]
