"""
Authentication module for the Twitter PKCE backend.

This module provides:
- Twitter OAuth 2.0 (PKCE) flow operations
- The token guard that validates and refreshes client-held token pairs
"""

from .oauth import (
    TwitterOAuth2,
    PKCEOAuth2Handler,
    expires_at_millis,
    get_twitter_oauth
)

from .token_guard import (
    AuthenticatedSession,
    BearerCredential,
    TokenGuard,
    read_bearer_credential,
    require_auth
)

__all__ = [
    # OAuth flow
    "TwitterOAuth2",
    "PKCEOAuth2Handler",
    "expires_at_millis",
    "get_twitter_oauth",

    # Token guard
    "AuthenticatedSession",
    "BearerCredential",
    "TokenGuard",
    "read_bearer_credential",
    "require_auth"
]
