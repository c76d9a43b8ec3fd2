"""
Twitter OAuth 2.0 (PKCE)
========================

This module wraps tweepy's ``OAuth2UserHandler`` to drive the Twitter OAuth 2.0
authorization code flow with PKCE:

- Building the authorization URL (fixed anti-forgery state, S256 challenge)
- Exchanging an authorization code for a token pair
- Running the refresh grant
- Revoking an access token

One ``TwitterOAuth2`` instance is built by the application factory and shared
by every request through the ``get_twitter_oauth`` dependency. It holds only
immutable configuration and the PKCE verifier/challenge pair; every call to the
token endpoint runs on its own handler, since an ``OAuth2Session`` stores the
last token it fetched.

The token endpoint calls go through requests-oauthlib and block, so the async
methods run them in Starlette's threadpool.
"""

import logging
import time
from typing import Any, Dict, List, Optional

import tweepy
from fastapi import Request
from starlette.concurrency import run_in_threadpool

from config import Settings
from twitter_client import TwitterApiClient

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://twitter.com/i/oauth2/authorize"
TOKEN_URL = "https://api.twitter.com/2/oauth2/token"
REVOKE_URL = "https://api.twitter.com/2/oauth2/revoke"


class PKCEOAuth2Handler(tweepy.OAuth2UserHandler):
    """
    ``OAuth2UserHandler`` with an explicit state value and code-based exchange.

    tweepy's own ``fetch_token`` expects the full redirect URL and insists on
    HTTPS for it, which breaks local callbacks; here the code is passed
    directly to the token endpoint instead.
    """

    def get_authorization_url(self, state: str, code_challenge: str) -> str:
        url, _ = self.authorization_url(
            AUTHORIZE_URL,
            state=state,
            code_challenge=code_challenge,
            code_challenge_method="S256",
        )
        return url

    def fetch_token(self, code: str, code_verifier: str) -> Dict[str, Any]:
        return super(tweepy.OAuth2UserHandler, self).fetch_token(
            TOKEN_URL,
            code=code,
            auth=self.auth,
            include_client_id=True,
            code_verifier=code_verifier,
        )

    def refresh(self, refresh_token: str) -> Dict[str, Any]:
        kwargs = {}
        if self.auth is None:
            # Public clients identify themselves in the body instead of basic auth
            kwargs["client_id"] = self.client_id
        return self.refresh_token(TOKEN_URL, refresh_token=refresh_token, auth=self.auth, **kwargs)

    def revoke(self, access_token: str) -> Dict[str, Any]:
        response = self.post(
            REVOKE_URL,
            data={
                "token": access_token,
                "token_type_hint": "access_token",
                "client_id": self.client_id,
            },
            auth=self.auth,
            withhold_token=True,
        )
        response.raise_for_status()
        return response.json()


def expires_at_millis(token: Dict[str, Any]) -> Optional[int]:
    """
    Expiry of an OAuth token response as integer epoch milliseconds.

    oauthlib fills ``expires_at`` (epoch seconds) whenever Twitter sends
    ``expires_in``; fall back to computing it ourselves.
    """
    if token.get("expires_at") is not None:
        return int(float(token["expires_at"]) * 1000)
    if token.get("expires_in") is not None:
        return int(time.time() * 1000) + int(token["expires_in"]) * 1000
    return None


class TwitterOAuth2:
    """
    Twitter OAuth 2.0 client configuration and flow operations.

    Attributes:
        client_id (Optional[str]): Twitter OAuth 2.0 client id
        client_secret (Optional[str]): Client secret; None for public clients
        callback_url (str): Registered redirect URI
        scopes (List[str]): Requested scopes
        state (str): Anti-forgery state sent with every authorization request
        code_verifier (str): PKCE verifier sent with every code exchange
        code_challenge (str): S256 challenge derived from ``code_verifier``
    """

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        callback_url: str,
        scopes: List[str],
        state: str,
    ):
        if not client_id:
            logger.warning("Twitter OAuth configured without a client id")
        self.client_id = client_id
        self.client_secret = client_secret or None
        self.callback_url = callback_url
        self.scopes = scopes
        self.state = state

        # One verifier per process: the callback may land on any request
        pkce = self.create_handler()._client
        self.code_verifier = pkce.create_code_verifier(128)
        self.code_challenge = pkce.create_code_challenge(self.code_verifier, "S256")

    @classmethod
    def from_settings(cls, settings: Settings) -> "TwitterOAuth2":
        return cls(
            client_id=settings.TWITTER_CLIENT_ID,
            client_secret=settings.TWITTER_CLIENT_SECRET,
            callback_url=settings.CALLBACK_URL,
            scopes=settings.scopes,
            state=settings.OAUTH_STATE,
        )

    def create_handler(self) -> PKCEOAuth2Handler:
        return PKCEOAuth2Handler(
            client_id=self.client_id,
            redirect_uri=self.callback_url,
            scope=self.scopes,
            client_secret=self.client_secret,
        )

    def get_authorization_url(self) -> str:
        """Build the Twitter consent URL the browser should be sent to."""
        return self.create_handler().get_authorization_url(self.state, self.code_challenge)

    def is_valid_state(self, state: Optional[str]) -> bool:
        return state == self.state

    async def exchange_code(self, code: str) -> Dict[str, Any]:
        """
        Exchange an authorization code for a token pair.

        Args:
            code (str): The ``code`` query parameter Twitter sent to the callback

        Returns:
            Dict[str, Any]: Token response (access_token, refresh_token, expires_at, ...)
        """
        handler = self.create_handler()
        return await run_in_threadpool(handler.fetch_token, code, self.code_verifier)

    async def refresh(self, refresh_token: str) -> Dict[str, Any]:
        """Run the refresh grant with a fresh handler."""
        handler = self.create_handler()
        return await run_in_threadpool(handler.refresh, refresh_token)

    async def revoke(self, access_token: str) -> Dict[str, Any]:
        """Revoke an access token at Twitter and return Twitter's response body."""
        handler = self.create_handler()
        return await run_in_threadpool(handler.revoke, access_token)

    def create_api_client(self, access_token: str) -> TwitterApiClient:
        return TwitterApiClient(access_token)


def get_twitter_oauth(request: Request) -> TwitterOAuth2:
    """FastAPI dependency returning the OAuth configuration built at startup."""
    return request.app.state.twitter_oauth
