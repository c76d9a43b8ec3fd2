"""
Backend Client
==============

Python client for the backend's HTTP API. It keeps the Twitter token pair on
the client side, sends it with every authenticated call, and adopts the
refreshed pair whenever a response carries ``tokens``.

Example:
    client = BackendClient("http://localhost:3000/api")
    url = client.login_url()            # send the user's browser here
    client.tokens_from_redirect(final)  # the /auth-success URL the browser lands on
    client.like("1234567890")
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional
from urllib.parse import parse_qs, urlparse

import httpx

logger = logging.getLogger(__name__)


class NotAuthenticated(Exception):
    """An authenticated call was attempted without stored tokens."""


@dataclass
class StoredTokens:
    accessToken: str
    refreshToken: str
    expiresAt: Optional[int] = None
    twitterId: Optional[str] = None


class BackendClient:
    """
    Stateful client for the Twitter PKCE backend.

    Args:
        base_url (str): API root including the prefix, e.g. ``http://localhost:3000/api``
        http (Optional[httpx.Client]): Client to send requests with; a new one is
            created when omitted. When passing a client with its own ``base_url``,
            set ``base_url`` to the path prefix only.
    """

    def __init__(self, base_url: str = "http://localhost:3000/api", http: Optional[httpx.Client] = None):
        self.base_url = base_url.rstrip("/")
        self.http = http or httpx.Client()
        self.tokens: Optional[StoredTokens] = None

    def set_tokens(self, tokens: StoredTokens) -> None:
        self.tokens = tokens

    def logout(self) -> None:
        self.tokens = None

    def login_url(self) -> str:
        """Ask the backend for the Twitter consent URL."""
        response = self.http.get(f"{self.base_url}/auth/login")
        response.raise_for_status()
        return response.json()["authUrl"]

    def tokens_from_redirect(self, redirect_url: str) -> StoredTokens:
        """
        Store the token pair from the ``/auth-success`` redirect URL.

        Raises:
            ValueError: If the URL does not carry both tokens and an expiry
        """
        params = {key: values[0] for key, values in parse_qs(urlparse(redirect_url).query).items()}
        if not params.get("accessToken") or not params.get("refreshToken") or not params.get("expiresAt"):
            raise ValueError("Redirect URL does not contain a token pair")

        tokens = StoredTokens(
            accessToken=params["accessToken"],
            refreshToken=params["refreshToken"],
            expiresAt=int(params["expiresAt"]),
            twitterId=params.get("twitterId") or None,
        )
        self.set_tokens(tokens)
        return tokens

    def request(self, method: str, endpoint: str, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Send an authenticated request and adopt refreshed tokens from the reply."""
        if self.tokens is None:
            raise NotAuthenticated("Not authenticated")

        payload = dict(body or {})
        payload.update(asdict(self.tokens))

        response = self.http.request(method, f"{self.base_url}{endpoint}", json=payload)
        data = response.json()

        if isinstance(data, dict) and data.get("tokens"):
            refreshed = data["tokens"]
            logger.debug("Backend refreshed the token pair")
            self.tokens = StoredTokens(
                accessToken=refreshed["accessToken"],
                refreshToken=refreshed["refreshToken"],
                expiresAt=refreshed.get("expiresAt"),
                twitterId=self.tokens.twitterId,
            )

        response.raise_for_status()
        return data

    def verify(self) -> Dict[str, Any]:
        return self.request("GET", "/auth/verify")

    def like(self, tweet_id: str) -> Dict[str, Any]:
        return self.request("POST", "/tweets/like", {"tweetId": tweet_id})

    def retweet(self, tweet_id: str) -> Dict[str, Any]:
        return self.request("POST", "/tweets/retweet", {"tweetId": tweet_id})

    def stats(self) -> Dict[str, Any]:
        return self.request("GET", "/user/stats")

    def revoke(self) -> Dict[str, Any]:
        """Revoke the access token at Twitter and forget the local pair."""
        result = self.request("POST", "/auth/revoke")
        self.logout()
        return result
