"""
Twitter API Client
==================

Thin async wrapper around ``tweepy.asynchronous.AsyncClient`` acting with an
OAuth 2.0 user-context access token. The token guard builds one of these per
request from the (possibly refreshed) access token.

Read calls (``get_me``) let tweepy errors propagate. Write calls (``like``,
``retweet``) convert any failure to reach or satisfy Twitter into
``ProviderActionFailed`` so the routes can report it as data.
"""

import logging
from typing import Any, Dict, Optional

import aiohttp
import tweepy
from tweepy.asynchronous import AsyncClient

from errors import ProviderActionFailed

logger = logging.getLogger(__name__)

USER_FIELDS = ["profile_image_url"]


def describe_provider_error(error: Exception) -> Dict[str, Any]:
    """
    Turn a tweepy/aiohttp exception into a JSON-safe payload.

    Args:
        error (Exception): The exception raised while calling Twitter

    Returns:
        Dict[str, Any]: Error message plus status code and API errors when known
    """
    payload: Dict[str, Any] = {"error": str(error) or error.__class__.__name__}
    if isinstance(error, tweepy.HTTPException):
        payload["status"] = getattr(error.response, "status", None)
        payload["errors"] = error.api_errors
        payload["messages"] = error.api_messages
    return payload


class TwitterApiClient:
    """
    Twitter API v2 client bound to a single user access token.

    Attributes:
        client (AsyncClient): The underlying tweepy client
    """

    def __init__(self, access_token: str, client: Optional[AsyncClient] = None):
        self.access_token = access_token
        # OAuth 2.0 user-context tokens are sent as bearer tokens with user_auth=False
        self.client = client or AsyncClient(bearer_token=access_token)

    async def get_me(self) -> Optional[Dict[str, Any]]:
        """
        Look up the user who owns the access token.

        Returns:
            Optional[Dict[str, Any]]: Raw user object (id, name, username,
            profile_image_url), or None when Twitter returned no data
        """
        response = await self.client.get_me(user_auth=False, user_fields=USER_FIELDS)
        if response.data is None:
            return None
        return response.data.data

    async def like(self, user_id: str, tweet_id: str) -> Dict[str, Any]:
        """Like a tweet on behalf of ``user_id``."""
        return await self._write("like", user_id, tweet_id)

    async def retweet(self, user_id: str, tweet_id: str) -> Dict[str, Any]:
        """Retweet a tweet on behalf of ``user_id``."""
        return await self._write("retweet", user_id, tweet_id)

    async def _write(self, action: str, user_id: str, tweet_id: str) -> Dict[str, Any]:
        # tweepy resolves the acting user lazily; hand it the id we already looked up
        self.client.user_id = user_id
        method = getattr(self.client, action)
        try:
            response = await method(tweet_id, user_auth=False)
        except (tweepy.TweepyException, aiohttp.ClientError) as e:
            logger.error(f"Twitter refused {action} of tweet {tweet_id} for user {user_id}: {e}")
            raise ProviderActionFailed(f"Failed to {action} tweet", describe_provider_error(e)) from e
        return {"data": response.data}
