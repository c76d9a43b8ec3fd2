"""
Token Guard
===========

Every protected route runs behind the token guard. The client keeps its Twitter
token pair and sends it in the JSON body of each request; the guard:

1. Rejects the request if the access or refresh token is missing
2. Refreshes the pair through Twitter when ``expiresAt`` has passed
3. Writes the refreshed pair to the matching ``User`` row (when ``twitterId``
   was sent) before the route talks to Twitter
4. Hands the route a ``TwitterApiClient`` bound to the current access token,
   plus the refreshed pair so the route can return it as ``tokens``

A failed database write after a refresh is logged and otherwise ignored; the
client still receives the new pair.
"""

import json
import logging
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Optional

from fastapi import Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from auth.oauth import TwitterOAuth2, expires_at_millis, get_twitter_oauth
from database import get_db
from errors import AuthenticationFailed, AuthenticationRequired
from models import User, utcnow
from twitter_client import TwitterApiClient

logger = logging.getLogger(__name__)


def now_millis() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class BearerCredential:
    """The client-held token pair, as sent in a request body."""

    access_token: str
    refresh_token: str
    expires_at: Optional[int] = None
    twitter_id: Optional[str] = None

    @classmethod
    def from_body(cls, body: Dict[str, Any]) -> "BearerCredential":
        """
        Read ``accessToken``/``refreshToken``/``expiresAt``/``twitterId`` from a JSON body.

        Raises:
            AuthenticationRequired: If either token is missing or empty
        """
        access_token = body.get("accessToken")
        refresh_token = body.get("refreshToken")
        if not access_token or not refresh_token:
            raise AuthenticationRequired()

        expires_at = body.get("expiresAt")
        if expires_at in (None, ""):
            expires_at = None
        else:
            try:
                expires_at = int(expires_at)
            except (TypeError, ValueError):
                # Unreadable expiry is treated as unknown
                expires_at = None

        return cls(
            access_token=str(access_token),
            refresh_token=str(refresh_token),
            expires_at=expires_at,
            twitter_id=str(body["twitterId"]) if body.get("twitterId") else None,
        )

    def is_expired(self, now: int) -> bool:
        return self.expires_at is not None and now >= self.expires_at

    def to_response(self) -> Dict[str, Any]:
        return {
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
            "expiresAt": self.expires_at,
        }


@dataclass
class AuthenticatedSession:
    """What a protected route gets from the guard."""

    client: TwitterApiClient
    credential: BearerCredential
    refreshed: Optional[BearerCredential] = None

    def token_fields(self) -> Dict[str, Any]:
        """``{"tokens": {...}}`` when the pair was refreshed, else ``{}``."""
        if self.refreshed is None:
            return {}
        return {"tokens": self.refreshed.to_response()}


class TokenGuard:
    """
    Validates and, when needed, refreshes a client's token pair.

    Args:
        oauth (TwitterOAuth2): OAuth configuration used for the refresh grant
        db (Session): Session used to mirror refreshed tokens onto the User row
        clock (Callable[[], int]): Returns the current time in epoch milliseconds
    """

    def __init__(self, oauth: TwitterOAuth2, db: Session, clock: Callable[[], int] = now_millis):
        self.oauth = oauth
        self.db = db
        self.clock = clock

    async def authenticate(self, credential: BearerCredential) -> AuthenticatedSession:
        refreshed = None
        if credential.is_expired(self.clock()):
            refreshed = await self.refresh(credential)
            if credential.twitter_id:
                self.persist(credential.twitter_id, refreshed)

        current = refreshed or credential
        client = self.oauth.create_api_client(current.access_token)
        return AuthenticatedSession(client=client, credential=current, refreshed=refreshed)

    async def refresh(self, credential: BearerCredential) -> BearerCredential:
        logger.info("Access token expired, refreshing")
        try:
            token = await self.oauth.refresh(credential.refresh_token)
        except Exception as e:
            logger.error(f"Token refresh failed: {e}")
            raise AuthenticationFailed() from e

        if not token.get("access_token"):
            logger.error("Token refresh response did not include an access token")
            raise AuthenticationFailed()

        return replace(
            credential,
            access_token=token["access_token"],
            # Twitter does not always rotate the refresh token
            refresh_token=token.get("refresh_token") or credential.refresh_token,
            expires_at=expires_at_millis(token),
        )

    def persist(self, twitter_id: str, refreshed: BearerCredential) -> None:
        try:
            self.db.query(User).filter(User.twitter_id == twitter_id).update(
                {
                    User.access_token: refreshed.access_token,
                    User.refresh_token: refreshed.refresh_token,
                    User.token_expires_at: refreshed.expires_at,
                    User.updated_at: utcnow(),
                },
                synchronize_session=False,
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to store refreshed tokens for Twitter user {twitter_id}: {e}")


async def read_bearer_credential(request: Request) -> BearerCredential:
    """Dependency parsing the token pair out of the request's JSON body."""
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        body = {}
    if not isinstance(body, dict):
        body = {}
    return BearerCredential.from_body(body)


async def require_auth(
    credential: BearerCredential = Depends(read_bearer_credential),
    oauth: TwitterOAuth2 = Depends(get_twitter_oauth),
    db: Session = Depends(get_db),
) -> AuthenticatedSession:
    """FastAPI dependency guarding a route with the client's token pair."""
    return await TokenGuard(oauth, db).authenticate(credential)
