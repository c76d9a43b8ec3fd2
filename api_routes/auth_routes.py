"""
OAuth Routes
============

This module implements the Twitter OAuth 2.0 (PKCE) endpoints:
- ``GET /auth/login``: issue the Twitter consent URL
- ``GET /auth/callback``: exchange the code, upsert the user, redirect to the front-end
- ``POST /auth/revoke``: revoke the current access token at Twitter
- ``GET /auth/verify``: return Twitter's view of the token owner

The callback hands the token pair to the front-end in the redirect query
string. Tokens in URLs end up in browser history and server logs; the client
contract depends on it for now.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from auth.oauth import TwitterOAuth2, expires_at_millis, get_twitter_oauth
from auth.token_guard import AuthenticatedSession, require_auth
from config import Settings, get_settings
from database import get_db
from errors import ValidationError
from models import User, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def upsert_user(db: Session, twitter_user: Dict[str, Any], token: Dict[str, Any]) -> User:
    """
    Create or update the User row for a Twitter account.

    A concurrent callback for the same account may insert first; the unique
    constraint on ``twitter_id`` turns that into an update.
    """
    values = {
        "username": twitter_user.get("username"),
        "name": twitter_user.get("name"),
        "profile_img_url": twitter_user.get("profile_image_url"),
        "access_token": token.get("access_token"),
        "refresh_token": token.get("refresh_token"),
        "token_expires_at": expires_at_millis(token),
    }
    twitter_id = str(twitter_user["id"])

    user = db.query(User).filter(User.twitter_id == twitter_id).first()
    if user is None:
        user = User(twitter_id=twitter_id, **values)
        db.add(user)
        try:
            db.commit()
            db.refresh(user)
            return user
        except IntegrityError:
            db.rollback()
            user = db.query(User).filter(User.twitter_id == twitter_id).one()

    for field, value in values.items():
        setattr(user, field, value)
    user.updated_at = utcnow()
    db.commit()
    db.refresh(user)
    return user


@router.get("/login")
async def login(oauth: TwitterOAuth2 = Depends(get_twitter_oauth)):
    """Return the Twitter authorization URL; the caller performs the redirect."""
    try:
        return {"authUrl": oauth.get_authorization_url()}
    except Exception as e:
        logger.error(f"Error generating Twitter authorization URL: {e}")
        raise HTTPException(status_code=500, detail="Failed to generate auth URL")


@router.get("/callback")
async def callback(
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    oauth: TwitterOAuth2 = Depends(get_twitter_oauth),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Handle the redirect back from Twitter.

    Args:
        code (str): Authorization code issued by Twitter
        state (str): Anti-forgery state; must equal the configured value

    Returns:
        RedirectResponse: 302 to ``{FRONTEND_URL}/auth-success`` with the token
        pair and Twitter id in the query string
    """
    if not oauth.is_valid_state(state):
        logger.warning("OAuth callback rejected: state mismatch")
        raise ValidationError("Invalid state parameter")
    if not code:
        raise ValidationError("Missing authorization code")

    try:
        token = await oauth.exchange_code(code)

        client = oauth.create_api_client(token["access_token"])
        twitter_user = await client.get_me()

        if twitter_user:
            user = upsert_user(db, twitter_user, token)
            logger.info(f"Twitter user {user.twitter_id} authenticated")
        else:
            logger.warning("Twitter returned no user for a freshly issued token")

        expires_at = expires_at_millis(token)
        query = urlencode({
            "accessToken": token["access_token"],
            "refreshToken": token.get("refresh_token") or "",
            "expiresAt": str(expires_at) if expires_at is not None else "",
            "twitterId": str(twitter_user["id"]) if twitter_user else "",
        })
        return RedirectResponse(f"{settings.FRONTEND_URL}/auth-success?{query}", status_code=302)

    except Exception as e:
        logger.error(f"Error processing Twitter OAuth callback: {e}")
        raise HTTPException(status_code=500, detail="Authentication failed")


@router.post("/revoke")
async def revoke(
    session: AuthenticatedSession = Depends(require_auth),
    oauth: TwitterOAuth2 = Depends(get_twitter_oauth),
):
    """Revoke the access token at Twitter. Local user rows and history are kept."""
    try:
        response = await oauth.revoke(session.credential.access_token)
    except Exception as e:
        logger.error(f"Error revoking Twitter token: {e}")
        raise HTTPException(status_code=500, detail="Failed to revoke token")
    return {"success": True, "response": response}


@router.get("/verify")
async def verify(session: AuthenticatedSession = Depends(require_auth)):
    """Return Twitter's current view of the token owner."""
    try:
        twitter_user = await session.client.get_me()
    except Exception as e:
        logger.error(f"Error verifying Twitter user: {e}")
        raise HTTPException(status_code=500, detail="Failed to verify user")
    return {"user": twitter_user, **session.token_fields()}
