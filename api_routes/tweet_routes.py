"""
Tweet Action Routes
===================

Like and retweet on behalf of the token owner.

The acting user is whoever Twitter says owns the access token, not the
``twitterId`` the client sent. A refusal from Twitter is reported as
``success: false`` with Twitter's error in ``data``; the HTTP status stays 200.
Each attempt is logged as a ``UserAction`` when the acting user has a local row.
"""

import logging
from typing import Optional, Union

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from auth.token_guard import AuthenticatedSession, require_auth
from database import get_db
from errors import ProviderActionFailed, ValidationError
from models import User, UserAction

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tweets", tags=["tweets"])

FAILURE_MESSAGES = {
    "like": "Failed to like tweet",
    "retweet": "Failed to retweet",
}


class TweetActionRequest(BaseModel):
    """Request body for tweet actions; the token pair is read by the guard."""
    tweetId: Optional[Union[str, int]] = None


def record_action(db: Session, twitter_id: str, tweet_id: str, action: str, success: bool) -> Optional[UserAction]:
    """Append a UserAction for the local user with ``twitter_id``, if there is one."""
    user = db.query(User).filter(User.twitter_id == twitter_id).first()
    if not user:
        logger.info(f"No local user for Twitter id {twitter_id}; {action} not recorded")
        return None

    user_action = UserAction(user_id=user.id, tweet_id=tweet_id, action=action, success=success)
    db.add(user_action)
    db.commit()
    return user_action


async def perform_action(action: str, body: TweetActionRequest, session: AuthenticatedSession, db: Session):
    if not body.tweetId:
        raise ValidationError("Tweet ID is required")
    tweet_id = str(body.tweetId)

    try:
        me = await session.client.get_me()
        if not me:
            raise ValueError("Twitter returned no user for the access token")
        user_id = str(me["id"])

        try:
            data = await getattr(session.client, action)(user_id, tweet_id)
            success = True
        except ProviderActionFailed as e:
            data = e.payload
            success = False

        record_action(db, user_id, tweet_id, action, success)

        return {"success": success, "data": data, **session.token_fields()}

    except Exception as e:
        logger.error(f"Error performing {action} on tweet {tweet_id}: {e}")
        raise HTTPException(status_code=500, detail=FAILURE_MESSAGES[action])


@router.post("/like")
async def like_tweet(
    body: TweetActionRequest,
    session: AuthenticatedSession = Depends(require_auth),
    db: Session = Depends(get_db),
):
    """Like a tweet."""
    return await perform_action("like", body, session, db)


@router.post("/retweet")
async def retweet(
    body: TweetActionRequest,
    session: AuthenticatedSession = Depends(require_auth),
    db: Session = Depends(get_db),
):
    """Retweet a tweet."""
    return await perform_action("retweet", body, session, db)
