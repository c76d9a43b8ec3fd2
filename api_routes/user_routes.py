"""User statistics routes."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from auth.token_guard import AuthenticatedSession, require_auth
from database import get_db
from errors import NotFound
from models import User, UserAction

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/user", tags=["user"])


def action_stats(db: Session, user: User) -> dict:
    """Count a user's recorded actions by type and outcome."""
    actions = db.query(UserAction).filter(UserAction.user_id == user.id)
    return {
        "totalActions": actions.count(),
        "likes": actions.filter(UserAction.action == "like").count(),
        "retweets": actions.filter(UserAction.action == "retweet").count(),
        "successful": actions.filter(UserAction.success == True).count(),
        "failed": actions.filter(UserAction.success == False).count(),
    }


@router.get("/stats")
async def user_stats(
    session: AuthenticatedSession = Depends(require_auth),
    db: Session = Depends(get_db),
):
    """Return the token owner's profile and action counts."""
    try:
        me = await session.client.get_me()
        twitter_id = str(me["id"]) if me else None

        user = db.query(User).filter(User.twitter_id == twitter_id).first() if twitter_id else None
        if not user:
            raise NotFound("User not found in database")

        return {
            "user": {
                "id": user.twitter_id,
                "username": user.username,
                "name": user.name,
                "profileImgUrl": user.profile_img_url,
            },
            "stats": action_stats(db, user),
            **session.token_fields(),
        }
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting user stats: {e}")
        raise HTTPException(status_code=500, detail="Failed to get user stats")
