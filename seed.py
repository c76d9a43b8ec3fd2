#!/usr/bin/env python3
"""
Seed the database with a test user and a few example actions.

Safe to run repeatedly: the user is upserted and actions are only added
when the user has none yet.

Usage:
  python seed.py
"""

import logging
import sys
import time

from sqlalchemy.orm import Session

from database import Base, SessionLocal, engine
from models import User, UserAction

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

SEED_TWITTER_ID = "seed_test_user"

SEED_ACTIONS = [
    ("1234567890", "like", True),
    ("0987654321", "retweet", True),
    ("5678901234", "like", False),
]


def seed(db: Session) -> User:
    user = db.query(User).filter(User.twitter_id == SEED_TWITTER_ID).first()
    if user:
        logger.info(f"Seed user already exists: {user.id}")
    else:
        user = User(
            twitter_id=SEED_TWITTER_ID,
            username="tester",
            name="Test User",
            profile_img_url="https://via.placeholder.com/400",
            access_token="example_access_token",
            refresh_token="example_refresh_token",
            token_expires_at=int(time.time() * 1000) + 3600000,  # 1 hour from now
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info(f"Seeded test user: {user.id}")

    if db.query(UserAction).filter(UserAction.user_id == user.id).count() == 0:
        for tweet_id, action, success in SEED_ACTIONS:
            db.add(UserAction(user_id=user.id, tweet_id=tweet_id, action=action, success=success))
        db.commit()
        logger.info("Seeded example user actions")
    else:
        logger.info("Seed user already has actions, skipping")

    return user


def main():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed(db)
    except Exception as e:
        logger.error(f"Error seeding database: {e}")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
