"""
Tests for the seed script
"""

import pytest

from models import User, UserAction
from seed import SEED_TWITTER_ID, seed

pytestmark = [pytest.mark.unit]


def test_seed_creates_user_and_actions(test_db):
    user = seed(test_db)

    assert user.twitter_id == SEED_TWITTER_ID
    assert user.token_expires_at is not None
    actions = test_db.query(UserAction).filter(UserAction.user_id == user.id).all()
    assert sorted((a.action, a.success) for a in actions) == [
        ("like", False),
        ("like", True),
        ("retweet", True),
    ]


def test_seed_is_idempotent(test_db):
    seed(test_db)
    seed(test_db)

    assert test_db.query(User).count() == 1
    assert test_db.query(UserAction).count() == 3
