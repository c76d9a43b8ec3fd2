"""
Shared pytest fixtures and configuration
"""

import os
import sys
import time
from pathlib import Path

# Set test environment variables before any application module reads settings
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["TWITTER_CLIENT_ID"] = "test-client-id"
os.environ["TWITTER_CLIENT_SECRET"] = "test-client-secret"
os.environ["CALLBACK_URL"] = "http://testserver/api/auth/callback"
os.environ["FRONTEND_URL"] = "http://frontend.test"

# Add the project root to Python path to make imports work
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from unittest.mock import AsyncMock, MagicMock
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from auth.oauth import TwitterOAuth2, get_twitter_oauth
from database import Base, get_db
from models import User

# Create in-memory SQLite database for testing
engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TEST_TWITTER_ID = "test-twitter-id"
FRONTEND_URL = "http://frontend.test"


def future_millis(seconds: int = 3600) -> int:
    return int(time.time() * 1000) + seconds * 1000


PAST_MILLIS = 1000


@pytest.fixture(scope="function")
def test_db():
    """
    Create all tables in the test database and provide a new session for testing.
    Tear down the tables after the test is complete.
    """
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def twitter_api():
    """
    Mock TwitterApiClient returned by the OAuth configuration.
    """
    api = MagicMock()
    api.get_me = AsyncMock(return_value={
        "id": TEST_TWITTER_ID,
        "username": "test_user",
        "name": "Test User",
        "profile_image_url": "https://example.com/avatar.jpg",
    })
    api.like = AsyncMock(return_value={"data": {"liked": True}})
    api.retweet = AsyncMock(return_value={"data": {"retweeted": True}})
    return api


@pytest.fixture
def twitter_oauth(twitter_api) -> TwitterOAuth2:
    """
    TwitterOAuth2 with every call to Twitter mocked out.

    ``get_authorization_url`` and ``is_valid_state`` stay real; neither talks to Twitter.
    """
    oauth = TwitterOAuth2(
        client_id="test-client-id",
        client_secret="test-client-secret",
        callback_url="http://testserver/api/auth/callback",
        scopes=["tweet.read", "users.read", "tweet.write", "like.write", "offline.access"],
        state="twitter-auth-state",
    )
    oauth.exchange_code = AsyncMock(return_value={
        "token_type": "bearer",
        "access_token": "new-access-token",
        "refresh_token": "new-refresh-token",
        "expires_in": 7200,
        "expires_at": time.time() + 7200,
    })
    oauth.refresh = AsyncMock(return_value={
        "token_type": "bearer",
        "access_token": "refreshed-access-token",
        "refresh_token": "refreshed-refresh-token",
        "expires_in": 7200,
        "expires_at": time.time() + 7200,
    })
    oauth.revoke = AsyncMock(return_value={"revoked": True})
    oauth.create_api_client = MagicMock(return_value=twitter_api)
    return oauth


@pytest.fixture(scope="function")
def app(test_db, twitter_oauth) -> FastAPI:
    """
    FastAPI app with the database and OAuth dependencies overridden.
    """
    from main import app as main_app

    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    main_app.dependency_overrides[get_db] = override_get_db
    main_app.dependency_overrides[get_twitter_oauth] = lambda: twitter_oauth

    yield main_app

    main_app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture(scope="function")
def test_user(test_db) -> User:
    """
    Create a test user in the database.
    """
    user = User(
        twitter_id=TEST_TWITTER_ID,
        username="test_user",
        name="Test User",
        profile_img_url="https://example.com/avatar.jpg",
        access_token="stored-access-token",
        refresh_token="stored-refresh-token",
        token_expires_at=PAST_MILLIS,
    )
    test_db.add(user)
    test_db.commit()
    test_db.refresh(user)
    return user


@pytest.fixture
def token_body():
    """A valid, unexpired token pair as the client sends it."""
    return {
        "accessToken": "test-access-token",
        "refreshToken": "test-refresh-token",
        "expiresAt": future_millis(),
        "twitterId": TEST_TWITTER_ID,
    }


@pytest.fixture
def expired_token_body(token_body):
    return {**token_body, "expiresAt": PAST_MILLIS}
