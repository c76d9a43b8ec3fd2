"""
Integration tests for user statistics and the health check
"""

import pytest
from unittest.mock import MagicMock
from sqlalchemy.exc import OperationalError

from database import get_db
from models import UserAction

pytestmark = [pytest.mark.integration]


@pytest.fixture
def recorded_actions(test_db, test_user):
    for tweet_id, action, success in [
        ("1", "like", True),
        ("2", "like", False),
        ("3", "retweet", True),
        ("4", "like", True),
    ]:
        test_db.add(UserAction(user_id=test_user.id, tweet_id=tweet_id, action=action, success=success))
    test_db.commit()


class TestUserStats:
    """Test the user statistics route"""

    def test_stats(self, client, recorded_actions, token_body):
        response = client.request("GET", "/api/user/stats", json=token_body)

        assert response.status_code == 200
        data = response.json()
        assert data["user"] == {
            "id": "test-twitter-id",
            "username": "test_user",
            "name": "Test User",
            "profileImgUrl": "https://example.com/avatar.jpg",
        }
        assert data["stats"] == {
            "totalActions": 4,
            "likes": 3,
            "retweets": 1,
            "successful": 3,
            "failed": 1,
        }
        assert "tokens" not in data

    def test_stats_are_stable(self, client, recorded_actions, token_body):
        first = client.request("GET", "/api/user/stats", json=token_body).json()
        second = client.request("GET", "/api/user/stats", json=token_body).json()

        assert first["stats"] == second["stats"]

    def test_stats_follow_actions(self, client, test_user, token_body):
        client.post("/api/tweets/like", json={**token_body, "tweetId": "1234567890"})
        client.post("/api/tweets/retweet", json={**token_body, "tweetId": "1234567890"})

        stats = client.request("GET", "/api/user/stats", json=token_body).json()["stats"]

        assert stats == {"totalActions": 2, "likes": 1, "retweets": 1, "successful": 2, "failed": 0}

    def test_stats_without_actions(self, client, test_user, token_body):
        response = client.request("GET", "/api/user/stats", json=token_body)

        assert response.status_code == 200
        assert response.json()["stats"]["totalActions"] == 0

    def test_stats_unknown_user(self, client, token_body):
        response = client.request("GET", "/api/user/stats", json=token_body)

        assert response.status_code == 404
        assert response.json()["detail"] == "User not found in database"

    def test_stats_returns_refreshed_tokens(self, client, test_user, expired_token_body):
        response = client.request("GET", "/api/user/stats", json=expired_token_body)

        assert response.status_code == 200
        assert response.json()["tokens"]["refreshToken"] == "refreshed-refresh-token"

    def test_stats_requires_tokens(self, client):
        response = client.request("GET", "/api/user/stats", json={"refreshToken": "r"})

        assert response.status_code == 401

    def test_stats_provider_error(self, client, test_user, token_body, twitter_api):
        twitter_api.get_me.side_effect = Exception("boom")

        response = client.request("GET", "/api/user/stats", json=token_body)

        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to get user stats"


class TestHealth:
    """Test the health check"""

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "database": "connected"}

    def test_health_database_down(self, app, client):
        broken = MagicMock()
        broken.execute.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))
        app.dependency_overrides[get_db] = lambda: broken

        response = client.get("/api/health")

        assert response.status_code == 500
        assert response.json() == {"status": "error", "database": "disconnected"}
