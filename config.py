from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List, Optional

class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///twitter_api.db"

    # Server
    PORT: int = 3000
    API_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"

    # Front-end that receives the post-login redirect
    FRONTEND_URL: str = "http://localhost:3001"

    # Twitter OAuth 2.0 (PKCE) settings
    # Left unvalidated here; Twitter rejects bad values on first use
    TWITTER_CLIENT_ID: Optional[str] = None
    TWITTER_CLIENT_SECRET: Optional[str] = None
    CALLBACK_URL: str = "http://localhost:3000/api/auth/callback"
    TWITTER_SCOPES: str = "tweet.read users.read tweet.write like.write offline.access"

    # Anti-forgery state sent with every authorization request.
    # A single fixed value is a weak CSRF defense; clients rely on it today.
    OAUTH_STATE: str = "twitter-auth-state"

    @property
    def scopes(self) -> List[str]:
        return self.TWITTER_SCOPES.split()

    class Config:
        env_file = ".env"
        extra = "ignore"  # Allow extra fields from environment variables

@lru_cache()
def get_settings():
    return Settings()
