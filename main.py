# Standard library imports
import logging
from contextlib import asynccontextmanager
from typing import Optional

# Third-party imports
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Local imports
from config import Settings, get_settings
from database import engine, Base
from auth.oauth import TwitterOAuth2
from errors import unexpected_error_handler
from api_routes import router as api_router

# Set up logging
logging.basicConfig(
    level=get_settings().LOG_LEVEL.upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Initialize database
    Base.metadata.create_all(bind=engine)
    yield
    # Runs once uvicorn has drained in-flight requests after SIGTERM
    logger.info("Shutting down, closing database connections")
    engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application with its OAuth configuration and routes."""
    settings = settings or get_settings()

    app = FastAPI(title="Twitter PKCE Backend", lifespan=lifespan)

    # Built once per process and handed to requests via the get_twitter_oauth dependency
    app.state.twitter_oauth = TwitterOAuth2.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(Exception, unexpected_error_handler)

    # Register routers
    app.include_router(api_router, prefix=settings.API_PREFIX)

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    logger.info(f"Server running on http://localhost:{settings.PORT}")
    logger.info(f"Login endpoint: http://localhost:{settings.PORT}{settings.API_PREFIX}/auth/login")
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower()
    )
