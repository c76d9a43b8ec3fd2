# Third-party imports
from fastapi import APIRouter

# Local imports
from .auth_routes import router as auth_router
from .tweet_routes import router as tweet_router
from .user_routes import router as user_router
from .health_routes import router as health_router

# Create parent router
router = APIRouter()

# Include sub-routers
router.include_router(auth_router)
router.include_router(tweet_router)
router.include_router(user_router)
router.include_router(health_router)
