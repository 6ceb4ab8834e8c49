from fastapi import APIRouter

from agent_manager.api.routes import ai, auth, health, subscription, user

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(ai.router, prefix="/ai", tags=["ai"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(subscription.router, prefix="/subscription", tags=["subscription"])
api_router.include_router(user.router, prefix="/user", tags=["user"])
