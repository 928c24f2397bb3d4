from fastapi import APIRouter

from app.interfaces.api.automation import router as automation_router
from app.interfaces.api.briefings import router as briefings_router
from app.interfaces.api.castings import router as castings_router
from app.interfaces.api.health import router as health_router
from app.interfaces.api.submissions import router as submissions_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(castings_router)
api_router.include_router(briefings_router)
api_router.include_router(submissions_router)
api_router.include_router(automation_router)
