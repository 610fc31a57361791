from fastapi import APIRouter
from .api import planning, layout, wastage

# Create main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(planning.router, prefix="/api", tags=["Planning"])
api_router.include_router(layout.router, prefix="/api", tags=["Layout"])
api_router.include_router(wastage.router, prefix="/api", tags=["Wastage"])
