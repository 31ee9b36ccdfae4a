from fastapi import APIRouter
from app.api.endpoints import health, outbreaks

api_router = APIRouter()


api_router.include_router(health.router, tags=["Health"])
api_router.include_router(outbreaks.router, prefix="/outbreaks", tags=["Outbreak Detection"])
