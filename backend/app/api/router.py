from fastapi import APIRouter
from app.api.routes import explanations, quality

api_router = APIRouter()

api_router.include_router(quality.router, prefix="/quality", tags=["Quality"])
api_router.include_router(explanations.router, prefix="/explanations", tags=["Explanations"])
