from fastapi import APIRouter
from reputation_monitor.api.routes import (
    businesses,
    reviews,
)

api_router = APIRouter()

api_router.include_router(businesses.router)
api_router.include_router(reviews.router)
