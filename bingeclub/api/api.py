"""
API Router Module - Aggregates all endpoint routers
"""
from fastapi import APIRouter

from bingeclub.api.endpoints import debug, movies

api_router = APIRouter()

api_router.include_router(movies.router, prefix="/movies", tags=["Movies"])
api_router.include_router(debug.router, prefix="/debug", tags=["Debug"])
