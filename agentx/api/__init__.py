"""
API routes for the agentx server.
"""

from fastapi import APIRouter

from agentx.api import agents, capabilities, health

# Create main API router
api_router = APIRouter(prefix="/api")

api_router.include_router(health.router, tags=["health"])
api_router.include_router(agents.router, tags=["agents"])
api_router.include_router(capabilities.router, tags=["capabilities"])
