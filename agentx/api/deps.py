"""
Shared request dependencies.
"""

from fastapi import Request

from agentx.core.manager import CapabilityManager


def get_manager(request: Request) -> CapabilityManager:
    """The CapabilityManager created during app startup."""
    return request.app.state.manager
