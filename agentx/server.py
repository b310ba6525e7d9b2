"""
agentx HTTP server.

FastAPI application exposing the capability operations under /api.
"""

from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from agentx import __version__
from agentx.api import api_router
from agentx.config import get_settings
from agentx.core.manager import CapabilityManager
from agentx.lib.logger import get_logger, setup_logging
from agentx.lib.typed_errors import AgentxError, http_status_for, to_typed_error

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()

    if getattr(app.state, "manager", None) is None:
        setup_logging(level=settings.log_level)
        logger.info("Starting agentx server...")
        app.state.manager = await CapabilityManager.create(settings)
        owns_manager = True
    else:
        owns_manager = False

    agents = await app.state.manager.list_agents()
    logger.info(f"Agents detected: {', '.join(a.name for a in agents if a.exists) or 'none'}")

    yield

    if owns_manager:
        app.state.manager = None


async def agentx_error_handler(request: Request, exc: AgentxError) -> JSONResponse:
    typed = to_typed_error(exc)
    return JSONResponse(
        status_code=http_status_for(typed),
        content={"error": typed.model_dump(mode="json", by_alias=True, exclude_none=True)},
    )


def create_app(manager: Optional[CapabilityManager] = None) -> FastAPI:
    """Build the FastAPI app. A prebuilt manager skips registry loading."""
    application = FastAPI(
        title="agentx",
        description="Manage MCP servers, skills and plugins across AI coding agents",
        version=__version__,
        lifespan=lifespan,
    )
    application.state.manager = manager
    application.add_exception_handler(AgentxError, agentx_error_handler)
    application.include_router(api_router)

    @application.get("/")
    async def root():
        return {"name": "agentx", "version": __version__, "status": "running"}

    return application


app = create_app()


def main():
    """Main entry point."""
    settings = get_settings()
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
