"""HTTP surface for the MCP server.

``POST /mcp`` accepts one JSON-RPC message per request, with no session
state between requests.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Body, FastAPI, Response
from fastapi.responses import JSONResponse

from observability.metrics import metrics_payload
from .mcp_server import INVALID_REQUEST, DocsMCPServer

logger = logging.getLogger(__name__)


def create_app(server: DocsMCPServer) -> FastAPI:
    """Build the FastAPI app around an MCP server instance.

    The snapshot is loaded at startup; a load failure aborts startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        server.initialize()
        logger.info(f"HTTP API ready for {server.config.name}")
        yield

    app = FastAPI(title=server.config.name, version=server.config.version, lifespan=lifespan)
    app.state.mcp_server = server

    @app.post("/mcp")
    async def mcp_endpoint(payload: Any = Body(...)):
        if not isinstance(payload, dict):
            return JSONResponse({
                "jsonrpc": "2.0",
                "id": None,
                "error": {"code": INVALID_REQUEST, "message": "Expected a single JSON-RPC object"}
            }, status_code=400)

        response = await server.handle_request(payload)
        if response is None:
            return Response(status_code=202)
        return JSONResponse(response)

    @app.get("/health")
    async def health():
        status = server.get_status()
        if not status["initialized"]:
            return JSONResponse({"status": "unavailable", **status}, status_code=503)

        provider_health = server.provider.health_check()
        if not provider_health.get("healthy"):
            return JSONResponse(
                {"status": "unhealthy", **status, "provider": provider_health}, status_code=503
            )
        return {"status": "ok", **status, "provider": provider_health}

    @app.get("/metrics")
    async def metrics():
        body, content_type = metrics_payload()
        return Response(content=body, media_type=content_type)

    return app
