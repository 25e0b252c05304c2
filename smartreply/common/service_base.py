"""Base class for all SmartReply HTTP services.

Provides:
- FastAPI app with /health endpoint and permissive CORS
- setup/teardown hooks bound to the app lifespan
- Structured logging
- Graceful shutdown on SIGTERM/SIGINT
- Central config loading
"""

import asyncio
import signal
from contextlib import asynccontextmanager
from typing import Optional, Dict, Any

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from smartreply.config import get_config, SmartReplyConfig
from smartreply.common.logging import setup_logging


def error_response(status_code: int, message: str) -> JSONResponse:
    """JSON error body shared by every service: {"error": message}."""
    return JSONResponse(status_code=status_code, content={"error": message})


class SmartReplyService:
    """Base class for all SmartReply microservices.

    Subclasses register their routes in ``register_routes`` and acquire their
    clients in ``setup``; both run against the same app instance so tests can
    drive the service through ``get_app()`` alone.
    """

    def __init__(self, name: str, http_port: Optional[int] = None, config: Optional[SmartReplyConfig] = None):
        self.name = name
        self.http_port = http_port
        self.config: SmartReplyConfig = config or get_config()
        self.logger = setup_logging(name)
        self._app: Optional[FastAPI] = None
        self._server: Optional[uvicorn.Server] = None
        self._ready = False

    # --- HTTP ---

    def get_app(self) -> FastAPI:
        """Get or create the FastAPI app."""
        if self._app is None:
            @asynccontextmanager
            async def lifespan(app):
                await self.setup()
                self._ready = True
                self.logger.info(f"{self.name} service started")
                try:
                    yield
                finally:
                    self._ready = False
                    await self.teardown()
                    self.logger.info(f"{self.name} service stopped")

            self._app = FastAPI(
                title=f"SmartReply - {self.name.title()} Service",
                lifespan=lifespan,
            )
            self._app.add_middleware(
                CORSMiddleware,
                allow_origins=["*"],
                allow_methods=["*"],
                allow_headers=["*"],
                expose_headers=["X-Conversation-Id"],
            )

            @self._app.exception_handler(RequestValidationError)
            async def invalid_request(request: Request, exc: RequestValidationError):
                errors = exc.errors()
                message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
                return error_response(400, message)

            @self._app.exception_handler(Exception)
            async def unexpected_error(request: Request, exc: Exception):
                self.logger.error(
                    f"Unhandled error on {request.url.path}: {exc}",
                    exc_info=True,
                    extra={"endpoint": request.url.path},
                )
                return error_response(500, "Internal server error")

            @self._app.get("/health")
            async def health():
                return {
                    "service": self.name,
                    "status": "healthy" if self._ready else "starting",
                    **self.health_details(),
                }

            self.register_routes(self._app)
        return self._app

    def register_routes(self, app: FastAPI):
        """Override in subclass to add service routes."""
        pass

    def health_details(self) -> Dict[str, Any]:
        """Override in subclass to add fields to /health."""
        return {}

    # --- Lifecycle ---

    async def setup(self):
        """Override in subclass for service-specific initialization."""
        pass

    async def teardown(self):
        """Override in subclass for service-specific cleanup."""
        pass

    async def run(self):
        """Main entry point. Serves HTTP until shutdown."""
        if not self.http_port:
            raise RuntimeError(f"{self.name} service has no HTTP port configured")

        self.logger.info(f"Starting {self.name} service on port {self.http_port}...")
        config = uvicorn.Config(
            self.get_app(),
            host="0.0.0.0",
            port=self.http_port,
            log_level="warning",
        )
        self._server = uvicorn.Server(config)

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self.shutdown)

        try:
            await self._server.serve()
        except asyncio.CancelledError:
            pass

    def shutdown(self):
        """Graceful shutdown."""
        self.logger.info(f"Shutting down {self.name}...")
        if self._server is not None:
            self._server.should_exit = True
