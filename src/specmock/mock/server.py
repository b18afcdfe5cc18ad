"""
Specmock Mock Server

FastAPI-based HTTP mock server that serves responses generated from API
contracts.

Features:
- Catch-all routing against OpenAPI / Swagger path templates
- Schema-driven response generation with content negotiation
- Per-request spec, status and seed overrides via query parameters
- Admin API for spec inventory, hot reload and metrics
"""

from __future__ import annotations  # Enable forward references for type hints

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
import uvicorn

from ..common.config import GenerationConfig, MockConfig
from ..common.errors import (
    LoadError,
    MethodNotAllowed,
    RouteNotFound,
    SpecmockError,
    UnknownSpecification,
)
from .engine import MockEngine, MockResponse
from .matcher import RouteResolver
from .registry import SpecificationRegistry, ensure_specs_dir
from .selector import ResponseSelector


MOCK_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS", "TRACE"]


@dataclass
class MockMetrics:
    """Track mock server metrics."""

    total_requests: int = 0
    matched_requests: int = 0
    not_found: int = 0
    method_not_allowed: int = 0
    errors: int = 0
    responses_by_status: Dict[int, int] = field(default_factory=dict)
    start_time: str = field(default_factory=lambda: datetime.now().isoformat())

    def record_status(self, status_code: int):
        self.responses_by_status[status_code] = self.responses_by_status.get(status_code, 0) + 1

    def record_error(self, error: SpecmockError):
        if isinstance(error, RouteNotFound):
            self.not_found += 1
        elif isinstance(error, MethodNotAllowed):
            self.method_not_allowed += 1
        else:
            self.errors += 1
        self.record_status(error.http_status)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        uptime_seconds = (datetime.now() - datetime.fromisoformat(self.start_time)).total_seconds()
        return {
            'total_requests': self.total_requests,
            'matched_requests': self.matched_requests,
            'not_found': self.not_found,
            'method_not_allowed': self.method_not_allowed,
            'errors': self.errors,
            'match_rate': round((self.matched_requests / self.total_requests * 100) if self.total_requests > 0 else 0, 2),
            'responses_by_status': {str(k): v for k, v in sorted(self.responses_by_status.items())},
            'uptime_seconds': round(uptime_seconds, 2),
            'start_time': self.start_time
        }


class MockServer:
    """
    FastAPI-based mock server for contract-driven responses.

    Loads every contract in the specs directory and answers any request whose
    path matches one of their templates with a generated body.

    Example:
        # Serve the contracts in ./specs
        server = MockServer('specs')
        server.start(host='0.0.0.0', port=8080)

        # With custom config
        config = MockConfig(
            default_spec='petstore.yaml',
            generation=GenerationConfig(default_array_length=5, seed=7)
        )
        server = MockServer('specs', config=config)
        server.start()
    """

    def __init__(
        self,
        specs_dir: Optional[str] = None,
        config: Optional[MockConfig] = None,
        registry: Optional[SpecificationRegistry] = None,
        route_resolver: Optional[RouteResolver] = None,
        response_selector: Optional[ResponseSelector] = None
    ):
        """
        Initialize mock server.

        Args:
            specs_dir: Directory with contract files (overrides config.specs_dir)
            config: Optional MockConfig for server behavior
            registry: Optional pre-loaded SpecificationRegistry (skips loading)
            route_resolver: Optional RouteResolver instance (will create if None)
            response_selector: Optional ResponseSelector instance (will create if None)
        """
        self.config = config or MockConfig()
        if specs_dir is not None:
            self.config.specs_dir = str(specs_dir)
        self.metrics = MockMetrics()

        # Setup logging first (before loading specs)
        self.logger = logging.getLogger("specmock.mock")
        self.logger.setLevel(getattr(logging, self.config.log_level.upper()))

        self.registry = registry or self._load_registry()
        self.engine = MockEngine(
            self.registry,
            config=self.config.generation,
            resolver=route_resolver,
            selector=response_selector
        )

        # Setup FastAPI app
        self.app = self._create_app()

    def _load_registry(self) -> SpecificationRegistry:
        """Load contracts from the specs directory, seeding it on first run."""
        if self.config.copy_sample_spec:
            ensure_specs_dir(self.config.specs_dir)

        registry = SpecificationRegistry(default_spec=self.config.default_spec)
        report = registry.load(self.config.specs_dir)
        self.logger.info(
            f"Loaded {len(report.loaded)} specs from {self.config.specs_dir} "
            f"(default: {report.default_name})"
        )
        return registry

    def _create_app(self) -> FastAPI:
        """Create FastAPI application with routes."""
        app = FastAPI(
            title="Specmock Mock Server",
            description="Mock HTTP server generating responses from API contracts",
            version="1.0.0"
        )
        prefix = self.config.admin_prefix

        # Admin API routes
        if self.config.admin_enabled:
            @app.get(prefix)
            async def get_status():
                """Server status and loaded spec names."""
                return JSONResponse(content={
                    'application': 'specmock',
                    'status': 'running',
                    'default_spec': self.registry.default_name,
                    'loaded_specs': self.registry.names()
                })

            @app.get(f"{prefix}/specs")
            async def list_specs():
                """List loaded specs with title, version and counts."""
                return JSONResponse(content=self.registry.describe())

            @app.get(f"{prefix}/specs/{{name}}/endpoints")
            async def list_endpoints(name: str):
                """List the endpoints of one spec."""
                try:
                    endpoints = self.registry.endpoints(name)
                except UnknownSpecification as e:
                    return JSONResponse(content=e.to_dict(), status_code=404)
                return JSONResponse(content={
                    'spec': name,
                    'total': len(endpoints),
                    'endpoints': endpoints
                })

            @app.post(f"{prefix}/reload")
            def reload_specs():
                """Re-read the specs directory and swap in the result."""
                try:
                    report = self.registry.reload()
                except LoadError as e:
                    self.logger.error(f"Reload failed: {e.message}")
                    return JSONResponse(content=e.to_dict(), status_code=e.http_status)
                self.logger.info(f"Reloaded specs: {len(report.loaded)} loaded, {len(report.errors)} failed")
                return JSONResponse(content=report.to_dict())

            @app.get(f"{prefix}/metrics")
            async def get_metrics():
                """Get server metrics."""
                return JSONResponse(content=self.metrics.to_dict())

            @app.post(f"{prefix}/reset")
            async def reset_metrics():
                """Reset metrics."""
                self.metrics = MockMetrics()
                return JSONResponse(content={'status': 'reset'})

            @app.get(f"{prefix}/config")
            async def get_config():
                """Get current configuration."""
                return JSONResponse(content=self.config.to_dict())

        # Main catch-all route for mocking
        @app.api_route("/{path:path}", methods=MOCK_METHODS)
        async def mock_request(request: Request, path: str):
            """Handle incoming requests and serve mock responses."""
            return await self._handle_request(request, path)

        return app

    async def _handle_request(self, request: Request, path: str) -> Response:
        """
        Handle incoming request and serve mock response.

        Args:
            request: FastAPI Request object
            path: Request path

        Returns:
            FastAPI Response with generated data
        """
        start_time = time.time()
        self.metrics.total_requests += 1

        method = request.method
        params = request.query_params
        request_path = request.url.path

        self.logger.debug(f"Incoming: {method} {request.url}")

        try:
            mocked = self.engine.handle(
                method,
                request_path,
                spec_name=params.get('spec') or None,
                status=params.get('status') or None,
                accept=request.headers.get('accept'),
                seed=self._parse_seed(params.get('seed'))
            )
        except SpecmockError as e:
            self.metrics.record_error(e)
            self.logger.warning(f"{method} {request_path} -> {e.http_status}: {e.message}")
            return self._error_response(e)

        self.metrics.matched_requests += 1
        self.metrics.record_status(mocked.status_code)

        elapsed_ms = (time.time() - start_time) * 1000
        self.logger.info(
            f"{method} {request_path} -> {mocked.status_code} "
            f"{mocked.match.operation.display_name} ({elapsed_ms:.1f}ms)"
        )
        return self._create_response(mocked)

    def _parse_seed(self, raw: Optional[str]) -> Optional[int]:
        if raw is None or raw == '':
            return None
        try:
            return int(raw)
        except ValueError:
            self.logger.warning(f"Ignoring non-integer seed {raw!r}")
            return None

    def _create_response(self, mocked: MockResponse) -> Response:
        """Create FastAPI Response from a generated mock response."""
        if mocked.media_type is None:
            return Response(status_code=mocked.status_code, headers=mocked.headers)

        return Response(
            content=mocked.render(),
            status_code=mocked.status_code,
            headers=mocked.headers,
            media_type=mocked.media_type
        )

    def _error_response(self, error: SpecmockError) -> Response:
        headers = {}
        if isinstance(error, MethodNotAllowed):
            headers['Allow'] = error.allow_header
        return JSONResponse(content=error.to_dict(), status_code=error.http_status, headers=headers)

    def start(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        access_log: bool = True
    ):
        """
        Start the mock server.

        Args:
            host: Host to bind to (overrides config)
            port: Port to bind to (overrides config)
            access_log: Enable access logging
        """
        actual_host = host or self.config.host
        actual_port = port or self.config.port

        print(f"🚀 Specmock Mock Server starting...")
        print(f"   Host: {actual_host}:{actual_port}")
        print(f"   Specs directory: {self.config.specs_dir}")
        print(f"   Specs loaded: {', '.join(self.registry.names()) or 'none'}")
        print(f"   Default spec: {self.registry.default_name or 'none'}")

        for name, error in self.registry.errors.items():
            print(f"   ⚠️  Failed to load {name}: {error.message}")

        if self.config.admin_enabled:
            print(f"   Admin API: http://{actual_host}:{actual_port}{self.config.admin_prefix}/specs")

        print()

        uvicorn.run(
            self.app,
            host=actual_host,
            port=actual_port,
            log_level=self.config.log_level,
            access_log=access_log
        )

    def get_app(self) -> FastAPI:
        """
        Get the FastAPI app instance for testing or custom deployment.

        Returns:
            FastAPI application instance
        """
        return self.app


def create_mock_server(
    specs_dir: str = "specs",
    host: str = "127.0.0.1",
    port: int = 8080,
    default_spec: Optional[str] = None,
    seed: Optional[int] = None,
    array_length: int = 3,
    string_length: int = 10,
    use_examples: bool = True,
    admin_enabled: bool = True,
    log_level: str = "info"
) -> MockServer:
    """
    Convenience function to create and configure a mock server.

    Args:
        specs_dir: Directory with contract files
        host: Host to bind to
        port: Port to bind to
        default_spec: File name of the default spec
        seed: Fixed seed for reproducible responses
        array_length: Default generated array length
        string_length: Default generated string length
        use_examples: Prefer declared examples over generated values
        admin_enabled: Expose the admin API
        log_level: Logging level name

    Returns:
        Configured MockServer instance

    Example:
        server = create_mock_server('specs', port=8080, seed=42)
        server.start()
    """
    config = MockConfig(
        specs_dir=specs_dir,
        default_spec=default_spec,
        host=host,
        port=port,
        log_level=log_level,
        admin_enabled=admin_enabled,
        generation=GenerationConfig(
            default_array_length=array_length,
            default_string_length=string_length,
            use_examples=use_examples,
            seed=seed
        )
    )

    return MockServer(config=config)
