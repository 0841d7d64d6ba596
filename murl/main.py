"""
Main FastAPI application entry point.

This module assembles the redirect service: it loads the configuration,
compiles the routes, mounts one ``GET`` handler per route path and the
documentation page, and wires up access logging.
"""

import os
from pathlib import Path
from typing import List, Mapping, Optional, Sequence, Tuple, Union

from fastapi import FastAPI

from murl import __version__
from murl.api.documentation import mount_documentation
from murl.config import MurlConfig, ServerConfig, get_logger, load_config
from murl.core.middleware import AccessLogMiddleware
from murl.routing import CompiledRoute, compile_routes, mount_routes

logger = get_logger(__name__)


def create_app(
    routes: Sequence[CompiledRoute],
    server_config: Optional[ServerConfig] = None,
    environ: Optional[Mapping[str, str]] = None,
    access_log: bool = True
) -> FastAPI:
    """
    Create the application serving ``routes``.

    Args:
        routes: Compiled routes to mount
        server_config: Server settings; enables the documentation page
        environ: Environment read by the ``get_env`` accessor, defaults to
            the process environment
        access_log: Whether to add the access log middleware

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="murl",
        description="Template driven HTTP redirect service",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        redirect_slashes=False
    )

    if access_log:
        app.add_middleware(AccessLogMiddleware)

    handlers = mount_routes(app, routes, os.environ if environ is None else environ)

    # Mounted after the routes so an identical route path takes precedence
    if server_config is not None:
        mount_documentation(app, routes, server_config.documentation)

    app.state.routes = list(routes)
    app.state.handlers = handlers

    logger.info(f"Mounted {len(handlers)} paths for {len(routes)} routes")
    return app


def load_routes(path: Union[str, Path]) -> Tuple[MurlConfig, List[CompiledRoute]]:
    """
    Load the configuration file at ``path`` and compile its routes.

    Raises:
        ConfigurationError: If the file or server settings are invalid
        DefinitionError: If a route fails to compile
    """
    config = load_config(path)
    routes = compile_routes(config.routes)
    return config, routes


def create_app_from_config(path: Optional[Union[str, Path]] = None) -> FastAPI:
    """
    Application factory for ASGI servers.

    Reads the configuration path from ``MURL_CONFIG`` when not given, e.g.
    ``uvicorn --factory murl.main:create_app_from_config``.
    """
    if path is None:
        path = os.getenv("MURL_CONFIG", "config.json")
    config, routes = load_routes(path)
    return create_app(routes, config.server, access_log=config.logging.access_log)
