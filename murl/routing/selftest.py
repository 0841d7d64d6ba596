"""
Self-test harness for compiled routes.

Replays the tests declared on each route through the same handlers and path
matching used by the live server, and stops at the first mismatch. Tests run
sequentially because each one temporarily overrides process environment
variables; the harness must not run alongside live request serving.
"""

import os
from contextlib import contextmanager
from typing import Dict, Iterator, Mapping, MutableMapping, Optional, Sequence

from fastapi import FastAPI
from fastapi.testclient import TestClient

from murl.config.logging import StructuredLogger
from murl.core.exceptions import RouteTestError
from murl.routing.compiler import CompiledRoute, RouteTest
from murl.routing.handlers import RouteHandler, mount_handlers, mount_routes

logger = StructuredLogger(__name__)


@contextmanager
def override_environment(
    values: Mapping[str, str],
    environ: Optional[MutableMapping[str, str]] = None
) -> Iterator[None]:
    """
    Temporarily set environment variables.

    Prior values, or their absence, are restored when the block exits,
    whether or not it raised.

    Args:
        values: Variables to set
        environ: Mapping to modify, defaults to ``os.environ``
    """
    if environ is None:
        environ = os.environ

    original: Dict[str, Optional[str]] = {key: environ.get(key) for key in values}
    try:
        for key, value in values.items():
            environ[key] = value
        yield
    finally:
        for key, previous in original.items():
            if previous is None:
                environ.pop(key, None)
            else:
                environ[key] = previous


def build_test_app(
    routes: Sequence[CompiledRoute],
    handlers: Optional[Sequence[RouteHandler]] = None
) -> FastAPI:
    """Build an application dispatching exactly like the live server."""
    app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None, redirect_slashes=False)
    if handlers is None:
        mount_routes(app, routes)
    else:
        mount_handlers(app, handlers)
    return app


def run_tests(
    routes: Sequence[CompiledRoute],
    handlers: Optional[Sequence[RouteHandler]] = None
) -> int:
    """
    Run every test declared on ``routes``.

    Args:
        routes: Compiled routes whose tests should run
        handlers: Handlers to dispatch through; built from ``routes`` if omitted

    Returns:
        Number of tests that passed

    Raises:
        RouteTestError: On the first test whose response does not match
    """
    client = TestClient(build_test_app(routes, handlers))

    passed = 0
    for route in routes:
        for test_index, test in enumerate(route.tests):
            try:
                _run_test(client, route, test_index, test)
            except RouteTestError as e:
                logger.log_self_test(route.index, test_index, passed=False, error=str(e))
                raise
            logger.log_self_test(route.index, test_index, passed=True)
            passed += 1

    logger.info("Route self-tests passed", tests_count=passed, routes_count=len(routes))
    return passed


def _run_test(client: TestClient, route: CompiledRoute, test_index: int, test: RouteTest) -> None:
    with override_environment(test.environment):
        response = client.get(test.url, headers=dict(test.headers), follow_redirects=False)

    if response.status_code != test.expected_status:
        raise RouteTestError(
            route.index,
            test_index,
            f"GET {test.url}: expected status {test.expected_status} but got "
            f"{response.status_code} (body: {response.text!r})",
            expected=test.expected_status,
            actual=response.status_code
        )

    location = response.headers.get("location")
    if location != test.expected_url:
        raise RouteTestError(
            route.index,
            test_index,
            f"GET {test.url}: expected redirect to {test.expected_url!r} but got {location!r}",
            expected=test.expected_url,
            actual=location
        )
