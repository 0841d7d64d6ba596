"""Test fixtures for redirect service tests."""

from typing import Any, Callable, Dict, List

import pytest
from fastapi.testclient import TestClient

from murl.main import create_app
from murl.models.route import RouteDefinition
from murl.routing import CompiledRoute, compile_routes


def make_route(**overrides: Any) -> Dict[str, Any]:
    """Build a raw route definition with a working default redirect."""
    route: Dict[str, Any] = {
        "path": "/example",
        "redirect": {"url": "https://example.com"},
    }
    route.update(overrides)
    return route


@pytest.fixture
def simple_route_definition() -> RouteDefinition:
    """A route with no params or checks."""
    return RouteDefinition.model_validate(make_route())


@pytest.fixture
def complex_route_definition() -> Dict[str, Any]:
    """A route reading path, query, header and environment values."""
    return {
        "path": "/example/{id}",
        "aliases": ["/example-alias/{id}"],
        "documentation": {
            "title": "Example route",
            "description": "Picks params from the env, path, query and headers",
        },
        "environment": {"allowlist": ["TEST_KEY_HOST"]},
        "params": {
            "id": '{{ get_path("id") }}',
            "q": '{{ get_query("q") }}',
            "h": '{{ get_header("x-test-header") }}',
            "host": '{{ get_env("TEST_KEY_HOST") }}',
            "envBlocked": '{{ get_env("TEST_KEY_HOST_BLOCKED") }}',
        },
        "checks": [
            {"expr": 'q != ""', "error": "query variable q is required"},
            {"expr": 'host != ""', "error": "host failed to parse from environment - unable to redirect"},
        ],
        "redirect": {
            "url": 'https://{{ host }}/id/{{ id }}?query={{ q }}&header={{ h }}&envBlocked="{{ envBlocked }}"',
        },
        "tests": [
            {
                "request": {
                    "url": "/example/wasd?q=xyz",
                    "headers": {"x-test-header": "abc"},
                    "environment": {"TEST_KEY_HOST": "example.com"},
                },
                "response": {
                    "url": 'https://example.com/id/wasd?query=xyz&header=abc&envBlocked=""',
                },
            }
        ],
    }


@pytest.fixture
def compile_one() -> Callable[..., CompiledRoute]:
    """Compile a single raw route definition."""
    def _compile(definition: Any) -> CompiledRoute:
        return compile_routes([definition])[0]

    return _compile


@pytest.fixture
def client_for() -> Callable[..., TestClient]:
    """Create a test client serving the given raw route definitions."""
    def _client(definitions: List[Any], **app_kwargs: Any) -> TestClient:
        app = create_app(compile_routes(definitions), **app_kwargs)
        return TestClient(app, follow_redirects=False)

    return _client


__all__ = [
    "make_route",
    "simple_route_definition",
    "complex_route_definition",
    "compile_one",
    "client_for",
]
