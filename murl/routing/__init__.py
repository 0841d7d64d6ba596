"""
Routing package.

This package contains the route compiler, the template and expression
engines, the request evaluation pipeline and the route self-test harness.
"""

from .compiler import CompiledCheck, CompiledRoute, RouteTest, compile_route, compile_routes
from .expressions import CompiledExpression, ExpressionEnvironment
from .handlers import (
    RequestContext,
    RouteHandler,
    build_handlers,
    evaluate_route,
    mount_handlers,
    mount_routes,
)
from .selftest import override_environment, run_tests
from .templates import BufferPool, CompiledTemplate, buffer_pool, compile_template

__all__ = [
    "CompiledCheck",
    "CompiledRoute",
    "RouteTest",
    "compile_route",
    "compile_routes",
    "CompiledExpression",
    "ExpressionEnvironment",
    "RequestContext",
    "RouteHandler",
    "build_handlers",
    "evaluate_route",
    "mount_handlers",
    "mount_routes",
    "override_environment",
    "run_tests",
    "BufferPool",
    "CompiledTemplate",
    "buffer_pool",
    "compile_template",
]
