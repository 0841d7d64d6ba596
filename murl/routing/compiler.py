"""
Route compiler.

Turns raw :class:`~murl.models.route.RouteDefinition` objects into immutable
:class:`CompiledRoute` objects. Compilation happens once at startup; the first
invalid route aborts the whole batch so a partial route set is never served.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, FrozenSet, List, Mapping, Sequence, Tuple, Union

from pydantic import ValidationError

from murl.config.logging import StructuredLogger
from murl.core.exceptions import (
    DefinitionError,
    ExpressionCompileError,
    TemplateSyntaxError,
)
from murl.models.route import RouteDefinition, RouteTestDefinition
from murl.routing.expressions import CompiledExpression, ExpressionEnvironment
from murl.routing.templates import CompiledTemplate, compile_template

logger = StructuredLogger(__name__)

TEMPORARY_REDIRECT = 307


@dataclass(frozen=True)
class CompiledCheck:
    """A compiled guard expression and its error message template."""
    expression: CompiledExpression
    error: CompiledTemplate


@dataclass(frozen=True)
class RouteTest:
    """A compiled self-test case for a route."""
    url: str
    expected_url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    environment: Mapping[str, str] = field(default_factory=dict)
    expected_status: int = TEMPORARY_REDIRECT


@dataclass(frozen=True)
class CompiledRoute:
    """
    A validated route ready to be mounted and evaluated.

    Instances are produced by :func:`compile_routes` only and are never
    mutated afterwards, so they can be shared across concurrent requests.
    """
    index: int
    paths: Tuple[str, ...]
    environment: FrozenSet[str]
    params: Mapping[str, CompiledTemplate]
    checks: Tuple[CompiledCheck, ...]
    redirect: CompiledTemplate
    tests: Tuple[RouteTest, ...] = ()
    title: str = ""
    description: str = ""

    @property
    def path(self) -> str:
        """Primary path of the route."""
        return self.paths[0]

    @property
    def aliases(self) -> Tuple[str, ...]:
        return self.paths[1:]


RawRoute = Union[RouteDefinition, Mapping[str, Any]]


def compile_routes(definitions: Sequence[RawRoute]) -> List[CompiledRoute]:
    """
    Compile route definitions in input order.

    Args:
        definitions: Route definitions, as models or decoded mappings

    Returns:
        Compiled routes in the same order

    Raises:
        DefinitionError: For the first route that fails to compile
    """
    routes = []
    for index, definition in enumerate(definitions):
        try:
            routes.append(compile_route(index, definition))
        except DefinitionError as e:
            logger.error(
                "Route definition rejected",
                route_index=e.route_index,
                field=e.field,
                reason=e.reason
            )
            raise

    logger.info("Compiled routes", routes_count=len(routes))
    return routes


def compile_route(index: int, definition: RawRoute) -> CompiledRoute:
    """Compile a single route definition found at ``index``."""
    if not isinstance(definition, RouteDefinition):
        try:
            definition = RouteDefinition.model_validate(definition)
        except ValidationError as e:
            raise DefinitionError(index, "definition", str(e)) from e

    paths = _parse_paths(index, definition.path, definition.aliases)
    params = _parse_params(index, definition.params)
    environment = frozenset(definition.environment.allowlist)

    # Each route has its own param vocabulary, so the environment is per route
    expression_env = ExpressionEnvironment(definition.params.keys())

    checks = []
    for check_index, check in enumerate(definition.checks):
        try:
            expression = expression_env.compile(check.expr)
        except ExpressionCompileError as e:
            raise DefinitionError(index, f"checks[{check_index}].expr", str(e)) from e
        try:
            error = compile_template(check.error, required=True)
        except TemplateSyntaxError as e:
            raise DefinitionError(index, f"checks[{check_index}].error", str(e)) from e
        checks.append(CompiledCheck(expression=expression, error=error))

    try:
        redirect = compile_template(definition.redirect.url, required=True)
    except TemplateSyntaxError as e:
        raise DefinitionError(index, "redirect.url", str(e)) from e

    tests = tuple(
        _parse_test(index, test_index, test)
        for test_index, test in enumerate(definition.tests)
    )

    route = CompiledRoute(
        index=index,
        paths=paths,
        environment=environment,
        params=MappingProxyType(params),
        checks=tuple(checks),
        redirect=redirect,
        tests=tests,
        title=definition.documentation.title,
        description=definition.documentation.description,
    )
    logger.log_route_compiled(index, list(paths), len(route.checks), len(tests))
    return route


def _parse_paths(index: int, path: str, aliases: Sequence[str]) -> Tuple[str, ...]:
    if not path:
        raise DefinitionError(index, "path", "path to match against is required but missing")

    paths = (path, *aliases)
    for position, candidate in enumerate(paths):
        if not candidate.startswith("/"):
            field_name = "path" if position == 0 else f"aliases[{position - 1}]"
            raise DefinitionError(
                index, field_name, f"{candidate!r} must be an absolute path (start with slash)"
            )
    return paths


def _parse_params(index: int, params: Mapping[str, str]) -> dict:
    result = {}
    for key, source in params.items():
        try:
            result[key] = compile_template(source)
        except TemplateSyntaxError as e:
            raise DefinitionError(
                index, f"params.{key}", f"failed to parse param template {key!r}: {e}"
            ) from e
    return result


def _parse_test(index: int, test_index: int, test: RouteTestDefinition) -> RouteTest:
    field_name = f"tests[{test_index}]"
    if not test.request.url:
        raise DefinitionError(index, field_name, "test request url is required but was missing")
    if not test.response.url:
        raise DefinitionError(index, field_name, "test response url is required but was missing")

    return RouteTest(
        url=test.request.url,
        expected_url=test.response.url,
        headers=MappingProxyType(dict(test.request.headers)),
        environment=MappingProxyType(dict(test.request.environment)),
    )
