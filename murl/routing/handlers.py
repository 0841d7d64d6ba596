"""
Request evaluation pipeline and route handlers.

Each compiled route is turned into a synchronous endpoint that FastAPI runs on
its worker thread pool. Evaluation renders the params, runs the checks in
declared order and renders the redirect URL. Any failure is answered with a
plain-text 400; success is a 307 with the rendered ``Location``.
"""

import os
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, List, Mapping, Optional, Sequence
from urllib.parse import quote

from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse

from murl.config.logging import StructuredLogger
from murl.core.exceptions import (
    CheckEvaluationError,
    CheckFailedError,
    CheckMessageRenderError,
    EvaluationError,
    ExpressionEvaluationError,
    ParamRenderError,
    RedirectRenderError,
    TemplateRenderError,
)
from murl.routing.compiler import TEMPORARY_REDIRECT, CompiledRoute

logger = StructuredLogger(__name__)

BAD_REQUEST = 400

PRINTABLE_ASCII = "".join(chr(code) for code in range(0x20, 0x7f))


class RequestContext:
    """
    Accessors available to param templates.

    Templates call ``get_path``, ``get_query``, ``get_header`` and ``get_env``
    with a key. Unknown keys yield an empty string, and so does every
    environment variable outside the route's allow-list.
    """

    def __init__(
        self,
        path_params: Mapping[str, object],
        query_params,
        headers,
        allowlist: FrozenSet[str],
        environ: Mapping[str, str]
    ):
        self._path_params = path_params
        self._query_params = query_params
        self._headers = headers
        self._allowlist = allowlist
        self._environ = environ

    @classmethod
    def from_request(
        cls,
        request: Request,
        allowlist: FrozenSet[str],
        environ: Mapping[str, str]
    ) -> "RequestContext":
        return cls(
            path_params=request.path_params,
            query_params=request.query_params,
            headers=request.headers,
            allowlist=allowlist,
            environ=environ
        )

    def get_path(self, key: str) -> str:
        value = self._path_params.get(key)
        return "" if value is None else str(value)

    def get_query(self, key: str) -> str:
        # First value wins for repeated keys
        values = self._query_params.getlist(key)
        return values[0] if values else ""

    def get_header(self, key: str) -> str:
        return self._headers.get(key, "")

    def get_env(self, key: str) -> str:
        if key not in self._allowlist:
            return ""
        return self._environ.get(key, "")

    def as_template_context(self) -> Dict[str, Callable[[str], str]]:
        return {
            "get_path": self.get_path,
            "get_query": self.get_query,
            "get_header": self.get_header,
            "get_env": self.get_env,
        }


def render_params(route: CompiledRoute, context: RequestContext) -> Dict[str, str]:
    """
    Render every param of ``route``.

    Raises:
        ParamRenderError: For the first param that fails to render
    """
    template_context = context.as_template_context()
    params = {}
    for key, template in route.params.items():
        try:
            params[key] = template.render(template_context)
        except TemplateRenderError as e:
            raise ParamRenderError(key, str(e)) from e
    return params


def run_checks(route: CompiledRoute, params: Mapping[str, str]) -> None:
    """
    Run the checks of ``route`` in declared order, stopping at the first failure.

    Raises:
        CheckEvaluationError: If an expression errors
        CheckFailedError: If an expression does not yield ``true``
        CheckMessageRenderError: If the failing check's message cannot be rendered
    """
    for check in route.checks:
        try:
            passed = check.expression.passes(params)
        except ExpressionEvaluationError as e:
            raise CheckEvaluationError(str(e)) from e

        if not passed:
            try:
                message = check.error.render(params)
            except TemplateRenderError as e:
                raise CheckMessageRenderError(str(e)) from e
            raise CheckFailedError(message)


def render_redirect(route: CompiledRoute, params: Mapping[str, str]) -> str:
    """
    Render the redirect URL of ``route``.

    Characters outside printable ASCII are UTF-8 percent-encoded so the URL
    is always a valid header value; everything else is kept as rendered.

    Raises:
        RedirectRenderError: If the template fails to render
    """
    try:
        location = route.redirect.render(params)
    except TemplateRenderError as e:
        raise RedirectRenderError(str(e)) from e
    return quote(location, safe=PRINTABLE_ASCII)


def evaluate_route(route: CompiledRoute, context: RequestContext) -> str:
    """
    Evaluate ``route`` for one request and return the redirect URL.

    Raises:
        EvaluationError: If any step of the evaluation fails
    """
    params = render_params(route, context)
    run_checks(route, params)
    return render_redirect(route, params)


@dataclass(frozen=True)
class RouteHandler:
    """A path pattern and the endpoint serving it."""
    path: str
    endpoint: Callable[[Request], Response]
    route: CompiledRoute

    @property
    def pattern(self) -> str:
        """Method-qualified pattern, e.g. ``GET /docs/{page}``."""
        return f"GET {self.path}"


def create_route_endpoint(
    route: CompiledRoute,
    environ: Mapping[str, str] = os.environ
) -> Callable[[Request], Response]:
    """Create the endpoint serving every path of ``route``."""

    def endpoint(request: Request) -> Response:
        context = RequestContext.from_request(request, route.environment, environ)
        try:
            location = evaluate_route(route, context)
        except EvaluationError as e:
            logger.log_evaluation(route.path, BAD_REQUEST, category=e.category, error=str(e))
            return PlainTextResponse(str(e), status_code=BAD_REQUEST)

        logger.log_evaluation(route.path, TEMPORARY_REDIRECT)
        return Response(status_code=TEMPORARY_REDIRECT, headers={"Location": location})

    endpoint.__name__ = f"route_{route.index}"
    return endpoint


def build_handlers(
    routes: Sequence[CompiledRoute],
    environ: Mapping[str, str] = os.environ
) -> List[RouteHandler]:
    """
    Build one handler per path and alias of every route.

    Args:
        routes: Compiled routes
        environ: Environment the ``get_env`` accessor reads from

    Returns:
        Handlers in route order, primary path before aliases
    """
    handlers = []
    for route in routes:
        endpoint = create_route_endpoint(route, environ)
        for path in route.paths:
            handlers.append(RouteHandler(path=path, endpoint=endpoint, route=route))
    return handlers


def mount_handlers(app: FastAPI, handlers: Sequence[RouteHandler]) -> None:
    """
    Mount handlers as ``GET`` routes on ``app``.

    When several handlers share a path the last one wins.
    """
    by_path: Dict[str, RouteHandler] = {}
    for handler in handlers:
        if handler.path in by_path:
            logger.warning(
                "Path registered more than once, last registration wins",
                route_path=handler.path,
                route_index=handler.route.index
            )
        by_path[handler.path] = handler

    for handler in by_path.values():
        app.add_api_route(
            handler.path,
            handler.endpoint,
            methods=["GET"],
            include_in_schema=False
        )


def mount_routes(
    app: FastAPI,
    routes: Sequence[CompiledRoute],
    environ: Optional[Mapping[str, str]] = None
) -> List[RouteHandler]:
    """Build and mount the handlers for ``routes``; returns the handlers."""
    handlers = build_handlers(routes, os.environ if environ is None else environ)
    mount_handlers(app, handlers)
    return handlers
