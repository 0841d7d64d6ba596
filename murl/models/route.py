"""
Route definition models.

These models describe routes exactly as they appear in the configuration
file. They are unvalidated input: nothing here checks that a template or
expression compiles. Use :func:`murl.routing.compile_routes` to turn them into
:class:`murl.routing.CompiledRoute` objects that can be served.
"""

from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field


class _StrictModel(BaseModel):
    """Base model rejecting unknown fields."""

    model_config = ConfigDict(extra="forbid")


class RouteDocumentation(_StrictModel):
    """Human readable documentation for a route."""
    title: str = Field(default="", description="Short title of the route")
    description: str = Field(default="", description="Longer description of the route")


class RouteEnvironment(_StrictModel):
    """Environment variables a route may read."""
    allowlist: List[str] = Field(default_factory=list, description="Environment variable names readable by templates")


class RouteCheckDefinition(_StrictModel):
    """A guard expression with the message returned when it fails."""
    expr: str = Field(default="", description="CEL expression that must evaluate to true")
    error: str = Field(default="", description="Template rendered as the 400 body when the check fails")


class RouteRedirectDefinition(_StrictModel):
    """Redirect target of a route."""
    url: str = Field(default="", description="Template producing the redirect URL")


class RouteTestRequestDefinition(_StrictModel):
    """Synthetic request used by a route self-test."""
    url: str = Field(default="", description="Request URL, path plus optional query string")
    headers: Dict[str, str] = Field(default_factory=dict, description="Request headers")
    environment: Dict[str, str] = Field(default_factory=dict, description="Environment overrides applied during the test")


class RouteTestResponseDefinition(_StrictModel):
    """Expected outcome of a route self-test."""
    url: str = Field(default="", description="Expected Location header")


class RouteTestDefinition(_StrictModel):
    """A request/expected-response pair."""
    request: RouteTestRequestDefinition = Field(default_factory=RouteTestRequestDefinition)
    response: RouteTestResponseDefinition = Field(default_factory=RouteTestResponseDefinition)


class RouteDefinition(_StrictModel):
    """Model for a raw route definition."""
    path: str = Field(default="", description="Primary path pattern, e.g. /docs/{page}")
    aliases: List[str] = Field(default_factory=list, description="Additional path patterns served by the same route")
    documentation: RouteDocumentation = Field(default_factory=RouteDocumentation)
    environment: RouteEnvironment = Field(default_factory=RouteEnvironment)
    params: Dict[str, str] = Field(default_factory=dict, description="Param name to template mapping")
    checks: List[RouteCheckDefinition] = Field(default_factory=list, description="Ordered guard checks")
    redirect: RouteRedirectDefinition = Field(default_factory=RouteRedirectDefinition)
    tests: List[RouteTestDefinition] = Field(default_factory=list, description="Self-tests for the route")
