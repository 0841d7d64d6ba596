"""
Exception types for the redirect service.

Definition errors are raised while compiling route definitions and are fatal
to startup. Evaluation errors are raised while handling a single request and
are turned into plain-text 400 responses by the route handlers.
"""

from typing import Optional


class MurlError(Exception):
    """Base exception for all redirect service errors."""
    pass


class ConfigurationError(MurlError):
    """Raised when the configuration file or server settings are invalid."""
    pass


class TemplateSyntaxError(MurlError):
    """Raised when a template cannot be compiled."""
    pass


class TemplateRenderError(MurlError):
    """Raised when a compiled template fails to render."""
    pass


class ExpressionCompileError(MurlError):
    """Raised when a check expression is empty, unparsable or ill-typed."""
    pass


class ExpressionEvaluationError(MurlError):
    """Raised when a compiled check expression fails at evaluation time."""
    pass


class DefinitionError(MurlError):
    """
    Raised when a route definition fails to compile.

    Attributes:
        route_index: Position of the offending route in the input list
        field: Name of the offending field (e.g. ``params.host``)
        reason: Human readable description of the problem
    """

    def __init__(self, route_index: int, field: str, reason: str):
        self.route_index = route_index
        self.field = field
        self.reason = reason
        super().__init__(f"route at index [{route_index}]: {field}: {reason}")


class EvaluationError(MurlError):
    """Base class for request-time failures. Always reported as HTTP 400."""

    category = "evaluation"


class ParamRenderError(EvaluationError):
    """A param template failed to render for the current request."""

    category = "param"

    def __init__(self, key: str, detail: str):
        self.key = key
        super().__init__(f"failed to parse param for key {key!r}: {detail}")


class CheckEvaluationError(EvaluationError):
    """A check expression raised an error instead of producing a value."""

    category = "check_error"

    def __init__(self, detail: str):
        super().__init__(f"failed to evaluate check expression: {detail}")


class CheckFailedError(EvaluationError):
    """A check expression did not evaluate to ``true``.

    The message is the rendered error template of the failing check.
    """

    category = "check_failed"


class CheckMessageRenderError(EvaluationError):
    """The error template of a failing check could not be rendered."""

    category = "check_failed"

    def __init__(self, detail: str):
        super().__init__(f"failed to render check error: {detail}")


class RedirectRenderError(EvaluationError):
    """The redirect URL template failed to render."""

    category = "redirect"

    def __init__(self, detail: str):
        super().__init__(f"failed to create redirect url: {detail}")


class RouteTestError(MurlError):
    """
    Raised by the self-test harness on the first mismatching test.

    Attributes:
        route_index: Index of the route that declared the test
        test_index: Index of the test within the route
        expected: Expected value (status code or redirect URL)
        actual: Observed value
    """

    def __init__(
        self,
        route_index: int,
        test_index: int,
        message: str,
        expected: Optional[object] = None,
        actual: Optional[object] = None
    ):
        self.route_index = route_index
        self.test_index = test_index
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"test [{test_index}] for route at index [{route_index}] failed: {message}"
        )
