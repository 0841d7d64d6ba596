"""Unit tests for the request accessors and evaluation pipeline."""

import pytest
from starlette.datastructures import Headers, QueryParams

from murl.core.exceptions import (
    CheckEvaluationError,
    CheckFailedError,
    ParamRenderError,
    RedirectRenderError,
)
from murl.routing import RequestContext, evaluate_route
from tests.fixtures import make_route


def make_context(path=None, query="", headers=None, allowlist=(), environ=None):
    return RequestContext(
        path_params=path or {},
        query_params=QueryParams(query),
        headers=Headers(headers or {}),
        allowlist=frozenset(allowlist),
        environ=environ or {},
    )


class TestRequestContext:
    """Test cases for the template accessors."""

    def test_get_path(self):
        """Test reading path params."""
        context = make_context(path={"id": "wasd"})

        assert context.get_path("id") == "wasd"
        assert context.get_path("missing") == ""

    def test_get_query_returns_first_value(self):
        """Test that repeated query keys yield their first value."""
        context = make_context(query="q=first&q=second")

        assert context.get_query("q") == "first"
        assert context.get_query("missing") == ""

    def test_get_header_is_case_insensitive(self):
        """Test header lookups ignore case."""
        context = make_context(headers={"X-Test-Header": "abc"})

        assert context.get_header("x-test-header") == "abc"
        assert context.get_header("missing") == ""

    def test_get_env_respects_allowlist(self):
        """Test that only allow-listed variables are visible."""
        context = make_context(
            allowlist=["VISIBLE"],
            environ={"VISIBLE": "yes", "HIDDEN": "secret"},
        )

        assert context.get_env("VISIBLE") == "yes"
        assert context.get_env("HIDDEN") == ""

    def test_get_env_unset_variable(self):
        """Test that allow-listed but unset variables are empty."""
        context = make_context(allowlist=["UNSET"])

        assert context.get_env("UNSET") == ""


class TestEvaluateRoute:
    """Test cases for evaluating a compiled route against a request."""

    def test_redirect(self, compile_one):
        """Test rendering params into the redirect URL."""
        route = compile_one(make_route(
            params={"q": '{{ get_query("q") }}'},
            checks=[{"expr": 'q != ""', "error": "q is required"}],
            redirect={"url": "https://example.com/?q={{ q }}"},
        ))

        assert evaluate_route(route, make_context(query="q=abc")) == "https://example.com/?q=abc"

    def test_failed_check_renders_message(self, compile_one):
        """Test that a failing check reports its rendered message."""
        route = compile_one(make_route(
            params={"q": '{{ get_query("q") }}'},
            checks=[{"expr": 'q.size() > 3', "error": "q {{ q }} is too short"}],
        ))

        with pytest.raises(CheckFailedError, match="q ab is too short"):
            evaluate_route(route, make_context(query="q=ab"))

    def test_checks_stop_at_first_failure(self, compile_one):
        """Test that later checks are not evaluated after a failure."""
        route = compile_one(make_route(
            params={"q": '{{ get_query("q") }}'},
            checks=[
                {"expr": 'q != ""', "error": "first"},
                {"expr": "int(q) > 0", "error": "second"},
            ],
        ))

        with pytest.raises(CheckFailedError, match="^first$"):
            evaluate_route(route, make_context())

    def test_check_evaluation_error(self, compile_one):
        """Test that expression errors are reported as evaluation failures."""
        route = compile_one(make_route(
            params={"q": '{{ get_query("q") }}'},
            checks=[{"expr": "int(q) > 0", "error": "bad"}],
        ))

        with pytest.raises(CheckEvaluationError, match="failed to evaluate check expression"):
            evaluate_route(route, make_context(query="q=abc"))

    def test_param_render_error(self, compile_one):
        """Test that param render failures name the param."""
        route = compile_one(make_route(params={"p": "{{ undefined_value }}"}))

        with pytest.raises(ParamRenderError, match="failed to parse param for key 'p'"):
            evaluate_route(route, make_context())

    def test_redirect_render_error(self, compile_one):
        """Test that redirect render failures are reported."""
        route = compile_one(make_route(redirect={"url": "https://{{ unknown }}"}))

        with pytest.raises(RedirectRenderError, match="failed to create redirect url"):
            evaluate_route(route, make_context())

    def test_non_ascii_redirect_is_percent_encoded(self, compile_one):
        """Test that non-ASCII characters are UTF-8 percent-encoded."""
        route = compile_one(make_route(
            params={"q": '{{ get_query("q") }}'},
            redirect={"url": "https://example.com/{{ q }}"},
        ))

        assert evaluate_route(route, make_context(query="q=%E2%9C%93")) == "https://example.com/%E2%9C%93"
        assert evaluate_route(route, make_context(query="q=%C3%BC")) == "https://example.com/%C3%BC"

    def test_ascii_redirect_is_unchanged(self, compile_one):
        """Test that printable ASCII, including existing escapes, is kept as rendered."""
        route = compile_one(make_route(redirect={"url": 'https://example.com/a%20b?x="y"&z=[1]'}))

        assert evaluate_route(route, make_context()) == 'https://example.com/a%20b?x="y"&z=[1]'
