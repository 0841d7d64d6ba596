"""
Route documentation page.

Renders an HTML page listing every route with its title, description and
paths. The page is rendered once at startup and served as a static body.
"""

from typing import Sequence

from fastapi import FastAPI
from fastapi.responses import HTMLResponse
from jinja2 import Environment, TemplateError

from murl.config import DocumentationConfig
from murl.core.exceptions import ConfigurationError
from murl.routing.compiler import CompiledRoute


DEFAULT_PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>Routes</title>
</head>
<body>
  <h1>Routes</h1>
  {%- for route in routes %}
  <section>
    <h2>{{ route.title or route.path }}</h2>
    {%- if route.description %}
    <p>{{ route.description }}</p>
    {%- endif %}
    <ul>
      {%- for path in route.paths %}
      <li><code>{{ path }}</code></li>
      {%- endfor %}
    </ul>
  </section>
  {%- endfor %}
</body>
</html>
"""

_environment = Environment(autoescape=True)


def render_documentation(routes: Sequence[CompiledRoute], page_template: str = "") -> str:
    """
    Render the documentation page.

    Args:
        routes: Compiled routes to document
        page_template: Optional custom Jinja2 template receiving ``routes``

    Raises:
        ConfigurationError: If the template does not parse or render
    """
    try:
        template = _environment.from_string(page_template or DEFAULT_PAGE_TEMPLATE)
        return template.render(routes=routes)
    except TemplateError as e:
        raise ConfigurationError(f"failed to render documentation: {e}") from e


def mount_documentation(
    app: FastAPI,
    routes: Sequence[CompiledRoute],
    config: DocumentationConfig
) -> None:
    """Serve the rendered documentation page at ``config.path``."""
    content = render_documentation(routes, config.page)

    def documentation() -> HTMLResponse:
        return HTMLResponse(content)

    app.add_api_route(config.path, documentation, methods=["GET"], include_in_schema=False)
