"""
String templates for route params, check messages and redirect URLs.

Templates are Jinja2 templates compiled once in a sandboxed environment and
rendered per request into pooled string buffers. Unknown variables are errors
at render time (``StrictUndefined``), which the request pipeline reports as a
client error.
"""

import io
import threading
from contextlib import contextmanager
from typing import Any, Iterator, List, Mapping

from jinja2 import StrictUndefined, TemplateSyntaxError as JinjaSyntaxError
from jinja2.sandbox import SandboxedEnvironment

from murl.core.exceptions import TemplateRenderError, TemplateSyntaxError


class BufferPool:
    """
    Thread-safe free-list of reusable string buffers.

    Buffers are handed out by :meth:`acquire` and always returned to the pool
    when the ``with`` block exits, including when rendering raises.
    """

    def __init__(self, max_size: int = 64):
        """
        Initialize the pool.

        Args:
            max_size: Maximum number of idle buffers kept for reuse
        """
        self._max_size = max_size
        self._free: List[io.StringIO] = []
        self._lock = threading.Lock()

    @contextmanager
    def acquire(self) -> Iterator[io.StringIO]:
        """Borrow an empty buffer for the duration of the ``with`` block."""
        with self._lock:
            buffer = self._free.pop() if self._free else io.StringIO()

        buffer.seek(0)
        buffer.truncate(0)
        try:
            yield buffer
        finally:
            with self._lock:
                if len(self._free) < self._max_size:
                    self._free.append(buffer)

    @property
    def available(self) -> int:
        """Number of idle buffers currently in the pool."""
        with self._lock:
            return len(self._free)


# Shared by every template; buffers never outlive a single render call
buffer_pool = BufferPool()

_environment = SandboxedEnvironment(
    undefined=StrictUndefined,
    autoescape=False,
    keep_trailing_newline=True,
)


class CompiledTemplate:
    """A precompiled template that renders to a string."""

    __slots__ = ("source", "_template", "_pool")

    def __init__(self, source: str, pool: BufferPool = buffer_pool):
        try:
            self._template = _environment.from_string(source)
        except JinjaSyntaxError as e:
            raise TemplateSyntaxError(f"line {e.lineno}: {e.message}") from e
        self.source = source
        self._pool = pool

    def render(self, context: Mapping[str, Any]) -> str:
        """
        Render the template against ``context``.

        Raises:
            TemplateRenderError: If rendering fails for any reason
        """
        with self._pool.acquire() as buffer:
            try:
                for chunk in self._template.generate(context):
                    buffer.write(chunk)
            except Exception as e:
                raise TemplateRenderError(str(e) or type(e).__name__) from e
            return buffer.getvalue()

    def __repr__(self) -> str:
        return f"CompiledTemplate({self.source!r})"


def compile_template(source: str, required: bool = False) -> CompiledTemplate:
    """
    Compile a template string.

    Args:
        source: Template source
        required: Reject empty sources

    Raises:
        TemplateSyntaxError: If the source is missing or does not parse
    """
    if required and not source:
        raise TemplateSyntaxError("missing template")
    return CompiledTemplate(source)
