"""
Check expressions for route guards.

Checks are CEL (Common Expression Language) expressions compiled with
cel-python. Every route gets its own environment in which each declared
param is a ``string`` variable; the rendered params are the only values an
expression can see.
"""

from typing import Any, FrozenSet, Iterable, Iterator, Mapping, Set

import celpy
import lark
from celpy import celtypes
from celpy.celparser import CELParseError
from celpy.evaluation import CELEvalError, CELSyntaxError, CELUnsupportedError, base_functions

from murl.core.exceptions import ExpressionCompileError, ExpressionEvaluationError


# Macros binding a local variable, with the number of variables they bind
BINDING_MACROS = {
    "all": 1,
    "exists": 1,
    "exists_one": 1,
    "filter": 1,
    "map": 1,
    "min": 1,
    "reduce": 2,
}

# Type names resolvable as plain identifiers, e.g. ``type(q) == string``
TYPE_NAMES = frozenset({
    "bool", "bytes", "double", "duration", "int", "list", "map",
    "null_type", "string", "timestamp", "type", "uint", "google",
})

# Callable names: built-in functions and methods plus the macros
FUNCTION_NAMES = frozenset(base_functions) | frozenset(BINDING_MACROS) | frozenset({"has", "dyn"})


class ExpressionEnvironment:
    """
    Compilation environment for a single route's checks.

    Args:
        variables: Names of the declared params, all typed as strings
    """

    def __init__(self, variables: Iterable[str]):
        self.variables: FrozenSet[str] = frozenset(variables)
        self._env = celpy.Environment(
            annotations={name: celtypes.StringType for name in self.variables}
        )

    def compile(self, source: str) -> "CompiledExpression":
        """
        Compile a check expression.

        Raises:
            ExpressionCompileError: If the expression is empty, does not parse,
                references an undeclared variable or calls an unknown function
        """
        if not source or not source.strip():
            raise ExpressionCompileError("no expression to evaluate")

        try:
            ast = self._env.compile(source)
        except (CELParseError, CELSyntaxError) as e:
            raise ExpressionCompileError(f"syntax error: {e}") from e

        for name in sorted(_free_identifiers(ast)):
            if name not in self.variables and name not in TYPE_NAMES:
                raise ExpressionCompileError(f"undeclared reference to {name!r}")

        for name in sorted(_function_names(ast)):
            if name not in FUNCTION_NAMES:
                raise ExpressionCompileError(f"undeclared reference to function {name!r}")

        try:
            program = self._env.program(ast)
        except (CELSyntaxError, CELUnsupportedError) as e:
            raise ExpressionCompileError(str(e)) from e
        return CompiledExpression(source, program)


class CompiledExpression:
    """A compiled expression evaluated against rendered params."""

    __slots__ = ("source", "_program")

    def __init__(self, source: str, program: celpy.Runner):
        self.source = source
        self._program = program

    def evaluate(self, params: Mapping[str, str]) -> Any:
        """
        Evaluate the expression.

        Args:
            params: Rendered param values

        Returns:
            The CEL result value

        Raises:
            ExpressionEvaluationError: If evaluation fails
        """
        activation = {name: celtypes.StringType(value) for name, value in params.items()}
        try:
            return self._program.evaluate(activation)
        except (CELEvalError, CELUnsupportedError) as e:
            raise ExpressionEvaluationError(_describe(e)) from e

    def passes(self, params: Mapping[str, str]) -> bool:
        """Return True only when the expression yields the boolean ``true``."""
        result = self.evaluate(params)
        return isinstance(result, celtypes.BoolType) and bool(result)

    def __repr__(self) -> str:
        return f"CompiledExpression({self.source!r})"


def _describe(error: Exception) -> str:
    # CELEvalError args are (message, exception class, exception args)
    if not error.args or not isinstance(error.args[0], str):
        return str(error)
    message = error.args[0]
    if len(error.args) > 2 and isinstance(error.args[2], tuple) and error.args[2]:
        message = f"{message}: {', '.join(str(arg) for arg in error.args[2])}"
    return message


def _free_identifiers(ast: lark.Tree) -> Set[str]:
    """Identifiers referenced by ``ast`` that are not bound by a macro."""
    return set(_walk(ast, frozenset()))


def _function_names(ast: lark.Tree) -> Set[str]:
    """Names of the functions and methods called by ``ast``."""
    names = set()
    for node in ast.iter_subtrees():
        if node.data == "ident_arg":
            names.add(node.children[0].value)
        elif node.data == "member_dot_arg":
            names.add(node.children[1].value)
    return names


def _walk(node: Any, bound: FrozenSet[str]) -> Iterator[str]:
    if not isinstance(node, lark.Tree):
        return

    if node.data == "ident":
        name = node.children[0].value
        if name not in bound:
            yield name
        return

    if node.data == "member_dot_arg":
        member, method = node.children[:2]
        exprlist = node.children[2] if len(node.children) > 2 else None
        count = BINDING_MACROS.get(method.value, 0)
        if count and isinstance(exprlist, lark.Tree):
            args = exprlist.children
            names = {
                ident.children[0].value
                for arg in args[:count]
                for ident in arg.find_data("ident")
            }
            yield from _walk(member, bound)
            for arg in args[count:]:
                yield from _walk(arg, bound | names)
            return

    for child in node.children:
        yield from _walk(child, bound)
