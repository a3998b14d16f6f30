"""
GlitchGraph Compiler — DSL Emitter
==================================
Renders a Script into its slash-delimited text form:

    Modular/TIMING:<trigger>[(<args>)]/<statement>/<statement>/...

Calls and assignments at the top level are each terminated by '/'. Every IF
carries its own terminating '/', wherever it appears. Inside an IF branch the
statements are separated by '/', and the terminator of the IF closes the last
of them:

    IF(VALUE_0>5):buf(Self,Enhancement,3,2,0)/
    IF(AND,VALUE_0>5,VALUE_1<3):heal(Self,5)/log(hit):log(miss)/

A nested IF closes itself before the enclosing IF continues, so the two
shapes below stay distinct:

    IF(A>1):IF(B>1):log(x)/:log(y)/      inner IF, then outer false branch
    IF(A>1):IF(B>1):log(x):log(y)//      inner false branch, outer IF closes
"""

from __future__ import annotations

from typing import List

from ..core.Types import CONTINUE_IF_FUNCTION, IF_FUNCTION
from .ir import (
    AssignStatement,
    CallStatement,
    ConditionalStatement,
    ContinueIfStatement,
    Script,
    Statement,
)

SCRIPT_PREFIX = "Modular/"
TIMING_PREFIX = "TIMING:"
SEPARATOR = "/"


def _call(function_name: str, args: List[str]) -> str:
    return f"{function_name}({','.join(args)})"


def _closes_itself(statement: Statement) -> bool:
    return isinstance(statement, ConditionalStatement)


def _block(statements: List[Statement]) -> str:
    parts = []
    last = len(statements) - 1
    for i, statement in enumerate(statements):
        text = render_statement(statement)
        if i < last and not _closes_itself(statement):
            text += SEPARATOR
        parts.append(text)
    return "".join(parts)


def render_statement(statement: Statement) -> str:
    """Render one statement. Only an IF includes its terminating separator."""
    if isinstance(statement, CallStatement):
        return _call(statement.function_name, statement.args)
    if isinstance(statement, AssignStatement):
        return f"{statement.variable}:{render_statement(statement.call)}"
    if isinstance(statement, ConditionalStatement):
        text = f"{IF_FUNCTION}({statement.condition}):{_block(statement.true_branch)}"
        if statement.false_branch is not None:
            text += f":{_block(statement.false_branch)}"
        return text + SEPARATOR
    if isinstance(statement, ContinueIfStatement):
        return f"{CONTINUE_IF_FUNCTION}({statement.condition})"
    raise TypeError(f"Cannot render {type(statement).__name__}")


def render_header(script: Script) -> str:
    header = f"{SCRIPT_PREFIX}{TIMING_PREFIX}{script.timing}"
    if script.timing_args:
        header += f"({','.join(script.timing_args)})"
    return header + SEPARATOR


def emit(script: Script) -> str:
    parts = [render_header(script)]
    for statement in script.statements:
        text = render_statement(statement)
        parts.append(text if _closes_itself(statement) else text + SEPARATOR)
    return "".join(parts)


__all__ = ["emit", "render_statement", "render_header"]
