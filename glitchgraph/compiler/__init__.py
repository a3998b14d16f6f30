"""
GlitchGraph Compiler
====================
Turns a GraphStore snapshot into Script DSL text.

Pipeline:
    GraphStore →  [scheduler]  →  Script (statement IR)
    Script     →  [emitter]    →  "Modular/TIMING:RoundStart/..."

Public API
----------
    from glitchgraph.compiler import compile_graph

    result = compile_graph(store)
    print(result.text)          # DSL text, or the "no Timing node" message
    for d in result.diagnostics:
        print(d.code, d.message)

compile_graph never raises for problems in the graph itself; they come back
as diagnostics on the result.
"""

from __future__ import annotations

from typing import Optional, TYPE_CHECKING

from .emitter import emit
from .ir import CompileError, CompileResult, Diagnostic, NO_ENTRY_POINT_MESSAGE
from .scheduler import Scheduler, VisitHook

if TYPE_CHECKING:
    from glitchgraph.core.GraphStore import GraphStore
    from glitchgraph.noderegistry.FunctionRegistry import FunctionRegistry


def compile_graph(
    store: "GraphStore",
    registry: Optional["FunctionRegistry"] = None,
    on_visit: Optional[VisitHook] = None,
) -> CompileResult:
    """
    Compile a graph snapshot into Script DSL text.

    Args:
        store:     The snapshot to compile. It is only read.
        registry:  Function catalog; defaults to the store's registry.
        on_visit:  Optional hook called as on_visit(walk_index, node_id)
                   each time the traversal handles a node.

    Returns:
        A CompileResult. On a missing Timing node, ok is False and text is
        the fixed NO_ENTRY_POINT_MESSAGE.
    """
    scheduler = Scheduler(store, registry=registry, on_visit=on_visit)
    script = scheduler.build()

    if script is None:
        return CompileResult(
            text=NO_ENTRY_POINT_MESSAGE,
            ok=False,
            error=CompileError.NO_ENTRY_POINT,
            diagnostics=tuple(scheduler.diagnostics),
        )

    return CompileResult(
        text=emit(script),
        ok=True,
        diagnostics=tuple(scheduler.diagnostics),
        script=script,
    )


def compile_graph_text(store: "GraphStore") -> str:
    return compile_graph(store).text


__all__ = [
    "compile_graph",
    "compile_graph_text",
    "CompileError",
    "CompileResult",
    "Diagnostic",
    "NO_ENTRY_POINT_MESSAGE",
]
