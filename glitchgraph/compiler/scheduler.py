"""
GlitchGraph Compiler — Graph Scheduler
======================================
Walks one GraphStore snapshot and produces a Script (see ir.py).

Entry resolution
----------------
The first Timing node in node order is the entry point. Any further Timing
nodes are reported and ignored. Without a Timing node build() returns None
and records a NO_ENTRY_POINT diagnostic.

Traversal
---------
Every edge leaving the entry node's `output` handle starts an independent
statement stream, compiled in edge order. A stream is a breadth-first walk
with its own visited set, so each node is handled at most once per walk and
cycles or diamonds terminate.

Per node:
  Conditional   condition string + nested walks on the first `true` / `false`
                edge. A Conditional already being expanded further up the
                stack is skipped, and so is one nested more than
                MAX_BRANCH_DEPTH levels deep, which bounds the recursion.
  Assignment    <bound_variable>:<embedded call>, nothing when no embedded
                node is set (the walk still continues through `output`).
  Value nodes   <next free slot>:<call>
  Consequence   <call>
  ContinueIf    CONTINUEIF(<condition>)

Argument resolution
-------------------
Arguments are taken in registry parameter order from the node's parameter
map. For each incoming edge whose source already owns a slot, argument 0 is
replaced by that slot name. Only position 0 is ever substituted.

Problems with graph content never raise: they are collected as Diagnostics
and the offending node is skipped.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Callable, Deque, FrozenSet, List, Optional, Set

from ..core.GraphPrimitives import GraphNode
from ..core.GraphStore import GraphStore
from ..core.Types import NodeVariant, OUTPUT, TRUE, FALSE
from ..noderegistry.FunctionRegistry import FunctionRegistry, FunctionSchema
from .ir import (
    AssignStatement,
    CallStatement,
    CompileError,
    ConditionalStatement,
    ContinueIfStatement,
    Diagnostic,
    NO_ENTRY_POINT_MESSAGE,
    Script,
    Statement,
)
from .variables import VariableAllocator

logger = logging.getLogger(__name__)

VisitHook = Callable[[int, str], None]

# Each nesting level costs a handful of stack frames here and in the emitter
MAX_BRANCH_DEPTH = 64


def format_value(value) -> str:
    """Render a parameter value the way the DSL expects it."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def render_condition(node: GraphNode) -> str:
    terms = [t.render() for t in node.conditions]
    if len(terms) > 1:
        return ",".join([node.logical_operator.value] + terms)
    # Zero terms compile to an empty condition
    return terms[0] if terms else ""


class Scheduler:
    def __init__(self,
                 store: GraphStore,
                 registry: Optional[FunctionRegistry] = None,
                 on_visit: Optional[VisitHook] = None):
        self.store = store
        self.registry = registry if registry is not None else store.registry
        self.on_visit = on_visit
        self.allocator = VariableAllocator()
        self.diagnostics: List[Diagnostic] = []
        self._walks = 0

    # ── Diagnostics ───────────────────────────────────────────────────────

    def _report(self, code: CompileError, message: str, node_id: Optional[str] = None) -> None:
        if code == CompileError.NO_ENTRY_POINT:
            logger.error(message)
        else:
            logger.warning(message)
        self.diagnostics.append(Diagnostic(code, message, node_id))

    # ── Argument resolution ───────────────────────────────────────────────

    def _arguments(self, node: GraphNode, schema: FunctionSchema) -> List[str]:
        params = node.argument_parameters()
        args = [format_value(params.get(name)) for name in schema.parameters]

        for edge in self.store.incoming(node.id):
            slot = self.allocator.slot_for(edge.source)
            if slot is None:
                continue
            # Positional mapping is not tracked per edge: always argument 0
            if args:
                args[0] = slot
            else:
                args.append(slot)
        return args

    def _schema_for(self, node: GraphNode, function_name: Optional[str]) -> Optional[FunctionSchema]:
        schema = self.registry.lookup(function_name)
        if schema is None:
            self._report(
                CompileError.UNKNOWN_FUNCTION,
                f"Node '{node.id}' calls unknown function '{function_name}', skipped",
                node.id,
            )
        return schema

    # ── Per-variant compilation ───────────────────────────────────────────

    def _bind_call(self, node: GraphNode, call: CallStatement) -> Statement:
        slot = self.allocator.bind(node)
        if slot is None:
            self._report(
                CompileError.SLOTS_EXHAUSTED,
                f"All variable slots are in use; '{call.function_name}' on node '{node.id}' is left unbound",
                node.id,
            )
            return call
        return AssignStatement(node_id=node.id, variable=slot, call=call)

    def _compile_call(self, node: GraphNode) -> Optional[Statement]:
        schema = self._schema_for(node, node.function_name)
        if schema is None:
            return None
        call = CallStatement(node.id, schema.name, self._arguments(node, schema))
        if schema.is_value_producing:
            return self._bind_call(node, call)
        return call

    def _compile_assignment(self, node: GraphNode) -> Optional[Statement]:
        if node.embedded_node is None:
            self._report(
                CompileError.MISSING_EMBEDDED_NODE,
                f"Assignment '{node.id}' has no embedded value node, nothing emitted",
                node.id,
            )
            return None
        schema = self._schema_for(node, node.semantic_function())
        if schema is None:
            return None
        call = CallStatement(node.id, schema.name, self._arguments(node, schema))
        return self._bind_call(node, call)

    def _compile_conditional(self, node: GraphNode, expanding: FrozenSet[str]) -> Optional[Statement]:
        if node.id in expanding:
            self._report(
                CompileError.BRANCH_CYCLE,
                f"Conditional '{node.id}' is reached again from inside its own branch, skipped",
                node.id,
            )
            return None
        if len(expanding) >= MAX_BRANCH_DEPTH:
            self._report(
                CompileError.BRANCH_DEPTH,
                f"Conditional '{node.id}' is nested deeper than {MAX_BRANCH_DEPTH} levels, skipped",
                node.id,
            )
            return None

        inner = expanding | {node.id}
        statement = ConditionalStatement(node_id=node.id, condition=render_condition(node))

        true_edges = self._branch_edges(node, TRUE)
        if true_edges:
            statement.true_branch = self._walk(true_edges[0].target, inner)

        false_edges = self._branch_edges(node, FALSE)
        if false_edges:
            statement.false_branch = self._walk(false_edges[0].target, inner)

        return statement

    def _branch_edges(self, node: GraphNode, handle: str):
        edges = self.store.outgoing(node.id, handle)
        if len(edges) > 1:
            ignored = ", ".join(e.target for e in edges[1:])
            self._report(
                CompileError.MULTI_EDGE_BRANCH,
                f"Conditional '{node.id}' has {len(edges)} connections on '{handle}'; "
                f"only the first is followed (ignored: {ignored})",
                node.id,
            )
        return edges

    def _compile_node(self, node: GraphNode, expanding: FrozenSet[str]) -> Optional[Statement]:
        variant = node.variant
        if variant == NodeVariant.CONDITIONAL:
            return self._compile_conditional(node, expanding)
        if variant == NodeVariant.CONTINUE_IF:
            return ContinueIfStatement(node_id=node.id, condition=render_condition(node))
        if variant == NodeVariant.ASSIGNMENT:
            return self._compile_assignment(node)
        if variant in (NodeVariant.VALUE_ACQUISITION, NodeVariant.CONSEQUENCE):
            return self._compile_call(node)
        # Timing nodes only ever start a script
        logger.debug(f"Ignoring Timing node '{node.id}' inside a statement stream")
        return None

    # ── Traversal ─────────────────────────────────────────────────────────

    def _walk(self, start_id: str, expanding: FrozenSet[str] = frozenset()) -> List[Statement]:
        """Breadth-first walk from `start_id`; every node handled at most once."""
        walk_index = self._walks
        self._walks += 1

        statements: List[Statement] = []
        visited: Set[str] = set()
        queue: Deque[str] = deque([start_id])

        while queue:
            node_id = queue.popleft()
            if node_id in visited:
                continue
            visited.add(node_id)

            node = self.store.get_node(node_id)
            if node is None:
                self._report(
                    CompileError.NODE_NOT_FOUND,
                    f"Connection points at missing node '{node_id}', skipped",
                    node_id,
                )
                continue

            if self.on_visit is not None:
                self.on_visit(walk_index, node_id)
            logger.debug(f"walk {walk_index}: visiting '{node_id}' ({node.variant.value})")

            statement = self._compile_node(node, expanding)
            if statement is not None:
                statements.append(statement)

            for edge in self.store.outgoing(node_id, OUTPUT):
                if edge.target not in visited:
                    queue.append(edge.target)

        return statements

    # ── Entry resolution ──────────────────────────────────────────────────

    def _header_args(self, entry: GraphNode) -> List[str]:
        schema = self.registry.lookup(entry.function_name)
        if schema is None:
            self._report(
                CompileError.UNKNOWN_FUNCTION,
                f"Timing node '{entry.id}' uses unknown trigger '{entry.function_name}'",
                entry.id,
            )
            return []
        return [format_value(entry.parameters.get(name)) for name in schema.parameters]

    # ── Public API ────────────────────────────────────────────────────────

    def build(self) -> Optional[Script]:
        """Compile the snapshot into a Script, or None when there is no entry point."""
        timings = self.store.timing_nodes()
        if not timings:
            self._report(CompileError.NO_ENTRY_POINT, NO_ENTRY_POINT_MESSAGE)
            return None

        entry = timings[0]
        for extra in timings[1:]:
            self._report(
                CompileError.EXTRA_ENTRY_POINT,
                f"Timing node '{extra.id}' ignored; '{entry.id}' is the entry point",
                extra.id,
            )

        script = Script(timing=entry.function_name, timing_args=self._header_args(entry))
        for edge in self.store.outgoing(entry.id, OUTPUT):
            script.statements.extend(self._walk(edge.target))
        return script
