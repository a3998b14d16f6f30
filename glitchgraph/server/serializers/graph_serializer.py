"""
Graph serializer — GraphStore → the JSON shape the canvas editor consumes.

The output is the same interchange format json_to_store() reads (see
compiler/schema.py), so a graph can be fetched, saved to disk and loaded back
without loss. The registry serializer feeds the editor's node palette.
"""
from __future__ import annotations

from typing import Any, Dict, List

from glitchgraph.compiler.ir import CompileResult
from glitchgraph.core.GraphPrimitives import Edge, GraphNode
from glitchgraph.core.GraphStore import GraphStore
from glitchgraph.core.Types import NodeVariant
from glitchgraph.noderegistry.FunctionRegistry import FunctionRegistry, FunctionSchema


# ── Helpers ───────────────────────────────────────────────────────────────────

def serialize_node(node: GraphNode) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "id": node.id,
        "variant": node.variant.value,
        "position": {"x": node.position[0], "y": node.position[1]},
        "parameters": dict(node.parameters),
    }
    if not node.variant.isStructural():
        data["functionName"] = node.function_name

    if node.variant == NodeVariant.ASSIGNMENT:
        data["boundVariable"] = node.bound_variable
        data["embeddedNode"] = (
            {
                "functionName": node.embedded_node.function_name,
                "parameters": dict(node.embedded_node.parameters),
            }
            if node.embedded_node is not None
            else None
        )

    if node.variant in (NodeVariant.CONDITIONAL, NodeVariant.CONTINUE_IF):
        data["logicalOperator"] = node.logical_operator.value
        data["conditions"] = [
            {"left": t.left, "operator": t.operator, "right": t.right}
            for t in node.conditions
        ]
    return data


def serialize_edge(edge: Edge) -> Dict[str, Any]:
    return {
        "id": edge.id,
        "source": edge.source,
        "sourceHandle": edge.source_handle,
        "target": edge.target,
        "targetHandle": edge.target_handle,
    }


def _serialize_schema(schema: FunctionSchema) -> Dict[str, Any]:
    return {
        "name": schema.name,
        "category": schema.category.value,
        "parameters": list(schema.parameters),
        "isValueProducing": schema.is_value_producing,
        "hasTwoBranches": schema.has_two_branches,
        "description": schema.description,
    }


# ── Public API ─────────────────────────────────────────────────────────────────

def serialize_store(store: GraphStore, graph_name: str = "graph") -> Dict[str, Any]:
    return {
        "graph_name": graph_name,
        "nodes": [serialize_node(n) for n in store.nodes],
        "edges": [serialize_edge(e) for e in store.edges],
    }


def serialize_registry(registry: FunctionRegistry) -> Dict[str, List[Dict[str, Any]]]:
    """Catalog grouped by category, in catalog order."""
    return {
        variant.value: [_serialize_schema(s) for s in registry.functions_in(variant)]
        for variant in NodeVariant
    }


def serialize_compile_result(result: CompileResult) -> Dict[str, Any]:
    return {
        "script": result.text,
        "ok": result.ok,
        "error": result.error.value if result.error else None,
        "diagnostics": [
            {"code": d.code.value, "message": d.message, "nodeId": d.node_id}
            for d in result.diagnostics
        ],
    }
