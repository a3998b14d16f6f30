"""
GlitchGraph — JSON Deserialiser
===============================
Converts a serialised graph JSON file (or dict) into a GraphStore snapshot.

Pipeline
--------
    graph.json  →  [schema.validate]            →  checked dict
    dict        →  [deserialiser.json_to_store] →  GraphStore
    GraphStore  →  [compiler.compile_graph]     →  Script DSL text

See schema.py for the JSON format.

Nodes are inserted as-is, without registry lookups, so a graph saved by a
newer editor (or hand-edited) still loads; the compiler reports anything it
cannot resolve. Run schema.validate first when the input is untrusted.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..core.GraphPrimitives import ConditionTerm, Edge, EmbeddedNode, GraphNode
from ..core.GraphStore import GraphStore
from ..core.Types import (
    CONTINUE_IF_FUNCTION,
    IF_FUNCTION,
    LogicalOperator,
    NodeVariant,
)

# Structural variants always carry the same function name
_STRUCTURAL_FUNCTIONS = {
    NodeVariant.CONDITIONAL: IF_FUNCTION,
    NodeVariant.CONTINUE_IF: CONTINUE_IF_FUNCTION,
    NodeVariant.ASSIGNMENT: "",
}


def _parse_embedded(spec: Optional[Dict[str, Any]]) -> Optional[EmbeddedNode]:
    if not spec:
        return None
    return EmbeddedNode(
        function_name=spec["functionName"],
        parameters=spec.get("parameters", {}),
    )


def _parse_node(node_spec: Dict[str, Any]) -> GraphNode:
    """Convert a JSON node dict → GraphNode."""
    variant = NodeVariant.parse(node_spec["variant"])
    position = node_spec.get("position") or {}

    function_name = _STRUCTURAL_FUNCTIONS.get(variant, node_spec.get("functionName", ""))

    conditions = tuple(
        ConditionTerm(str(t["left"]), t["operator"], str(t["right"]))
        for t in node_spec.get("conditions", [])
    )

    return GraphNode(
        id=node_spec["id"],
        variant=variant,
        function_name=function_name,
        parameters=node_spec.get("parameters", {}),
        position=(float(position.get("x", 0)), float(position.get("y", 0))),
        bound_variable=node_spec.get("boundVariable"),
        embedded_node=_parse_embedded(node_spec.get("embeddedNode")),
        conditions=conditions,
        logical_operator=LogicalOperator(node_spec.get("logicalOperator", "AND")),
    )


def _parse_edge(edge_spec: Dict[str, Any]) -> Edge:
    return Edge(
        source=edge_spec["source"],
        source_handle=edge_spec["sourceHandle"],
        target=edge_spec["target"],
        target_handle=edge_spec["targetHandle"],
    )


# ── Public entry point ────────────────────────────────────────────────────────

def json_to_store(source: Union[str, Path, Dict[str, Any]]) -> GraphStore:
    """
    Parse a graph JSON description and return a GraphStore.

    Args:
        source: One of:
            - A file path (str or Path) to a JSON file.
            - A pre-parsed dict matching the graph JSON schema.

    Returns:
        A GraphStore ready to pass to ``compiler.compile_graph``.

    Raises:
        FileNotFoundError: If a path is given and the file does not exist.
        KeyError / ValueError: If required fields are missing in the JSON.
    """
    if isinstance(source, (str, Path)):
        path = Path(source)
        with path.open(encoding="utf-8") as fh:
            data = json.load(fh)
    else:
        data = source

    store = GraphStore()
    for node_spec in data.get("nodes", []):
        store = store.insert_node(_parse_node(node_spec))

    for edge_spec in data.get("edges", []):
        store = store.insert_edge(_parse_edge(edge_spec))

    return store


__all__ = ["json_to_store"]
