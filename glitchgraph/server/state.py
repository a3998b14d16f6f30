"""
GraphState — the editor's current graph, held between HTTP requests.

Only the reference to the current GraphStore snapshot is mutable: every edit
builds a new snapshot and swaps it in, so a compile that already captured a
snapshot never sees later edits.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from glitchgraph.compiler import CompileResult, compile_graph
from glitchgraph.compiler.deserialiser import json_to_store
from glitchgraph.compiler.schema import validate
from glitchgraph.core.GraphPrimitives import GraphNode
from glitchgraph.core.GraphStore import GraphStore
from glitchgraph.core.Types import INPUT, OUTPUT, TRUE

logger = logging.getLogger(__name__)


class GraphState:
    """Holds the current snapshot and the graph's display name."""

    def __init__(self, seed_demo: bool = False) -> None:
        self.store: GraphStore = GraphStore()
        self.graph_name: str = "untitled"
        if seed_demo:
            self.seed_demo()

    # ── Demo graph ──────────────────────────────────────────────────────────

    def seed_demo(self) -> None:
        # RoundStart → VALUE_0:getdata(Self,5) → IF(VALUE_0>5):buf(...)
        store = self.store
        store, timing = store.add_node("RoundStart", node_id="1", position=(80, 180))
        store, assign = store.add_node("Assignment", node_id="2", position=(340, 180))
        store = store.set_embedded_node(assign.id, "getdata", {"target": "Self", "id": "5"})
        store = store.set_bound_variable(assign.id, "VALUE_0")
        store, cond = store.add_node("Conditional", node_id="3", position=(600, 180))
        store = store.set_conditions(cond.id, [("VALUE_0", ">", "5")])
        store, buf = store.add_node(
            "buf",
            {"target": "Self", "keyword": "Enhancement", "stack": 3, "turn": 2, "activeRound": 0},
            node_id="4",
            position=(860, 120),
        )

        store = store.connect(timing.id, OUTPUT, assign.id, INPUT)
        store = store.connect(assign.id, OUTPUT, cond.id, INPUT)
        store = store.connect(cond.id, TRUE, buf.id, INPUT)

        self.store = store
        self.graph_name = "demo"

    # ── Snapshot helpers ────────────────────────────────────────────────────

    def reset(self) -> None:
        self.store = GraphStore()
        self.graph_name = "untitled"

    def snapshot(self) -> GraphStore:
        return self.store

    def replace(self, data: Dict[str, Any]) -> GraphStore:
        validate(data)
        self.store = json_to_store(data)
        self.graph_name = data.get("graph_name", self.graph_name)
        logger.info(f"Loaded graph '{self.graph_name}' ({len(self.store)} nodes)")
        return self.store

    # ── Node helpers ─────────────────────────────────────────────────────────

    def add_node(
        self,
        kind: str,
        parameters: Optional[Mapping[str, Any]] = None,
        node_id: Optional[str] = None,
        position: Tuple[float, float] = (0.0, 0.0),
    ) -> GraphNode:
        self.store, node = self.store.add_node(kind, parameters, node_id=node_id, position=position)
        return node

    def delete_node(self, node_id: str) -> None:
        self.store = self.store.remove_node(node_id)

    def set_parameters(self, node_id: str, parameters: Mapping[str, Any]) -> None:
        self.store = self.store.update_node_parameters(node_id, parameters)

    def set_position(self, node_id: str, x: float, y: float) -> None:
        self.store = self.store.move_node(node_id, x, y)

    def set_embedded(self, node_id: str, function_name: Optional[str],
                     parameters: Optional[Mapping[str, Any]] = None) -> None:
        if function_name is None:
            self.store = self.store.clear_embedded_node(node_id)
        else:
            self.store = self.store.set_embedded_node(node_id, function_name, parameters)

    def set_bound_variable(self, node_id: str, slot: Optional[str]) -> None:
        self.store = self.store.set_bound_variable(node_id, slot)

    def set_conditions(self, node_id: str, terms: Iterable[Any], logical_operator: str) -> None:
        self.store = self.store.set_conditions(node_id, terms, logical_operator)

    # ── Edge helpers ─────────────────────────────────────────────────────────

    def add_edge(self, source: str, source_handle: str, target: str, target_handle: str) -> None:
        self.store = self.store.connect(source, source_handle, target, target_handle)

    def remove_edge(self, source: str, source_handle: str, target: str, target_handle: str) -> None:
        self.store = self.store.disconnect(source, source_handle, target, target_handle)

    # ── Compile ──────────────────────────────────────────────────────────────

    def compile(self) -> CompileResult:
        snapshot = self.snapshot()
        result = compile_graph(snapshot)
        logger.info(f"Compiled '{self.graph_name}': ok={result.ok}, {len(result.diagnostics)} diagnostics")
        return result


# ---------------------------------------------------------------------------
# Module-level singleton; main.py seeds it when GLITCHGRAPH_SEED_DEMO is on.
# ---------------------------------------------------------------------------

graph_state = GraphState()
