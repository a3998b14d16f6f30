"""
GraphStore — immutable snapshot of the nodes and connections on the canvas.

Every operation returns a NEW store and leaves the receiver untouched, so a
compile can hold on to one snapshot while the editor keeps producing newer
ones. Nodes keep their insertion order (entry resolution depends on it) and
edges keep theirs (fan-out order depends on it).
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .Errors import (
    DuplicateNodeError,
    EdgeNotFoundError,
    InvalidHandleError,
    InvalidNodeError,
    InvalidVariableError,
    NodeNotFoundError,
)
from .GraphPrimitives import ConditionTerm, Edge, EmbeddedNode, GraphNode
from .Types import (
    CONDITION_OPERATORS,
    CONTINUE_IF_FUNCTION,
    IF_FUNCTION,
    LogicalOperator,
    NodeVariant,
    OUTPUT,
    is_variable_slot,
)
from ..noderegistry.FunctionRegistry import REGISTRY, FunctionRegistry

logger = logging.getLogger(__name__)

# Synthetic kinds accepted by add_node in place of a registry function name
_STRUCTURAL_KINDS = {
    NodeVariant.CONDITIONAL.value: (NodeVariant.CONDITIONAL, IF_FUNCTION),
    NodeVariant.CONTINUE_IF.value: (NodeVariant.CONTINUE_IF, CONTINUE_IF_FUNCTION),
    NodeVariant.ASSIGNMENT.value: (NodeVariant.ASSIGNMENT, ""),
}


def _check_parameters(params: Optional[Mapping[str, Any]], owner: str) -> None:
    # Same value types the interchange JSON accepts
    for name, value in (params or {}).items():
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            raise InvalidNodeError(
                f"Parameter '{name}' of {owner} must be a string or a number, got {value!r}"
            )


@dataclass(frozen=True)
class GraphStore:
    nodes: Tuple[GraphNode, ...] = ()
    edges: Tuple[Edge, ...] = ()
    registry: FunctionRegistry = field(default=REGISTRY, repr=False, compare=False)

    # Lookup indexes, rebuilt once per snapshot
    _by_id: Dict[str, GraphNode] = field(init=False, repr=False, compare=False)
    _by_source: Dict[Tuple[str, str], List[Edge]] = field(init=False, repr=False, compare=False)
    _by_target: Dict[str, List[Edge]] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        by_id: Dict[str, GraphNode] = {}
        for node in self.nodes:
            by_id.setdefault(node.id, node)

        by_source: Dict[Tuple[str, str], List[Edge]] = {}
        by_target: Dict[str, List[Edge]] = {}
        for edge in self.edges:
            by_source.setdefault((edge.source, edge.source_handle), []).append(edge)
            by_target.setdefault(edge.target, []).append(edge)

        object.__setattr__(self, "nodes", tuple(self.nodes))
        object.__setattr__(self, "edges", tuple(self.edges))
        object.__setattr__(self, "_by_id", by_id)
        object.__setattr__(self, "_by_source", by_source)
        object.__setattr__(self, "_by_target", by_target)

    # ── Queries ───────────────────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self.nodes)

    def get_node(self, node_id: str) -> Optional[GraphNode]:
        return self._by_id.get(node_id)

    def require_node(self, node_id: str) -> GraphNode:
        node = self.get_node(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        return node

    def outgoing(self, node_id: str, handle: str = OUTPUT) -> List[Edge]:
        return list(self._by_source.get((node_id, handle), ()))

    def incoming(self, node_id: str) -> List[Edge]:
        return list(self._by_target.get(node_id, ()))

    def timing_nodes(self) -> List[GraphNode]:
        return [n for n in self.nodes if n.isEntryPoint()]

    # ── Internal copy helpers ─────────────────────────────────────────────

    def _with(self, nodes: Optional[Iterable[GraphNode]] = None,
              edges: Optional[Iterable[Edge]] = None) -> 'GraphStore':
        return GraphStore(
            nodes=tuple(self.nodes if nodes is None else nodes),
            edges=tuple(self.edges if edges is None else edges),
            registry=self.registry,
        )

    def _replace_node(self, updated: GraphNode) -> 'GraphStore':
        return self._with(nodes=[updated if n.id == updated.id else n for n in self.nodes])

    def _require_variant(self, node_id: str, *variants: NodeVariant) -> GraphNode:
        node = self.require_node(node_id)
        if node.variant not in variants:
            expected = "/".join(v.value for v in variants)
            raise InvalidNodeError(
                f"Node '{node_id}' is a {node.variant.value} node, expected {expected}"
            )
        return node

    # ── Nodes ─────────────────────────────────────────────────────────────

    def add_node(self,
                 kind: str,
                 initial_params: Optional[Mapping[str, Any]] = None,
                 *,
                 node_id: Optional[str] = None,
                 position: Tuple[float, float] = (0.0, 0.0)) -> Tuple['GraphStore', GraphNode]:
        """
        Create a node of `kind` and return (new_store, new_node).

        `kind` is a registry function name ("RoundStart", "getdata", "buf", ...)
        or one of the structural kinds "Conditional", "ContinueIf", "Assignment".
        """
        node_id = node_id or uuid.uuid4().hex
        _check_parameters(initial_params, f"'{kind}'")
        if self.get_node(node_id) is not None:
            raise DuplicateNodeError(node_id)

        if kind in _STRUCTURAL_KINDS:
            variant, function_name = _STRUCTURAL_KINDS[kind]
            # An Assignment's only argument state lives on its embedded node
            params = {} if variant == NodeVariant.ASSIGNMENT else dict(initial_params or {})
        else:
            schema = self.registry.require(kind)
            if schema.category.isStructural():
                raise InvalidNodeError(
                    f"'{kind}' is structural; create it as '{schema.category.value}'"
                )
            variant, function_name = schema.category, schema.name
            params = dict(initial_params or {})

        node = GraphNode(
            id=node_id,
            variant=variant,
            function_name=function_name,
            parameters=params,
            position=(float(position[0]), float(position[1])),
        )
        logger.debug(f"Adding {variant.value} node '{node_id}' ({function_name or kind})")
        return self._with(nodes=self.nodes + (node,)), node

    def insert_node(self, node: GraphNode) -> 'GraphStore':
        """Append a fully-formed node as-is (used when loading a saved graph)."""
        if self.get_node(node.id) is not None:
            raise DuplicateNodeError(node.id)
        return self._with(nodes=self.nodes + (node,))

    def remove_node(self, node_id: str) -> 'GraphStore':
        self.require_node(node_id)
        logger.debug(f"Removing node '{node_id}' and its connections")
        return self._with(
            nodes=[n for n in self.nodes if n.id != node_id],
            edges=[e for e in self.edges if e.source != node_id and e.target != node_id],
        )

    def update_node_parameters(self, node_id: str, patch: Mapping[str, Any]) -> 'GraphStore':
        """Replace the node's parameter map with `patch`."""
        node = self.require_node(node_id)
        _check_parameters(patch, f"node '{node_id}'")
        if node.variant == NodeVariant.ASSIGNMENT:
            if node.embedded_node is None:
                raise InvalidNodeError(f"Assignment '{node_id}' has no embedded node to parameterise")
            updated = node.evolve(embedded_node=node.embedded_node.with_parameters(patch))
        else:
            updated = node.evolve(parameters=patch)
        return self._replace_node(updated)

    def move_node(self, node_id: str, x: float, y: float) -> 'GraphStore':
        node = self.require_node(node_id)
        return self._replace_node(node.evolve(position=(float(x), float(y))))

    def set_embedded_node(self,
                          node_id: str,
                          function_name: str,
                          parameters: Optional[Mapping[str, Any]] = None) -> 'GraphStore':
        node = self._require_variant(node_id, NodeVariant.ASSIGNMENT)
        schema = self.registry.require(function_name)
        if not schema.is_value_producing:
            raise InvalidNodeError(
                f"'{function_name}' does not produce a value and cannot be assigned"
            )
        _check_parameters(parameters, f"'{function_name}'")
        embedded = EmbeddedNode(function_name=function_name, parameters=parameters or {})
        return self._replace_node(node.evolve(embedded_node=embedded))

    def clear_embedded_node(self, node_id: str) -> 'GraphStore':
        node = self._require_variant(node_id, NodeVariant.ASSIGNMENT)
        return self._replace_node(node.evolve(embedded_node=None))

    def set_bound_variable(self, node_id: str, slot: Optional[str]) -> 'GraphStore':
        node = self._require_variant(node_id, NodeVariant.ASSIGNMENT)
        if slot is not None and not is_variable_slot(slot):
            raise InvalidVariableError(slot)
        return self._replace_node(node.evolve(bound_variable=slot))

    def set_conditions(self,
                       node_id: str,
                       terms: Iterable[Any],
                       logical_operator: Any = LogicalOperator.AND) -> 'GraphStore':
        node = self._require_variant(node_id, NodeVariant.CONDITIONAL, NodeVariant.CONTINUE_IF)
        if not isinstance(logical_operator, LogicalOperator):
            try:
                logical_operator = LogicalOperator(str(logical_operator).upper())
            except ValueError:
                raise InvalidNodeError(f"Unknown logical operator '{logical_operator}'") from None
        conditions = tuple(ConditionTerm(*t) for t in terms)
        for term in conditions:
            if term.operator not in CONDITION_OPERATORS:
                raise InvalidNodeError(
                    f"Unknown comparison operator '{term.operator}', expected one of {list(CONDITION_OPERATORS)}"
                )
        return self._replace_node(
            node.evolve(conditions=conditions, logical_operator=logical_operator)
        )

    # ── Connections ───────────────────────────────────────────────────────

    def connect(self, source_id: str, source_handle: str,
                target_id: str, target_handle: str) -> 'GraphStore':
        source = self.require_node(source_id)
        target = self.require_node(target_id)

        if source_handle not in source.output_handles():
            raise InvalidHandleError(
                f"'{source_handle}' is not an output handle of {source.variant.value} node '{source_id}'"
            )
        if target_handle not in target.input_handles():
            raise InvalidHandleError(
                f"'{target_handle}' is not an input handle of {target.variant.value} node '{target_id}'"
            )

        edge = Edge(source_id, source_handle, target_id, target_handle)
        if edge in self.edges:
            logger.debug(f"Connection {edge!r} already exists")
            return self
        logger.debug(f"Connecting {edge!r}")
        return self._with(edges=self.edges + (edge,))

    def insert_edge(self, edge: Edge) -> 'GraphStore':
        """Append an edge without handle checks (used when loading a saved graph)."""
        return self._with(edges=self.edges + (edge,))

    def disconnect(self, source_id: str, source_handle: str,
                   target_id: str, target_handle: str) -> 'GraphStore':
        edge = Edge(source_id, source_handle, target_id, target_handle)
        if edge not in self.edges:
            raise EdgeNotFoundError(source_id, source_handle, target_id, target_handle)
        return self._with(edges=[e for e in self.edges if e != edge])
