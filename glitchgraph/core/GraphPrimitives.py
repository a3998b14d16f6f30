from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping, NamedTuple, Optional, Tuple, Union

from .Types import (
    NodeVariant,
    LogicalOperator,
    input_handles,
    output_handles,
)

ParamValue = Union[str, int, float]


def _freeze(params: Optional[Mapping[str, Any]]) -> Mapping[str, ParamValue]:
    # Copy so later edits to the caller's dict never leak into a snapshot
    return MappingProxyType(dict(params or {}))


# Edges are plain immutable records, same as the connection arena in a NodeNetwork.
class Edge(NamedTuple):
    source: str
    source_handle: str
    target: str
    target_handle: str

    @property
    def id(self) -> str:
        return f"e-{self.source}.{self.source_handle}-{self.target}.{self.target_handle}"

    def __repr__(self):
        return f"Edge({self.source}.{self.source_handle} -> {self.target}.{self.target_handle})"


class ConditionTerm(NamedTuple):
    left: str
    operator: str
    right: str

    def render(self) -> str:
        return f"{self.left}{self.operator}{self.right}"


@dataclass(frozen=True)
class EmbeddedNode:
    """The ValueAcquisition call owned by an Assignment node."""
    function_name: str
    parameters: Mapping[str, ParamValue] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "parameters", _freeze(self.parameters))

    def with_parameters(self, parameters: Mapping[str, Any]) -> 'EmbeddedNode':
        return replace(self, parameters=parameters)


@dataclass(frozen=True)
class GraphNode:
    id: str
    variant: NodeVariant
    function_name: str = ""
    parameters: Mapping[str, ParamValue] = field(default_factory=dict)
    position: Tuple[float, float] = (0.0, 0.0)

    # Assignment only
    bound_variable: Optional[str] = None
    embedded_node: Optional[EmbeddedNode] = None

    # Conditional / ContinueIf only
    conditions: Tuple[ConditionTerm, ...] = ()
    logical_operator: LogicalOperator = LogicalOperator.AND

    def __post_init__(self):
        object.__setattr__(self, "parameters", _freeze(self.parameters))
        object.__setattr__(self, "conditions", tuple(ConditionTerm(*t) for t in self.conditions))

    def __repr__(self):
        return f"GraphNode({self.id}, {self.variant.value}, {self.function_name!r})"

    def isEntryPoint(self) -> bool:
        return self.variant == NodeVariant.TIMING

    def input_handles(self) -> Tuple[str, ...]:
        return input_handles(self.variant)

    def output_handles(self) -> Tuple[str, ...]:
        return output_handles(self.variant)

    def semantic_function(self) -> Optional[str]:
        """Name of the function this node actually calls; Assignments call their embedded node's."""
        if self.variant == NodeVariant.ASSIGNMENT:
            return self.embedded_node.function_name if self.embedded_node else None
        return self.function_name

    def argument_parameters(self) -> Mapping[str, ParamValue]:
        if self.variant == NodeVariant.ASSIGNMENT:
            return self.embedded_node.parameters if self.embedded_node else _freeze({})
        return self.parameters

    def evolve(self, **changes: Any) -> 'GraphNode':
        return replace(self, **changes)

