"""
GlitchGraph Compiler — Variable Allocator
==========================================
Hands out the DSL's ten variable slots (VALUE_0 .. VALUE_9) during one
compile pass.

  - A free-standing ValueAcquisition node gets the lowest unclaimed slot the
    first time it is bound; binding it again returns the same slot.
  - An Assignment node gets its user-chosen bound_variable (or the lowest
    unclaimed slot when none was chosen).

node_id → slot is recorded so downstream nodes can substitute the slot name
for a literal argument. A fresh allocator is created for every compile, so
nothing carries over between passes.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Set

from ..core.GraphPrimitives import GraphNode
from ..core.Types import NodeVariant, VARIABLE_SLOTS, is_variable_slot

logger = logging.getLogger(__name__)


class VariableAllocator:
    def __init__(self) -> None:
        self._slots: Dict[str, str] = {}   # node_id → slot
        self._claimed: Set[str] = set()

    def _next_free(self) -> Optional[str]:
        return next((s for s in VARIABLE_SLOTS if s not in self._claimed), None)

    def bind(self, node: GraphNode) -> Optional[str]:
        """
        Return the slot bound to `node`, allocating it on first use.

        Returns None when every slot is already claimed.
        """
        existing = self._slots.get(node.id)
        if existing is not None:
            return existing

        slot: Optional[str] = None
        if node.variant == NodeVariant.ASSIGNMENT and is_variable_slot(node.bound_variable):
            slot = node.bound_variable
        else:
            slot = self._next_free()

        if slot is None:
            logger.warning(f"No free variable slot left for node '{node.id}'")
            return None

        self._claimed.add(slot)
        self._slots[node.id] = slot
        logger.debug(f"Bound node '{node.id}' to {slot}")
        return slot

    def slot_for(self, node_id: str) -> Optional[str]:
        return self._slots.get(node_id)

    def bindings(self) -> Dict[str, str]:
        return dict(self._slots)
