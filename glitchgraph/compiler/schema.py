"""
GlitchGraph — Graph JSON Schema + Validator
===========================================
Defines the interchange format shared with the canvas editor and provides a
lightweight validator that runs without any third-party JSON Schema library.

Canonical JSON format
---------------------

    {
      "graph_name": "burn-on-hit",                 // human label (str, optional)
      "nodes": [
        {
          "id":           "1",                     // unique within this graph (str, required)
          "variant":      "Timing",                // node variant (str, required)
          "functionName": "RoundStart",            // registry name (str, optional)
          "position":     { "x": 0, "y": 0 },      // canvas position (object, optional)
          "parameters":   {}                       // param name → str | number (object, optional)
        },
        {
          "id":           "2",
          "variant":      "Assignment",
          "boundVariable": "VALUE_2",              // VALUE_0 .. VALUE_9 (str, optional)
          "embeddedNode": {                        // ValueAcquisition call (object, optional)
            "functionName": "getdata",
            "parameters":   { "target": "Self", "id": "5" }
          }
        },
        {
          "id":              "3",
          "variant":         "Conditional",
          "logicalOperator": "AND",                // AND | OR | XOR (str, optional)
          "conditions": [                          // (list, optional)
            { "left": "VALUE_2", "operator": ">", "right": "5" }
          ]
        }
      ],
      "edges": [
        {
          "source":       "1",                     // source node id (str, required)
          "sourceHandle": "output",                // output | true | false (str, required)
          "target":       "2",                     // target node id (str, required)
          "targetHandle": "input"                  // input (str, required)
        }
      ]
    }

Function names are NOT checked against the registry here: a saved graph may
reference a function this build does not know, and the compiler skips such
nodes with a diagnostic instead of refusing the whole graph. Pass
strict=True to turn unknown functions into errors.
"""

from __future__ import annotations

import json
import warnings
from pathlib import Path
from typing import Any, Dict, List, Union

from ..core.Types import (
    CONDITION_OPERATORS,
    LogicalOperator,
    NodeVariant,
    is_variable_slot,
)
from ..noderegistry.FunctionRegistry import REGISTRY

_VARIANTS = frozenset(v.value for v in NodeVariant)
_LOGICAL_OPERATORS = frozenset(op.value for op in LogicalOperator)
_EDGE_FIELDS = ("source", "sourceHandle", "target", "targetHandle")


# ── Validation helpers ────────────────────────────────────────────────────────

class SchemaError(ValueError):
    """Raised when graph JSON fails structural validation."""


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise SchemaError(message)


def _require_keys(obj: Dict, keys: List[str], context: str) -> None:
    for key in keys:
        _require(key in obj, f"{context}: missing required field '{key}'")


def _check_parameters(params: Any, ctx: str) -> None:
    _require(isinstance(params, dict), f"{ctx} must be an object")
    for name, value in params.items():
        _require(
            isinstance(value, (str, int, float)) and not isinstance(value, bool),
            f"{ctx}.{name} must be a string or a number",
        )


def _check_function(name: str, ctx: str, strict: bool) -> None:
    if name in REGISTRY:
        return
    msg = f"{ctx}: unknown function '{name}'"
    if strict:
        raise SchemaError(msg)
    warnings.warn(msg + " (the compiler will skip this node)", stacklevel=4)


# ── Public validator ─────────────────────────────────────────────────────────

def validate(data: Dict[str, Any], *, strict: bool = False) -> None:
    """
    Validate a parsed graph JSON dict.

    Args:
        data:   A pre-parsed dict (result of json.load / json.loads).
        strict: When True, raise SchemaError for unknown function names.
                When False (default), unknown functions produce a warning.

    Raises:
        SchemaError: On any structural violation.
    """
    _require(isinstance(data, dict), "graph JSON must be a JSON object at the top level")
    _require_keys(data, ["nodes", "edges"], "graph root")

    if "graph_name" in data:
        _require(isinstance(data["graph_name"], str), "graph_name must be a string")
    _require(isinstance(data["nodes"], list), "nodes must be a list")
    _require(isinstance(data["edges"], list), "edges must be a list")

    # ── Validate nodes ──────────────────────────────────────────────────────

    node_ids: set[str] = set()

    for i, node in enumerate(data["nodes"]):
        ctx = f"nodes[{i}]"
        _require(isinstance(node, dict), f"{ctx}: each node must be a JSON object")
        _require_keys(node, ["id", "variant"], ctx)
        _require(isinstance(node["id"], str), f"{ctx}.id must be a string")
        _require(
            node["variant"] in _VARIANTS,
            f"{ctx}.variant must be one of {sorted(_VARIANTS)}",
        )
        _require(
            node["id"] not in node_ids,
            f"{ctx}: duplicate node id '{node['id']}'",
        )
        node_ids.add(node["id"])

        if "parameters" in node:
            _check_parameters(node["parameters"], f"{ctx}.parameters")

        if "position" in node:
            pos = node["position"]
            _require(isinstance(pos, dict), f"{ctx}.position must be an object")
            for axis in ("x", "y"):
                _require(
                    isinstance(pos.get(axis, 0), (int, float)),
                    f"{ctx}.position.{axis} must be a number",
                )

        variant = NodeVariant(node["variant"])

        if not variant.isStructural():
            _require_keys(node, ["functionName"], ctx)
            _require(isinstance(node["functionName"], str), f"{ctx}.functionName must be a string")
            _check_function(node["functionName"], ctx, strict)

        if variant == NodeVariant.ASSIGNMENT:
            bound = node.get("boundVariable")
            if bound is not None:
                _require(
                    is_variable_slot(bound),
                    f"{ctx}.boundVariable must be VALUE_0 .. VALUE_9, got '{bound}'",
                )
            embedded = node.get("embeddedNode")
            if embedded is not None:
                ectx = f"{ctx}.embeddedNode"
                _require(isinstance(embedded, dict), f"{ectx} must be an object")
                _require_keys(embedded, ["functionName"], ectx)
                _require(isinstance(embedded["functionName"], str), f"{ectx}.functionName must be a string")
                if "parameters" in embedded:
                    _check_parameters(embedded["parameters"], f"{ectx}.parameters")
                _check_function(embedded["functionName"], ectx, strict)

        if variant in (NodeVariant.CONDITIONAL, NodeVariant.CONTINUE_IF):
            op = node.get("logicalOperator", LogicalOperator.AND.value)
            _require(
                op in _LOGICAL_OPERATORS,
                f"{ctx}.logicalOperator must be one of {sorted(_LOGICAL_OPERATORS)}",
            )
            conditions = node.get("conditions", [])
            _require(isinstance(conditions, list), f"{ctx}.conditions must be a list")
            for j, term in enumerate(conditions):
                tctx = f"{ctx}.conditions[{j}]"
                _require(isinstance(term, dict), f"{tctx} must be an object")
                _require_keys(term, ["left", "operator", "right"], tctx)
                _require(
                    term["operator"] in CONDITION_OPERATORS,
                    f"{tctx}.operator must be one of {list(CONDITION_OPERATORS)}",
                )

    # ── Validate edges ──────────────────────────────────────────────────────

    for i, edge in enumerate(data["edges"]):
        ctx = f"edges[{i}]"
        _require(isinstance(edge, dict), f"{ctx}: each edge must be a JSON object")
        _require_keys(edge, list(_EDGE_FIELDS), ctx)

        for field in _EDGE_FIELDS:
            _require(isinstance(edge[field], str), f"{ctx}.{field} must be a string")

        _require(
            edge["source"] in node_ids,
            f"{ctx}: source '{edge['source']}' not found in nodes",
        )
        _require(
            edge["target"] in node_ids,
            f"{ctx}: target '{edge['target']}' not found in nodes",
        )


def validate_file(path: Union[str, Path], *, strict: bool = False) -> Dict[str, Any]:
    """
    Load and validate a graph JSON file.

    Returns:
        The parsed dict on success.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
        SchemaError: If the graph structure is invalid.
    """
    path = Path(path)
    with path.open(encoding="utf-8") as fh:
        data = json.load(fh)
    validate(data, strict=strict)
    return data


__all__ = ["SchemaError", "validate", "validate_file"]
