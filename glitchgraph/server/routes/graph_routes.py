"""
Graph REST routes — the editor's only way to change the graph or compile it.

All routes are mounted under /api by main.py.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Response
from pydantic import BaseModel

from glitchgraph.compiler.schema import SchemaError
from glitchgraph.core.Errors import EdgeNotFoundError, GraphError, NodeNotFoundError
from glitchgraph.noderegistry.FunctionRegistry import REGISTRY
from glitchgraph.server.serializers.graph_serializer import (
    serialize_compile_result,
    serialize_node,
    serialize_registry,
    serialize_store,
)
from glitchgraph.server.state import graph_state

router = APIRouter()


def _http_error(exc: ValueError) -> HTTPException:
    if isinstance(exc, (NodeNotFoundError, EdgeNotFoundError)):
        return HTTPException(status_code=404, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


def _node_response(node_id: str) -> Dict[str, Any]:
    return serialize_node(graph_state.snapshot().require_node(node_id))


# ── GET /functions ────────────────────────────────────────────────────────────

@router.get("/functions")
async def list_functions() -> Dict[str, List[Dict[str, Any]]]:
    return serialize_registry(REGISTRY)


# ── GET /graph ────────────────────────────────────────────────────────────────

@router.get("/graph")
async def get_graph() -> Dict[str, Any]:
    return serialize_store(graph_state.snapshot(), graph_state.graph_name)


# ── PUT /graph ────────────────────────────────────────────────────────────────

@router.put("/graph")
async def replace_graph(body: Dict[str, Any]) -> Dict[str, Any]:
    try:
        graph_state.replace(body)
    except SchemaError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except (GraphError, KeyError) as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return serialize_store(graph_state.snapshot(), graph_state.graph_name)


# ── POST /nodes ───────────────────────────────────────────────────────────────

class CreateNodeBody(BaseModel):
    kind: str
    parameters: Optional[Dict[str, Any]] = None
    id: Optional[str] = None
    position: Optional[Dict[str, float]] = None


@router.post("/nodes", status_code=201)
async def create_node(body: CreateNodeBody) -> Dict[str, Any]:
    position = body.position or {}
    try:
        node = graph_state.add_node(
            body.kind,
            body.parameters,
            node_id=body.id,
            position=(position.get("x", 0.0), position.get("y", 0.0)),
        )
    except GraphError as exc:
        raise _http_error(exc)
    return serialize_node(node)


# ── DELETE /nodes/:nodeId ─────────────────────────────────────────────────────

@router.delete("/nodes/{node_id}", status_code=204)
async def delete_node(node_id: str) -> Response:
    try:
        graph_state.delete_node(node_id)
    except GraphError as exc:
        raise _http_error(exc)
    return Response(status_code=204)


# ── PUT /nodes/:nodeId/parameters ─────────────────────────────────────────────

class ParametersBody(BaseModel):
    parameters: Dict[str, Any]


@router.put("/nodes/{node_id}/parameters")
async def set_node_parameters(node_id: str, body: ParametersBody) -> Dict[str, Any]:
    try:
        graph_state.set_parameters(node_id, body.parameters)
        return _node_response(node_id)
    except GraphError as exc:
        raise _http_error(exc)


# ── PUT /nodes/:nodeId/position ───────────────────────────────────────────────

class PositionBody(BaseModel):
    x: float
    y: float


@router.put("/nodes/{node_id}/position", status_code=204)
async def set_node_position(node_id: str, body: PositionBody) -> Response:
    try:
        graph_state.set_position(node_id, body.x, body.y)
    except GraphError as exc:
        raise _http_error(exc)
    return Response(status_code=204)


# ── PUT /nodes/:nodeId/embedded ───────────────────────────────────────────────
# functionName = null removes the embedded node.

class EmbeddedBody(BaseModel):
    functionName: Optional[str] = None
    parameters: Optional[Dict[str, Any]] = None


@router.put("/nodes/{node_id}/embedded")
async def set_embedded_node(node_id: str, body: EmbeddedBody) -> Dict[str, Any]:
    try:
        graph_state.set_embedded(node_id, body.functionName, body.parameters)
        return _node_response(node_id)
    except GraphError as exc:
        raise _http_error(exc)


# ── PUT /nodes/:nodeId/bound-variable ─────────────────────────────────────────

class BoundVariableBody(BaseModel):
    boundVariable: Optional[str] = None


@router.put("/nodes/{node_id}/bound-variable")
async def set_bound_variable(node_id: str, body: BoundVariableBody) -> Dict[str, Any]:
    try:
        graph_state.set_bound_variable(node_id, body.boundVariable)
        return _node_response(node_id)
    except GraphError as exc:
        raise _http_error(exc)


# ── PUT /nodes/:nodeId/conditions ─────────────────────────────────────────────

class ConditionTermBody(BaseModel):
    left: str
    operator: str
    right: str


class ConditionsBody(BaseModel):
    conditions: List[ConditionTermBody]
    logicalOperator: str = "AND"


@router.put("/nodes/{node_id}/conditions")
async def set_conditions(node_id: str, body: ConditionsBody) -> Dict[str, Any]:
    terms = [(t.left, t.operator, t.right) for t in body.conditions]
    try:
        graph_state.set_conditions(node_id, terms, body.logicalOperator)
        return _node_response(node_id)
    except GraphError as exc:
        raise _http_error(exc)


# ── POST /edges ───────────────────────────────────────────────────────────────

class EdgeBody(BaseModel):
    source: str
    sourceHandle: str
    target: str
    targetHandle: str


@router.post("/edges", status_code=201)
async def add_edge(body: EdgeBody) -> Dict[str, Any]:
    try:
        graph_state.add_edge(body.source, body.sourceHandle, body.target, body.targetHandle)
    except GraphError as exc:
        raise _http_error(exc)
    return serialize_store(graph_state.snapshot(), graph_state.graph_name)


# ── DELETE /edges ─────────────────────────────────────────────────────────────

@router.delete("/edges", status_code=204)
async def delete_edge(body: EdgeBody) -> Response:
    try:
        graph_state.remove_edge(body.source, body.sourceHandle, body.target, body.targetHandle)
    except GraphError as exc:
        raise _http_error(exc)
    return Response(status_code=204)


# ── POST /compile ─────────────────────────────────────────────────────────────

@router.post("/compile")
async def compile_script() -> Dict[str, Any]:
    return serialize_compile_result(graph_state.compile())
