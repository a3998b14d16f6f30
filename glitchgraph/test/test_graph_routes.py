import asyncio

import pytest
from fastapi import HTTPException

from glitchgraph.server.routes import graph_routes as routes
from glitchgraph.server.state import GraphState, graph_state


def run(coro):
    return asyncio.run(coro)


class TestGraphState:

    def test_demo_graph_compiles(self):
        state = GraphState(seed_demo=True)
        result = state.compile()

        assert result.ok is True
        assert result.text == (
            "Modular/TIMING:RoundStart/VALUE_0:getdata(Self,5)/IF(VALUE_0>5):buf(Self,Enhancement,3,2,0)/"
        )

    def test_edits_swap_snapshots(self):
        state = GraphState()
        before = state.snapshot()
        state.add_node("RoundStart", node_id="t")

        assert len(before) == 0
        assert len(state.snapshot()) == 1

    def test_reset(self):
        state = GraphState(seed_demo=True)
        state.reset()
        assert len(state.snapshot()) == 0
        assert state.graph_name == "untitled"


class TestGraphRoutes:

    def setup_method(self):
        graph_state.reset()

    def teardown_method(self):
        graph_state.reset()

    def _node(self, kind, node_id, **extra):
        return run(routes.create_node(routes.CreateNodeBody(kind=kind, id=node_id, **extra)))

    def _edge(self, source, target, source_handle="output"):
        return routes.EdgeBody(source=source, sourceHandle=source_handle, target=target, targetHandle="input")

    def test_list_functions(self):
        catalog = run(routes.list_functions())
        assert [f["name"] for f in catalog["Timing"]][0] == "RoundStart"
        assert any(f["name"] == "getdata" and f["isValueProducing"] for f in catalog["ValueAcquisition"])

    def test_create_node(self):
        data = self._node("heal", "h", parameters={"target": "Self", "amount": 4}, position={"x": 10, "y": 5})

        assert data["id"] == "h"
        assert data["variant"] == "Consequence"
        assert data["functionName"] == "heal"
        assert data["position"] == {"x": 10.0, "y": 5.0}
        assert run(routes.get_graph())["nodes"][0]["id"] == "h"

    def test_create_unknown_kind(self):
        with pytest.raises(HTTPException) as exc:
            self._node("teleport", "x")
        assert exc.value.status_code == 400

    def test_create_with_boolean_parameter(self):
        with pytest.raises(HTTPException) as exc:
            self._node("heal", "h", parameters={"target": "Self", "amount": True})
        assert exc.value.status_code == 400
        assert run(routes.get_graph())["nodes"] == []

    def test_set_unknown_comparison(self):
        self._node("Conditional", "c")
        body = routes.ConditionsBody(conditions=[routes.ConditionTermBody(left="VALUE_0", operator="~~", right="1")])
        with pytest.raises(HTTPException) as exc:
            run(routes.set_conditions("c", body))
        assert exc.value.status_code == 400

    def test_create_duplicate_id(self):
        self._node("RoundStart", "t")
        with pytest.raises(HTTPException) as exc:
            self._node("RoundEnd", "t")
        assert exc.value.status_code == 400

    def test_delete_node(self):
        self._node("RoundStart", "t")
        response = run(routes.delete_node("t"))
        assert response.status_code == 204
        assert run(routes.get_graph())["nodes"] == []

    def test_delete_missing_node(self):
        with pytest.raises(HTTPException) as exc:
            run(routes.delete_node("ghost"))
        assert exc.value.status_code == 404

    def test_set_parameters_and_position(self):
        self._node("log", "l", parameters={"message": "a"})
        data = run(routes.set_node_parameters("l", routes.ParametersBody(parameters={"message": "b"})))
        assert data["parameters"] == {"message": "b"}

        run(routes.set_node_position("l", routes.PositionBody(x=3, y=4)))
        assert graph_state.snapshot().get_node("l").position == (3.0, 4.0)

    def test_assignment_editing(self):
        self._node("Assignment", "a")
        data = run(routes.set_embedded_node(
            "a", routes.EmbeddedBody(functionName="gethp", parameters={"target": "Self", "mode": "current"})
        ))
        assert data["embeddedNode"]["functionName"] == "gethp"

        data = run(routes.set_bound_variable("a", routes.BoundVariableBody(boundVariable="VALUE_7")))
        assert data["boundVariable"] == "VALUE_7"

        with pytest.raises(HTTPException) as exc:
            run(routes.set_bound_variable("a", routes.BoundVariableBody(boundVariable="VALUE_X")))
        assert exc.value.status_code == 400

        data = run(routes.set_embedded_node("a", routes.EmbeddedBody(functionName=None)))
        assert data["embeddedNode"] is None

    def test_set_conditions(self):
        self._node("Conditional", "c")
        body = routes.ConditionsBody(
            conditions=[routes.ConditionTermBody(left="VALUE_0", operator="<", right="3")],
            logicalOperator="xor",
        )
        data = run(routes.set_conditions("c", body))

        assert data["logicalOperator"] == "XOR"
        assert data["conditions"] == [{"left": "VALUE_0", "operator": "<", "right": "3"}]

    def test_edges(self):
        self._node("RoundStart", "t")
        self._node("log", "l", parameters={"message": "hi"})

        graph = run(routes.add_edge(self._edge("t", "l")))
        assert graph["edges"][0]["source"] == "t"

        with pytest.raises(HTTPException) as exc:
            run(routes.add_edge(self._edge("t", "l", source_handle="true")))
        assert exc.value.status_code == 400

        run(routes.delete_edge(self._edge("t", "l")))
        assert graph_state.snapshot().edges == ()

        with pytest.raises(HTTPException) as exc:
            run(routes.delete_edge(self._edge("t", "l")))
        assert exc.value.status_code == 404

    def test_edge_to_missing_node(self):
        self._node("RoundStart", "t")
        with pytest.raises(HTTPException) as exc:
            run(routes.add_edge(self._edge("t", "ghost")))
        assert exc.value.status_code == 404

    def test_compile(self):
        self._node("RoundStart", "t")
        self._node("log", "l", parameters={"message": "hi"})
        run(routes.add_edge(self._edge("t", "l")))

        data = run(routes.compile_script())
        assert data == {
            "script": "Modular/TIMING:RoundStart/log(hi)/",
            "ok": True,
            "error": None,
            "diagnostics": [],
        }

    def test_compile_without_timing(self):
        self._node("log", "l")
        data = run(routes.compile_script())

        assert data["ok"] is False
        assert data["error"] == "no_entry_point"
        assert data["script"].startswith("Error:")

    def test_replace_graph(self):
        body = {
            "graph_name": "loaded",
            "nodes": [{"id": "1", "variant": "Timing", "functionName": "WhenHit"}],
            "edges": [],
        }
        data = run(routes.replace_graph(body))

        assert data["graph_name"] == "loaded"
        assert run(routes.compile_script())["script"] == "Modular/TIMING:WhenHit/"

    def test_replace_graph_invalid(self):
        with pytest.raises(HTTPException) as exc:
            run(routes.replace_graph({"nodes": []}))
        assert exc.value.status_code == 422


class TestHealth:

    def test_health(self):
        from glitchgraph.server.main import health

        assert run(health()) == {"status": "ok"}
