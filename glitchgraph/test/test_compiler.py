from collections import Counter

import pytest

from glitchgraph.compiler import (
    CompileError,
    NO_ENTRY_POINT_MESSAGE,
    compile_graph,
    compile_graph_text,
)
from glitchgraph.compiler.ir import AssignStatement, ConditionalStatement
from glitchgraph.compiler.scheduler import MAX_BRANCH_DEPTH
from glitchgraph.core.GraphPrimitives import Edge, GraphNode
from glitchgraph.core.GraphStore import GraphStore
from glitchgraph.core.Types import FALSE, INPUT, NodeVariant, OUTPUT, TRUE


BUF_PARAMS = {"target": "Self", "keyword": "Enhancement", "stack": 3, "turn": 2, "activeRound": 0}


def _codes(result):
    return [d.code for d in result.diagnostics]


class TestCompiler:

    def setup_method(self):
        self.store, self.timing = GraphStore().add_node("RoundStart", node_id="t")

    def add(self, kind, params=None, node_id=None):
        self.store, node = self.store.add_node(kind, params, node_id=node_id)
        return node

    def link(self, source, target, handle=OUTPUT):
        self.store = self.store.connect(source.id, handle, target.id, INPUT)

    def conditional(self, node_id, *terms, op="AND"):
        node = self.add("Conditional", node_id=node_id)
        self.store = self.store.set_conditions(node.id, terms, op)
        return node

    def assignment(self, node_id, function_name, params, slot=None):
        node = self.add("Assignment", node_id=node_id)
        self.store = self.store.set_embedded_node(node.id, function_name, params)
        if slot is not None:
            self.store = self.store.set_bound_variable(node.id, slot)
        return node

    # --- entry point ---

    def test_no_entry_point(self):
        store, _ = GraphStore().add_node("buf", BUF_PARAMS)
        result = compile_graph(store)

        assert result.ok is False
        assert result.error == CompileError.NO_ENTRY_POINT
        assert result.text == NO_ENTRY_POINT_MESSAGE
        assert not result.text.startswith("Modular/")
        assert result.script is None

    def test_empty_graph_has_no_entry_point(self):
        assert compile_graph_text(GraphStore()) == NO_ENTRY_POINT_MESSAGE

    def test_minimal_script(self):
        result = compile_graph(self.store)
        assert result.ok is True
        assert result.text == "Modular/TIMING:RoundStart/"
        assert result.diagnostics == ()

    def test_parameterised_timing_header(self):
        store, _ = GraphStore().add_node("OnCoinToss", {"coin": 1})
        assert compile_graph_text(store) == "Modular/TIMING:OnCoinToss(1)/"

    def test_first_timing_node_wins(self):
        other = self.add("RoundEnd", node_id="t2")
        self.link(other, self.add("log", {"message": "unused"}))
        self.link(self.timing, self.add("log", {"message": "used"}))

        result = compile_graph(self.store)
        assert result.text == "Modular/TIMING:RoundStart/log(used)/"
        assert CompileError.EXTRA_ENTRY_POINT in _codes(result)

    # --- statements ---

    def test_assignment_binding(self):
        assign = self.assignment("a", "getdata", {"target": "Self", "id": "5"}, slot="VALUE_2")
        self.link(self.timing, assign)

        text = compile_graph_text(self.store)
        assert "VALUE_2:getdata(Self,5)/" in text
        assert text == "Modular/TIMING:RoundStart/VALUE_2:getdata(Self,5)/"

    def test_assignment_without_embedded_node_is_skipped(self):
        assign = self.add("Assignment", node_id="a")
        tail = self.add("log", {"message": "after"})
        self.link(self.timing, assign)
        self.link(assign, tail)

        result = compile_graph(self.store)
        assert result.ok is True
        assert result.text == "Modular/TIMING:RoundStart/log(after)/"
        assert CompileError.MISSING_EMBEDDED_NODE in _codes(result)

    def test_assignment_without_slot_gets_next_free(self):
        assign = self.assignment("a", "round", {})
        self.link(self.timing, assign)
        assert compile_graph_text(self.store) == "Modular/TIMING:RoundStart/VALUE_0:round()/"

    def test_conditional_branching(self):
        cond = self.conditional("c", ("VALUE_0", ">", "5"))
        buf = self.add("buf", BUF_PARAMS)
        self.link(self.timing, cond)
        self.link(cond, buf, TRUE)

        text = compile_graph_text(self.store)
        assert "IF(VALUE_0>5):buf(Self,Enhancement,3,2,0)/" in text
        assert text == "Modular/TIMING:RoundStart/IF(VALUE_0>5):buf(Self,Enhancement,3,2,0)/"

    def test_conditional_false_branch(self):
        cond = self.conditional("c", ("VALUE_0", ">", "5"))
        self.link(self.timing, cond)
        self.link(cond, self.add("log", {"message": "yes"}), TRUE)
        self.link(cond, self.add("log", {"message": "no"}), FALSE)

        assert compile_graph_text(self.store) == "Modular/TIMING:RoundStart/IF(VALUE_0>5):log(yes):log(no)/"

    def test_conditional_branch_with_several_statements(self):
        cond = self.conditional("c", ("VALUE_0", "=", "1"))
        first = self.add("heal", {"target": "Self", "amount": 5})
        second = self.add("log", {"message": "healed"})
        self.link(self.timing, cond)
        self.link(cond, first, TRUE)
        self.link(first, second)

        assert compile_graph_text(self.store) == (
            "Modular/TIMING:RoundStart/IF(VALUE_0=1):heal(Self,5)/log(healed)/"
        )

    def test_conditional_only_false_branch(self):
        cond = self.conditional("c", ("VALUE_0", "<", "2"))
        self.link(self.timing, cond)
        self.link(cond, self.add("log", {"message": "no"}), FALSE)

        assert compile_graph_text(self.store) == "Modular/TIMING:RoundStart/IF(VALUE_0<2)::log(no)/"

    def test_multi_term_condition(self):
        cond = self.conditional("c", ("VALUE_0", ">", "5"), ("VALUE_1", "<", "3"), op="OR")
        self.link(self.timing, cond)
        self.link(cond, self.add("power", {"amount": 2}), TRUE)

        assert compile_graph_text(self.store) == (
            "Modular/TIMING:RoundStart/IF(OR,VALUE_0>5,VALUE_1<3):power(2)/"
        )

    def test_condition_without_terms_is_empty(self):
        cond = self.add("Conditional", node_id="c")
        self.link(self.timing, cond)
        self.link(cond, self.add("log", {"message": "x"}), TRUE)

        result = compile_graph(self.store)
        assert result.ok is True
        assert result.text == "Modular/TIMING:RoundStart/IF():log(x)/"

    def test_unconnected_branches(self):
        cond = self.conditional("c", ("VALUE_0", ">", "5"))
        self.link(self.timing, cond)
        assert compile_graph_text(self.store) == "Modular/TIMING:RoundStart/IF(VALUE_0>5):/"

    def test_branch_fan_out_follows_first_edge(self):
        cond = self.conditional("c", ("VALUE_0", ">", "5"))
        self.link(self.timing, cond)
        self.link(cond, self.add("log", {"message": "first"}), TRUE)
        self.link(cond, self.add("log", {"message": "second"}), TRUE)

        result = compile_graph(self.store)
        assert result.text == "Modular/TIMING:RoundStart/IF(VALUE_0>5):log(first)/"
        assert CompileError.MULTI_EDGE_BRANCH in _codes(result)

    def test_continue_if(self):
        guard = self.add("ContinueIf", node_id="g")
        self.store = self.store.set_conditions(guard.id, [("VALUE_0", ">=", "1")])
        self.link(self.timing, guard)
        self.link(guard, self.add("coinpower", {"amount": 1}))

        assert compile_graph_text(self.store) == (
            "Modular/TIMING:RoundStart/CONTINUEIF(VALUE_0>=1)/coinpower(1)/"
        )

    def test_missing_parameters_render_empty(self):
        self.link(self.timing, self.add("buf", {"target": "Self", "keyword": "Burn"}))
        assert compile_graph_text(self.store) == "Modular/TIMING:RoundStart/buf(Self,Burn,,,)/"

    def test_numbers_render_plainly(self):
        self.link(self.timing, self.add("heal", {"target": "Self", "amount": 3.0}))
        self.link(self.timing, self.add("bonusdmg", {"target": "Self", "amount": 2.5}))
        assert compile_graph_text(self.store) == (
            "Modular/TIMING:RoundStart/heal(Self,3)/bonusdmg(Self,2.5)/"
        )

    # --- variables ---

    def test_value_acquisition_gets_slot(self):
        value = self.add("gethp", {"target": "Self", "mode": "current"})
        self.link(self.timing, value)
        result = compile_graph(self.store)

        assert result.text == "Modular/TIMING:RoundStart/VALUE_0:gethp(Self,current)/"
        assert isinstance(result.script.statements[0], AssignStatement)

    def test_variable_substitution(self):
        value = self.add("getdata", {"target": "Self", "id": "5"})
        buf = self.add("buf", BUF_PARAMS)
        self.link(self.timing, value)
        self.link(value, buf)

        text = compile_graph_text(self.store)
        assert text == "Modular/TIMING:RoundStart/VALUE_0:getdata(Self,5)/buf(VALUE_0,Enhancement,3,2,0)/"
        assert "buf(Self," not in text

    def test_substitution_from_assignment_slot(self):
        assign = self.assignment("a", "getdata", {"target": "Self", "id": "1"}, slot="VALUE_4")
        heal = self.add("heal", {"target": "Self", "amount": 10})
        self.link(self.timing, assign)
        self.link(assign, heal)

        assert compile_graph_text(self.store) == (
            "Modular/TIMING:RoundStart/VALUE_4:getdata(Self,1)/heal(VALUE_4,10)/"
        )

    def test_substitution_into_function_without_parameters(self):
        first = self.add("round")
        second = self.add("round")
        self.link(self.timing, first)
        self.link(first, second)
        assert compile_graph_text(self.store) == "Modular/TIMING:RoundStart/VALUE_0:round()/VALUE_1:round(VALUE_0)/"

    def test_substitution_fills_missing_first_argument(self):
        value = self.add("round")
        tail = self.add("coinpower")
        self.link(self.timing, value)
        self.link(value, tail)
        assert compile_graph_text(self.store) == "Modular/TIMING:RoundStart/VALUE_0:round()/coinpower(VALUE_0)/"

    def test_auto_slots_follow_traversal_order(self):
        first = self.add("round")
        second = self.add("speed", {"target": "Self"})
        self.link(self.timing, first)
        self.link(first, second)

        assert compile_graph_text(self.store) == (
            "Modular/TIMING:RoundStart/VALUE_0:round()/VALUE_1:speed(VALUE_0)/"
        )

    def test_slots_exhausted(self):
        previous = self.timing
        for i in range(11):
            node = self.add("random", {"min": 1, "max": 6}, node_id=f"r{i}")
            self.link(previous, node)
            previous = node

        result = compile_graph(self.store)
        assert result.ok is True
        assert CompileError.SLOTS_EXHAUSTED in _codes(result)
        assert "VALUE_9:random(" in result.text
        assert "VALUE_10" not in result.text
        assert result.text.endswith("/random(VALUE_9,6)/")

    # --- traversal ---

    def test_fan_out_from_timing_in_edge_order(self):
        self.link(self.timing, self.add("log", {"message": "a"}))
        self.link(self.timing, self.add("log", {"message": "b"}))
        assert compile_graph_text(self.store) == "Modular/TIMING:RoundStart/log(a)/log(b)/"

    def test_diamond_visits_join_once(self):
        top = self.add("log", {"message": "top"}, node_id="top")
        left = self.add("log", {"message": "left"}, node_id="left")
        right = self.add("log", {"message": "right"}, node_id="right")
        join = self.add("log", {"message": "join"}, node_id="join")
        self.link(self.timing, top)
        self.link(top, left)
        self.link(top, right)
        self.link(left, join)
        self.link(right, join)

        assert compile_graph_text(self.store) == (
            "Modular/TIMING:RoundStart/log(top)/log(left)/log(right)/log(join)/"
        )

    def test_cycle_terminates_and_visits_once_per_walk(self):
        a = self.add("log", {"message": "a"}, node_id="a")
        b = self.add("log", {"message": "b"}, node_id="b")
        c = self.add("log", {"message": "c"}, node_id="c")
        self.link(self.timing, a)
        self.link(a, b)
        self.link(b, c)
        self.link(c, a)

        visits = Counter()
        result = compile_graph(self.store, on_visit=lambda walk, node_id: visits.update([(walk, node_id)]))

        assert result.text == "Modular/TIMING:RoundStart/log(a)/log(b)/log(c)/"
        assert visits and max(visits.values()) <= 1

    def test_cycle_through_branch_terminates(self):
        cond = self.conditional("c", ("VALUE_0", ">", "5"))
        body = self.add("log", {"message": "loop"}, node_id="body")
        self.link(self.timing, cond)
        self.link(cond, body, TRUE)
        self.link(body, cond)

        visits = Counter()
        result = compile_graph(self.store, on_visit=lambda walk, node_id: visits.update([(walk, node_id)]))

        assert result.text == "Modular/TIMING:RoundStart/IF(VALUE_0>5):log(loop)/"
        assert CompileError.BRANCH_CYCLE in _codes(result)
        assert max(visits.values()) <= 1

    def test_nested_conditionals(self):
        outer = self.conditional("outer", ("VALUE_0", ">", "1"))
        inner = self.conditional("inner", ("VALUE_1", ">", "2"))
        self.link(self.timing, outer)
        self.link(outer, inner, TRUE)
        self.link(inner, self.add("log", {"message": "deep"}), TRUE)

        result = compile_graph(self.store)
        assert result.text == "Modular/TIMING:RoundStart/IF(VALUE_0>1):IF(VALUE_1>2):log(deep)//"
        statement = result.script.statements[0]
        assert isinstance(statement, ConditionalStatement)
        assert isinstance(statement.true_branch[0], ConditionalStatement)

    def _nested_pair(self, false_on_outer):
        outer = self.conditional("outer", ("A", ">", "1"))
        inner = self.conditional("inner", ("B", ">", "1"))
        self.link(self.timing, outer)
        self.link(outer, inner, TRUE)
        self.link(inner, self.add("log", {"message": "x"}), TRUE)
        self.link(outer if false_on_outer else inner, self.add("log", {"message": "y"}), FALSE)
        return compile_graph_text(self.store)

    def test_nested_conditional_false_branch_on_outer(self):
        assert self._nested_pair(false_on_outer=True) == (
            "Modular/TIMING:RoundStart/IF(A>1):IF(B>1):log(x)/:log(y)/"
        )

    def test_nested_conditional_false_branch_on_inner(self):
        assert self._nested_pair(false_on_outer=False) == (
            "Modular/TIMING:RoundStart/IF(A>1):IF(B>1):log(x):log(y)//"
        )

    def test_nested_conditional_followed_by_sibling(self):
        outer = self.conditional("outer", ("A", ">", "1"))
        head = self.add("log", {"message": "h"}, node_id="head")
        inner = self.conditional("inner", ("B", ">", "1"))
        self.link(self.timing, outer)
        self.link(outer, head, TRUE)
        self.link(head, inner)
        self.link(head, self.add("log", {"message": "z"}))
        self.link(inner, self.add("log", {"message": "x"}), TRUE)

        assert compile_graph_text(self.store) == (
            "Modular/TIMING:RoundStart/IF(A>1):log(h)/IF(B>1):log(x)/log(z)/"
        )

    def test_nested_conditional_inside_branch_body(self):
        outer = self.conditional("outer", ("A", ">", "1"))
        inner = self.conditional("inner", ("B", ">", "1"))
        x = self.add("log", {"message": "x"}, node_id="x")
        self.link(self.timing, outer)
        self.link(outer, inner, TRUE)
        self.link(inner, x, TRUE)
        self.link(x, self.add("log", {"message": "z"}))

        assert compile_graph_text(self.store) == (
            "Modular/TIMING:RoundStart/IF(A>1):IF(B>1):log(x)/log(z)//"
        )

    def test_deep_conditional_chain_is_capped(self):
        previous, handle = self.timing, OUTPUT
        for i in range(400):
            cond = self.conditional(f"c{i}", ("VALUE_0", ">", str(i)))
            self.link(previous, cond, handle)
            previous, handle = cond, TRUE

        result = compile_graph(self.store)

        assert result.ok is True
        assert CompileError.BRANCH_DEPTH in _codes(result)
        assert result.text.count("IF(") == MAX_BRANCH_DEPTH

    def test_unreachable_nodes_are_not_emitted(self):
        self.add("log", {"message": "orphan"})
        assert compile_graph_text(self.store) == "Modular/TIMING:RoundStart/"

    # --- best effort ---

    def test_unknown_function_is_skipped(self):
        store = GraphStore(
            nodes=(
                GraphNode("t", NodeVariant.TIMING, "RoundStart"),
                GraphNode("x", NodeVariant.CONSEQUENCE, "teleport"),
                GraphNode("l", NodeVariant.CONSEQUENCE, "log", {"message": "after"}),
            ),
            edges=(Edge("t", OUTPUT, "x", INPUT), Edge("x", OUTPUT, "l", INPUT)),
        )
        result = compile_graph(store)

        assert result.ok is True
        assert result.text == "Modular/TIMING:RoundStart/log(after)/"
        assert CompileError.UNKNOWN_FUNCTION in _codes(result)

    def test_edge_to_missing_node(self):
        store = self.store.insert_edge(Edge("t", OUTPUT, "ghost", INPUT))
        result = compile_graph(store)

        assert result.text == "Modular/TIMING:RoundStart/"
        assert CompileError.NODE_NOT_FOUND in _codes(result)

    # --- determinism / purity ---

    def test_compile_is_deterministic(self):
        value = self.add("getdata", {"target": "Self", "id": "5"})
        cond = self.conditional("c", ("VALUE_0", ">", "5"))
        self.link(self.timing, value)
        self.link(value, cond)
        self.link(cond, self.add("buf", BUF_PARAMS), TRUE)
        self.link(cond, self.add("heal", {"target": "Self", "amount": 1}), FALSE)

        first = compile_graph_text(self.store)
        second = compile_graph_text(self.store)
        assert first == second

    def test_compile_does_not_touch_snapshot(self):
        self.link(self.timing, self.add("round"))
        before = (self.store.nodes, self.store.edges)
        compile_graph(self.store)
        assert (self.store.nodes, self.store.edges) == before

    @pytest.mark.parametrize("timing", ["StartBattle", "WhenHit", "RoundEnd"])
    def test_timing_names(self, timing):
        store, _ = GraphStore().add_node(timing)
        assert compile_graph_text(store) == f"Modular/TIMING:{timing}/"
