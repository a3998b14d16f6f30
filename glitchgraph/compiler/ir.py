"""
GlitchGraph Compiler — Script IR
================================
The compiler does not concatenate strings while it walks the graph. It builds
a Script: an ordered list of statement dataclasses, which the emitter then
renders to DSL text.

    GraphStore  →  [scheduler]  →  Script
    Script      →  [emitter]    →  "Modular/TIMING:.../..."

Statements
----------
  CallStatement         name(args)
  AssignStatement       VALUE_n:name(args)
  ConditionalStatement  IF(cond):<true>[:<false>]
  ContinueIfStatement   CONTINUEIF(cond)

Every statement keeps the id of the node it came from, which makes the IR
handy for debugging a compile from the editor.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple, Union


# ── Statements ───────────────────────────────────────────────────────────────

@dataclass
class CallStatement:
    node_id: str
    function_name: str
    args: List[str] = field(default_factory=list)


@dataclass
class AssignStatement:
    node_id: str
    variable: str
    call: CallStatement


@dataclass
class ConditionalStatement:
    node_id: str
    condition: str
    true_branch: List["Statement"] = field(default_factory=list)
    false_branch: Optional[List["Statement"]] = None   # None → no false handle connected


@dataclass
class ContinueIfStatement:
    node_id: str
    condition: str


Statement = Union[CallStatement, AssignStatement, ConditionalStatement, ContinueIfStatement]


# ── Diagnostics ───────────────────────────────────────────────────────────────

class CompileError(Enum):
    NO_ENTRY_POINT = "no_entry_point"
    NODE_NOT_FOUND = "node_not_found"
    UNKNOWN_FUNCTION = "unknown_function"
    MISSING_EMBEDDED_NODE = "missing_embedded_node"
    MULTI_EDGE_BRANCH = "multi_edge_branch"
    EXTRA_ENTRY_POINT = "extra_entry_point"
    SLOTS_EXHAUSTED = "slots_exhausted"
    BRANCH_CYCLE = "branch_cycle"
    BRANCH_DEPTH = "branch_depth"


@dataclass(frozen=True)
class Diagnostic:
    code: CompileError
    message: str
    node_id: Optional[str] = None


NO_ENTRY_POINT_MESSAGE = "Error: No Timing node found. Add a Timing node to start the script."


# ── Script ────────────────────────────────────────────────────────────────────

@dataclass
class Script:
    timing: str
    timing_args: List[str] = field(default_factory=list)
    statements: List[Statement] = field(default_factory=list)


@dataclass(frozen=True)
class CompileResult:
    text: str
    ok: bool
    error: Optional[CompileError] = None
    diagnostics: Tuple[Diagnostic, ...] = ()
    script: Optional[Script] = None

    def warnings(self) -> List[str]:
        return [d.message for d in self.diagnostics if d.code != self.error]
