"""
GlitchGraph — Function Registry
================================
Static catalog of every function a node can call in the Script DSL.

Each entry maps a function name to its category (the node variant that
hosts it), its ordered parameter names, and whether it produces a value
that has to be bound to a VALUE_n slot before use.

The compiler uses the registry for exactly two things:
  - the order arguments are written in
  - whether a call result must be bound to a variable

Argument values are never checked; the DSL is loosely typed and accepts
free-form strings and numbers.

Adding a function
-----------------
Add one line to the matching section of _CATALOG below. The palette
(GET /api/functions) and the compiler pick it up automatically.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from ..core.Errors import UnknownFunctionError
from ..core.Types import NodeVariant, IF_FUNCTION, CONTINUE_IF_FUNCTION


@dataclass(frozen=True)
class FunctionSchema:
    name: str
    category: NodeVariant
    parameters: Tuple[str, ...] = ()
    is_value_producing: bool = False
    has_two_branches: bool = False
    description: str = ""


class FunctionRegistry:
    """Name → FunctionSchema lookup. Frozen once built."""

    def __init__(self, schemas: Iterable[FunctionSchema] = ()):
        self._schemas: Dict[str, FunctionSchema] = {}
        for schema in schemas:
            if schema.name in self._schemas:
                raise ValueError(f"Function '{schema.name}' is already registered.")
            self._schemas[schema.name] = schema

    def lookup(self, function_name: Optional[str]) -> Optional[FunctionSchema]:
        if not function_name:
            return None
        return self._schemas.get(function_name)

    def require(self, function_name: Optional[str]) -> FunctionSchema:
        schema = self.lookup(function_name)
        if schema is None:
            raise UnknownFunctionError(function_name or "")
        return schema

    def functions_in(self, category: NodeVariant) -> List[FunctionSchema]:
        return [s for s in self._schemas.values() if s.category == category]

    def names(self) -> List[str]:
        return list(self._schemas)

    def __contains__(self, function_name: object) -> bool:
        return function_name in self._schemas

    def __iter__(self) -> Iterator[FunctionSchema]:
        return iter(self._schemas.values())

    def __len__(self) -> int:
        return len(self._schemas)


# ── Catalog ───────────────────────────────────────────────────────────────────

def _timing(name: str, *params: str, doc: str = "") -> FunctionSchema:
    return FunctionSchema(name, NodeVariant.TIMING, params, description=doc)


def _value(name: str, *params: str, doc: str = "") -> FunctionSchema:
    return FunctionSchema(name, NodeVariant.VALUE_ACQUISITION, params,
                          is_value_producing=True, description=doc)


def _effect(name: str, *params: str, doc: str = "") -> FunctionSchema:
    return FunctionSchema(name, NodeVariant.CONSEQUENCE, params, description=doc)


_CATALOG: Tuple[FunctionSchema, ...] = (

    # ── Timing (entry points) ───────────────────────────────────────────────
    _timing("RoundStart",      doc="Start of every round."),
    _timing("StartBattle",     doc="Once, when the battle begins."),
    _timing("WhenUse",         doc="When the skill is used."),
    _timing("BeforeAttack",    doc="Right before the attack resolves."),
    _timing("OnSucceedAttack", doc="After an attack lands."),
    _timing("OnWinDuel",       doc="After winning a clash."),
    _timing("OnLoseDuel",      doc="After losing a clash."),
    _timing("WhenHit",         doc="When the owner takes a hit."),
    _timing("OnDie",           doc="When the owner dies."),
    _timing("EndBattle",       doc="Once, when the battle ends."),
    _timing("RoundEnd",        doc="End of every round."),
    _timing("OnCoinToss", "coin",  doc="When the given coin is tossed."),
    _timing("OnDiscard",  "count", doc="When cards are discarded."),

    # ── Value acquisition ───────────────────────────────────────────────────
    _value("getdata",  "target", "id",             doc="Read a stored data slot."),
    _value("getbuf",   "target", "keyword", "mode", doc="Read a buff's stack or turn count."),
    _value("gethp",    "target", "mode",           doc="Current or max HP."),
    _value("getstat",  "target", "stat",           doc="Read a combat stat."),
    _value("getcoins", "target",                   doc="Number of coins on the current skill."),
    _value("random",   "min", "max",               doc="Random integer in [min, max]."),
    _value("round",                                doc="Current round number."),
    _value("speed",    "target",                   doc="Current speed value."),

    # ── Consequences ────────────────────────────────────────────────────────
    _effect("buf",         "target", "keyword", "stack", "turn", "activeRound",
            doc="Apply a buff or debuff."),
    _effect("bonusdmg",    "target", "amount",        doc="Deal bonus damage."),
    _effect("heal",        "target", "amount",        doc="Restore HP."),
    _effect("mpdmg",       "target", "amount",        doc="Change sanity."),
    _effect("coinpower",   "amount",                  doc="Add coin power."),
    _effect("power",       "amount",                  doc="Add base clash power."),
    _effect("setdata",     "target", "id", "value",   doc="Write a data slot."),
    _effect("shield",      "target", "amount",        doc="Grant shield HP."),
    _effect("destroycoin", "target", "index",         doc="Destroy a coin."),
    _effect("log",         "message",                 doc="Write to the mod log."),

    # ── Structural ──────────────────────────────────────────────────────────
    FunctionSchema(IF_FUNCTION, NodeVariant.CONDITIONAL, has_two_branches=True,
                   description="Branch on a condition."),
    FunctionSchema(CONTINUE_IF_FUNCTION, NodeVariant.CONTINUE_IF,
                   description="Stop the script unless the condition holds."),
)


REGISTRY = FunctionRegistry(_CATALOG)


def lookup(function_name: Optional[str]) -> Optional[FunctionSchema]:
    return REGISTRY.lookup(function_name)


__all__ = ["FunctionSchema", "FunctionRegistry", "REGISTRY", "lookup"]
