from enum import Enum
from typing import Optional, Tuple
import re


class NodeVariant(Enum):
    TIMING = "Timing"
    VALUE_ACQUISITION = "ValueAcquisition"
    CONSEQUENCE = "Consequence"
    CONDITIONAL = "Conditional"
    CONTINUE_IF = "ContinueIf"
    ASSIGNMENT = "Assignment"

    @staticmethod
    def parse(value: str) -> 'NodeVariant':
        for variant in NodeVariant:
            if variant.value == value or variant.name == value:
                return variant
        raise ValueError(f"Unknown node variant '{value}'")

    def isStructural(self) -> bool:
        # Structural variants are created by kind, not by registry function name
        return self in (NodeVariant.CONDITIONAL, NodeVariant.CONTINUE_IF, NodeVariant.ASSIGNMENT)


class LogicalOperator(Enum):
    AND = "AND"
    OR = "OR"
    XOR = "XOR"


# Handle names
INPUT = "input"
OUTPUT = "output"
TRUE = "true"
FALSE = "false"

_INPUT_HANDLES = {
    NodeVariant.TIMING: (),
    NodeVariant.VALUE_ACQUISITION: (INPUT,),
    NodeVariant.CONSEQUENCE: (INPUT,),
    NodeVariant.CONDITIONAL: (INPUT,),
    NodeVariant.CONTINUE_IF: (INPUT,),
    NodeVariant.ASSIGNMENT: (INPUT,),
}

_OUTPUT_HANDLES = {
    NodeVariant.TIMING: (OUTPUT,),
    NodeVariant.VALUE_ACQUISITION: (OUTPUT,),
    NodeVariant.CONSEQUENCE: (OUTPUT,),
    NodeVariant.CONDITIONAL: (TRUE, FALSE),
    NodeVariant.CONTINUE_IF: (OUTPUT,),
    NodeVariant.ASSIGNMENT: (OUTPUT,),
}


def input_handles(variant: NodeVariant) -> Tuple[str, ...]:
    return _INPUT_HANDLES[variant]


def output_handles(variant: NodeVariant) -> Tuple[str, ...]:
    return _OUTPUT_HANDLES[variant]


# Structural function names carried by Conditional / ContinueIf nodes
IF_FUNCTION = "IF"
CONTINUE_IF_FUNCTION = "CONTINUEIF"

CONDITION_OPERATORS = (">", "<", ">=", "<=", "=", "!=")

# Variable slots VALUE_0 .. VALUE_9
VARIABLE_PREFIX = "VALUE_"
VARIABLE_SLOT_COUNT = 10
VARIABLE_SLOTS: Tuple[str, ...] = tuple(f"{VARIABLE_PREFIX}{i}" for i in range(VARIABLE_SLOT_COUNT))

_SLOT_PATTERN = re.compile(r"^VALUE_([0-9])$")


def slot_index(name: Optional[str]) -> Optional[int]:
    """Return n for a 'VALUE_n' slot name, None if the name is not a slot."""
    if not name:
        return None
    match = _SLOT_PATTERN.match(name)
    return int(match.group(1)) if match else None


def is_variable_slot(name: Optional[str]) -> bool:
    return slot_index(name) is not None
