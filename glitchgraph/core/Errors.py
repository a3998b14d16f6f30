"""
Exceptions raised by the graph store, the function registry and the
interchange layer.

All of them derive from ValueError so callers that only care about
"bad input" can catch a single type; the HTTP layer maps the not-found
family to 404 and everything else to 400.
"""


class GraphError(ValueError):
    """Base class for graph store and registry failures."""


class NodeNotFoundError(GraphError):
    def __init__(self, node_id: str):
        super().__init__(f"Node '{node_id}' does not exist")
        self.node_id = node_id


class EdgeNotFoundError(GraphError):
    def __init__(self, source: str, source_handle: str, target: str, target_handle: str):
        super().__init__(
            f"Edge {source}.{source_handle} -> {target}.{target_handle} does not exist"
        )


class DuplicateNodeError(GraphError):
    def __init__(self, node_id: str):
        super().__init__(f"Node with id '{node_id}' already exists in the graph")
        self.node_id = node_id


class UnknownFunctionError(GraphError):
    def __init__(self, function_name: str):
        super().__init__(f"Unknown function '{function_name}'")
        self.function_name = function_name


class InvalidHandleError(GraphError):
    """A connection names a handle the node variant does not have."""


class InvalidNodeError(GraphError):
    """An operation was applied to a node of the wrong variant."""


class InvalidVariableError(GraphError):
    def __init__(self, name: str):
        super().__init__(f"'{name}' is not a variable slot (expected VALUE_0 .. VALUE_9)")
        self.name = name
