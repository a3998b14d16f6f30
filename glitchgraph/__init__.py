"""
GlitchGraph — build Script DSL skill scripts from a node graph.

    core/          graph primitives and the immutable GraphStore
    noderegistry/  the function catalog
    compiler/      GraphStore → Script DSL text
    server/        FastAPI boundary for the canvas editor
"""

__version__ = "0.1.0"
