"""Host computation graph.

Node types, the node factory used by the lowering passes, and a reference
interpreter.
"""

__docformat__ = "restructuredtext"
__all__ = [
    "BatchNormalizationNode",
    "Graph",
    "Node",
    "NodeKind",
    "SaveNode",
    "TrainKind",
    "Variable",
    "Visibility",
    "run",
]

from torchcaffe2.graph.graph import Graph
from torchcaffe2.graph.interpret import run
from torchcaffe2.graph.nodes import (
    BatchNormalizationNode,
    Node,
    NodeKind,
    SaveNode,
    TrainKind,
    Variable,
    Visibility,
)
