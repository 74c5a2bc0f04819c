"""Name to graph-node resolution.

Constant tensors are promoted into graph variables on first use and cached,
so every later reference to the same name yields the same node.
"""

__docformat__ = "restructuredtext"
__all__ = ["NodeResolver"]

from collections.abc import Iterable

import torch

from torchcaffe2.errors import UnknownNodeError
from torchcaffe2.graph import Graph, Node, TrainKind, Variable, Visibility
from torchcaffe2.lower.tensor_registry import TensorRegistry


class NodeResolver:
    """Cache from tensor names to the graph nodes that produce them.

    :param graph: Graph receiving promoted variables
    :param registry: Constant tensors available for promotion
    """

    def __init__(self, graph: Graph, registry: TensorRegistry):
        self.graph = graph
        self.registry = registry
        self.node_by_name: dict[str, Node] = {}

    def __contains__(self, name: object) -> bool:
        return name in self.node_by_name

    def bind_input(self, name: str, tensor: torch.Tensor) -> Variable:
        """Create a public, non-trainable variable for a caller-supplied input."""
        variable = self.graph.create_variable(
            tensor.dtype,
            tuple(tensor.shape),
            name,
            visibility=Visibility.PUBLIC,
            train_kind=TrainKind.NONE,
        )
        variable.copy_from(tensor)
        self.node_by_name[name] = variable
        return variable

    def resolve(self, name: str) -> Node:
        """Get the node for ``name``, promoting a registered tensor if needed.

        :param name: Tensor name
        :return: Cached or newly created node
        :raises UnknownTensorError: If the name is neither lowered nor registered
        """
        node = self.node_by_name.get(name)
        if node is not None:
            return node

        tensor = self.registry.get(name)
        variable = self.graph.create_variable(
            tensor.dtype,
            tuple(tensor.shape),
            name,
            visibility=Visibility.PRIVATE,
            train_kind=TrainKind.BROADCAST,
        )
        variable.copy_from(tensor)
        self.node_by_name[name] = variable
        return variable

    def get(self, name: str) -> Node:
        """Strict lookup of an already produced node.

        :raises UnknownNodeError: If no node has been registered under ``name``
        """
        node = self.node_by_name.get(name)
        if node is None:
            raise UnknownNodeError(name)
        return node

    def register(self, names: Iterable[str], node: Node) -> None:
        """Bind every name to ``node``, replacing earlier definitions."""
        for name in names:
            self.node_by_name[name] = node
