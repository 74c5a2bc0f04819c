"""Network assembly.

A :class:`LoweringSession` owns all mutable state of one import: the graph,
the tensor registry and the name-to-node cache. Independent imports never
share state.
"""

__docformat__ = "restructuredtext"
__all__ = ["LoweredNetwork", "LoweringSession", "import_network"]

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from torchcaffe2.build import NetworkDefinition
from torchcaffe2.errors import MissingExternalOutputError
from torchcaffe2.graph import Graph, Node, SaveNode
from torchcaffe2.lower.dispatcher import lower_operator
from torchcaffe2.lower.resolver import NodeResolver
from torchcaffe2.lower.tensor_registry import TensorRegistry
from torchcaffe2.lower.weights import materialize_weights
from torchcaffe2.presets import SAVE_NODE_NAME

Inputs = Mapping[str, Any] | Iterable[tuple[str, Any]]


@dataclass(frozen=True)
class LoweredNetwork:
    """Result of a successful import.

    :param graph: Graph holding every created node
    :param save: Terminal save node bound to the first external output
    :param nodes: Final name-to-node map
    """

    graph: Graph
    save: SaveNode
    nodes: dict[str, Node]


class LoweringSession:
    """State of a single network import.

    Caller-supplied inputs are registered as preseeded tensors and bound as
    public graph variables before the weight pass runs.

    :param inputs: (name, tensor) pairs or a mapping of external input tensors
    :param graph_name: Name of the graph to build
    """

    def __init__(self, inputs: Inputs = (), graph_name: str = "main"):
        self.graph = Graph(graph_name)
        self.registry = TensorRegistry()
        self.resolver = NodeResolver(self.graph, self.registry)

        items = inputs.items() if isinstance(inputs, Mapping) else inputs
        for name, tensor in items:
            stored = self.registry.preseed(name, tensor)
            self.resolver.bind_input(name, stored)

    def __enter__(self) -> "LoweringSession":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def close(self) -> None:
        """Release the tensors owned by the session."""
        self.registry.release()

    def lower(
        self, network: NetworkDefinition, weights: NetworkDefinition | None = None
    ) -> LoweredNetwork:
        """Lower a network into the session's graph.

        Steps:
        1. Check that an external output is declared
        2. Materialize fill operators of ``weights`` and ``network``
        3. Lower compute operators in file order
        4. Save the first external output

        :param network: Network to lower (Caffe2 predict net)
        :param weights: Optional separate weight network (Caffe2 init net)
        :return: Lowered network
        """
        if not network.external_outputs:
            raise MissingExternalOutputError(
                f"Network '{network.name}' needs external outputs defined."
            )

        if weights is not None:
            materialize_weights(weights.operators, self.registry)
        materialize_weights(network.operators, self.registry)

        for record in network.operators:
            lower_operator(record, self.resolver)

        result = self.resolver.get(network.external_outputs[0])
        save = self.graph.create_save(SAVE_NODE_NAME, result)
        return LoweredNetwork(self.graph, save, dict(self.resolver.node_by_name))


def import_network(
    network: NetworkDefinition,
    inputs: Inputs = (),
    weights: NetworkDefinition | None = None,
) -> LoweredNetwork:
    """Lower a Caffe2 network into a new graph.

    On failure the exception propagates and the partially built graph is
    discarded with the session.

    :param network: Network to lower
    :param inputs: Caller-supplied external input tensors
    :param weights: Optional separate weight network
    :return: Lowered network
    """
    with LoweringSession(inputs) as session:
        return session.lower(network, weights)
