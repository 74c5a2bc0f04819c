__docformat__ = "restructuredtext"
__all__ = ["TorchCaffe2"]

from collections.abc import Mapping
from typing import Any

import torch

from torchcaffe2.build import NetworkDefinition


class TorchCaffe2:
    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def convert(
        self,
        network: Any,
        inputs: Any = (),
        weights: Any = None,
    ):
        """Lower a Caffe2 network into a computation graph.

        :param network: NetworkDefinition or decoded Caffe2 NetDef (predict net)
        :param inputs: External input tensors as a mapping or (name, tensor) pairs
        :param weights: Optional NetworkDefinition or NetDef holding the weights (init net)
        :return: LoweredNetwork with the graph and its save node
        """
        # Stage 1: Build records
        from torchcaffe2.build import network_from_caffe2

        if not isinstance(network, NetworkDefinition):
            network = network_from_caffe2(network)
        if weights is not None and not isinstance(weights, NetworkDefinition):
            weights = network_from_caffe2(weights)

        if self.verbose:
            num_weights = len(weights.operators) if weights is not None else 0
            print(
                f"Loaded network '{network.name}': {len(network.operators)} operators, "
                f"{num_weights} weight operators"
            )

        # Stage 2-3: Materialize weights and lower operators
        from torchcaffe2.lower import import_network

        lowered = import_network(network, inputs=inputs, weights=weights)

        if self.verbose:
            print(f"Lowered {len(lowered.graph)} graph nodes")
            print(f"Output '{network.external_outputs[0]}' saved with dims {lowered.save.dims}")

        return lowered

    @staticmethod
    def run(lowered, feeds: Mapping[str, torch.Tensor] | None = None) -> torch.Tensor:
        """Evaluate a lowered network with the reference interpreter.

        :param lowered: Result of :meth:`convert`
        :param feeds: Values for the external inputs (defaults to the bound tensors)
        :return: Value of the saved output
        """
        from torchcaffe2.graph import run

        results = run(lowered.graph, feeds)
        return results[lowered.save.name]
