"""OPERATION lowerings.

Stateless data-movement and normalization operators: Dropout, Concat,
Softmax, ChannelShuffle and Squeeze.
"""

__docformat__ = "restructuredtext"
__all__ = ["register_operation_lowerings"]

from torchcaffe2.analyze import ArgumentDictionary, channel_axis, flatten_cdr
from torchcaffe2.build import OperatorRecord
from torchcaffe2.graph import Node
from torchcaffe2.lower._handlers._registry import register_lowering, require_inputs
from torchcaffe2.lower.kinds import OperatorKind
from torchcaffe2.lower.resolver import NodeResolver
from torchcaffe2.presets import SOFTMAX_EXPECTED_NAME


def _lower_dropout(
    record: OperatorRecord, args: ArgumentDictionary, resolver: NodeResolver
) -> Node:
    """Dropout is the identity at inference: outputs alias the input."""
    require_inputs(record, 1)
    return resolver.resolve(record.inputs[0])


def _lower_concat(record: OperatorRecord, args: ArgumentDictionary, resolver: NodeResolver) -> Node:
    require_inputs(record, 1)
    inputs = [resolver.resolve(name) for name in record.inputs]
    return resolver.graph.create_concat(record.op_name, inputs, channel_axis(args))


def _lower_softmax(
    record: OperatorRecord, args: ArgumentDictionary, resolver: NodeResolver
) -> Node:
    """Lower Softmax.

    Caffe2 allows inputs like (N, 10, 1, 1); the input is flattened to
    (N, 10) by a reshape before the softmax.
    """
    require_inputs(record, 1)
    expected = resolver.resolve(SOFTMAX_EXPECTED_NAME)
    node = resolver.resolve(record.inputs[0])

    graph = resolver.graph
    flat = graph.create_reshape("reshape", node, flatten_cdr(node.dims))
    return graph.create_softmax(record.op_name, flat, expected)


def _lower_channel_shuffle(
    record: OperatorRecord, args: ArgumentDictionary, resolver: NodeResolver
) -> Node:
    require_inputs(record, 1)
    node = resolver.resolve(record.inputs[0])
    group = args.get_int("group")
    kernel = args.get_int("kernel")
    return resolver.graph.create_channel_shuffle(record.op_name, node, group, kernel)


def _lower_squeeze(
    record: OperatorRecord, args: ArgumentDictionary, resolver: NodeResolver
) -> Node:
    require_inputs(record, 1)
    node = resolver.resolve(record.inputs[0])
    dims = args.get_shape("dims")
    return resolver.graph.create_squeeze(record.op_name, node, dims)


def register_operation_lowerings() -> None:
    """Register all OPERATION lowerings."""
    register_lowering(OperatorKind.DROPOUT, _lower_dropout)
    register_lowering(OperatorKind.CONCAT, _lower_concat)
    register_lowering(OperatorKind.SOFTMAX, _lower_softmax)
    register_lowering(OperatorKind.CHANNEL_SHUFFLE, _lower_channel_shuffle)
    register_lowering(OperatorKind.SQUEEZE, _lower_squeeze)
