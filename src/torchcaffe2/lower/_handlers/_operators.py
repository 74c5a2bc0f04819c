"""OPERATOR lowerings.

Elementwise math: activations, Sum, and the broadcasting Add/Mul forms.
"""

__docformat__ = "restructuredtext"
__all__ = ["register_operator_lowerings"]

from torchcaffe2.analyze import ArgumentDictionary, broadcast_axis
from torchcaffe2.build import OperatorRecord
from torchcaffe2.graph import Node
from torchcaffe2.lower._handlers._registry import Lowering, register_lowering, require_inputs
from torchcaffe2.lower.kinds import OperatorKind
from torchcaffe2.lower.resolver import NodeResolver

_ACTIVATIONS = {
    OperatorKind.RELU: "create_relu",
    OperatorKind.SIGMOID: "create_sigmoid",
    OperatorKind.TANH: "create_tanh",
}

_ARITHMETIC = {
    OperatorKind.ADD: "create_add",
    OperatorKind.MUL: "create_mul",
}


def _make_activation_lowering(factory: str) -> Lowering:
    def lowering(record: OperatorRecord, args: ArgumentDictionary, resolver: NodeResolver) -> Node:
        require_inputs(record, 1)
        node = resolver.resolve(record.inputs[0])
        return getattr(resolver.graph, factory)(record.op_name, node)

    return lowering


def _lower_sum(record: OperatorRecord, args: ArgumentDictionary, resolver: NodeResolver) -> Node:
    """Lower the two-input Sum form (no broadcasting)."""
    require_inputs(record, 2)
    lhs = resolver.resolve(record.inputs[0])
    rhs = resolver.resolve(record.inputs[1])
    return resolver.graph.create_add(record.op_name, lhs, rhs)


def _make_arithmetic_lowering(factory: str) -> Lowering:
    """Create the lowering for Add or Mul.

    With ``broadcast=1`` the second operand is broadcast to the first one's
    dims starting at ``axis``; ``axis=-1`` aligns the trailing dims.

    :param factory: Graph factory method name
    :return: Lowering function
    """

    def lowering(record: OperatorRecord, args: ArgumentDictionary, resolver: NodeResolver) -> Node:
        require_inputs(record, 2)
        lhs = resolver.resolve(record.inputs[0])
        rhs = resolver.resolve(record.inputs[1])

        graph = resolver.graph
        name = record.op_name
        if args.get_int("broadcast") == 1:
            axis = broadcast_axis(len(lhs.dims), len(rhs.dims), args.get_int("axis"))
            rhs = graph.create_broadcast(name, rhs, lhs.dims, axis)
        return getattr(graph, factory)(name, lhs, rhs)

    return lowering


def register_operator_lowerings() -> None:
    """Register all OPERATOR lowerings."""
    for kind, factory in _ACTIVATIONS.items():
        register_lowering(kind, _make_activation_lowering(factory))
    register_lowering(OperatorKind.SUM, _lower_sum)
    for kind, factory in _ARITHMETIC.items():
        register_lowering(kind, _make_arithmetic_lowering(factory))
