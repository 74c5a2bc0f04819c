"""Per-record lowering dispatch."""

__docformat__ = "restructuredtext"
__all__ = ["lower_operator"]

from torchcaffe2.analyze import ArgumentDictionary
from torchcaffe2.build import OperatorRecord
from torchcaffe2.errors import UnsupportedOperatorError
from torchcaffe2.graph import Node
from torchcaffe2.lower._handlers import (
    LOWERINGS,
    get_lowering,
    register_layer_lowerings,
    register_operation_lowerings,
    register_operator_lowerings,
)
from torchcaffe2.lower.kinds import OperatorKind
from torchcaffe2.lower.resolver import NodeResolver

if not LOWERINGS:
    register_layer_lowerings()
    register_operation_lowerings()
    register_operator_lowerings()


def lower_operator(record: OperatorRecord, resolver: NodeResolver) -> Node | None:
    """Lower one compute record and bind its outputs.

    Every declared output is bound to the node the lowering returns. Fill
    records belong to the weight pass and are skipped.

    :param record: Operator record
    :param resolver: Node resolver of the session
    :return: Node bound to the record's outputs, or None for fill records
    :raises UnsupportedOperatorError: If the kind has no lowering
    """
    kind = OperatorKind.of(record)
    if kind.is_fill:
        return None

    lowering = get_lowering(kind)
    if lowering is None:
        raise UnsupportedOperatorError("Unsupported operator.", record)

    node = lowering(record, ArgumentDictionary(record), resolver)
    resolver.register(record.outputs, node)
    return node
