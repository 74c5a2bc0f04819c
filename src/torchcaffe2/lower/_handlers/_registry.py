"""Lowering registry keyed by operator kind."""

__docformat__ = "restructuredtext"
__all__ = [
    "LOWERINGS",
    "Lowering",
    "get_lowering",
    "register_lowering",
    "require_inputs",
    "require_positive",
]

from collections.abc import Callable

from torchcaffe2.analyze import ArgumentDictionary
from torchcaffe2.build import OperatorRecord
from torchcaffe2.errors import ParseDataError
from torchcaffe2.graph import Node
from torchcaffe2.lower.kinds import OperatorKind
from torchcaffe2.lower.resolver import NodeResolver

# Lowering: builds the nodes for one record and returns the node its outputs denote
Lowering = Callable[[OperatorRecord, ArgumentDictionary, NodeResolver], Node]

LOWERINGS: dict[OperatorKind, Lowering] = {}


def register_lowering(kind: OperatorKind, lowering: Lowering) -> None:
    """Register lowering for an operator kind.

    :param kind: Operator kind
    :param lowering: Lowering function
    """
    LOWERINGS[kind] = lowering


def get_lowering(kind: OperatorKind) -> Lowering | None:
    """Get lowering for an operator kind.

    :param kind: Operator kind
    :return: Lowering function or None if not registered
    """
    return LOWERINGS.get(kind)


def require_inputs(record: OperatorRecord, count: int) -> None:
    """Validate that a record declares at least ``count`` inputs.

    :raises ParseDataError: If fewer inputs are declared
    """
    if len(record.inputs) < count:
        raise ParseDataError(
            f"{record.type} '{record.op_name}' requires at least {count} input(s), "
            f"got {len(record.inputs)}"
        )


def require_positive(record: OperatorRecord, **values: int) -> None:
    """Validate that window arguments (kernel, stride, group, size) are positive.

    :raises ParseDataError: If any value is zero or negative
    """
    for name, value in values.items():
        if value <= 0:
            raise ParseDataError(
                f"{record.type} '{record.op_name}' argument '{name}' must be positive, "
                f"got {value}"
            )
