"""Operator lowerings.

Lowering registry and kind-specific lowering functions.
"""

__docformat__ = "restructuredtext"
__all__ = [
    "LOWERINGS",
    "Lowering",
    "get_lowering",
    "register_layer_lowerings",
    "register_lowering",
    "register_operation_lowerings",
    "register_operator_lowerings",
]

from torchcaffe2.lower._handlers._layers import register_layer_lowerings
from torchcaffe2.lower._handlers._operations import register_operation_lowerings
from torchcaffe2.lower._handlers._operators import register_operator_lowerings
from torchcaffe2.lower._handlers._registry import (
    LOWERINGS,
    Lowering,
    get_lowering,
    register_lowering,
)
