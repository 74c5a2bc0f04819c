"""Stage 1: Record Construction.

This module defines decoded Caffe2 records and builds them from protobuf
messages or Python values.
"""

__docformat__ = "restructuredtext"
__all__ = [
    "Argument",
    "ArgumentType",
    "NetworkDefinition",
    "OperatorRecord",
    "make_argument",
    "make_given_tensor_fill",
    "make_network",
    "make_operator",
    "network_from_caffe2",
    "operator_from_caffe2",
    "operator_from_onnx",
]

from .builder import (
    make_argument,
    make_given_tensor_fill,
    make_network,
    make_operator,
    network_from_caffe2,
    operator_from_caffe2,
    operator_from_onnx,
)
from .types import Argument, ArgumentType, NetworkDefinition, OperatorRecord
