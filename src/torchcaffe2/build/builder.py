"""Record Builders.

Turns already-decoded protobuf messages (Caffe2 ``OperatorDef``/``NetDef`` or
ONNX ``NodeProto`` carrying Caffe2 operator types) and plain Python values into
:class:`OperatorRecord` and :class:`NetworkDefinition` objects.
"""

__docformat__ = "restructuredtext"
__all__ = [
    "make_argument",
    "make_given_tensor_fill",
    "make_network",
    "make_operator",
    "network_from_caffe2",
    "operator_from_caffe2",
    "operator_from_onnx",
]

from collections.abc import Iterable, Sequence
from typing import Any

import onnx
import torch
from onnx import NodeProto

from torchcaffe2.build.types import Argument, ArgumentType, NetworkDefinition, OperatorRecord
from torchcaffe2.errors import ParseDataError

_SUPPORTED_ONNX_ATTR_TYPES = {arg_type.value for arg_type in ArgumentType}


def make_argument(name: str, value: Any) -> Argument:
    """Create an argument, inferring its type tag from the Python value.

    ``bool`` is stored as INT. Sequences are INTS when every item is an int,
    FLOATS otherwise.

    :param name: Argument name
    :param value: int, float, str, bytes, or a sequence of numbers
    :return: Typed argument
    """
    if isinstance(value, bool):
        return Argument(name, ArgumentType.INT, int(value))
    if isinstance(value, int):
        return Argument(name, ArgumentType.INT, value)
    if isinstance(value, float):
        return Argument(name, ArgumentType.FLOAT, value)
    if isinstance(value, bytes):
        return Argument(name, ArgumentType.STRING, value.decode("utf-8"))
    if isinstance(value, str):
        return Argument(name, ArgumentType.STRING, value)
    if isinstance(value, Iterable):
        items = tuple(value)
        if all(isinstance(v, int) and not isinstance(v, bool) for v in items):
            return Argument(name, ArgumentType.INTS, items)
        if all(isinstance(v, (int, float)) for v in items):
            return Argument(name, ArgumentType.FLOATS, tuple(float(v) for v in items))
    raise ParseDataError(f"Argument '{name}' has unsupported value {value!r}")


def make_operator(
    op_type: str,
    inputs: Sequence[str] = (),
    outputs: Sequence[str] = (),
    name: str = "",
    **arguments: Any,
) -> OperatorRecord:
    """Create an operator record from Python values.

    :param op_type: Operator kind tag
    :param inputs: Input tensor names
    :param outputs: Output tensor names
    :param name: Optional operator name
    :param arguments: Argument values keyed by argument name
    :return: Operator record
    """
    return OperatorRecord(
        type=op_type,
        inputs=tuple(inputs),
        outputs=tuple(outputs),
        name=name,
        arguments=tuple(make_argument(k, v) for k, v in arguments.items()),
    )


def make_network(
    operators: Iterable[OperatorRecord],
    external_outputs: Sequence[str] = (),
    external_inputs: Sequence[str] = (),
    name: str = "",
) -> NetworkDefinition:
    """Create a network definition from records in file order."""
    return NetworkDefinition(
        operators=tuple(operators),
        external_inputs=tuple(external_inputs),
        external_outputs=tuple(external_outputs),
        name=name,
    )


def _argument_from_caffe2(arg: Any) -> Argument:
    """Convert a Caffe2 ``Argument`` message.

    Scalar fields are optional in the proto, so ``HasField`` decides which
    one is set; otherwise the repeated fields are used.
    """
    if arg.HasField("i"):
        return Argument(arg.name, ArgumentType.INT, int(arg.i))
    if arg.HasField("f"):
        return Argument(arg.name, ArgumentType.FLOAT, float(arg.f))
    if arg.HasField("s"):
        value = arg.s.decode("utf-8") if isinstance(arg.s, bytes) else arg.s
        return Argument(arg.name, ArgumentType.STRING, value)
    if len(arg.floats):
        return Argument(arg.name, ArgumentType.FLOATS, tuple(float(v) for v in arg.floats))
    for unsupported in ("strings", "tensors", "nets"):
        if len(getattr(arg, unsupported, ())):
            raise ParseDataError(
                f"Argument '{arg.name}' with repeated {unsupported} is not supported"
            )
    return Argument(arg.name, ArgumentType.INTS, tuple(int(v) for v in arg.ints))


def operator_from_caffe2(op: Any) -> OperatorRecord:
    """Convert a decoded Caffe2 ``OperatorDef`` message.

    :param op: Message exposing ``type``, ``input``, ``output``, ``name`` and ``arg``
    :return: Operator record
    """
    return OperatorRecord(
        type=op.type,
        inputs=tuple(op.input),
        outputs=tuple(op.output),
        name=op.name,
        arguments=tuple(_argument_from_caffe2(arg) for arg in op.arg),
    )


def network_from_caffe2(net: Any) -> NetworkDefinition:
    """Convert a decoded Caffe2 ``NetDef`` message.

    :param net: Message exposing ``op``, ``external_input``, ``external_output``
    :return: Network definition
    """
    return NetworkDefinition(
        operators=tuple(operator_from_caffe2(op) for op in net.op),
        external_inputs=tuple(net.external_input),
        external_outputs=tuple(net.external_output),
        name=getattr(net, "name", ""),
    )


def operator_from_onnx(node: NodeProto) -> OperatorRecord:
    """Convert an ONNX node whose ``op_type`` is a Caffe2 operator kind.

    :param node: ONNX node
    :return: Operator record
    """
    arguments = []
    for attr in node.attribute:
        if attr.type not in _SUPPORTED_ONNX_ATTR_TYPES:
            raise ParseDataError(
                f"Attribute {attr.name} with type {attr.type} is not supported"
            )
        value = onnx.helper.get_attribute_value(attr)
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        elif isinstance(value, list):
            value = tuple(value)
        arguments.append(Argument(attr.name, ArgumentType(attr.type), value))

    return OperatorRecord(
        type=node.op_type,
        inputs=tuple(node.input),
        outputs=tuple(node.output),
        name=node.name,
        arguments=tuple(arguments),
    )


def make_given_tensor_fill(name: str | Sequence[str], tensor: Any) -> OperatorRecord:
    """Create a ``GivenTensorFill`` record holding the values of ``tensor``.

    :param name: Output name, or several names aliasing the same tensor
    :param tensor: Anything ``torch.as_tensor`` accepts
    :return: Fill record with ``shape`` and ``values`` arguments
    """
    data = torch.as_tensor(tensor, dtype=torch.float32)
    outputs = (name,) if isinstance(name, str) else tuple(name)
    return OperatorRecord(
        type="GivenTensorFill",
        outputs=outputs,
        arguments=(
            Argument("shape", ArgumentType.INTS, tuple(data.shape)),
            Argument("values", ArgumentType.FLOATS, tuple(data.flatten().tolist())),
        ),
    )
