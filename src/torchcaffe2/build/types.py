"""Record Type Definitions.

Defines the decoded form of a Caffe2 network: operator records with their
loosely-typed arguments, and the network definition holding them in file order.
"""

__docformat__ = "restructuredtext"
__all__ = ["Argument", "ArgumentType", "NetworkDefinition", "OperatorRecord"]

from dataclasses import dataclass
from enum import Enum


class ArgumentType(Enum):
    """Value tag of an operator argument.

    Codes follow ``onnx.AttributeProto.AttributeType``.
    """

    FLOAT = 1
    INT = 2
    STRING = 3
    FLOATS = 6
    INTS = 7


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    return f'"{escaped}"'


@dataclass(frozen=True)
class Argument:
    """Named, typed operator argument.

    :param name: Argument name (e.g., "kernel", "order")
    :param type: Value tag
    :param value: int, float, str, or tuple of int/float depending on ``type``
    """

    name: str
    type: ArgumentType
    value: int | float | str | tuple[int, ...] | tuple[float, ...]

    def to_text(self) -> list[str]:
        """Render the argument as protobuf text-format lines."""
        lines = ["arg {", f"  name: {_quote(self.name)}"]
        if self.type is ArgumentType.FLOAT:
            lines.append(f"  f: {self.value!r}")
        elif self.type is ArgumentType.INT:
            lines.append(f"  i: {self.value}")
        elif self.type is ArgumentType.STRING:
            lines.append(f"  s: {_quote(str(self.value))}")
        elif self.type is ArgumentType.FLOATS:
            lines.extend(f"  floats: {v!r}" for v in self.value)
        else:
            lines.extend(f"  ints: {v}" for v in self.value)
        lines.append("}")
        return lines


@dataclass(frozen=True)
class OperatorRecord:
    """One decoded Caffe2 operator.

    :param type: Operator kind tag (e.g., "Conv", "GivenTensorFill")
    :param inputs: Ordered input tensor names
    :param outputs: Ordered output tensor names
    :param name: Optional operator name ("" when absent)
    :param arguments: Arguments in file order; duplicates are allowed
    """

    type: str
    inputs: tuple[str, ...] = ()
    outputs: tuple[str, ...] = ()
    name: str = ""
    arguments: tuple[Argument, ...] = ()

    @property
    def op_name(self) -> str:
        """Name used for the graph nodes created from this record."""
        if self.name:
            return self.name
        if self.outputs:
            return self.outputs[0]
        return self.type

    def to_text(self) -> str:
        """Render the record in protobuf text format for diagnostics."""
        lines = [f"input: {_quote(name)}" for name in self.inputs]
        lines.extend(f"output: {_quote(name)}" for name in self.outputs)
        lines.append(f"name: {_quote(self.name)}")
        lines.append(f"type: {_quote(self.type)}")
        for arg in self.arguments:
            lines.extend(arg.to_text())
        return "\n".join(lines)


@dataclass(frozen=True)
class NetworkDefinition:
    """Decoded Caffe2 NetDef.

    :param operators: Operator records in file order
    :param external_inputs: Declared external input names
    :param external_outputs: Declared external output names; the first one is saved
    :param name: Network name
    """

    operators: tuple[OperatorRecord, ...]
    external_inputs: tuple[str, ...] = ()
    external_outputs: tuple[str, ...] = ()
    name: str = ""
