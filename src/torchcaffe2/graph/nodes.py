"""Graph node types.

Nodes are compared by identity: the same tensor name always maps to the same
node object.
"""

__docformat__ = "restructuredtext"
__all__ = [
    "BatchNormalizationNode",
    "Node",
    "NodeKind",
    "SaveNode",
    "TrainKind",
    "Variable",
    "Visibility",
]

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import torch


class NodeKind(Enum):
    """Operation computed by a node."""

    VARIABLE = "Variable"
    RELU = "Relu"
    SIGMOID = "Sigmoid"
    TANH = "Tanh"
    CONVOLUTION = "Convolution"
    POOL_MAX = "PoolMax"
    POOL_AVG = "PoolAvg"
    BATCH_NORMALIZATION = "BatchNormalization"
    CONCAT = "Concat"
    ADD = "Add"
    MUL = "Mul"
    SOFTMAX = "SoftMax"
    FULLY_CONNECTED = "FullyConnected"
    LOCAL_RESPONSE_NORMALIZATION = "LocalResponseNormalization"
    BROADCAST = "Broadcast"
    TRANSPOSE = "Transpose"
    RESHAPE = "Reshape"
    CHANNEL_SHUFFLE = "ChannelShuffle"
    SQUEEZE = "Squeeze"
    SAVE = "Save"


class Visibility(Enum):
    """Whether a variable is bound by the caller (PUBLIC) or owned by the graph."""

    PUBLIC = "public"
    PRIVATE = "private"


class TrainKind(Enum):
    """How a variable is treated by training.

    :cvar NONE: Not trainable
    :cvar BROADCAST: Constant broadcast into the graph
    """

    NONE = "none"
    BROADCAST = "broadcast"


@dataclass(eq=False)
class Node:
    """Single operation in the host graph.

    :param name: Node name
    :param kind: Operation kind
    :param inputs: Operand nodes
    :param dims: Output dims
    :param dtype: Output element type
    :param attrs: Operation parameters (kernel, stride, axis, ...)
    """

    name: str
    kind: NodeKind
    inputs: tuple["Node", ...]
    dims: tuple[int, ...]
    dtype: torch.dtype = torch.float32
    attrs: dict[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.kind.value}, name={self.name!r}, dims={self.dims})"


@dataclass(eq=False, repr=False)
class Variable(Node):
    """Graph input holding a tensor payload."""

    visibility: Visibility = Visibility.PRIVATE
    train_kind: TrainKind = TrainKind.NONE
    payload: torch.Tensor | None = None

    def copy_from(self, tensor: torch.Tensor) -> None:
        """Copy tensor contents into the payload.

        :param tensor: Source tensor; must have the variable's dims
        """
        if tuple(tensor.shape) != self.dims:
            raise ValueError(
                f"Cannot copy tensor of shape {tuple(tensor.shape)} "
                f"into variable '{self.name}' with dims {self.dims}"
            )
        self.payload = tensor.detach().to(self.dtype).clone()


@dataclass(eq=False, repr=False)
class BatchNormalizationNode(Node):
    """Batch normalization with assignable parameter variables."""

    @property
    def scale(self) -> Variable:
        return self.inputs[1]  # type: ignore[return-value]

    @property
    def bias(self) -> Variable:
        return self.inputs[2]  # type: ignore[return-value]

    @property
    def mean(self) -> Variable:
        return self.inputs[3]  # type: ignore[return-value]

    @property
    def var(self) -> Variable:
        return self.inputs[4]  # type: ignore[return-value]


@dataclass(eq=False, repr=False)
class SaveNode(Node):
    """Terminal node storing a result of the graph."""

    @property
    def input(self) -> Node:
        return self.inputs[0]
