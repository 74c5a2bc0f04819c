"""Host graph and node factory.

Every ``create_*`` call appends one node and computes its output dims.
Malformed arguments raise ``ValueError``; callers are expected to validate
the source records before reaching the factory.
"""

__docformat__ = "restructuredtext"
__all__ = ["Graph"]

import math
from collections.abc import Sequence

import torch

from torchcaffe2.analyze.shapes import conv_output_dims, flatten_cdr, pool_output_dims
from torchcaffe2.graph.nodes import (
    BatchNormalizationNode,
    Node,
    NodeKind,
    SaveNode,
    TrainKind,
    Variable,
    Visibility,
)


def _require_rank(node: Node, rank: int, op_name: str) -> None:
    if len(node.dims) != rank:
        raise ValueError(f"{op_name} expects a rank-{rank} input, got dims {node.dims}")


class Graph:
    """Computation graph built through factory calls.

    :param name: Graph name
    """

    def __init__(self, name: str = "main"):
        self.name = name
        self.nodes: list[Node] = []

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def variables(self) -> list[Variable]:
        return [node for node in self.nodes if isinstance(node, Variable)]

    @property
    def saves(self) -> list[SaveNode]:
        return [node for node in self.nodes if isinstance(node, SaveNode)]

    def summary(self) -> list[tuple[str, str, tuple[int, ...]]]:
        """List (kind, name, dims) for every node in creation order."""
        return [(node.kind.value, node.name, node.dims) for node in self.nodes]

    def _add(self, node: Node) -> Node:
        self.nodes.append(node)
        return node

    def _unary(self, kind: NodeKind, name: str, node: Node) -> Node:
        return self._add(Node(name, kind, (node,), node.dims, node.dtype))

    # ===== Inputs =====

    def create_variable(
        self,
        dtype: torch.dtype,
        dims: Sequence[int],
        name: str,
        visibility: Visibility = Visibility.PRIVATE,
        train_kind: TrainKind = TrainKind.NONE,
    ) -> Variable:
        """Create a zero-initialized variable.

        :param dtype: Element type
        :param dims: Variable dims
        :param name: Variable name
        :param visibility: PUBLIC for caller-bound inputs, PRIVATE otherwise
        :param train_kind: Training behaviour
        :return: Variable node
        """
        dims = tuple(int(d) for d in dims)
        variable = Variable(
            name,
            NodeKind.VARIABLE,
            (),
            dims,
            dtype,
            visibility=visibility,
            train_kind=train_kind,
            payload=torch.zeros(dims, dtype=dtype),
        )
        self._add(variable)
        return variable

    # ===== Activations =====

    def create_relu(self, name: str, node: Node) -> Node:
        return self._unary(NodeKind.RELU, name, node)

    def create_sigmoid(self, name: str, node: Node) -> Node:
        return self._unary(NodeKind.SIGMOID, name, node)

    def create_tanh(self, name: str, node: Node) -> Node:
        return self._unary(NodeKind.TANH, name, node)

    # ===== Layers (NHWC) =====

    def create_conv(
        self,
        name: str,
        node: Node,
        filter: Variable,
        bias: Variable,
        out_dims: Sequence[int],
        kernel: int,
        stride: int,
        pad: int,
        group: int,
    ) -> Node:
        """Create a 2D convolution over NHWC data.

        :param node: NHWC input
        :param filter: Filter in (depth, kernel, kernel, channels / group) layout
        :param bias: Bias of shape (depth,)
        :param out_dims: NHWC output dims computed by the caller
        :return: Convolution node
        """
        _require_rank(node, 4, "Convolution")
        n, h, w, c = node.dims
        depth = filter.dims[0]
        if group <= 0 or c % group != 0:
            raise ValueError(f"Convolution group {group} does not divide {c} channels")
        expected_filter = (depth, kernel, kernel, c // group)
        if filter.dims != expected_filter:
            raise ValueError(f"Convolution filter dims {filter.dims} != {expected_filter}")
        if bias.dims != (depth,):
            raise ValueError(f"Convolution bias dims {bias.dims} != {(depth,)}")
        out_h, out_w = conv_output_dims(h, w, kernel, stride, pad)
        if out_h <= 0 or out_w <= 0:
            raise ValueError(f"Convolution kernel {kernel} does not fit input dims {node.dims}")
        if tuple(out_dims) != (n, out_h, out_w, depth):
            raise ValueError(
                f"Convolution output dims {tuple(out_dims)} != {(n, out_h, out_w, depth)}"
            )
        attrs = {"kernel": kernel, "stride": stride, "pad": pad, "group": group}
        return self._add(
            Node(
                name,
                NodeKind.CONVOLUTION,
                (node, filter, bias),
                tuple(out_dims),
                node.dtype,
                attrs,
            )
        )

    def _create_pool(
        self, kind: NodeKind, name: str, node: Node, kernel: int, stride: int, pad: int
    ) -> Node:
        _require_rank(node, 4, kind.value)
        n, h, w, c = node.dims
        out_h, out_w = pool_output_dims(h, w, kernel, stride, pad)
        if out_h <= 0 or out_w <= 0:
            raise ValueError(f"{kind.value} kernel {kernel} does not fit input dims {node.dims}")
        attrs = {"kernel": kernel, "stride": stride, "pad": pad}
        return self._add(Node(name, kind, (node,), (n, out_h, out_w, c), node.dtype, attrs))

    def create_pool_max(self, name: str, node: Node, kernel: int, stride: int, pad: int) -> Node:
        return self._create_pool(NodeKind.POOL_MAX, name, node, kernel, stride, pad)

    def create_pool_avg(self, name: str, node: Node, kernel: int, stride: int, pad: int) -> Node:
        return self._create_pool(NodeKind.POOL_AVG, name, node, kernel, stride, pad)

    def create_batch_normalization(
        self, name: str, node: Node, channel: int, epsilon: float, momentum: float = 0.9
    ) -> BatchNormalizationNode:
        """Create batch normalization with fresh scale/bias/mean/variance variables.

        Scale and variance start at one, bias and mean at zero.

        :param node: Input
        :param channel: Channel axis
        :param epsilon: Variance epsilon
        :param momentum: Running-average momentum
        :return: Node whose ``scale``, ``bias``, ``mean``, ``var`` can be assigned
        """
        if not 0 <= channel < len(node.dims):
            raise ValueError(f"BatchNormalization channel {channel} out of range for {node.dims}")
        depth = (node.dims[channel],)
        broadcast = TrainKind.BROADCAST
        scale = self.create_variable(node.dtype, depth, f"{name}.scale", train_kind=broadcast)
        bias = self.create_variable(node.dtype, depth, f"{name}.bias", train_kind=broadcast)
        mean = self.create_variable(node.dtype, depth, f"{name}.mean")
        var = self.create_variable(node.dtype, depth, f"{name}.var")
        scale.payload.fill_(1.0)
        var.payload.fill_(1.0)
        attrs = {"channel": channel, "epsilon": epsilon, "momentum": momentum}
        bn = BatchNormalizationNode(
            name,
            NodeKind.BATCH_NORMALIZATION,
            (node, scale, bias, mean, var),
            node.dims,
            node.dtype,
            attrs,
        )
        self._add(bn)
        return bn

    def create_local_response_normalization(
        self,
        name: str,
        node: Node,
        half_window_size: int,
        alpha: float,
        beta: float,
        k: float,
    ) -> Node:
        """Create cross-channel LRN over NHWC data.

        The window spans ``2 * half_window_size + 1`` channels.
        """
        _require_rank(node, 4, "LocalResponseNormalization")
        attrs = {"half_window_size": half_window_size, "alpha": alpha, "beta": beta, "k": k}
        return self._add(
            Node(name, NodeKind.LOCAL_RESPONSE_NORMALIZATION, (node,), node.dims, node.dtype, attrs)
        )

    def create_fully_connected(
        self, name: str, node: Node, weights: Variable, bias: Variable
    ) -> Node:
        """Create a fully-connected layer.

        The input is flattened to 2D by collapsing all dims after the first.

        :param weights: Weights in (in_features, out_features) layout
        :param bias: Bias of shape (out_features,)
        """
        batch, features = flatten_cdr(node.dims)
        if len(weights.dims) != 2 or weights.dims[0] != features:
            raise ValueError(
                f"FullyConnected weights dims {weights.dims} do not match {features} input features"
            )
        if bias.dims != (weights.dims[1],):
            raise ValueError(f"FullyConnected bias dims {bias.dims} != {(weights.dims[1],)}")
        return self._add(
            Node(
                name,
                NodeKind.FULLY_CONNECTED,
                (node, weights, bias),
                (batch, weights.dims[1]),
                node.dtype,
            )
        )

    def create_softmax(self, name: str, node: Node, expected: Node) -> Node:
        _require_rank(node, 2, "SoftMax")
        return self._add(Node(name, NodeKind.SOFTMAX, (node, expected), node.dims, node.dtype))

    # ===== Elementwise =====

    def _binary(self, kind: NodeKind, name: str, lhs: Node, rhs: Node) -> Node:
        if lhs.dims != rhs.dims:
            raise ValueError(f"{kind.value} operand dims differ: {lhs.dims} vs {rhs.dims}")
        return self._add(Node(name, kind, (lhs, rhs), lhs.dims, lhs.dtype))

    def create_add(self, name: str, lhs: Node, rhs: Node) -> Node:
        return self._binary(NodeKind.ADD, name, lhs, rhs)

    def create_mul(self, name: str, lhs: Node, rhs: Node) -> Node:
        return self._binary(NodeKind.MUL, name, lhs, rhs)

    def create_broadcast(
        self, name: str, node: Node, target_dims: Sequence[int], axis: int
    ) -> Node:
        """Broadcast ``node`` to ``target_dims``, aligning its first dim at ``axis``.

        Each input dim must equal the aligned target dim or be 1.
        """
        target_dims = tuple(target_dims)
        if axis < 0 or axis + len(node.dims) > len(target_dims):
            raise ValueError(
                f"Cannot broadcast dims {node.dims} into {target_dims} at axis {axis}"
            )
        for i, dim in enumerate(node.dims):
            if dim not in (1, target_dims[axis + i]):
                raise ValueError(
                    f"Cannot broadcast dims {node.dims} into {target_dims} at axis {axis}"
                )
        return self._add(
            Node(name, NodeKind.BROADCAST, (node,), target_dims, node.dtype, {"axis": axis})
        )

    # ===== Data movement =====

    def create_transpose(self, name: str, node: Node, shuffle: Sequence[int]) -> Node:
        shuffle = tuple(shuffle)
        if sorted(shuffle) != list(range(len(node.dims))):
            raise ValueError(f"Invalid transpose {shuffle} for dims {node.dims}")
        dims = tuple(node.dims[i] for i in shuffle)
        return self._add(
            Node(name, NodeKind.TRANSPOSE, (node,), dims, node.dtype, {"shuffle": shuffle})
        )

    def create_reshape(self, name: str, node: Node, dims: Sequence[int]) -> Node:
        dims = tuple(dims)
        if math.prod(dims) != math.prod(node.dims):
            raise ValueError(f"Cannot reshape dims {node.dims} into {dims}")
        return self._add(Node(name, NodeKind.RESHAPE, (node,), dims, node.dtype))

    def create_concat(self, name: str, inputs: Sequence[Node], axis: int) -> Node:
        if not inputs:
            raise ValueError("Concat requires at least one input")
        first = inputs[0].dims
        if not 0 <= axis < len(first):
            raise ValueError(f"Concat axis {axis} out of range for dims {first}")
        for node in inputs[1:]:
            dims = node.dims
            if len(dims) != len(first) or any(
                a != b for i, (a, b) in enumerate(zip(dims, first)) if i != axis
            ):
                raise ValueError(f"Concat operand dims {dims} incompatible with {first}")
        out = list(first)
        out[axis] = sum(node.dims[axis] for node in inputs)
        return self._add(
            Node(name, NodeKind.CONCAT, tuple(inputs), tuple(out), inputs[0].dtype, {"axis": axis})
        )

    def create_channel_shuffle(self, name: str, node: Node, group: int, kernel: int) -> Node:
        """Shuffle dim ``kernel`` by splitting it into ``group`` blocks and interleaving them."""
        if not 0 <= kernel < len(node.dims):
            raise ValueError(f"ChannelShuffle kernel {kernel} out of range for {node.dims}")
        if group <= 0 or node.dims[kernel] % group != 0:
            raise ValueError(f"ChannelShuffle group {group} does not divide {node.dims[kernel]}")
        attrs = {"group": group, "kernel": kernel}
        return self._add(
            Node(name, NodeKind.CHANNEL_SHUFFLE, (node,), node.dims, node.dtype, attrs)
        )

    def create_squeeze(self, name: str, node: Node, axes: Sequence[int]) -> Node:
        axes = tuple(sorted(set(axes)))
        for axis in axes:
            if not 0 <= axis < len(node.dims) or node.dims[axis] != 1:
                raise ValueError(f"Cannot squeeze axis {axis} of dims {node.dims}")
        dims = tuple(d for i, d in enumerate(node.dims) if i not in axes)
        return self._add(Node(name, NodeKind.SQUEEZE, (node,), dims, node.dtype, {"axes": axes}))

    # ===== Outputs =====

    def create_save(self, name: str, node: Node) -> SaveNode:
        save = SaveNode(name, NodeKind.SAVE, (node,), node.dims, node.dtype)
        self._add(save)
        return save
