"""Reference interpreter for lowered graphs.

Evaluates nodes in creation order with ``torch.nn.functional``. Layer nodes
work on NHWC data, matching the factory's layout contract.
"""

__docformat__ = "restructuredtext"
__all__ = ["run"]

from collections.abc import Callable, Mapping

import torch
import torch.nn.functional as F

from torchcaffe2.graph.graph import Graph
from torchcaffe2.graph.nodes import Node, NodeKind, Variable, Visibility

_Evaluator = Callable[[Node, list[torch.Tensor]], torch.Tensor]


def _nhwc_to_nchw(x: torch.Tensor) -> torch.Tensor:
    return x.permute(0, 3, 1, 2)


def _nchw_to_nhwc(x: torch.Tensor) -> torch.Tensor:
    return x.permute(0, 2, 3, 1).contiguous()


def _eval_conv(node: Node, args: list[torch.Tensor]) -> torch.Tensor:
    x, weight, bias = args
    out = F.conv2d(
        _nhwc_to_nchw(x),
        _nhwc_to_nchw(weight),
        bias,
        stride=node.attrs["stride"],
        padding=node.attrs["pad"],
        groups=node.attrs["group"],
    )
    return _nchw_to_nhwc(out)


def _eval_pool_max(node: Node, args: list[torch.Tensor]) -> torch.Tensor:
    out = F.max_pool2d(
        _nhwc_to_nchw(args[0]),
        node.attrs["kernel"],
        stride=node.attrs["stride"],
        padding=node.attrs["pad"],
    )
    return _nchw_to_nhwc(out)


def _eval_pool_avg(node: Node, args: list[torch.Tensor]) -> torch.Tensor:
    # Padding counts towards the averaging window
    out = F.avg_pool2d(
        _nhwc_to_nchw(args[0]),
        node.attrs["kernel"],
        stride=node.attrs["stride"],
        padding=node.attrs["pad"],
        count_include_pad=True,
    )
    return _nchw_to_nhwc(out)


def _eval_batch_norm(node: Node, args: list[torch.Tensor]) -> torch.Tensor:
    x, scale, bias, mean, var = args
    channel = node.attrs["channel"]
    out = F.batch_norm(
        x.movedim(channel, 1),
        mean,
        var,
        weight=scale,
        bias=bias,
        training=False,
        eps=node.attrs["epsilon"],
    )
    return out.movedim(1, channel)


def _eval_lrn(node: Node, args: list[torch.Tensor]) -> torch.Tensor:
    size = 2 * node.attrs["half_window_size"] + 1
    out = F.local_response_norm(
        _nhwc_to_nchw(args[0]),
        size,
        alpha=node.attrs["alpha"],
        beta=node.attrs["beta"],
        k=node.attrs["k"],
    )
    return _nchw_to_nhwc(out)


def _eval_fully_connected(node: Node, args: list[torch.Tensor]) -> torch.Tensor:
    x, weights, bias = args
    return x.reshape(x.shape[0], -1) @ weights + bias


def _eval_broadcast(node: Node, args: list[torch.Tensor]) -> torch.Tensor:
    x = args[0]
    axis = node.attrs["axis"]
    trailing = len(node.dims) - axis - x.dim()
    aligned = x.reshape((1,) * axis + tuple(x.shape) + (1,) * trailing)
    return aligned.expand(node.dims)


def _eval_channel_shuffle(node: Node, args: list[torch.Tensor]) -> torch.Tensor:
    x = args[0]
    group = node.attrs["group"]
    kernel = node.attrs["kernel"]
    dims = list(x.shape)
    split = dims[:kernel] + [group, dims[kernel] // group] + dims[kernel + 1 :]
    shuffled = x.reshape(split).transpose(kernel, kernel + 1)
    return shuffled.reshape(dims)


_EVALUATORS: dict[NodeKind, _Evaluator] = {
    NodeKind.RELU: lambda node, args: F.relu(args[0]),
    NodeKind.SIGMOID: lambda node, args: torch.sigmoid(args[0]),
    NodeKind.TANH: lambda node, args: torch.tanh(args[0]),
    NodeKind.CONVOLUTION: _eval_conv,
    NodeKind.POOL_MAX: _eval_pool_max,
    NodeKind.POOL_AVG: _eval_pool_avg,
    NodeKind.BATCH_NORMALIZATION: _eval_batch_norm,
    NodeKind.LOCAL_RESPONSE_NORMALIZATION: _eval_lrn,
    NodeKind.FULLY_CONNECTED: _eval_fully_connected,
    NodeKind.SOFTMAX: lambda node, args: F.softmax(args[0], dim=1),
    NodeKind.ADD: lambda node, args: args[0] + args[1],
    NodeKind.MUL: lambda node, args: args[0] * args[1],
    NodeKind.BROADCAST: _eval_broadcast,
    NodeKind.TRANSPOSE: lambda node, args: args[0].permute(node.attrs["shuffle"]),
    NodeKind.RESHAPE: lambda node, args: args[0].reshape(node.dims),
    NodeKind.CONCAT: lambda node, args: torch.cat(args, dim=node.attrs["axis"]),
    NodeKind.CHANNEL_SHUFFLE: _eval_channel_shuffle,
    NodeKind.SQUEEZE: lambda node, args: args[0].reshape(node.dims),
    NodeKind.SAVE: lambda node, args: args[0].clone(),
}


def _variable_value(variable: Variable, feeds: Mapping[str, torch.Tensor]) -> torch.Tensor:
    if variable.visibility is Visibility.PUBLIC and variable.name in feeds:
        value = torch.as_tensor(feeds[variable.name], dtype=variable.dtype)
        if tuple(value.shape) != variable.dims:
            raise ValueError(
                f"Feed for '{variable.name}' has shape {tuple(value.shape)}, "
                f"expected {variable.dims}"
            )
        return value
    return variable.payload


@torch.no_grad()
def run(graph: Graph, feeds: Mapping[str, torch.Tensor] | None = None) -> dict[str, torch.Tensor]:
    """Evaluate a graph.

    :param graph: Graph to evaluate
    :param feeds: Values for PUBLIC variables keyed by name; payloads are used otherwise
    :return: Save-node results keyed by save-node name
    """
    feeds = feeds or {}
    values: dict[Node, torch.Tensor] = {}
    results: dict[str, torch.Tensor] = {}

    for node in graph.nodes:
        if isinstance(node, Variable):
            values[node] = _variable_value(node, feeds)
            continue
        evaluator = _EVALUATORS.get(node.kind)
        if evaluator is None:
            raise NotImplementedError(f"Cannot evaluate node kind {node.kind.value}")
        values[node] = evaluator(node, [values[arg] for arg in node.inputs])
        if node.kind is NodeKind.SAVE:
            results[node.name] = values[node]

    return results
