"""LAYER lowerings.

Lowerings for operators that carry weights or spatial windows: Conv, pooling,
SpatialBN, LRN and FC. Caffe2 feeds channel-first (NCHW) data while the graph's
spatial layers read channel-last (NHWC), so these layers are bracketed by a
pair of transposes.
"""

__docformat__ = "restructuredtext"
__all__ = ["register_layer_lowerings"]

import warnings

from torchcaffe2.analyze import ArgumentDictionary, channel_axis, conv_output_dims
from torchcaffe2.build import OperatorRecord
from torchcaffe2.errors import ParseDataError, UnsupportedOperatorError
from torchcaffe2.graph import Node, NodeKind, TrainKind
from torchcaffe2.lower._handlers._registry import (
    Lowering,
    register_lowering,
    require_inputs,
    require_positive,
)
from torchcaffe2.lower.kinds import OperatorKind
from torchcaffe2.lower.resolver import NodeResolver
from torchcaffe2.presets import DEFAULT_BN_EPSILON, NCHW2NHWC, NHWC2NCHW, PER_EDGE_PAD_ARGS


def _lower_conv(record: OperatorRecord, args: ArgumentDictionary, resolver: NodeResolver) -> Node:
    """Lower Conv.

    Caffe2 stores filters as (depth, channels, kh, kw); the graph reads
    (depth, kh, kw, channels). Without a serialized bias the bias is zero.

    :param record: Conv record (inputs: data, filter[, bias])
    :param args: Argument dictionary of the record
    :param resolver: Node resolver of the session
    :return: NCHW output node
    """
    require_inputs(record, 2)
    stride = args.get_int("stride", 1)
    pad = args.get_int("pad", 0)
    kernel = args.get_int("kernel")
    group = args.get_int("group", 1)
    require_positive(record, kernel=kernel, stride=stride, group=group)

    graph = resolver.graph
    name = record.op_name
    node = resolver.resolve(record.inputs[0])
    weight = resolver.registry.get(record.inputs[1])
    if weight.dim() != 4:
        raise ParseDataError(
            f"Conv '{name}' filter must be 4D, got shape {tuple(weight.shape)}"
        )

    filter_data = weight.permute(0, 2, 3, 1).contiguous()
    depth = filter_data.shape[0]
    filter = graph.create_variable(
        filter_data.dtype, tuple(filter_data.shape), "conv.filter", train_kind=TrainKind.BROADCAST
    )
    filter.copy_from(filter_data)

    bias = graph.create_variable(
        filter_data.dtype, (depth,), "conv.bias", train_kind=TrainKind.BROADCAST
    )
    if len(record.inputs) > 2:
        bias_name = record.inputs[2]
        if bias_name in resolver.registry:
            bias.copy_from(resolver.registry.get(bias_name))
        else:
            warnings.warn(
                f"Conv '{name}' bias '{bias_name}' is not a serialized tensor; using zeros.",
                UserWarning,
                stacklevel=2,
            )

    tr = graph.create_transpose(name, node, NCHW2NHWC)
    n, h, w, _ = tr.dims
    out_h, out_w = conv_output_dims(h, w, kernel, stride, pad)
    conv = graph.create_conv(
        name, tr, filter, bias, (n, out_h, out_w, depth), kernel, stride, pad, group
    )
    return graph.create_transpose(name, conv, NHWC2NCHW)


def _make_pool_lowering(kind: NodeKind) -> Lowering:
    """Create the lowering for MaxPool or AveragePool.

    :param kind: NodeKind.POOL_MAX or NodeKind.POOL_AVG
    :return: Lowering function
    """

    def lowering(record: OperatorRecord, args: ArgumentDictionary, resolver: NodeResolver) -> Node:
        require_inputs(record, 1)
        per_edge = [pad_arg for pad_arg in PER_EDGE_PAD_ARGS if pad_arg in args]
        if per_edge:
            raise UnsupportedOperatorError(
                f"Use of {', '.join(per_edge)} is currently unsupported.", record
            )
        stride = args.get_int("stride")
        pad = args.get_int("pad", 0)

        graph = resolver.graph
        name = record.op_name
        node = resolver.resolve(record.inputs[0])
        tr = graph.create_transpose(name, node, NCHW2NHWC)

        # Global pooling covers the whole input width
        if "global_pooling" in args:
            kernel = tr.dims[2]
        else:
            kernel = args.get_int("kernel")
        require_positive(record, kernel=kernel, stride=stride)

        if kind is NodeKind.POOL_MAX:
            pool = graph.create_pool_max(name, tr, kernel, stride, pad)
        else:
            pool = graph.create_pool_avg(name, tr, kernel, stride, pad)
        return graph.create_transpose(name, pool, NHWC2NCHW)

    return lowering


def _lower_spatial_bn(
    record: OperatorRecord, args: ArgumentDictionary, resolver: NodeResolver
) -> Node:
    """Lower SpatialBN (inputs: data, scale, bias, mean, var)."""
    require_inputs(record, 5)
    node = resolver.resolve(record.inputs[0])
    scale, bias, mean, var = (resolver.registry.get(n) for n in record.inputs[1:5])
    epsilon = args.get_float("epsilon", DEFAULT_BN_EPSILON)
    channel = channel_axis(args)

    bn = resolver.graph.create_batch_normalization(record.op_name, node, channel, epsilon)
    bn.scale.copy_from(scale)
    bn.bias.copy_from(bias)
    bn.mean.copy_from(mean)
    bn.var.copy_from(var)
    return bn


def _lower_lrn(record: OperatorRecord, args: ArgumentDictionary, resolver: NodeResolver) -> Node:
    require_inputs(record, 1)
    size = args.get_int("size")
    alpha = args.get_float("alpha")
    beta = args.get_float("beta")
    k = args.get_float("bias")
    require_positive(record, size=size)

    graph = resolver.graph
    name = record.op_name
    node = resolver.resolve(record.inputs[0])
    tr = graph.create_transpose(name, node, NCHW2NHWC)
    lrn = graph.create_local_response_normalization(name, tr, size // 2, alpha, beta, k)
    return graph.create_transpose(name, lrn, NHWC2NCHW)


def _lower_fc(record: OperatorRecord, args: ArgumentDictionary, resolver: NodeResolver) -> Node:
    """Lower FC.

    Caffe2 stores the weight matrix transposed as (out, in); it is transposed
    back before use.
    """
    require_inputs(record, 3)
    node = resolver.resolve(record.inputs[0])
    weight = resolver.registry.get(record.inputs[1])
    bias = resolver.registry.get(record.inputs[2])
    if weight.dim() != 2:
        raise ParseDataError(
            f"FC '{record.op_name}' weights must be 2D, got shape {tuple(weight.shape)}"
        )

    graph = resolver.graph
    weight_t = weight.t()
    weights = graph.create_variable(weight_t.dtype, tuple(weight_t.shape), "weights")
    weights.copy_from(weight_t)
    biases = graph.create_variable(bias.dtype, tuple(bias.shape), "biases")
    biases.copy_from(bias)
    return graph.create_fully_connected(record.op_name, node, weights, biases)


def register_layer_lowerings() -> None:
    """Register all LAYER lowerings."""
    register_lowering(OperatorKind.CONV, _lower_conv)
    register_lowering(OperatorKind.MAX_POOL, _make_pool_lowering(NodeKind.POOL_MAX))
    register_lowering(OperatorKind.AVERAGE_POOL, _make_pool_lowering(NodeKind.POOL_AVG))
    register_lowering(OperatorKind.SPATIAL_BN, _lower_spatial_bn)
    register_lowering(OperatorKind.LRN, _lower_lrn)
    register_lowering(OperatorKind.FC, _lower_fc)
