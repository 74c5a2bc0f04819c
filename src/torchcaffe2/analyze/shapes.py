"""Shape arithmetic shared by the lowering handlers and the graph factory."""

__docformat__ = "restructuredtext"
__all__ = [
    "broadcast_axis",
    "conv_output_dims",
    "flatten_cdr",
    "pool_output_dims",
]

import math
from collections.abc import Sequence


def conv_output_dims(
    height: int, width: int, kernel: int, stride: int, pad: int
) -> tuple[int, int]:
    """Compute spatial output size of a square-kernel convolution.

    Uses ``(in + 2 * pad - kernel) // stride + 1`` on both axes.

    :param height: Input height
    :param width: Input width
    :param kernel: Kernel size
    :param stride: Stride
    :param pad: Symmetric padding
    :return: (output height, output width)
    """
    out_h = (height + 2 * pad - kernel) // stride + 1
    out_w = (width + 2 * pad - kernel) // stride + 1
    return out_h, out_w


# Pooling windows follow the same arithmetic
pool_output_dims = conv_output_dims


def flatten_cdr(dims: Sequence[int]) -> tuple[int, int]:
    """Collapse all dims after the first into one.

    :param dims: Tensor dims
    :return: (first dim, product of the remaining dims)
    """
    if not dims:
        return 1, 1
    return dims[0], math.prod(dims[1:])


def broadcast_axis(lhs_rank: int, rhs_rank: int, axis: int) -> int:
    """Resolve the Caffe2 broadcast axis.

    ``-1`` aligns the trailing dims of the right operand with the left one.

    :param lhs_rank: Rank of the first input
    :param rhs_rank: Rank of the broadcast input
    :param axis: Axis argument as stored in the record
    :return: Axis at which the broadcast input starts
    """
    if axis == -1:
        return lhs_rank - rhs_rank
    return axis
