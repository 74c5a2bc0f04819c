"""Stage 2: Argument and Shape Analysis.

This module reads typed operator arguments and performs the shape arithmetic
the lowering handlers depend on.
"""

__docformat__ = "restructuredtext"
__all__ = [
    "ArgumentDictionary",
    "broadcast_axis",
    "channel_axis",
    "conv_output_dims",
    "flatten_cdr",
    "pool_output_dims",
]

from torchcaffe2.analyze.arguments import ArgumentDictionary, channel_axis
from torchcaffe2.analyze.shapes import (
    broadcast_axis,
    conv_output_dims,
    flatten_cdr,
    pool_output_dims,
)
