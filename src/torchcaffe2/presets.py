"""Preset conventions of the Caffe2 model format.

Reserved tensor names, layout permutations and argument defaults shared by
the lowering passes.
"""

__docformat__ = "restructuredtext"
__all__ = [
    "DEFAULT_BN_EPSILON",
    "DEFAULT_ORDER",
    "NCHW2NHWC",
    "NHWC2NCHW",
    "ORDER_TO_CHANNEL",
    "PER_EDGE_PAD_ARGS",
    "SAVE_NODE_NAME",
    "SOFTMAX_EXPECTED_NAME",
]


# Auxiliary input every Softmax is bound to
SOFTMAX_EXPECTED_NAME = "softmax_expected"

# Name of the terminal save node
SAVE_NODE_NAME = "output"

# Caffe2 assumes channel-first data when "order" is absent
DEFAULT_ORDER = "NCHW"
ORDER_TO_CHANNEL = {
    "NHWC": 3,
    "NCHW": 1,
}

NCHW2NHWC = (0, 2, 3, 1)
NHWC2NCHW = (0, 3, 1, 2)

DEFAULT_BN_EPSILON = 1e-5

# Per-edge padding arguments of the pooling operators
PER_EDGE_PAD_ARGS = ("pad_l", "pad_r", "pad_t", "pad_b")
