"""Closed set of Caffe2 operator kinds understood by the importer."""

__docformat__ = "restructuredtext"
__all__ = ["FILL_KINDS", "OperatorKind"]

from enum import Enum

from torchcaffe2.build import OperatorRecord
from torchcaffe2.errors import UnsupportedOperatorError


class OperatorKind(Enum):
    """Caffe2 operator type tags.

    Fill kinds are consumed by the weight pass, all others by the
    lowering dispatcher.
    """

    # Weights
    GIVEN_TENSOR_FILL = "GivenTensorFill"
    CONSTANT_FILL = "ConstantFill"

    # Compute
    RELU = "Relu"
    SIGMOID = "Sigmoid"
    TANH = "Tanh"
    CONV = "Conv"
    MAX_POOL = "MaxPool"
    AVERAGE_POOL = "AveragePool"
    DROPOUT = "Dropout"
    SPATIAL_BN = "SpatialBN"
    CONCAT = "Concat"
    SUM = "Sum"
    SOFTMAX = "Softmax"
    FC = "FC"
    LRN = "LRN"
    ADD = "Add"
    MUL = "Mul"
    CHANNEL_SHUFFLE = "ChannelShuffle"
    SQUEEZE = "Squeeze"

    @property
    def is_fill(self) -> bool:
        return self in FILL_KINDS

    @classmethod
    def of(cls, record: OperatorRecord) -> "OperatorKind":
        """Look up the kind of a record.

        :param record: Operator record
        :return: Operator kind
        :raises UnsupportedOperatorError: If the type tag is not a known kind
        """
        try:
            return cls(record.type)
        except ValueError:
            raise UnsupportedOperatorError("Unsupported operator.", record) from None


FILL_KINDS = frozenset({OperatorKind.GIVEN_TENSOR_FILL, OperatorKind.CONSTANT_FILL})
