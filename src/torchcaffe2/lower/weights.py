"""Weight materialization pass.

Turns ``GivenTensorFill`` and ``ConstantFill`` records into registry tensors::

    output: "conv1_w"
    type: "GivenTensorFill"
    arg { name: "shape" ints: 96 ints: 3 ints: 11 ints: 11 }
    arg { name: "values" floats: -0.028315347 ... }
"""

__docformat__ = "restructuredtext"
__all__ = ["materialize_weights"]

import math
import warnings
from collections.abc import Iterable

import torch

from torchcaffe2.analyze import ArgumentDictionary
from torchcaffe2.build import OperatorRecord
from torchcaffe2.errors import ParseDataError, ShapeMismatchError
from torchcaffe2.lower.kinds import OperatorKind
from torchcaffe2.lower.tensor_registry import TensorRegistry


def _load_given_tensor_fill(record: OperatorRecord, registry: TensorRegistry) -> list[str]:
    """Create one tensor from explicit values and alias it under every output.

    :return: Outputs left untouched because the caller bound them
    """
    args = ArgumentDictionary(record)
    shape = args.get_shape("shape")
    values = args.get_floats("values")

    size = math.prod(shape)
    if len(values) != size:
        raise ShapeMismatchError(
            f"The number of serialized values ({len(values)}) does not match "
            f"the size of the tensor {list(shape)} ({size}) for {list(record.outputs)}"
        )

    tensor = torch.tensor(values, dtype=torch.float32).reshape(shape)
    return [name for name in record.outputs if not registry.register(name, tensor)]


def _load_constant_fill(record: OperatorRecord, registry: TensorRegistry) -> None:
    """Create a zero tensor unless the name already holds one."""
    if not record.outputs:
        raise ParseDataError(f"{record.type} declares no output")
    name = record.outputs[0]
    if name in registry:
        return

    shape = ArgumentDictionary(record).get_shape("shape")
    registry.register(name, torch.zeros(shape, dtype=torch.float32))


def materialize_weights(operators: Iterable[OperatorRecord], registry: TensorRegistry) -> None:
    """Populate the registry from the fill operators of a network.

    Compute operators are skipped; unknown operator kinds are rejected.

    :param operators: Operator records in any order
    :param registry: Registry to populate
    :raises UnsupportedOperatorError: On an unknown operator kind
    :raises ShapeMismatchError: If explicit values do not fill the declared shape
    """
    for record in operators:
        kind = OperatorKind.of(record)
        if kind is OperatorKind.GIVEN_TENSOR_FILL:
            for name in _load_given_tensor_fill(record, registry):
                warnings.warn(
                    f"Tensor '{name}' is bound by the caller; ignoring the serialized value.",
                    UserWarning,
                    stacklevel=2,
                )
        elif kind is OperatorKind.CONSTANT_FILL:
            _load_constant_fill(record, registry)
