"""Name-keyed store of materialized constant tensors."""

__docformat__ = "restructuredtext"
__all__ = ["TensorRegistry", "as_tensor"]

from collections.abc import Iterator
from typing import Any

import numpy as np
import torch
from onnx import TensorProto, numpy_helper

from torchcaffe2.errors import UnknownTensorError


def as_tensor(value: Any) -> torch.Tensor:
    """Convert a caller-supplied tensor to ``torch.Tensor``.

    :param value: torch.Tensor, numpy array, ONNX TensorProto, or nested list
    :return: PyTorch tensor (copied for numpy and ONNX inputs)
    """
    if isinstance(value, torch.Tensor):
        return value
    if isinstance(value, TensorProto):
        value = numpy_helper.to_array(value)
    if isinstance(value, np.ndarray):
        return torch.from_numpy(value.copy())
    return torch.tensor(value)


class TensorRegistry:
    """Owns the constant tensors of one lowering session.

    Tensors bound by the caller before the weight pass are marked preseeded
    and are never replaced.
    """

    def __init__(self):
        self._tensors: dict[str, torch.Tensor] = {}
        self._preseeded: set[str] = set()

    def __contains__(self, name: object) -> bool:
        return name in self._tensors

    def __len__(self) -> int:
        return len(self._tensors)

    def __iter__(self) -> Iterator[str]:
        return iter(self._tensors)

    def preseed(self, name: str, tensor: Any) -> torch.Tensor:
        """Bind a caller-supplied tensor.

        :param name: Tensor name
        :param tensor: Tensor value (see :func:`as_tensor`)
        :return: The stored tensor
        """
        stored = as_tensor(tensor)
        self._tensors[name] = stored
        self._preseeded.add(name)
        return stored

    def is_preseeded(self, name: str) -> bool:
        return name in self._preseeded

    def register(self, name: str, tensor: torch.Tensor) -> bool:
        """Store a materialized tensor, replacing any non-preseeded entry.

        :param name: Tensor name
        :param tensor: Tensor to store
        :return: False if the name is preseeded and the tensor was not stored
        """
        if name in self._preseeded:
            return False
        self._tensors[name] = tensor
        return True

    def get(self, name: str) -> torch.Tensor:
        """Look up a tensor.

        :param name: Tensor name
        :return: Stored tensor
        :raises UnknownTensorError: If nothing is registered under ``name``
        """
        tensor = self._tensors.get(name)
        if tensor is None:
            raise UnknownTensorError(name)
        return tensor

    def release(self) -> None:
        """Drop every owned tensor."""
        self._tensors.clear()
        self._preseeded.clear()
