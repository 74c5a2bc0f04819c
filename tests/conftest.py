"""Pytest configuration and shared fixtures for torchcaffe2 tests."""

import numpy as np
import pytest
import torch

from torchcaffe2.build import make_given_tensor_fill, make_network, make_operator


@pytest.fixture
def rng():
    """Seeded numpy generator."""
    return np.random.default_rng(42)


@pytest.fixture
def randn(rng):
    """Return a factory for float32 torch tensors with normal entries."""

    def factory(*shape: int) -> torch.Tensor:
        return torch.from_numpy(rng.standard_normal(shape).astype(np.float32))

    return factory


@pytest.fixture
def small_cnn(randn):
    """Conv -> Relu -> MaxPool -> FC -> Softmax network split into init and predict nets.

    :return: (predict net, init net, external inputs, weight tensors)
    """
    tensors = {
        "conv1_w": randn(4, 3, 3, 3),
        "conv1_b": randn(4),
        "fc_w": randn(5, 4 * 4 * 4),
        "fc_b": randn(5),
    }
    init_net = make_network(
        [make_given_tensor_fill(name, value) for name, value in tensors.items()],
        name="init",
    )
    predict_net = make_network(
        [
            make_operator("Conv", ["data", "conv1_w", "conv1_b"], ["conv1"], kernel=3, pad=1),
            make_operator("Relu", ["conv1"], ["conv1"]),
            make_operator("MaxPool", ["conv1"], ["pool1"], kernel=2, stride=2),
            make_operator("FC", ["pool1", "fc_w", "fc_b"], ["fc"]),
            make_operator("Softmax", ["fc"], ["prob"]),
        ],
        external_outputs=["prob"],
        external_inputs=["data"],
        name="small_cnn",
    )
    inputs = {
        "data": randn(2, 3, 8, 8),
        "softmax_expected": torch.zeros(2, 1, dtype=torch.int64),
    }
    return predict_net, init_net, inputs, tensors
