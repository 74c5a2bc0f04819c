"""Tests for the host graph factory and the reference interpreter.

Test Coverage:
- TestVariables: creation, payload copying
- TestFactoryValidation: dims checks of the create_* methods
- TestInterpreter: feeds, payloads and save results
"""

import pytest
import torch

from torchcaffe2.graph import Graph, NodeKind, TrainKind, Visibility, run


@pytest.fixture
def graph():
    return Graph()


class TestVariables:
    """Test variable handling."""

    def test_variable_is_zero_initialized(self, graph):
        variable = graph.create_variable(torch.float32, [2, 3], "v")
        assert variable.dims == (2, 3)
        assert variable.visibility is Visibility.PRIVATE
        assert variable.train_kind is TrainKind.NONE
        torch.testing.assert_close(variable.payload, torch.zeros(2, 3))

    def test_copy_from_checks_shape(self, graph):
        variable = graph.create_variable(torch.float32, (2,), "v")
        with pytest.raises(ValueError, match="Cannot copy"):
            variable.copy_from(torch.ones(3))

    def test_copy_from_converts_dtype(self, graph):
        variable = graph.create_variable(torch.float32, (2,), "v")
        variable.copy_from(torch.tensor([1, 2]))
        assert variable.payload.dtype == torch.float32

    def test_batch_normalization_parameters(self, graph):
        x = graph.create_variable(torch.float32, (1, 3, 2, 2), "x")
        bn = graph.create_batch_normalization("bn", x, 1, 1e-5)
        assert [v.name for v in (bn.scale, bn.bias, bn.mean, bn.var)] == [
            "bn.scale",
            "bn.bias",
            "bn.mean",
            "bn.var",
        ]
        assert bn.scale.train_kind is TrainKind.BROADCAST
        torch.testing.assert_close(bn.scale.payload, torch.ones(3))
        torch.testing.assert_close(bn.var.payload, torch.ones(3))
        torch.testing.assert_close(bn.mean.payload, torch.zeros(3))
        assert bn.attrs["momentum"] == 0.9

    def test_summary_lists_nodes_in_creation_order(self, graph):
        x = graph.create_variable(torch.float32, (2,), "x")
        graph.create_save("out", graph.create_relu("r", x))
        assert graph.summary() == [
            ("Variable", "x", (2,)),
            ("Relu", "r", (2,)),
            ("Save", "out", (2,)),
        ]
        assert len(graph) == 3


class TestFactoryValidation:
    """Test dims validation of the node factory."""

    def test_conv_rejects_nchw_rank(self, graph):
        x = graph.create_variable(torch.float32, (1, 3, 5), "x")
        f = graph.create_variable(torch.float32, (2, 3, 3, 3), "f")
        b = graph.create_variable(torch.float32, (2,), "b")
        with pytest.raises(ValueError, match="rank-4"):
            graph.create_conv("c", x, f, b, (1, 3, 3, 2), 3, 1, 0, 1)

    def test_conv_rejects_bad_filter(self, graph):
        x = graph.create_variable(torch.float32, (1, 5, 5, 3), "x")
        f = graph.create_variable(torch.float32, (2, 3, 3, 4), "f")
        b = graph.create_variable(torch.float32, (2,), "b")
        with pytest.raises(ValueError, match="filter"):
            graph.create_conv("c", x, f, b, (1, 3, 3, 2), 3, 1, 0, 1)

    def test_conv_rejects_bad_output_dims(self, graph):
        x = graph.create_variable(torch.float32, (1, 5, 5, 3), "x")
        f = graph.create_variable(torch.float32, (2, 3, 3, 3), "f")
        b = graph.create_variable(torch.float32, (2,), "b")
        with pytest.raises(ValueError, match="output dims"):
            graph.create_conv("c", x, f, b, (1, 5, 5, 2), 3, 1, 0, 1)

    def test_conv_rejects_indivisible_group(self, graph):
        x = graph.create_variable(torch.float32, (1, 5, 5, 3), "x")
        f = graph.create_variable(torch.float32, (2, 3, 3, 1), "f")
        b = graph.create_variable(torch.float32, (2,), "b")
        with pytest.raises(ValueError, match="group"):
            graph.create_conv("c", x, f, b, (1, 3, 3, 2), 3, 1, 0, 2)

    def test_pool_kernel_larger_than_input(self, graph):
        x = graph.create_variable(torch.float32, (1, 2, 2, 1), "x")
        with pytest.raises(ValueError, match="does not fit"):
            graph.create_pool_max("p", x, 3, 1, 0)

    def test_conv_kernel_larger_than_input(self, graph):
        x = graph.create_variable(torch.float32, (1, 2, 2, 3), "x")
        f = graph.create_variable(torch.float32, (2, 3, 3, 3), "f")
        b = graph.create_variable(torch.float32, (2,), "b")
        with pytest.raises(ValueError, match="does not fit"):
            graph.create_conv("c", x, f, b, (1, 0, 0, 2), 3, 1, 0, 1)

    def test_binary_requires_equal_dims(self, graph):
        a = graph.create_variable(torch.float32, (2, 3), "a")
        b = graph.create_variable(torch.float32, (3,), "b")
        with pytest.raises(ValueError, match="differ"):
            graph.create_add("add", a, b)

    def test_broadcast_rejects_mismatched_dim(self, graph):
        b = graph.create_variable(torch.float32, (4,), "b")
        with pytest.raises(ValueError, match="Cannot broadcast"):
            graph.create_broadcast("bc", b, (2, 3), 1)

    def test_broadcast_allows_unit_dims(self, graph):
        b = graph.create_variable(torch.float32, (1, 3), "b")
        node = graph.create_broadcast("bc", b, (2, 1, 3), 1)
        assert node.dims == (2, 1, 3)

    def test_reshape_requires_same_size(self, graph):
        x = graph.create_variable(torch.float32, (2, 3), "x")
        with pytest.raises(ValueError, match="reshape"):
            graph.create_reshape("r", x, (4, 2))

    def test_transpose_requires_permutation(self, graph):
        x = graph.create_variable(torch.float32, (2, 3), "x")
        with pytest.raises(ValueError, match="Invalid transpose"):
            graph.create_transpose("t", x, (0, 0))

    def test_concat_rejects_mismatched_dims(self, graph):
        a = graph.create_variable(torch.float32, (1, 2, 3), "a")
        b = graph.create_variable(torch.float32, (1, 2, 4), "b")
        with pytest.raises(ValueError, match="incompatible"):
            graph.create_concat("cat", [a, b], 1)

    def test_softmax_requires_rank_2(self, graph):
        x = graph.create_variable(torch.float32, (2, 3, 1), "x")
        expected = graph.create_variable(torch.int64, (2, 1), "softmax_expected")
        with pytest.raises(ValueError, match="rank-2"):
            graph.create_softmax("sm", x, expected)

    def test_fully_connected_checks_features(self, graph):
        x = graph.create_variable(torch.float32, (2, 3, 2), "x")
        w = graph.create_variable(torch.float32, (5, 4), "w")
        b = graph.create_variable(torch.float32, (4,), "b")
        with pytest.raises(ValueError, match="6 input features"):
            graph.create_fully_connected("fc", x, w, b)

    def test_channel_shuffle_requires_divisible_group(self, graph):
        x = graph.create_variable(torch.float32, (1, 5, 2, 2), "x")
        with pytest.raises(ValueError, match="does not divide"):
            graph.create_channel_shuffle("cs", x, 2, 1)


class TestInterpreter:
    """Test graph evaluation."""

    def test_feeds_override_public_variables(self, graph):
        x = graph.create_variable(torch.float32, (3,), "x", visibility=Visibility.PUBLIC)
        graph.create_save("out", graph.create_tanh("t", x))
        feed = torch.tensor([-1.0, 0.0, 1.0])
        results = run(graph, {"x": feed})
        torch.testing.assert_close(results["out"], torch.tanh(feed))

    def test_private_variables_ignore_feeds(self, graph):
        w = graph.create_variable(torch.float32, (2,), "w")
        w.copy_from(torch.tensor([1.0, -2.0]))
        graph.create_save("out", graph.create_relu("r", w))
        results = run(graph, {"w": torch.ones(2)})
        torch.testing.assert_close(results["out"], torch.tensor([1.0, 0.0]))

    def test_feed_shape_is_checked(self, graph):
        x = graph.create_variable(torch.float32, (3,), "x", visibility=Visibility.PUBLIC)
        graph.create_save("out", x)
        with pytest.raises(ValueError, match="Feed for 'x'"):
            run(graph, {"x": torch.ones(4)})

    def test_every_save_is_returned(self, graph):
        x = graph.create_variable(torch.float32, (2,), "x")
        x.copy_from(torch.tensor([0.0, 1.0]))
        graph.create_save("a", graph.create_sigmoid("s", x))
        graph.create_save("b", graph.create_mul("m", x, x))
        results = run(graph)
        assert set(results) == {"a", "b"}
        torch.testing.assert_close(results["b"], torch.tensor([0.0, 1.0]))

    def test_transpose_and_squeeze(self, graph):
        x = graph.create_variable(torch.float32, (1, 2, 3), "x")
        x.copy_from(torch.arange(6.0).reshape(1, 2, 3))
        t = graph.create_transpose("t", x, (0, 2, 1))
        graph.create_save("out", graph.create_squeeze("sq", t, [0]))
        out = run(graph)["out"]
        assert out.shape == (3, 2)
        torch.testing.assert_close(out, torch.arange(6.0).reshape(2, 3).t())

    def test_results_do_not_alias_payloads(self, graph):
        x = graph.create_variable(torch.float32, (2,), "x")
        graph.create_save("out", x)
        results = run(graph)
        results["out"].fill_(5.0)
        torch.testing.assert_close(x.payload, torch.zeros(2))

    def test_node_kinds_cover_the_interpreter(self, graph):
        x = graph.create_variable(torch.float32, (1, 4, 4, 2), "x")
        avg = graph.create_pool_avg("avg", x, 2, 2, 0)
        assert avg.kind is NodeKind.POOL_AVG
        assert avg.dims == (1, 2, 2, 2)
        graph.create_save("out", avg)
        assert run(graph)["out"].shape == (1, 2, 2, 2)
