"""Tests for Stage 1: Record Construction.

Test Coverage:
- TestMakeOperator: argument type inference and record defaults
- TestRecordText: protobuf text rendering used by diagnostics
- TestFromCaffe2: conversion of decoded Caffe2 messages
- TestFromOnnx: conversion of ONNX nodes carrying Caffe2 operator types
"""

from types import SimpleNamespace

import pytest
import torch
from onnx import TensorProto
from onnx import helper as onnx_helper

from torchcaffe2.build import (
    ArgumentType,
    make_argument,
    make_given_tensor_fill,
    make_operator,
    network_from_caffe2,
    operator_from_caffe2,
    operator_from_onnx,
)
from torchcaffe2.errors import ParseDataError


class FakeArgument:
    """Stand-in for a decoded ``caffe2.Argument`` message."""

    def __init__(self, name, **fields):
        self.name = name
        self._set = set(fields)
        self.i = fields.get("i", 0)
        self.f = fields.get("f", 0.0)
        self.s = fields.get("s", b"")
        self.ints = fields.get("ints", [])
        self.floats = fields.get("floats", [])
        self.strings = fields.get("strings", [])
        self.tensors = []
        self.nets = []

    def HasField(self, field):  # noqa: N802
        return field in self._set and field in ("i", "f", "s")


def fake_op(op_type, inputs, outputs, args=(), name=""):
    return SimpleNamespace(type=op_type, input=inputs, output=outputs, name=name, arg=list(args))


class TestMakeOperator:
    """Test building records from Python values."""

    def test_argument_types_are_inferred(self):
        record = make_operator(
            "Conv", ["x", "w"], ["y"], kernel=3, alpha=0.5, order="NHWC", dims=[1, 2]
        )
        types = {arg.name: arg.type for arg in record.arguments}
        assert types == {
            "kernel": ArgumentType.INT,
            "alpha": ArgumentType.FLOAT,
            "order": ArgumentType.STRING,
            "dims": ArgumentType.INTS,
        }

    def test_bool_is_stored_as_int(self):
        arg = make_argument("global_pooling", True)
        assert arg.type is ArgumentType.INT
        assert arg.value == 1

    def test_mixed_numbers_become_floats(self):
        arg = make_argument("values", [1, 2.5])
        assert arg.type is ArgumentType.FLOATS
        assert arg.value == (1.0, 2.5)

    def test_unsupported_value_raises(self):
        with pytest.raises(ParseDataError, match="unsupported value"):
            make_argument("weird", {"a": 1})

    def test_op_name_falls_back_to_first_output(self):
        assert make_operator("Relu", ["x"], ["y", "z"]).op_name == "y"
        assert make_operator("Relu", ["x"], ["y"], name="relu1").op_name == "relu1"

    def test_given_tensor_fill_from_tensor(self):
        record = make_given_tensor_fill(["w", "w_alias"], torch.arange(6.0).reshape(2, 3))
        assert record.type == "GivenTensorFill"
        assert record.outputs == ("w", "w_alias")
        shape, values = record.arguments
        assert shape.value == (2, 3)
        assert values.value == (0.0, 1.0, 2.0, 3.0, 4.0, 5.0)


class TestRecordText:
    """Test text rendering of records."""

    def test_text_contains_all_fields(self):
        record = make_operator("Conv", ["x", "w"], ["y"], kernel=3, order="NCHW")
        text = record.to_text()
        assert 'input: "x"' in text
        assert 'input: "w"' in text
        assert 'output: "y"' in text
        assert 'type: "Conv"' in text
        assert 'arg {\n  name: "kernel"\n  i: 3\n}' in text
        assert 's: "NCHW"' in text

    def test_repeated_values_render_one_per_line(self):
        record = make_operator("GivenTensorFill", [], ["w"], shape=[2], values=[0.5, 1.5])
        text = record.to_text()
        assert "ints: 2" in text
        assert "floats: 0.5\n  floats: 1.5" in text


class TestFromCaffe2:
    """Test conversion of decoded Caffe2 messages."""

    def test_scalar_fields(self):
        op = fake_op(
            "SpatialBN",
            ["x", "s", "b", "m", "v"],
            ["y"],
            [
                FakeArgument("epsilon", f=1e-3),
                FakeArgument("order", s=b"NHWC"),
                FakeArgument("is_test", i=1),
            ],
        )
        record = operator_from_caffe2(op)
        values = {arg.name: (arg.type, arg.value) for arg in record.arguments}
        assert values["epsilon"][0] is ArgumentType.FLOAT
        assert values["epsilon"][1] == pytest.approx(1e-3)
        assert values["order"] == (ArgumentType.STRING, "NHWC")
        assert values["is_test"] == (ArgumentType.INT, 1)

    def test_repeated_fields(self):
        op = fake_op(
            "GivenTensorFill",
            [],
            ["w"],
            [FakeArgument("shape", ints=[2]), FakeArgument("values", floats=[1.0, 2.0])],
        )
        record = operator_from_caffe2(op)
        assert record.arguments[0].type is ArgumentType.INTS
        assert record.arguments[0].value == (2,)
        assert record.arguments[1].type is ArgumentType.FLOATS
        assert record.arguments[1].value == (1.0, 2.0)

    def test_repeated_strings_raise(self):
        op = fake_op("Foo", [], ["y"], [FakeArgument("names", strings=[b"a"])])
        with pytest.raises(ParseDataError, match="strings"):
            operator_from_caffe2(op)

    def test_network(self):
        net = SimpleNamespace(
            name="net",
            op=[fake_op("Relu", ["x"], ["y"])],
            external_input=["x"],
            external_output=["y"],
        )
        network = network_from_caffe2(net)
        assert network.name == "net"
        assert [op.type for op in network.operators] == ["Relu"]
        assert network.external_inputs == ("x",)
        assert network.external_outputs == ("y",)


class TestFromOnnx:
    """Test conversion of ONNX nodes."""

    def test_attributes(self):
        node = onnx_helper.make_node(
            "Conv",
            inputs=["x", "w"],
            outputs=["y"],
            kernel=3,
            order="NHWC",
            alpha=0.25,
            dims=[1, 2],
            values=[0.5, 1.5],
        )
        record = operator_from_onnx(node)
        values = {arg.name: (arg.type, arg.value) for arg in record.arguments}
        assert values["kernel"] == (ArgumentType.INT, 3)
        assert values["order"] == (ArgumentType.STRING, "NHWC")
        assert values["alpha"][0] is ArgumentType.FLOAT
        assert values["dims"] == (ArgumentType.INTS, (1, 2))
        assert values["values"] == (ArgumentType.FLOATS, (0.5, 1.5))
        assert record.inputs == ("x", "w")

    def test_tensor_attribute_raises(self):
        tensor = onnx_helper.make_tensor("t", TensorProto.FLOAT, [1], [1.0])
        node = onnx_helper.make_node("Conv", inputs=["x"], outputs=["y"], value=tensor)
        with pytest.raises(ParseDataError, match="not supported"):
            operator_from_onnx(node)
