"""Error taxonomy for Caffe2 network lowering.

Every error aborts the whole import. The classes also derive from the builtin
exception closest in meaning so callers can catch either.
"""

__docformat__ = "restructuredtext"
__all__ = [
    "Caffe2ImportError",
    "MissingArgumentError",
    "MissingExternalOutputError",
    "ParseDataError",
    "ShapeMismatchError",
    "TypeMismatchError",
    "UnknownNodeError",
    "UnknownTensorError",
    "UnsupportedOperatorError",
]

from typing import Any


class Caffe2ImportError(Exception):
    """Base class for all lowering failures."""


class ParseDataError(Caffe2ImportError, ValueError):
    """Malformed record content (bad arity, unsupported argument payload)."""


class ShapeMismatchError(ParseDataError):
    """Number of serialized values does not match the declared shape."""


class MissingArgumentError(Caffe2ImportError, ValueError):
    """A required operator argument is absent."""

    def __init__(self, op_type: str, arg_name: str):
        self.op_type = op_type
        self.arg_name = arg_name
        super().__init__(f"{op_type} requires argument '{arg_name}'")


class TypeMismatchError(Caffe2ImportError, TypeError):
    """An argument is stored with a different type than requested."""

    def __init__(self, op_type: str, arg_name: str, expected: str, actual: str):
        self.op_type = op_type
        self.arg_name = arg_name
        super().__init__(
            f"{op_type} argument '{arg_name}' holds {actual} value, expected {expected}"
        )


class UnsupportedOperatorError(Caffe2ImportError, NotImplementedError):
    """Unknown operator kind or unsupported option combination.

    The message carries a text rendering of the offending record.

    :param message: Short description of the problem
    :param record: Offending operator record (anything with ``to_text()``)
    """

    def __init__(self, message: str, record: Any = None):
        self.record = record
        if record is not None:
            message = f"{message}\n{record.to_text()}"
        super().__init__(message)


class UnknownTensorError(Caffe2ImportError, LookupError):
    """No constant tensor is registered under the requested name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"There is no tensor registered with the name '{name}'")


class UnknownNodeError(Caffe2ImportError, LookupError):
    """No graph node has been produced under the requested name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Could not find a node with the name '{name}'")


class MissingExternalOutputError(Caffe2ImportError, ValueError):
    """The network declares no external output."""
