"""Operator argument lookup and typed accessors."""

__docformat__ = "restructuredtext"
__all__ = ["ArgumentDictionary", "channel_axis"]

from collections.abc import Iterator
from typing import Any

from torchcaffe2.build import Argument, ArgumentType, OperatorRecord
from torchcaffe2.errors import MissingArgumentError, TypeMismatchError, UnsupportedOperatorError
from torchcaffe2.presets import DEFAULT_ORDER, ORDER_TO_CHANNEL

# Marks an accessor call without a default: the argument is required
_REQUIRED: Any = object()


class ArgumentDictionary:
    """Random-access view over an operator record's argument list.

    Later arguments with the same name replace earlier ones.

    :param record: Operator record to index
    """

    def __init__(self, record: OperatorRecord):
        self.record = record
        self._args: dict[str, Argument] = {}
        for arg in record.arguments:
            self._args[arg.name] = arg

    def __contains__(self, name: object) -> bool:
        return name in self._args

    def __len__(self) -> int:
        return len(self._args)

    def __iter__(self) -> Iterator[str]:
        return iter(self._args)

    def get_argument(self, name: str) -> Argument | None:
        return self._args.get(name)

    def _load(self, name: str, expected: ArgumentType, default: Any) -> Any:
        arg = self._args.get(name)
        if arg is None:
            if default is _REQUIRED:
                raise MissingArgumentError(self.record.type, name)
            return default
        if arg.type is not expected:
            raise TypeMismatchError(self.record.type, name, expected.name, arg.type.name)
        return arg.value

    def get_int(self, name: str, default: int = _REQUIRED) -> int:
        """Read an INT argument.

        :param name: Argument name
        :param default: Value returned when absent; omit to make the argument required
        :return: Integer value
        """
        return self._load(name, ArgumentType.INT, default)

    def get_float(self, name: str, default: float = _REQUIRED) -> float:
        """Read a FLOAT argument."""
        return self._load(name, ArgumentType.FLOAT, default)

    def get_string(self, name: str, default: str = _REQUIRED) -> str:
        """Read a STRING argument."""
        return self._load(name, ArgumentType.STRING, default)

    def get_floats(self, name: str, default: tuple[float, ...] = _REQUIRED) -> tuple[float, ...]:
        """Read a FLOATS argument."""
        return tuple(self._load(name, ArgumentType.FLOATS, default))

    def get_shape(self, name: str, default: tuple[int, ...] = _REQUIRED) -> tuple[int, ...]:
        """Read an INTS argument as a list of dimension sizes.

        :param name: Argument name
        :param default: Value returned when absent; omit to make the argument required
        :return: Dimension sizes
        """
        return tuple(self._load(name, ArgumentType.INTS, default))


def channel_axis(args: ArgumentDictionary) -> int:
    """Translate the "order" argument into the channel axis.

    "NHWC" maps to 3 and "NCHW" to 1; Caffe2 assumes "NCHW" when absent.

    :param args: Argument dictionary of the operator
    :return: Channel axis
    """
    order = args.get_string("order", DEFAULT_ORDER)
    if order not in ORDER_TO_CHANNEL:
        raise UnsupportedOperatorError(f"Invalid order field '{order}'", args.record)
    return ORDER_TO_CHANNEL[order]
