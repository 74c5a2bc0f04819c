__docformat__ = "restructuredtext"
__version__ = "2026.1.0"
__all__ = [
    "LoweredNetwork",
    "TorchCaffe2",
    "import_network",
]

from torchcaffe2._torchcaffe2 import TorchCaffe2
from torchcaffe2.lower import LoweredNetwork, import_network
