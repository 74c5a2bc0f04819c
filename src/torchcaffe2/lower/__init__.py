"""Stage 3: Lowering.

Materializes weights, resolves tensor names to graph nodes, and lowers every
compute operator into the host graph.
"""

__docformat__ = "restructuredtext"
__all__ = [
    "FILL_KINDS",
    "LoweredNetwork",
    "LoweringSession",
    "NodeResolver",
    "OperatorKind",
    "TensorRegistry",
    "as_tensor",
    "import_network",
    "lower_operator",
    "materialize_weights",
]

from torchcaffe2.lower.dispatcher import lower_operator
from torchcaffe2.lower.kinds import FILL_KINDS, OperatorKind
from torchcaffe2.lower.resolver import NodeResolver
from torchcaffe2.lower.session import LoweredNetwork, LoweringSession, import_network
from torchcaffe2.lower.tensor_registry import TensorRegistry, as_tensor
from torchcaffe2.lower.weights import materialize_weights
