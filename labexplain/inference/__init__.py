from labexplain.inference.client_base import BaseInferenceClient
from labexplain.inference.factory import GatewayFactory
from labexplain.inference.gateway import InferenceGateway
from labexplain.inference.models import Explanation, GatewayState, Method, NormalizedAIResult

__all__ = [
    "BaseInferenceClient",
    "Explanation",
    "GatewayFactory",
    "GatewayState",
    "InferenceGateway",
    "Method",
    "NormalizedAIResult",
]
