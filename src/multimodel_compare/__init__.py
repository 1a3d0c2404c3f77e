from .catalog import DEFAULT_MODELS, available_models
from .classifier import classify
from .config import OrchestratorConfig
from .contracts import (
    BatchAggregate,
    BatchResult,
    CompletionResult,
    ErrorKind,
    InferenceRequest,
    ModelResolution,
    ProviderKind,
    TokenUsage,
)
from .errors import InvalidArgumentError
from .fallback import generate_fallback
from .normalize import normalize
from .orchestrator import Orchestrator

__all__ = [
    "BatchAggregate",
    "BatchResult",
    "CompletionResult",
    "DEFAULT_MODELS",
    "ErrorKind",
    "InferenceRequest",
    "InvalidArgumentError",
    "ModelResolution",
    "Orchestrator",
    "OrchestratorConfig",
    "ProviderKind",
    "TokenUsage",
    "available_models",
    "classify",
    "generate_fallback",
    "normalize",
]
