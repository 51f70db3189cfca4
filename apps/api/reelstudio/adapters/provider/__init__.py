"""Video generation provider adapters."""

from .base import ProviderError, ProviderSubmission, ProviderTaskResult, VideoProvider
from .http_provider import HttpVideoProvider
from .mock_provider import MockVideoProvider

__all__ = [
    "ProviderError",
    "ProviderSubmission",
    "ProviderTaskResult",
    "VideoProvider",
    "HttpVideoProvider",
    "MockVideoProvider",
]
