"""Video provider interfaces."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from reelstudio.schemas.job import JobStatus


class ProviderError(Exception):
    """Raised when the provider cannot be reached or returns an unusable answer."""


@dataclass(slots=True, frozen=True)
class ProviderSubmission:
    model: str
    prompt: str
    resolution: str | None
    duration_sec: int


@dataclass(slots=True, frozen=True)
class ProviderTaskResult:
    """Provider task state normalized to job statuses (generating, done or failed)."""

    task_id: str
    status: JobStatus
    result_url: str | None = None
    error_message: str | None = None


class VideoProvider(ABC):
    """Provider-neutral task submission and status polling."""

    @abstractmethod
    def submit(self, submission: ProviderSubmission) -> str:
        """Start a generation task and return the provider task id."""

    @abstractmethod
    def query_status(self, *, model: str, task_id: str) -> ProviderTaskResult:
        """Return the current state of a previously submitted task."""

    def close(self) -> None:
        """Release network resources held by the adapter."""


__all__ = ["ProviderError", "ProviderSubmission", "ProviderTaskResult", "VideoProvider"]
