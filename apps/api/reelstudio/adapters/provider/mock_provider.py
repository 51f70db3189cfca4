"""In-process provider for local development and tests."""

from __future__ import annotations

from itertools import count
from threading import Lock

from reelstudio.adapters.provider.base import ProviderError, ProviderSubmission, ProviderTaskResult, VideoProvider
from reelstudio.schemas.job import JobStatus


class MockVideoProvider(VideoProvider):
    """Deterministic provider whose task outcomes are scripted by the caller.

    Submitted tasks report ``generating`` until ``complete`` or ``fail`` is
    called. ``fail_submissions`` and ``fail_queries`` make the matching calls
    raise ``ProviderError``.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._ids = count(1)
        self._results: dict[str, ProviderTaskResult] = {}
        self.submissions: list[ProviderSubmission] = []
        self.query_calls = 0
        self.fail_submissions = False
        self.fail_queries = False
        self.closed = False

    def submit(self, submission: ProviderSubmission) -> str:
        with self._lock:
            if self.fail_submissions:
                raise ProviderError("Mock provider rejected the submission")
            task_id = f"mock-task-{next(self._ids)}"
            self.submissions.append(submission)
            self._results[task_id] = ProviderTaskResult(task_id=task_id, status=JobStatus.GENERATING)
            return task_id

    def query_status(self, *, model: str, task_id: str) -> ProviderTaskResult:
        with self._lock:
            self.query_calls += 1
            if self.fail_queries:
                raise ProviderError("Mock provider query failed")
            result = self._results.get(task_id)
        if result is None:
            raise ProviderError(f"Unknown task: {task_id}")
        return result

    def close(self) -> None:
        self.closed = True

    def set_status(self, task_id: str, status: JobStatus) -> None:
        with self._lock:
            self._results[task_id] = ProviderTaskResult(task_id=task_id, status=status)

    def complete(self, task_id: str, result_url: str | None = None) -> None:
        with self._lock:
            self._results[task_id] = ProviderTaskResult(
                task_id=task_id,
                status=JobStatus.DONE,
                result_url=result_url or f"https://cdn.example.test/{task_id}.mp4",
            )

    def fail(self, task_id: str, error_message: str = "Task failed") -> None:
        with self._lock:
            self._results[task_id] = ProviderTaskResult(
                task_id=task_id,
                status=JobStatus.FAILED,
                error_message=error_message,
            )


__all__ = ["MockVideoProvider"]
