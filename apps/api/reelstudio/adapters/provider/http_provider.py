"""HTTP adapter for an Ark-style asynchronous video generation task API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from reelstudio.adapters.provider.base import ProviderError, ProviderSubmission, ProviderTaskResult, VideoProvider
from reelstudio.core.logging_config import safe_log_identifier
from reelstudio.schemas.job import JobStatus

logger = logging.getLogger(__name__)

_TASKS_PATH = "/contents/generations/tasks"

MODEL_IDS: dict[str, str] = {
    "seedance_2_0": "doubao-seedance-2-0-t2v-250610",
    "seedance_1_5_pro": "doubao-seedance-1-5-pro-251215",
    "seedance_1_0_pro": "doubao-seedance-1-0-pro-250528",
}

_MIN_DURATION_SEC = 4
_MAX_DURATION_SEC: dict[str, int] = {
    "seedance_2_0": 15,
    "seedance_1_5_pro": 12,
    "seedance_1_0_pro": 12,
}
_DEFAULT_MAX_DURATION_SEC = 12

_FAILED_TASK_STATES = frozenset({"failed", "cancelled", "expired"})


def clamp_duration(model: str, duration_sec: int) -> int:
    upper = _MAX_DURATION_SEC.get(model, _DEFAULT_MAX_DURATION_SEC)
    return min(max(round(duration_sec), _MIN_DURATION_SEC), upper)


class HttpVideoProvider(VideoProvider):
    """Talks to the provider over httpx; every transport or protocol failure becomes ProviderError."""

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str | None,
        timeout_seconds: float,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._has_api_key = bool(api_key)
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout_seconds,
            transport=transport,
        )

    def submit(self, submission: ProviderSubmission) -> str:
        model_id = MODEL_IDS.get(submission.model)
        if model_id is None:
            raise ProviderError(f"Unsupported provider model: {submission.model}")

        body = {
            "model": model_id,
            "content": [{"type": "text", "text": submission.prompt}],
            "resolution": "1080p" if submission.resolution == "1080p" else "720p",
            "ratio": "16:9",
            "duration": clamp_duration(submission.model, submission.duration_sec),
            "seed": -1,
            "watermark": False,
            "camera_fixed": False,
        }
        payload = self._request("POST", _TASKS_PATH, json=body)
        task_id = payload.get("id")
        if not isinstance(task_id, str) or not task_id:
            raise ProviderError("Provider accepted the task but returned no task id")

        logger.info(
            "provider.submitted model=%s task_id=%s",
            submission.model,
            safe_log_identifier(task_id, prefix="tid"),
        )
        return task_id

    def query_status(self, *, model: str, task_id: str) -> ProviderTaskResult:
        payload = self._request("GET", f"{_TASKS_PATH}/{task_id}")
        state = str(payload.get("status") or "pending")

        if state == "succeeded":
            return ProviderTaskResult(
                task_id=task_id,
                status=JobStatus.DONE,
                result_url=self._video_url(payload.get("content")),
            )
        if state in _FAILED_TASK_STATES:
            error = payload.get("error") or {}
            message = error.get("message") if isinstance(error, dict) else None
            return ProviderTaskResult(
                task_id=task_id,
                status=JobStatus.FAILED,
                error_message=message or f"Task {state}",
            )
        return ProviderTaskResult(task_id=task_id, status=JobStatus.GENERATING)

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, *, json: dict[str, Any] | None = None) -> dict[str, Any]:
        if not self._has_api_key:
            raise ProviderError("Provider API key is not configured")

        try:
            response = self._client.request(method, path, json=json)
        except httpx.HTTPError as exc:
            logger.warning("provider.request_failed method=%s path=%s reason=%s", method, path, type(exc).__name__)
            raise ProviderError(f"Provider request failed: {type(exc).__name__}") from exc

        if response.status_code >= 400:
            logger.warning("provider.request_rejected method=%s status_code=%s", method, response.status_code)
            raise ProviderError(f"Provider API error {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderError("Provider returned a non-JSON response") from exc
        if not isinstance(payload, dict):
            raise ProviderError("Provider returned an unexpected response shape")
        return payload

    @staticmethod
    def _video_url(content: Any) -> str | None:
        if isinstance(content, dict):
            content = [content]
        if not isinstance(content, list):
            return None
        for item in content:
            if not isinstance(item, dict):
                continue
            video = item.get("video_url")
            if isinstance(video, dict) and video.get("url"):
                return str(video["url"])
            if isinstance(video, str) and video:
                return video
        return None


__all__ = ["HttpVideoProvider", "MODEL_IDS", "clamp_duration"]
