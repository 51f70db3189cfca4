"""HTTP video provider adapter tests against a scripted transport."""

from __future__ import annotations

import json
import unittest

import httpx

from reelstudio.adapters.provider import HttpVideoProvider, ProviderError, ProviderSubmission
from reelstudio.adapters.provider.http_provider import clamp_duration
from reelstudio.schemas.job import JobStatus

_BASE_URL = "https://ark.example.test/api/v3"


class HttpVideoProviderTests(unittest.TestCase):
    def setUp(self) -> None:
        self.requests: list[httpx.Request] = []
        self.responder = lambda request: httpx.Response(200, json={"id": "cgt-123", "status": "queued"})

    def provider(self, *, api_key: str | None = "ark-key") -> HttpVideoProvider:
        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return self.responder(request)

        provider = HttpVideoProvider(
            base_url=_BASE_URL,
            api_key=api_key,
            timeout_seconds=5,
            transport=httpx.MockTransport(handler),
        )
        self.addCleanup(provider.close)
        return provider

    def test_submit_posts_task_with_provider_model_id_and_clamped_duration(self) -> None:
        task_id = self.provider().submit(
            ProviderSubmission(model="seedance_2_0", prompt="Rooftop chase", resolution="1080p", duration_sec=30)
        )

        self.assertEqual(task_id, "cgt-123")
        request = self.requests[0]
        self.assertEqual(request.method, "POST")
        self.assertEqual(request.url.path, "/api/v3/contents/generations/tasks")
        self.assertEqual(request.headers["Authorization"], "Bearer ark-key")
        body = json.loads(request.content)
        self.assertEqual(body["model"], "doubao-seedance-2-0-t2v-250610")
        self.assertEqual(body["duration"], 15)
        self.assertEqual(body["resolution"], "1080p")
        self.assertEqual(body["content"], [{"type": "text", "text": "Rooftop chase"}])

    def test_duration_is_clamped_per_model(self) -> None:
        self.assertEqual(clamp_duration("seedance_2_0", 2), 4)
        self.assertEqual(clamp_duration("seedance_1_5_pro", 15), 12)
        self.assertEqual(clamp_duration("seedance_1_0_pro", 8), 8)

    def test_unknown_model_is_rejected_without_a_request(self) -> None:
        with self.assertRaises(ProviderError):
            self.provider().submit(
                ProviderSubmission(model="jimeng_3_0", prompt="x", resolution="720p", duration_sec=5)
            )
        self.assertEqual(self.requests, [])

    def test_missing_api_key_is_a_provider_error(self) -> None:
        with self.assertRaises(ProviderError):
            self.provider(api_key=None).query_status(model="seedance_2_0", task_id="cgt-1")
        self.assertEqual(self.requests, [])

    def test_missing_task_id_in_submit_response_is_a_provider_error(self) -> None:
        self.responder = lambda request: httpx.Response(200, json={"status": "queued"})

        with self.assertRaises(ProviderError):
            self.provider().submit(
                ProviderSubmission(model="seedance_2_0", prompt="x", resolution="720p", duration_sec=5)
            )

    def test_query_status_maps_provider_states(self) -> None:
        cases = [
            (
                {"status": "succeeded", "content": {"video_url": "https://cdn.example.test/out.mp4"}},
                JobStatus.DONE,
                "https://cdn.example.test/out.mp4",
                None,
            ),
            (
                {"status": "succeeded", "content": [{"type": "video_url", "video_url": {"url": "https://cdn/x.mp4"}}]},
                JobStatus.DONE,
                "https://cdn/x.mp4",
                None,
            ),
            ({"status": "failed", "error": {"message": "policy"}}, JobStatus.FAILED, None, "policy"),
            ({"status": "expired"}, JobStatus.FAILED, None, "Task expired"),
            ({"status": "running"}, JobStatus.GENERATING, None, None),
            ({}, JobStatus.GENERATING, None, None),
        ]
        for payload, status, result_url, error_message in cases:
            with self.subTest(payload=payload):
                self.responder = lambda request, payload=payload: httpx.Response(200, json=payload)

                result = self.provider().query_status(model="seedance_2_0", task_id="cgt-9")

                self.assertEqual(result.status, status)
                self.assertEqual(result.result_url, result_url)
                self.assertEqual(result.error_message, error_message)
        self.assertEqual(self.requests[-1].url.path, "/api/v3/contents/generations/tasks/cgt-9")

    def test_http_and_transport_failures_become_provider_errors(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        def time_out(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        responders = {
            "server error": lambda request: httpx.Response(500, json={"error": "boom"}),
            "not json": lambda request: httpx.Response(200, text="<html>"),
            "connect error": refuse,
            "timeout": time_out,
        }
        for label, responder in responders.items():
            with self.subTest(label):
                self.responder = responder
                with self.assertRaises(ProviderError):
                    self.provider().query_status(model="seedance_2_0", task_id="cgt-1")


if __name__ == "__main__":
    unittest.main()
