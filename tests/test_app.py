"""Endpoint tests for server.app against an in-process aiohttp server."""

import asyncio
import os
import time
import unittest
from datetime import datetime, timezone
from unittest import mock

from aiohttp.test_utils import AioHTTPTestCase

from server.app import _client_gone, create_app
from server.constants import MIB

STATIC_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "static")
TEST_DURATION = 0.05


class _AppTestCase(AioHTTPTestCase):
    async def get_application(self):
        return create_app(static_dir=STATIC_DIR, test_duration=TEST_DURATION)

    def assert_result_shape(self, body: dict) -> None:
        self.assertEqual(
            set(body), {"download_speed", "upload_speed", "latency", "timestamp"}
        )
        self.assertIsInstance(body["latency"], int)
        ts = datetime.fromisoformat(body["timestamp"])
        self.assertEqual(ts.utcoffset(), timezone.utc.utcoffset(None))


class TestDownloadEndpoint(_AppTestCase):
    async def test_one_megabyte(self):
        async with self.client.get("/api/download", params={"size": "1MB"}) as resp:
            self.assertEqual(resp.status, 200)
            body = await resp.read()
        self.assertEqual(len(body), MIB)

    async def test_clamped(self):
        async with self.client.get("/api/download", params={"size": "500"}) as resp:
            self.assertEqual(resp.status, 200)
            body = await resp.read()
        self.assertEqual(len(body), 100 * MIB)

    async def test_default_size(self):
        async with self.client.get("/api/download") as resp:
            self.assertEqual(resp.status, 200)
            body = await resp.read()
        self.assertEqual(len(body), 10 * MIB)

    async def test_garbage_size_uses_default(self):
        async with self.client.get("/api/download", params={"size": "lots"}) as resp:
            body = await resp.read()
        self.assertEqual(len(body), 10 * MIB)

    async def test_very_long_size_clamped(self):
        async with self.client.get("/api/download", params={"size": "9" * 5000}) as resp:
            self.assertEqual(resp.status, 200)
            body = await resp.read()
        self.assertEqual(len(body), 100 * MIB)

    async def test_zero_size(self):
        async with self.client.get("/api/download", params={"size": "0"}) as resp:
            self.assertEqual(resp.status, 200)
            body = await resp.read()
        self.assertEqual(body, b"")

    async def test_no_cache_headers(self):
        async with self.client.get("/api/download", params={"size": "1"}) as resp:
            self.assertEqual(resp.headers["Content-Type"], "application/octet-stream")
            self.assertEqual(
                resp.headers["Cache-Control"], "no-store, no-cache, must-revalidate"
            )
            self.assertEqual(resp.headers["Pragma"], "no-cache")
            self.assertEqual(resp.headers["Expires"], "0")
            self.assertNotIn("ETag", resp.headers)
            self.assertNotIn("Last-Modified", resp.headers)

    async def test_repeated_requests_never_cached(self):
        lengths = []
        for _ in range(3):
            async with self.client.get(
                "/api/download",
                params={"size": "2MB"},
                headers={"If-None-Match": "*", "If-Modified-Since": "Thu, 01 Jan 2099 00:00:00 GMT"},
            ) as resp:
                self.assertEqual(resp.status, 200)
                lengths.append(len(await resp.read()))
        self.assertEqual(lengths, [2 * MIB] * 3)


class TestUploadEndpoint(_AppTestCase):
    async def test_raw_bytes(self):
        async with self.client.post("/api/upload", data=bytes(1024)) as resp:
            self.assertEqual(resp.status, 200)
            body = await resp.json()
        self.assert_result_shape(body)
        self.assertEqual(body["download_speed"], 0)
        self.assertEqual(body["upload_speed"], 0)
        self.assertEqual(body["latency"], 0)

    async def test_json_body(self):
        async with self.client.post("/api/upload", json={"data": [7] * 1024}) as resp:
            self.assertEqual(resp.status, 200)
            body = await resp.json()
        self.assertEqual(body["upload_speed"], 0)
        self.assertEqual(body["latency"], 0)

    async def test_malformed_json(self):
        async with self.client.post(
            "/api/upload",
            data="{not json",
            headers={"Content-Type": "application/json"},
        ) as resp:
            self.assertEqual(resp.status, 400)
            body = await resp.json()
        self.assertIn("error", body)

    async def test_deeply_nested_json(self):
        async with self.client.post(
            "/api/upload",
            data="[" * 100_000,
            headers={"Content-Type": "application/json"},
        ) as resp:
            self.assertEqual(resp.status, 400)
            body = await resp.json()
        self.assertIn("error", body)

    async def test_wrong_shape(self):
        for payload in ({"data": "abc"}, {"nothing": []}, [1, 2, 3], {"data": [300]}):
            with self.subTest(payload=payload):
                async with self.client.post("/api/upload", json=payload) as resp:
                    self.assertEqual(resp.status, 400)

    async def test_get_not_allowed(self):
        async with self.client.get("/api/upload") as resp:
            self.assertEqual(resp.status, 405)


class TestPingEndpoint(_AppTestCase):
    async def test_ping(self):
        t0 = time.perf_counter()
        async with self.client.get("/api/ping") as resp:
            self.assertEqual(resp.status, 200)
            body = await resp.json()
        self.assertLess(time.perf_counter() - t0, 1.0)
        self.assert_result_shape(body)
        self.assertGreaterEqual(body["latency"], 0)
        self.assertEqual(body["download_speed"], 0)
        self.assertEqual(body["upload_speed"], 0)

    async def test_timestamps_non_decreasing(self):
        stamps = []
        for _ in range(5):
            async with self.client.get("/api/ping") as resp:
                stamps.append(datetime.fromisoformat((await resp.json())["timestamp"]))
        self.assertEqual(stamps, sorted(stamps))


class TestSpeedTestEndpoint(_AppTestCase):
    async def test_combined(self):
        t0 = time.perf_counter()
        async with self.client.get("/api/speedtest") as resp:
            self.assertEqual(resp.status, 200)
            body = await resp.json()
        self.assertGreaterEqual(time.perf_counter() - t0, 2 * TEST_DURATION)
        self.assert_result_shape(body)
        self.assertGreater(body["download_speed"], 0)
        self.assertGreater(body["upload_speed"], 0)
        self.assertGreaterEqual(body["latency"], 0)

    async def test_ping_served_during_speedtest(self):
        # The measurement loops yield, so other requests still get answered.
        async def _speedtest():
            async with self.client.get("/api/speedtest") as resp:
                return resp.status

        speed = asyncio.create_task(_speedtest())
        await asyncio.sleep(0.01)
        async with self.client.get("/api/ping") as resp:
            self.assertEqual(resp.status, 200)
        self.assertFalse(speed.done())
        self.assertEqual(await speed, 200)

    async def test_disconnected_client_stops_measurement(self):
        with mock.patch("server.app._client_gone", return_value=lambda: True), \
                self.assertLogs("server.app", level="INFO") as logs:
            async with self.client.get("/api/speedtest") as resp:
                self.assertEqual(resp.status, 408)
        self.assertTrue(any("disconnected" in line for line in logs.output))


class TestClientGone(unittest.TestCase):
    def test_no_transport(self):
        self.assertTrue(_client_gone(mock.Mock(transport=None))())

    def test_closing_transport(self):
        request = mock.Mock()
        request.transport.is_closing.return_value = True
        self.assertTrue(_client_gone(request)())

    def test_open_transport(self):
        request = mock.Mock()
        request.transport.is_closing.return_value = False
        self.assertFalse(_client_gone(request)())

    def test_checked_on_every_call(self):
        request = mock.Mock()
        request.transport.is_closing.return_value = False
        check = _client_gone(request)
        self.assertFalse(check())
        request.transport = None
        self.assertTrue(check())


class TestCorsAndStatic(_AppTestCase):
    async def test_cors_on_response(self):
        async with self.client.get("/api/ping") as resp:
            self.assertEqual(resp.headers["Access-Control-Allow-Origin"], "*")

    async def test_preflight(self):
        async with self.client.options(
            "/api/upload",
            headers={
                "Origin": "http://example.com",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "content-type",
            },
        ) as resp:
            self.assertEqual(resp.status, 200)
            self.assertEqual(resp.headers["Access-Control-Allow-Origin"], "*")
            self.assertIn("POST", resp.headers["Access-Control-Allow-Methods"])
            self.assertEqual(resp.headers["Access-Control-Allow-Headers"], "content-type")

    async def test_cors_on_error(self):
        async with self.client.post("/api/upload", json={"bad": 1}) as resp:
            self.assertEqual(resp.status, 400)
            self.assertEqual(resp.headers["Access-Control-Allow-Origin"], "*")

    async def test_index(self):
        async with self.client.get("/") as resp:
            self.assertEqual(resp.status, 200)
            self.assertIn("LAN Speedtest", await resp.text())

    async def test_static_asset(self):
        async with self.client.get("/static/style.css") as resp:
            self.assertEqual(resp.status, 200)


class TestApiOnlyApp(AioHTTPTestCase):
    async def get_application(self):
        return create_app(static_dir="/nonexistent/static/dir", test_duration=TEST_DURATION)

    async def test_index_missing(self):
        async with self.client.get("/") as resp:
            self.assertEqual(resp.status, 404)

    async def test_api_still_served(self):
        async with self.client.get("/api/ping") as resp:
            self.assertEqual(resp.status, 200)


if __name__ == "__main__":
    unittest.main()
