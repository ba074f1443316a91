#!/usr/bin/env python3
import threading
import time
import unittest
from unittest import mock

import requests

from bridge.services import DeliveryDispatcher, send_twist_payload


class TestSendTwistPayload(unittest.TestCase):
    @mock.patch('bridge.services.requests.post')
    def test_posts_json_content_with_timeout(self, post):
        post.return_value = mock.Mock(status_code=200, text='')
        send_twist_payload("http://x/y", "olá", timeout=3)
        post.assert_called_once_with("http://x/y", json={"content": "olá"}, timeout=3)

    @mock.patch('bridge.services.requests.post')
    def test_non_2xx_is_logged(self, post):
        post.return_value = mock.Mock(status_code=404, text='not found')
        with self.assertLogs('bridge.services', level='WARNING') as logs:
            send_twist_payload("http://x/y", "olá")
        self.assertIn("404", logs.output[0])


class TestDeliveryDispatcher(unittest.TestCase):
    def setUp(self):
        self.dispatcher = DeliveryDispatcher(timeout=1, max_workers=4)
        self.dispatcher.start()

    def tearDown(self):
        self.dispatcher.stop(wait=5)

    @mock.patch('bridge.services.requests.post')
    def test_delivers_every_submitted_message(self, post):
        post.return_value = mock.Mock(status_code=200, text='')
        for i in range(3):
            self.dispatcher.submit(f"http://x/{i}", f"msg {i}")
        self.dispatcher.join_pending()
        self.assertEqual(sorted(c.args[0] for c in post.call_args_list), ["http://x/0", "http://x/1", "http://x/2"])

    @mock.patch('bridge.services.requests.post')
    def test_network_failure_is_logged_and_worker_survives(self, post):
        post.side_effect = [requests.ConnectionError("recusado"), mock.Mock(status_code=200, text='')]
        with self.assertLogs('bridge.services', level='ERROR') as logs:
            self.dispatcher.submit("http://down/", "a")
            self.dispatcher.join_pending()
        self.assertIn("http://down/", logs.output[0])

        self.dispatcher.submit("http://up/", "b")
        self.dispatcher.join_pending()
        self.assertEqual(post.call_count, 2)
        self.assertTrue(self.dispatcher.is_alive())

    @mock.patch('bridge.services.requests.post')
    def test_unexpected_error_does_not_kill_worker(self, post):
        post.side_effect = [RuntimeError("bug"), mock.Mock(status_code=200, text='')]
        with self.assertLogs('bridge.services', level='ERROR'):
            self.dispatcher.submit("http://x/", "a")
            self.dispatcher.join_pending()
        self.dispatcher.submit("http://x/", "b")
        self.dispatcher.join_pending()
        self.assertEqual(post.call_count, 2)

    def test_stop_shuts_down_pool(self):
        self.dispatcher.stop(wait=5)
        self.assertFalse(self.dispatcher.is_alive())
        with self.assertRaises(RuntimeError):
            self.dispatcher.submit("http://x/", "depois do stop")

    @mock.patch('bridge.services.requests.post')
    def test_slow_target_does_not_delay_other_installations(self, post):
        delivered_at = {}
        release = threading.Event()

        def fake_post(url, json, timeout):
            if url.startswith("http://lento/"):
                release.wait(2)
            delivered_at[url] = time.monotonic()
            return mock.Mock(status_code=200, text='')

        post.side_effect = fake_post
        started = time.monotonic()
        for i in range(3):
            self.dispatcher.submit(f"http://lento/{i}", "a")
        self.dispatcher.submit("http://rapido/", "b")

        deadline = started + 1.0
        while "http://rapido/" not in delivered_at and time.monotonic() < deadline:
            time.sleep(0.01)
        release.set()
        self.dispatcher.join_pending()

        self.assertIn("http://rapido/", delivered_at)
        self.assertLess(delivered_at["http://rapido/"] - started, 1.0)
        self.assertTrue(all(delivered_at[f"http://lento/{i}"] >= delivered_at["http://rapido/"] for i in range(3)))


if __name__ == '__main__':
    unittest.main()
