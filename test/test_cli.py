#!/usr/bin/env python3
import io
import json
import os
import shutil
import sys
import tempfile
import unittest
from contextlib import redirect_stdout
from unittest import mock

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import main  # noqa: E402


class TestCli(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def write(self, name, content):
        path = os.path.join(self.tmpdir, name)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(content)
        return path

    def test_print_reply(self):
        payload = {"incident": {"policy_name": "P", "url": "U", "summary": "S", "state": "closed"}}
        path = self.write("alert.json", json.dumps(payload))
        out = io.StringIO()
        with redirect_stdout(out):
            rc = main.main(["print-reply", "--input-filename", path])
        self.assertEqual(rc, 0)
        self.assertEqual(out.getvalue(), "✅ P [incident](U)\n\nS\n")

    def test_split_bind_addr(self):
        self.assertEqual(main.split_bind_addr("127.0.0.1:9999"), ("127.0.0.1", 9999))
        self.assertEqual(main.split_bind_addr("0.0.0.0:80"), ("0.0.0.0", 80))
        for bad in ("9999", ":9999", "localhost:", "localhost:http"):
            with self.assertRaises(ValueError, msg=bad):
                main.split_bind_addr(bad)

    def test_serve_refuses_malformed_registry(self):
        db = self.write("db.json", "{not json")
        with mock.patch('main.create_app') as create_app:
            rc = main.main(["serve", "--server-name", "bridge.example.com", "--db", db])
        self.assertEqual(rc, 1)
        create_app.assert_not_called()

    def test_serve_requires_server_name(self):
        with mock.patch('main.create_app') as create_app:
            rc = main.main(["serve", "--server-name", "", "--db", os.path.join(self.tmpdir, "db.json")])
        self.assertEqual(rc, 2)
        create_app.assert_not_called()

    def test_serve_runs_app_and_stops_dispatcher(self):
        db = os.path.join(self.tmpdir, "db.json")
        with mock.patch('main.create_app') as create_app, \
                mock.patch('main.DeliveryDispatcher') as dispatcher_cls:
            rc = main.main(["serve", "--server-name", "bridge.example.com", "--bind-addr", "0.0.0.0:8080",
                            "--db", db])
        self.assertEqual(rc, 0)
        create_app.return_value.run.assert_called_once_with(
            host="0.0.0.0", port=8080, debug=main.DEBUG_MODE, use_reloader=False, threaded=True,
        )
        dispatcher_cls.return_value.start.assert_called_once_with()
        dispatcher_cls.return_value.stop.assert_called_once_with(wait=30)


if __name__ == '__main__':
    unittest.main()
