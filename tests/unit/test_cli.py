import json
import os
import tempfile
import unittest
from contextlib import redirect_stdout
from dataclasses import replace
from io import StringIO
from unittest import mock
from unittest.mock import patch

import httpx

from tringqr import cli
from tringqr.app import AppContext
from tringqr.auth.credentials import StaticCredentialProvider
from tringqr.config import settings as settings_module
from tringqr.config.settings import Settings
from tringqr.history.identity import KeyStore


def _run(argv):
    buffer = StringIO()
    with redirect_stdout(buffer):
        code = cli.main(argv)
    return code, buffer.getvalue()


class CliClassifyTests(unittest.TestCase):
    def test_payment_payload(self):
        code, output = _run(["classify", "upi://pay?pa=x@bank&pn=Test"])
        self.assertEqual(code, 0)
        described = json.loads(output)
        self.assertEqual(described["kind"], "payment")
        self.assertTrue(described["target"].endswith("pa=x@bank&pn=Test&source=upi_qr"))

    def test_text_payload(self):
        code, output = _run(["classify", "hello world"])
        self.assertEqual(code, 0)
        self.assertTrue(json.loads(output)["target"].endswith("q=hello%20world"))

    def test_link_payload(self):
        _, output = _run(["classify", "https://example.com/x"])
        self.assertEqual(json.loads(output), {"kind": "link", "target": "https://example.com/x"})

    def test_payment_without_parameters(self):
        with patch("sys.stderr", new_callable=StringIO):
            code, output = _run(["classify", "upi://pay"])
        self.assertEqual(code, 2)
        self.assertEqual(output, "")

    def test_no_command_prints_help(self):
        code, output = _run([])
        self.assertEqual(code, 1)
        self.assertIn("tringqr-cli", output)


class CliHistoryTests(unittest.TestCase):
    def _context(self, status, body):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        settings = replace(Settings.from_env(), api_base_url="https://api.test/v1")
        transport = httpx.MockTransport(lambda request: httpx.Response(status, json=body))
        return AppContext.create(
            settings,
            credentials=StaticCredentialProvider("tok"),
            http_client=httpx.Client(base_url=settings.api_base_url, transport=transport),
            keystore=KeyStore(tmp.name),
            log_level=None,
        )

    def test_prints_reloaded_scans(self):
        context = self._context(
            200,
            {"items": [{"_id": "1", "code": "abc", "updatedAt": "2025-01-01T00:00:00.000+0000"}]},
        )
        with patch.object(cli.AppContext, "create", return_value=context), patch.object(
            cli, "configure_logging"
        ):
            code, output = _run(["history", "scans"])
        self.assertEqual(code, 0)
        row = json.loads(output.strip())
        self.assertEqual(row["id"], "1")
        self.assertEqual(row["key"], "abc")
        self.assertEqual(row["timestamp"], "2025-01-01T00:00:00+00:00")

    def test_failed_reload_exits_non_zero(self):
        context = self._context(500, {})
        with patch.object(cli.AppContext, "create", return_value=context), patch.object(
            cli, "configure_logging"
        ):
            code, output = _run(["history", "codes"])
        self.assertEqual(code, 1)
        self.assertEqual(output, "")

    def test_missing_refresh_token_exits_non_zero(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        env = {
            "TRINGQR_KEYSTORE_DIR": tmp.name,
            "TRINGQR_REFRESH_TOKEN": "",
            "TRINGQR_API_KEY": "",
        }
        with mock.patch.dict(os.environ, env, clear=True), patch.object(
            settings_module, "_settings", None
        ), patch.object(cli, "configure_logging"):
            code, output = _run(["history", "scans"])
        self.assertEqual(code, 1)
        self.assertEqual(output, "")


if __name__ == "__main__":
    unittest.main()
