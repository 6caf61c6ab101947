from __future__ import annotations

import json
import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path

_PAGE = """\
<html><head>
<meta property="og:image" content="https://cdn.example.com/og.jpg">
</head><body>
<script>window._sharedData = {"entry_data": {"PostPage": [{"graphql": {"shortcode_media": {
  "__typename": "GraphImage",
  "shortcode": "CliTest1",
  "display_url": "https://cdn.example.com/full.jpg",
  "edge_media_to_caption": {"edges": [{"node": {"text": "CLI {caption}"}}]},
  "owner": {"username": "cli_user"}
}}}]}};</script>
</body></html>
"""


def _run_cli(*args: str, stdin: str | None = None) -> subprocess.CompletedProcess[str]:
    repo_root = Path(__file__).resolve().parents[1]

    env = dict(os.environ)
    existing_pp = env.get("PYTHONPATH", "")
    env["PYTHONPATH"] = (
        f"{repo_root}{os.pathsep}{existing_pp}" if existing_pp else str(repo_root)
    )

    return subprocess.run(
        [sys.executable, "-m", "ig_extract", *args],
        cwd=repo_root,
        env=env,
        input=stdin,
        capture_output=True,
        text=True,
    )


class TestCLISmoke(unittest.TestCase):
    def test_extract_html_file(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            page = Path(td) / "post.html"
            page.write_text(_PAGE, encoding="utf-8")

            proc = _run_cli("extract", "--input", str(page))

        self.assertEqual(proc.returncode, 0, msg=proc.stderr)
        data = json.loads(proc.stdout)
        self.assertEqual(data["shortcode"], "CliTest1")
        self.assertEqual(data["displayUrl"], "https://cdn.example.com/full.jpg")
        self.assertEqual(data["caption"], "CLI {caption}")
        self.assertEqual(data["username"], "cli_user")
        self.assertEqual(len(data["media"]), 1)

    def test_extract_not_found_exit_code(self) -> None:
        proc = _run_cli("extract", "--input", "-", stdin='{"status": "fail"}')
        self.assertEqual(proc.returncode, 3)
        self.assertIn("No known payload shape", proc.stderr)

    def test_extract_missing_config(self) -> None:
        proc = _run_cli(
            "extract", "--input", "-", "--config", "does-not-exist.yaml", stdin="{}"
        )
        self.assertEqual(proc.returncode, 2)

    def test_extract_deeply_nested_extra_is_parse_failure(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            extra = Path(td) / "extra.json"
            extra.write_text("[" * 200_000 + "]" * 200_000, encoding="utf-8")

            proc = _run_cli("extract", "--input", "-", "--extra", str(extra), stdin="{}")

        self.assertEqual(proc.returncode, 3, msg=proc.stderr)
        self.assertIn("Invalid JSON", proc.stderr)

    def test_extract_with_infinite_numbers(self) -> None:
        payload = (
            '{"graphql": {"shortcode_media": {"shortcode": "Inf1",'
            '"display_resources": [{"src": "https://cdn.example.com/a.jpg", "width": 1e400, "height": 10}],'
            '"taken_at_timestamp": 1e400}}}'
        )
        proc = _run_cli("extract", "--input", "-", stdin=payload)

        self.assertEqual(proc.returncode, 0, msg=proc.stderr)
        data = json.loads(proc.stdout)
        self.assertEqual(data["displayUrl"], "https://cdn.example.com/a.jpg")
        self.assertIsNone(data["timestamp"])

    def test_urls_from_stdin(self) -> None:
        text = "a https://instagram.com/reels/R1/, b (https://instagr.am/p/P2/)."
        proc = _run_cli("urls", stdin=text)
        self.assertEqual(proc.returncode, 0, msg=proc.stderr)
        self.assertEqual(
            proc.stdout.splitlines(),
            ["https://www.instagram.com/reel/R1/", "https://www.instagram.com/p/P2/"],
        )

    def test_url_command(self) -> None:
        proc = _run_cli("url", "instagram.com/share/p/BA/")
        self.assertEqual(proc.returncode, 0, msg=proc.stderr)
        self.assertIn("url=https://www.instagram.com/p/BA/", proc.stdout)
        self.assertIn("shortcode=BA", proc.stdout)
        self.assertIn("media_id=64", proc.stdout)

        proc = _run_cli("url", "https://www.instagram.com/someone/")
        self.assertEqual(proc.returncode, 3)

    def test_decode_and_encode(self) -> None:
        proc = _run_cli("decode", "BA")
        self.assertEqual(proc.returncode, 0, msg=proc.stderr)
        self.assertEqual(proc.stdout.strip(), "64")

        proc = _run_cli("encode", "64")
        self.assertEqual(proc.stdout.strip(), "BA")

        proc = _run_cli("decode", "AB!C")
        self.assertEqual(proc.returncode, 3)


if __name__ == "__main__":
    unittest.main()
