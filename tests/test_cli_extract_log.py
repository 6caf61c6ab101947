from __future__ import annotations

import json
import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path


class TestExtractCommandWritesLog(unittest.TestCase):
    def _events(self, log_path: Path) -> list[str]:
        events: list[str] = []
        for ln in log_path.read_text(encoding="utf-8").splitlines():
            if not ln.strip():
                continue
            try:
                obj = json.loads(ln)
            except ValueError:
                continue
            ev = obj.get("event")
            if isinstance(ev, str):
                events.append(ev)
        return events

    def _run(self, td: str, payload: str, *extra_args: str) -> tuple[subprocess.CompletedProcess[str], Path]:
        repo_root = Path(__file__).resolve().parents[1]
        payload_path = Path(td) / "payload.json"
        payload_path.write_text(payload, encoding="utf-8")
        log_path = Path(td) / "out" / "extract.log"

        env = dict(os.environ)
        existing_pp = env.get("PYTHONPATH", "")
        env["PYTHONPATH"] = (
            f"{repo_root}{os.pathsep}{existing_pp}" if existing_pp else str(repo_root)
        )

        proc = subprocess.run(
            [
                sys.executable,
                "-m",
                "ig_extract",
                "extract",
                "--input",
                str(payload_path),
                "--log",
                str(log_path),
                *extra_args,
            ],
            cwd=repo_root,
            env=env,
            capture_output=True,
            text=True,
        )
        return proc, log_path

    def test_failure_is_logged(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            proc, log_path = self._run(td, '{"graphql": {"shortcode_media": {"id": "1"}}}')

            self.assertEqual(proc.returncode, 3, msg=proc.stderr)
            self.assertTrue(log_path.exists())
            events = self._events(log_path)

        self.assertIn("extract_command_started", events)
        self.assertIn("media_unresolvable", events)
        self.assertIn("extract_command_failed", events)

    def test_success_is_logged(self) -> None:
        payload = json.dumps({"items": [{"code": "Log1", "display_url": "https://cdn.example.com/a.jpg"}]})
        with tempfile.TemporaryDirectory() as td:
            proc, log_path = self._run(
                td, payload, "--url", "https://www.instagram.com/p/Log1/"
            )

            self.assertEqual(proc.returncode, 0, msg=proc.stderr)
            events = self._events(log_path)
            first = json.loads(log_path.read_text(encoding="utf-8").splitlines()[0])

        self.assertEqual(events[0], "extract_command_started")
        self.assertIn("post_assembled", events)
        self.assertEqual(events[-1], "extract_command_completed")
        self.assertEqual(first["url"], "https://www.instagram.com/p/Log1/")


if __name__ == "__main__":
    unittest.main()
