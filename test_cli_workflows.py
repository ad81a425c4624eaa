from __future__ import annotations

import os
import json
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path


FAST_KDF_ARGS = ["--kdf-time", "1", "--kdf-memory", "8", "--kdf-parallelism", "1"]

DOCUMENT = {
    "name": "sample",
    "tags": ["a", "b", "a"],
    "meta": {"size": 3, "ratio": 0.5, "ok": True, "missing": None},
    "rows": [{"id": 1}, {"id": 1}, {"id": 2}],
}


class CLIIntegrationTests(unittest.TestCase):
    def run_cli(self, args, *, expect: int | None = 0, stdin: str | None = None):
        cmd = [sys.executable, "-m", "hashvault.cli"] + list(args)
        env = os.environ.copy()
        repo_root = Path(__file__).resolve().parent
        existing = env.get("PYTHONPATH", "")
        env["PYTHONPATH"] = str(repo_root) if not existing else f"{repo_root}{os.pathsep}{existing}"
        proc = subprocess.run(
            cmd,
            input=stdin,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            env=env,
        )
        if expect is not None and proc.returncode != expect:
            raise AssertionError(
                f"CLI exited {proc.returncode}, expected {expect}\nCommand: {' '.join(cmd)}\nSTDOUT:\n{proc.stdout}\nSTDERR:\n{proc.stderr}"
            )
        return proc

    def make_workspace(self) -> Path:
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        workspace = Path(tmp.name)
        (workspace / "doc.json").write_text(json.dumps(DOCUMENT), encoding="utf-8")
        return workspace

    def test_plain_put_get_verify_info(self):
        workspace = self.make_workspace()
        store = workspace / "store"
        put_proc = self.run_cli(["put", str(store), str(workspace / "doc.json"), "--plain"])
        fp = put_proc.stdout.strip()
        self.assertEqual(43, len(fp))
        self.assertIn("Stored:", put_proc.stderr)

        get_proc = self.run_cli(["get", str(store), fp, "--plain"])
        self.assertEqual(DOCUMENT, json.loads(get_proc.stdout))

        verify_proc = self.run_cli(["verify", str(store), fp, "--plain"])
        self.assertIn("OK", verify_proc.stdout)

        info_proc = self.run_cli(["info", str(store), fp, "--plain"])
        self.assertIn("Fragments:", info_proc.stdout)
        self.assertIn("Codec: json", info_proc.stdout)

        again = self.run_cli(["put", str(store), str(workspace / "doc.json"), "--plain", "--quiet"])
        self.assertEqual(fp, again.stdout.strip())
        self.assertEqual("", again.stderr)

    def test_encrypted_roundtrip_from_stdin(self):
        workspace = self.make_workspace()
        store = workspace / "store"
        args = ["--password", "pw", "--codec", "tlv"] + FAST_KDF_ARGS
        put_proc = self.run_cli(["put", str(store), "--quiet"] + args, stdin=json.dumps(DOCUMENT))
        fp = put_proc.stdout.strip()

        out = workspace / "out.json"
        self.run_cli(["get", str(store), fp, "--output", str(out), "--indent", "2"] + args)
        self.assertEqual(DOCUMENT, json.loads(out.read_text(encoding="utf-8")))

        for path in store.iterdir():
            self.assertNotIn(b"sample", path.read_bytes())

        wrong = self.run_cli(
            ["get", str(store), fp, "--password", "nope", "--codec", "tlv"] + FAST_KDF_ARGS,
            expect=2,
        )
        self.assertIn("Error", wrong.stderr)

    def test_verify_detects_tampering(self):
        workspace = self.make_workspace()
        store = workspace / "store"
        fp = self.run_cli(["put", str(store), str(workspace / "doc.json"), "--plain", "--quiet"]).stdout.strip()
        victim = next(p for p in sorted(store.iterdir()) if p.name != fp)
        victim.write_bytes(b'{"content":"tampered","type":"native"}')
        verify_proc = self.run_cli(["verify", str(store), fp, "--plain"], expect=1)
        self.assertIn("FAIL", verify_proc.stdout)

    def test_errors(self):
        workspace = self.make_workspace()
        store = workspace / "store"
        missing = "A" * 43
        proc = self.run_cli(["get", str(store), missing, "--plain"], expect=2)
        self.assertIn("Object not found", proc.stderr)

        proc = self.run_cli(["get", str(store), "../../etc/passwd", "--plain"], expect=2)
        self.assertIn("not a fingerprint", proc.stderr)

        proc = self.run_cli(["put", str(store), "--plain"], stdin="{not json", expect=2)
        self.assertIn("Error", proc.stderr)

        proc = self.run_cli(["put", str(store), "--password", ""] + FAST_KDF_ARGS, stdin="{}", expect=2)
        self.assertIn("Provide --password", proc.stderr)

        proc = self.run_cli(["put", str(store), "--password", "pw", "--kdf-time", "0"], stdin="{}", expect=2)
        self.assertIn("Error: Argon2 time cost", proc.stderr)
        self.assertNotIn("Traceback", proc.stderr)
        self.assertFalse(store.exists())


if __name__ == "__main__":
    unittest.main()
