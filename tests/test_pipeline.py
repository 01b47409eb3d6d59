import contextlib
import io
import json
import os
import shutil
import sys
import tempfile
import unittest
from pathlib import Path
from unittest import mock


REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = REPO_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

import pipeline  # noqa: E402


DIAGRAM_PATH = Path(__file__).parent / "data" / "plugin_dependencies.svg"

_CLEAN_ENV = {k: v for k, v in os.environ.items() if not k.startswith("LINKS_")}


class PipelineTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.src = self.tmp / "diagrams"
        self.src.mkdir()
        shutil.copy(DIAGRAM_PATH, self.src / "a.svg")
        shutil.copy(DIAGRAM_PATH, self.src / "b.svg")
        (self.src / "notes.txt").write_text("not a diagram", encoding="utf-8")
        self.out = self.tmp / "out"

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _run(self, argv: list[str]) -> int:
        with mock.patch.dict(os.environ, _CLEAN_ENV, clear=True), contextlib.redirect_stdout(io.StringIO()):
            return pipeline.main(argv)

    def test_collect_inputs_expands_directories_once(self) -> None:
        inputs = pipeline.collect_inputs([str(self.src), str(self.src / "a.svg")])
        self.assertEqual([p.name for p in inputs], ["a.svg", "b.svg"])

    def test_batch_links_every_diagram(self) -> None:
        rc = self._run([str(self.src), "--out-dir", str(self.out), "--render-html"])
        self.assertEqual(rc, 0)

        combined = json.loads((self.out / "combined.json").read_text(encoding="utf-8"))
        self.assertEqual(len(combined["diagrams"]), 2)
        self.assertEqual(combined["errors"], [])
        for diagram in combined["diagrams"]:
            self.assertEqual(diagram["result"]["counts"]["transform"], 2)

        self.assertIn(b"<a ", (self.out / "a.svg").read_bytes())
        self.assertTrue((self.out / "b.report.json").exists())
        self.assertIn("KernelHaven-Core", (self.out / "report.html").read_text(encoding="utf-8"))
        # Sources stay untouched.
        self.assertEqual((self.src / "a.svg").read_bytes(), DIAGRAM_PATH.read_bytes())

    def test_broken_diagram_does_not_stop_batch(self) -> None:
        (self.src / "c.svg").write_text("<svg><g>", encoding="utf-8")
        rc = self._run([str(self.src), "--out-dir", str(self.out)])
        self.assertEqual(rc, 3)

        combined = json.loads((self.out / "combined.json").read_text(encoding="utf-8"))
        self.assertEqual(len(combined["diagrams"]), 3)
        self.assertEqual(len(combined["errors"]), 1)
        self.assertTrue(combined["errors"][0]["input"].endswith("c.svg"))
        self.assertTrue((self.out / "a.svg").exists())

    def test_duplicate_names_are_reported(self) -> None:
        other = self.tmp / "other"
        other.mkdir()
        shutil.copy(DIAGRAM_PATH, other / "a.svg")
        rc = self._run([str(self.src), str(other), "--out-dir", str(self.out)])
        self.assertEqual(rc, 3)
        combined = json.loads((self.out / "combined.json").read_text(encoding="utf-8"))
        self.assertEqual(combined["errors"][0]["step"], "collect")

    def test_script_mode(self) -> None:
        rc = self._run([str(self.src / "a.svg"), "--out-dir", str(self.out), "--mode", "script"])
        self.assertEqual(rc, 0)
        self.assertIn("BEGIN MANUAL JAVASCRIPT", (self.out / "a.svg").read_text(encoding="utf-8"))

    def test_batch_timings_cover_every_diagram(self) -> None:
        rc = self._run([str(self.src), "--out-dir", str(self.out)])
        self.assertEqual(rc, 0)
        timings = json.loads((self.out / "combined.json").read_text(encoding="utf-8"))["timings"]
        self.assertEqual(timings["runs"], {"read": 2, "link": 2, "write": 2})
        self.assertIn(timings["slowest"]["link"]["diagram"], ("a.svg", "b.svg"))
        single = json.loads((self.out / "a.report.json").read_text(encoding="utf-8"))["timings"]
        self.assertNotIn("runs", single)
        self.assertEqual(single["slowest"]["link"]["diagram"], "a.svg")

    def test_out_dir_equal_to_input_dir_is_refused(self) -> None:
        stdout = io.StringIO()
        with mock.patch.dict(os.environ, _CLEAN_ENV, clear=True), contextlib.redirect_stdout(stdout):
            rc = pipeline.main([str(self.src), "--out-dir", str(self.src)])
        self.assertEqual(rc, 2)
        self.assertIn("inside output directory", stdout.getvalue())
        self.assertEqual((self.src / "a.svg").read_bytes(), DIAGRAM_PATH.read_bytes())
        self.assertTrue((self.src / "notes.txt").exists())
        self.assertFalse((self.src / "combined.json").exists())

    def test_out_dir_above_inputs_is_refused(self) -> None:
        rc = self._run([str(self.src / "a.svg"), "--out-dir", str(self.tmp)])
        self.assertEqual(rc, 2)
        self.assertTrue((self.src / "a.svg").exists())
        self.assertTrue((self.src / "b.svg").exists())

    def test_out_dir_below_input_dir_is_allowed(self) -> None:
        out = self.src / "linked"
        rc = self._run([str(self.src), "--out-dir", str(out)])
        self.assertEqual(rc, 0)
        self.assertTrue((out / "a.svg").exists())
        self.assertEqual((self.src / "a.svg").read_bytes(), DIAGRAM_PATH.read_bytes())

    def test_overlapping_inputs(self) -> None:
        collected = pipeline.collect_inputs([str(self.src)])
        self.assertEqual(pipeline.overlapping_inputs(self.out.resolve(), [str(self.src)], collected), [])
        hits = pipeline.overlapping_inputs(self.src.resolve(), [str(self.src)], collected)
        self.assertEqual(hits, [self.src, self.src / "a.svg", self.src / "b.svg"])

    def test_bad_templates(self) -> None:
        rc = self._run([str(self.src), "--out-dir", str(self.out), "--project-url", "https://x.org/"])
        self.assertEqual(rc, 2)
        combined = json.loads((self.out / "combined.json").read_text(encoding="utf-8"))
        self.assertEqual(combined["errors"][0]["step"], "templates")


if __name__ == "__main__":
    unittest.main()
