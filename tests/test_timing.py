import sys
import unittest
from pathlib import Path


REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = REPO_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from linker.timing import Timings  # noqa: E402


class TimingsTests(unittest.TestCase):
    def test_step_records_duration(self) -> None:
        timings = Timings()
        with timings.step("link", "a.svg"):
            pass
        out = timings.as_dict()
        self.assertGreaterEqual(out["link_sec"], 0.0)
        self.assertNotIn("runs", out)
        self.assertEqual(out["slowest"]["link"]["diagram"], "a.svg")
        self.assertIn("total_wall_sec", out)

    def test_step_is_recorded_when_body_raises(self) -> None:
        timings = Timings()
        with self.assertRaises(OSError):
            with timings.step("read", "missing.svg"):
                raise OSError("gone")
        self.assertIn("read_sec", timings.as_dict())

    def test_repeated_steps_are_summed(self) -> None:
        timings = Timings()
        timings._record("link", "a.svg", 0.5)
        timings._record("link", "b.svg", 0.25)
        out = timings.as_dict()
        self.assertAlmostEqual(out["link_sec"], 0.75)
        self.assertEqual(out["runs"], {"link": 2})
        self.assertEqual(out["slowest"]["link"], {"diagram": "a.svg", "sec": 0.5})

    def test_unnamed_steps_have_no_slowest(self) -> None:
        timings = Timings()
        timings._record("write", "", 0.1)
        self.assertNotIn("slowest", timings.as_dict())

    def test_absorb_merges_diagrams(self) -> None:
        a, b = Timings(), Timings()
        a._record("read", "a.svg", 0.1)
        a._record("link", "a.svg", 0.2)
        b._record("read", "b.svg", 0.3)
        b._record("link", "b.svg", 0.1)

        batch = Timings()
        batch.absorb(a)
        batch.absorb(b)
        out = batch.as_dict()
        self.assertAlmostEqual(out["read_sec"], 0.4)
        self.assertAlmostEqual(out["link_sec"], 0.3)
        self.assertEqual(out["runs"], {"read": 2, "link": 2})
        self.assertEqual(out["slowest"]["read"]["diagram"], "b.svg")
        self.assertEqual(out["slowest"]["link"]["diagram"], "a.svg")


if __name__ == "__main__":
    unittest.main()
