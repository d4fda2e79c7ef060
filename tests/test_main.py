import contextlib
import io
import json
import os
import tempfile
import unittest

from main import format_summary, load_config, main

TRACES = os.path.join(os.path.dirname(__file__), "..", "traces")
SMALL = os.path.join(TRACES, "small.trace")


def run_cli(argv):
    out = io.StringIO()
    with contextlib.redirect_stdout(out):
        code = main(argv)
    return code, out.getvalue()


class TestCommandLine(unittest.TestCase):
    def test_small_trace(self):
        code, out = run_cli(["-s", "1", "-E", "2", "-b", "2", "-t", SMALL])
        self.assertEqual(code, 0)
        self.assertEqual(
            out.strip(),
            "hits:2 misses:5 evictions:2 dirty_bytes_in_cache:4 dirty_bytes_evicted:4",
        )

    def test_invalid_associativity(self):
        code, out = run_cli(["-s", "1", "-E", "0", "-b", "2", "-t", SMALL])
        self.assertEqual(code, 1)
        self.assertEqual(out.strip(), "Invalid input!")

    def test_missing_trace(self):
        code, out = run_cli(["-s", "1", "-E", "1", "-b", "1"])
        self.assertEqual(code, 1)
        self.assertEqual(out.strip(), "Invalid input!")

    def test_unreadable_trace(self):
        code, out = run_cli(["-s", "1", "-E", "1", "-b", "1", "-t", SMALL + ".missing"])
        self.assertEqual(code, 1)
        self.assertEqual(out.strip(), "Open file error")

    def test_bad_kind_prints_no_summary(self):
        code, out = run_cli(["-s", "1", "-E", "1", "-b", "1",
                             "-t", os.path.join(TRACES, "bad_kind.trace")])
        self.assertEqual(code, 1)
        self.assertEqual(out.strip(), "Tracefile error")

    def test_address_too_wide(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "wide.trace")
            with open(path, "w") as f:
                f.write("L 0,8\nL 1ffffffffffffffff0,8\n")
            code, out = run_cli(["-s", "1", "-E", "1", "-b", "1", "-t", path])
        self.assertEqual(code, 1)
        self.assertEqual(out.strip(), "Tracefile error")

    def test_config_defaults_and_override(self):
        with tempfile.TemporaryDirectory() as tmp:
            cfg_path = os.path.join(tmp, "config.json")
            with open(cfg_path, "w") as f:
                json.dump({"cache": {"s": 1, "E": 1, "b": 2}, "trace": {"path": SMALL}}, f)
            self.assertEqual(load_config(cfg_path)["cache"]["E"], 1)
            code, out = run_cli(["--config", cfg_path, "-E", "2"])
        self.assertEqual(code, 0)
        self.assertTrue(out.startswith("hits:2 misses:5 evictions:2"))

    def test_plot(self):
        with tempfile.TemporaryDirectory() as tmp:
            plot = os.path.join(tmp, "plots", "hitmiss.png")
            code, _ = run_cli(["-s", "1", "-E", "2", "-b", "2", "-t", SMALL, "--plot", plot])
            self.assertEqual(code, 0)
            self.assertTrue(os.path.exists(plot))

    def test_format_summary(self):
        counters = {"hits": 1, "misses": 2, "evictions": 3,
                    "dirty_bytes_resident": 4, "dirty_bytes_evicted": 5}
        self.assertEqual(
            format_summary(counters),
            "hits:1 misses:2 evictions:3 dirty_bytes_in_cache:4 dirty_bytes_evicted:5",
        )


if __name__ == "__main__":
    unittest.main()
