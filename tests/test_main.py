import io
import json
import os
import sys
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from cache import ConfigError
from config import SimConfig, load_config
import main as csim


class TestCommandLine(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.trace = self._write("trace", "L 0,1\nS 10,1\nL 20,1\nS 10,4\nL 110,1\n")

    def _write(self, name, text):
        path = os.path.join(self.tmpdir.name, name)
        with open(path, "w") as f:
            f.write(text)
        return path

    def _run(self, *argv):
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            status = csim.main(list(argv))
        return status, out.getvalue(), err.getvalue()

    def test_summary_output(self):
        status, out, _ = self._run("-s", "4", "-b", "4", "-E", "1", "-t", self.trace)
        self.assertEqual(status, 0)
        lines = out.splitlines()
        self.assertEqual(lines[0], "s=4, E=1, b=4")
        # 0x110 lands in set 1 and evicts the dirty 0x10 line
        self.assertEqual(lines[-1], "hits:1 misses:4 evictions:1 "
                                    "dirty_bytes_in_cache:0 dirty_bytes_evicted:16")

    def test_help(self):
        status, out, _ = self._run("-h")
        self.assertEqual(status, 0)
        self.assertIn("-E <E>", out)
        self.assertIn("must be supplied", out)

    def test_verbose(self):
        status, out, _ = self._run("-v", "-s", "4", "-b", "4", "-E", "1", "-t", self.trace)
        self.assertEqual(status, 0)
        lines = out.splitlines()
        self.assertEqual(lines[0], "verbose mode on")
        self.assertIn("L 0 miss", lines)
        self.assertIn("S 10 hit", lines)
        self.assertIn("L 110 miss dirty-eviction", lines)

    def test_results_json(self):
        results = os.path.join(self.tmpdir.name, "out", "summary.json")
        status, _, _ = self._run("-s", "4", "-b", "4", "-E", "1", "-t", self.trace,
                                 "--results", results)
        self.assertEqual(status, 0)
        with open(results) as f:
            summary = json.load(f)
        self.assertEqual(summary["misses"], 4)
        self.assertEqual(summary["num_sets"], 16)

    def test_missing_option(self):
        status, out, err = self._run("-s", "4", "-b", "4", "-E", "1")
        self.assertEqual(status, 1)
        self.assertEqual(out, "")
        self.assertIn("must all be supplied", err)

    def test_configuration_errors(self):
        cases = [
            ("-s", "40", "-b", "30", "-E", "1", "-t", self.trace),
            ("-s", "4", "-b", "4", "-E", "0", "-t", self.trace),
            ("-s", "-1", "-b", "4", "-E", "1", "-t", self.trace),
            ("-s", "4", "-b", "4", "-E", "1", "-t", os.path.join(self.tmpdir.name, "nope")),
            ("-s", "x", "-b", "4", "-E", "1", "-t", self.trace),
            ("-s", "4", "-b", "4", "-E", "1", "-t", self.trace, "extra"),
            ("-q",),
        ]
        for argv in cases:
            status, out, err = self._run(*argv)
            self.assertEqual(status, 1, argv)
            self.assertNotIn("hits:", out)
            self.assertTrue(err.startswith("csim: "))

    def test_malformed_trace_aborts(self):
        bad = self._write("bad", "L 0,1\nL 10,99\n")
        status, out, err = self._run("-s", "4", "-b", "4", "-E", "1", "-t", bad)
        self.assertEqual(status, 1)
        self.assertNotIn("hits:", out)
        self.assertIn("line 2", err)
        self.assertIn("size is out of range", err)

    def test_non_ascii_trace_reports_line(self):
        path = os.path.join(self.tmpdir.name, "binary")
        with open(path, "wb") as f:
            f.write(b"L 0,1\n\xff\xfe 10,1\n")
        status, out, err = self._run("-s", "4", "-b", "4", "-E", "1", "-t", path)
        self.assertEqual(status, 1)
        self.assertNotIn("hits:", out)
        self.assertIn("line 2", err)

    def test_unwritable_results_path(self):
        # the trace is a regular file, so nothing can be created beneath it
        results = os.path.join(self.trace, "summary.json")
        status, out, err = self._run("-s", "4", "-b", "4", "-E", "1", "-t", self.trace,
                                     "--results", results)
        self.assertEqual(status, 1)
        self.assertNotIn("hits:", out)
        self.assertIn("cannot write results", err)


class TestConfig(unittest.TestCase):

    def test_validate_requires_trace(self):
        with self.assertRaises(ConfigError):
            SimConfig(4, 4, 1, None).validate()

    def test_from_dict_defaults(self):
        cfg = SimConfig.from_dict({"cache": {"associativity": 4}}, trace_file="t")
        self.assertEqual((cfg.s, cfg.b, cfg.E, cfg.trace_file), (4, 4, 4, "t"))

    def test_load_config_errors(self):
        with tempfile.TemporaryDirectory() as d:
            with self.assertRaises(ConfigError):
                load_config(os.path.join(d, "missing.json"))
            path = os.path.join(d, "bad.json")
            with open(path, "w") as f:
                f.write("{not json")
            with self.assertRaises(ConfigError):
                load_config(path)
            with open(path, "w") as f:
                f.write("[1, 2]")
            with self.assertRaises(ConfigError):
                load_config(path)


if __name__ == '__main__':
    unittest.main()
