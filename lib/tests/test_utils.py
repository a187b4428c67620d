"""
Test suite for lib/utils.py
"""

import os
import tempfile
import unittest

from lib.utils import jsonDumps, load_dotenv


class TestJsonDumps(unittest.TestCase):

    def test_compact_by_default(self):
        """Compact separators and sorted keys unless asked otherwise"""
        self.assertEqual(jsonDumps({"b": 1, "a": [1, 2]}), '{"a":[1,2],"b":1}')

    def test_indent_disables_compact(self):
        self.assertEqual(jsonDumps({"a": 1}, indent=2), '{\n  "a": 1\n}')

    def test_non_ascii_is_kept(self):
        self.assertEqual(jsonDumps("テスト"), '"テスト"')

    def test_kwargs_override_defaults(self):
        self.assertEqual(jsonDumps({"b": 1, "a": 2}, sort_keys=False), '{"b":1,"a":2}')
        with self.assertRaises(TypeError):
            jsonDumps({"a": object()}, default=None)

    def test_unknown_objects_are_stringified(self):
        self.assertEqual(jsonDumps({"a": {1}}), '{"a":"{1}"}')


class TestLoadDotenv(unittest.TestCase):

    def setUp(self):
        self.tempDir = tempfile.TemporaryDirectory()
        self.envPath = os.path.join(self.tempDir.name, ".env")
        self.addCleanup(self.tempDir.cleanup)

    def test_missing_file(self):
        self.assertEqual(load_dotenv(os.path.join(self.tempDir.name, "missing.env")), {})

    def test_parse_file(self):
        """Comments and blank lines are skipped, values split on the first '='"""
        with open(self.envPath, "w", encoding="utf-8") as f:
            f.write('# comment\n\nREFACT_A=1\nREFACT_B = "x=y"\nbroken line\n')

        self.assertEqual(load_dotenv(self.envPath, populateEnv=False), {"REFACT_A": "1", "REFACT_B": "x=y"})
        self.assertNotIn("REFACT_A", os.environ)

    def test_populate_env_keeps_existing(self):
        with open(self.envPath, "w", encoding="utf-8") as f:
            f.write("REFACT_EXISTING=from-file\nREFACT_NEW=new\n")

        os.environ["REFACT_EXISTING"] = "from-env"
        self.addCleanup(os.environ.pop, "REFACT_EXISTING", None)
        self.addCleanup(os.environ.pop, "REFACT_NEW", None)

        load_dotenv(self.envPath)

        self.assertEqual(os.environ["REFACT_EXISTING"], "from-env")
        self.assertEqual(os.environ["REFACT_NEW"], "new")


if __name__ == "__main__":
    unittest.main()
