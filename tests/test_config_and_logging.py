import os
import unittest
from unittest.mock import patch

from citeforge import config
from citeforge.observability import preview


class TestEnvParsing(unittest.TestCase):
    def test_int_falls_back_on_garbage(self):
        with patch.dict(os.environ, {"X_CITEFORGE_INT": "lots"}):
            self.assertEqual(config._env_int("X_CITEFORGE_INT", 3), 3)

    def test_int_respects_minimum(self):
        with patch.dict(os.environ, {"X_CITEFORGE_INT": "-5"}):
            self.assertEqual(config._env_int("X_CITEFORGE_INT", 3, minimum=0), 0)

    def test_float_and_bool(self):
        with patch.dict(os.environ, {"X_CITEFORGE_FLOAT": "0.25", "X_CITEFORGE_BOOL": "off"}):
            self.assertEqual(config._env_float("X_CITEFORGE_FLOAT", 1.0), 0.25)
            self.assertFalse(config._env_bool("X_CITEFORGE_BOOL", True))
        self.assertTrue(config._env_bool("X_CITEFORGE_UNSET", True))

    def test_defaults(self):
        self.assertGreaterEqual(config.EXTRACTION_MAX_RETRIES, 0)
        self.assertEqual(config.ANCHOR_HALF_WIDTH, 7)
        self.assertEqual(config.WORD_MIN_LENGTH, 4)
        self.assertTrue(config.CACHE_DIR.exists())


class TestPreview(unittest.TestCase):
    def test_preview_shortens_long_text(self):
        self.assertEqual(preview("a  b\nc"), "a b c")
        self.assertEqual(preview("x" * 80, limit=10), "x" * 10 + "...")
        self.assertEqual(preview(None), "")


if __name__ == "__main__":
    unittest.main()
