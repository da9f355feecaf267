import os
import tempfile
import unittest
from unittest.mock import patch

from tour_optimizer.utils.env_loader import load_env_from_file


class TestEnvLoader(unittest.TestCase):

    def setUp(self):
        # Store original environment variables to restore them later
        self.original_environ = os.environ.copy()
        self.temp_dir = tempfile.TemporaryDirectory()
        self.test_env_file_path = os.path.join(self.temp_dir.name, "env_var.env")

    def tearDown(self):
        os.environ.clear()
        os.environ.update(self.original_environ)
        self.temp_dir.cleanup()

    def create_test_env_file(self, content):
        with open(self.test_env_file_path, 'w') as f:
            f.write(content)

    def test_load_env_successful(self):
        self.create_test_env_file(
            "TOUR_TEST_KEY1=value1\n"
            "# This is a comment\n"
            "TOUR_TEST_KEY2 = value with spaces  \n"
            "\n"
            "export TOUR_TEST_KEY3=exported\n"
            "TOUR_TEST_KEY4=\"quoted value\"\n"
            "TOUR_TEST_KEY5='single quoted'\n"
            "TOUR_TEST_EMPTY=\n"
            "not a key value line\n"
        )

        with self.assertLogs('tour_optimizer.utils.env_loader', level='INFO') as cm:
            self.assertTrue(load_env_from_file(self.test_env_file_path))

        self.assertEqual(os.environ["TOUR_TEST_KEY1"], "value1")
        self.assertEqual(os.environ["TOUR_TEST_KEY2"], "value with spaces")
        self.assertEqual(os.environ["TOUR_TEST_KEY3"], "exported")
        self.assertEqual(os.environ["TOUR_TEST_KEY4"], "quoted value")
        self.assertEqual(os.environ["TOUR_TEST_KEY5"], "single quoted")
        self.assertEqual(os.environ["TOUR_TEST_EMPTY"], "")
        self.assertIn("Loaded 6 environment variables", cm.output[0])

    def test_existing_variables_are_kept(self):
        os.environ["TOUR_TEST_EXISTING"] = "original"
        self.create_test_env_file("TOUR_TEST_EXISTING=from_file\n")

        self.assertTrue(load_env_from_file(self.test_env_file_path))
        self.assertEqual(os.environ["TOUR_TEST_EXISTING"], "original")

    def test_override_replaces_existing_variables(self):
        os.environ["TOUR_TEST_EXISTING"] = "original"
        self.create_test_env_file("TOUR_TEST_EXISTING=from_file\n")

        self.assertTrue(load_env_from_file(self.test_env_file_path, override=True))
        self.assertEqual(os.environ["TOUR_TEST_EXISTING"], "from_file")

    def test_missing_file(self):
        missing = os.path.join(self.temp_dir.name, "does_not_exist.env")
        with self.assertLogs('tour_optimizer.utils.env_loader', level='WARNING') as cm:
            self.assertFalse(load_env_from_file(missing))
        self.assertIn("Environment file not found", cm.output[0])

    def test_unreadable_file(self):
        self.create_test_env_file("TOUR_TEST_KEY1=value1\n")
        with patch('builtins.open', side_effect=OSError("permission denied")):
            with self.assertLogs('tour_optimizer.utils.env_loader', level='ERROR') as cm:
                self.assertFalse(load_env_from_file(self.test_env_file_path))
        self.assertIn("permission denied", cm.output[0])
        self.assertNotIn("TOUR_TEST_KEY1", os.environ)


if __name__ == '__main__':
    unittest.main()
