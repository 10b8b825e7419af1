import json
import sys
import tempfile
import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from gradmatch.catalog import BUNDLED_CATALOG_PATH, load_catalog  # noqa: E402
from gradmatch.core.errors import NoCatalogError  # noqa: E402
from gradmatch.schemas import Catalog  # noqa: E402


class CatalogLoadingTests(unittest.TestCase):
    def test_bundled_catalog_loads(self):
        catalog = load_catalog(BUNDLED_CATALOG_PATH)
        self.assertEqual(len(catalog.universities), 5)
        self.assertEqual(len(catalog.programs), 5)
        self.assertFalse(catalog.is_empty())
        self.assertEqual(catalog.programs_for("edinburgh"), [])
        self.assertEqual(catalog.program("uoft", "uoft-mi").program_name, "Master of Information")
        self.assertIsNone(catalog.university("oxford"))

    def test_default_catalog_ships_inside_the_package(self):
        self.assertEqual(BUNDLED_CATALOG_PATH.parent.parent, PROJECT_ROOT / "gradmatch")
        self.assertTrue(BUNDLED_CATALOG_PATH.is_file())

    def test_catalog_path_setting_overrides_bundled_snapshot(self):
        with tempfile.TemporaryDirectory() as tmp:
            custom = Path(tmp) / "catalog.json"
            custom.write_text(
                json.dumps({"universities": [{"university_id": "u", "name": "Custom University"}]}),
                encoding="utf-8",
            )
            with patch("gradmatch.catalog.settings", SimpleNamespace(catalog_path=str(custom))):
                catalog = load_catalog()
        self.assertEqual([university.name for university in catalog.universities], ["Custom University"])

    def test_programs_inherit_university_rankings(self):
        catalog = load_catalog()
        self.assertEqual(catalog.program("stanford", "stanford-ms-cs").ranking_scores, {"qs": 5, "us_news": 3})

    def test_explicit_program_rankings_are_kept(self):
        catalog = Catalog.model_validate(
            {
                "universities": [{"university_id": "u", "name": "U", "ranking_scores": {"qs": 10}}],
                "programs": [{"university_id": "u", "program_id": "p", "ranking_scores": {"qs": 3}}],
            }
        )
        self.assertEqual(catalog.programs[0].ranking_scores, {"qs": 3})
        self.assertEqual(catalog.programs[0].degree_type, "masters")

    def test_missing_file(self):
        with self.assertRaises(NoCatalogError) as ctx:
            load_catalog("/nonexistent/catalog.json")
        self.assertEqual(ctx.exception.code, "NO_CATALOG_AVAILABLE")
        self.assertEqual(ctx.exception.status_code, 503)

    def test_invalid_json_and_invalid_records(self):
        with tempfile.TemporaryDirectory() as tmp:
            broken = Path(tmp) / "broken.json"
            broken.write_text("{not json", encoding="utf-8")
            invalid = Path(tmp) / "invalid.json"
            invalid.write_text(json.dumps({"programs": [{"program_id": "p"}]}), encoding="utf-8")

            with self.assertRaises(NoCatalogError):
                load_catalog(broken)
            with self.assertRaises(NoCatalogError):
                load_catalog(invalid)

    def test_empty_catalog(self):
        self.assertTrue(Catalog().is_empty())


if __name__ == "__main__":
    unittest.main()
