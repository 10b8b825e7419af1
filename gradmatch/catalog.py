from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from gradmatch.core.config import settings
from gradmatch.core.errors import NoCatalogError
from gradmatch.schemas.catalog import Catalog

logger = logging.getLogger(__name__)

BUNDLED_CATALOG_PATH = Path(__file__).resolve().parent / "data" / "catalog.json"


def _resolve_path(path: str | Path | None) -> Path:
    # CATALOG_PATH overrides the snapshot shipped inside the package.
    return Path(path or settings.catalog_path or BUNDLED_CATALOG_PATH)


def load_catalog(path: str | Path | None = None) -> Catalog:
    """Read a catalog snapshot from JSON. Missing or unreadable files raise NoCatalogError."""
    catalog_path = _resolve_path(path)
    if not catalog_path.exists():
        raise NoCatalogError(f"Catalog file not found at '{catalog_path}'.")
    try:
        raw = json.loads(catalog_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("catalog_load_failed path=%s: %s", catalog_path, exc)
        raise NoCatalogError(f"Failed to read catalog '{catalog_path}': {exc}") from exc
    try:
        catalog = Catalog.model_validate(raw)
    except ValidationError as exc:
        logger.error("catalog_invalid path=%s errors=%s", catalog_path, exc.error_count())
        raise NoCatalogError(f"Invalid catalog '{catalog_path}'.") from exc
    logger.info(
        "catalog_loaded path=%s universities=%s programs=%s",
        catalog_path,
        len(catalog.universities),
        len(catalog.programs),
    )
    return catalog
