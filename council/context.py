"""Context provider — loads the standards, product and specs documents once per run."""

import logging
from pathlib import Path

from council.config import PROJECT_ROOT, get_config
from council.errors import ConfigurationError
from council.models import Context

logger = logging.getLogger(__name__)

_DOCUMENT_KEYS = {
    "standards": "standards_path",
    "product": "product_path",
    "specs": "specs_path",
}


def _read_document(path_value, key: str, root: Path) -> str:
    if path_value in (None, ""):
        return ""
    if not isinstance(path_value, str):
        raise ConfigurationError(f"context.{key} must be a path string.")

    path = Path(path_value)
    if not path.is_absolute():
        path = root / path

    if not path.exists():
        logger.info("Context document %s not found; using an empty document.", path)
        return ""
    if path.is_dir():
        raise ConfigurationError(f"context.{key} points to a directory: {path}")
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"Could not read context document {path}: {exc}") from exc


def load_context(config: dict | None = None, root: Path | None = None) -> Context:
    """Load the Context for one run.

    Missing documents degrade to empty strings. Unreadable documents or a
    malformed ``context`` section raise ConfigurationError.
    """
    config = get_config() if config is None else config
    root = PROJECT_ROOT if root is None else root

    section = config.get("context") or {}
    if not isinstance(section, dict):
        raise ConfigurationError("Config 'context' must be a mapping of document paths.")

    documents = {
        field: _read_document(section.get(key), key, root)
        for field, key in _DOCUMENT_KEYS.items()
    }
    return Context(**documents)
