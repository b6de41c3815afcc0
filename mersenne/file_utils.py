"""File I/O utilities for JSON persistence of discovery records and queue items."""
import json
from pathlib import Path
from typing import Any, Optional
import logging

logger = logging.getLogger(__name__)


def save_json(file_path: Path, data: Any, ensure_dir: bool = True) -> bool:
    """
    Save data to a JSON file, logging instead of raising on failure.

    Args:
        file_path: Destination path
        data: JSON-serializable data
        ensure_dir: If True, create parent directories

    Returns:
        True if written, False otherwise
    """
    try:
        if ensure_dir:
            file_path.parent.mkdir(parents=True, exist_ok=True)

        with open(file_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)
        return True
    except (OSError, TypeError, ValueError) as e:
        logger.error(f"Failed to save JSON to {file_path}: {e}")
        return False


def load_json(file_path: Path, default: Optional[Any] = None) -> Any:
    """
    Load a JSON file, returning `default` if it is missing or unreadable.
    """
    try:
        if not file_path.exists():
            return default

        with open(file_path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed to load JSON from {file_path}: {e}")
        return default
