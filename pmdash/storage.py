"""Persistence helpers for saving and loading the portfolio from disk."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .domain import Portfolio
from .schema import SchemaError, validate_portfolio

logger = logging.getLogger(__name__)

BACKUP_VERSION = "1.0"


def save(portfolio: Portfolio, path: Path) -> None:
    """Save ``portfolio`` to ``path`` in YAML format."""
    with path.open("w", encoding="utf-8") as f:
        f.write(portfolio.to_yaml())
    logger.debug("Saved %d projects to %s", len(portfolio.projects), path)


def load(path: Path) -> Portfolio:
    """Return a :class:`Portfolio` loaded from ``path``."""
    with path.open("r", encoding="utf-8") as f:
        return Portfolio.from_yaml(f.read())


def export_backup(portfolio: Portfolio, path: Path, now: Optional[datetime] = None) -> None:
    """Write a JSON backup of every project to ``path``."""
    now = now or datetime.now(timezone.utc)
    data = {
        "projects": portfolio.to_dict()["projects"],
        "exportedAt": now.isoformat(),
        "version": BACKUP_VERSION,
    }
    text = json.dumps(data, indent=2, ensure_ascii=False)
    with path.open("w", encoding="utf-8") as f:
        f.write(text)
    logger.info("Exported %d projects to %s", len(portfolio.projects), path)


def import_backup(path: Path) -> Portfolio:
    """Return the portfolio stored in a JSON backup.

    Raises :class:`SchemaError` when the file is not a valid backup.
    """
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise SchemaError(f"Backup is not valid JSON: {e}") from e
    if not isinstance(data, dict) or not isinstance(data.get("projects"), list):
        raise SchemaError("Backup must contain a 'projects' list")
    if data.get("version") not in (None, BACKUP_VERSION):
        logger.warning("Backup version %s differs from %s", data.get("version"), BACKUP_VERSION)
    validate_portfolio(data)
    return Portfolio.from_dict(data)


__all__ = ["save", "load", "export_backup", "import_backup"]
