# storefront/app/services/json_store.py
from __future__ import annotations

import json
import logging
import time
from pathlib import Path

from storefront.app.core.config import settings

log = logging.getLogger(__name__)

# =========================================================
# JSON helpers (with atomic write)
# =========================================================

def store_file(name: str) -> Path:
    return settings.store_root / name

def load_json(path: Path, default):
    """
    Read a JSON document, or `default` when the file is missing.
    An unreadable file is moved aside to <name>.corrupt-<ts> so the next save
    does not silently replace data nobody looked at.
    """
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        backup = path.with_name(f"{path.name}.corrupt-{int(time.time())}")
        log.warning("unreadable store file %s (%s); moved to %s", path, e, backup)
        try:
            path.replace(backup)
        except OSError:
            log.warning("could not move %s aside", path, exc_info=True)
        return default

def atomic_write(path: Path, data: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(data, encoding="utf-8")
    tmp.replace(path)

def save_json(path: Path, data) -> None:
    atomic_write(path, json.dumps(data, ensure_ascii=False, indent=2))
