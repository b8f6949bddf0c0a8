from __future__ import annotations

import os
from pathlib import Path


def _base_root() -> Path:
    env_root = os.getenv("LIQUIDACION_EXPORT_ROOT")
    if env_root:
        return Path(env_root).expanduser().resolve()
    return Path(__file__).resolve().parents[2] / "exports"


def ensure_export_dir(company_id: str) -> Path:
    """Ensure the company's export folder exists and return it."""

    root = _base_root() / Path(company_id).name
    root.mkdir(parents=True, exist_ok=True)
    return root
