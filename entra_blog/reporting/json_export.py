"""
JSON exporter — Writes the record of one automation run.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .. import __version__
from ..automations.base import AutomationResult
from ..safety.guardian import WriteGuardian


def export_json(
    result: AutomationResult,
    filepath: Path,
    guardian: Optional[WriteGuardian] = None,
    parameters: Optional[dict] = None,
) -> Path:
    """
    Write an automation run record to a JSON file.

    Returns:
        Path to the created JSON file.
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    payload = {
        "metadata": {
            "tool": "entra_blog",
            "version": __version__,
            "generated_utc": datetime.now(timezone.utc).isoformat(),
            "mode": "WHAT-IF" if result.what_if else "LIVE",
        },
        "parameters": parameters or {},
        "result": result.to_dict(),
    }
    if guardian is not None:
        payload.update(guardian.get_audit_record())

    with open(filepath, "w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2, default=str, ensure_ascii=False)

    return filepath
