"""
Manifest persistence.

The manifest is read once at the start of a run and written once at the
end. Writes go to a temp file in the same directory and are renamed over
the old manifest, so a crash mid-run leaves the previous manifest intact.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .crypto import ProviderMode, new_iv, new_salt
from .errors import ManifestError
from .models import Manifest

logger = logging.getLogger("ipfsvault.manifest")


def new_manifest(mode: ProviderMode) -> Manifest:
    """Empty manifest; symmetric mode gets a fresh salt and IV."""
    if mode == ProviderMode.SYMMETRIC:
        return Manifest(mode=mode, salt=new_salt(), iv=new_iv())
    return Manifest(mode=mode)


def parse_manifest(data: object) -> Manifest:
    """Build a Manifest from decoded JSON in either supported shape.

    The current shape is an object with ``entries`` and, in symmetric
    mode, ``salt`` and ``iv``. The older shape is a bare list of entries
    written in asymmetric mode.

    Raises:
        ManifestError: If the document matches neither shape.
    """
    if isinstance(data, list):
        data = {"mode": ProviderMode.ASYMMETRIC.value, "entries": data}
    if not isinstance(data, dict):
        raise ManifestError("Manifest must be a JSON object or a list of entries")

    data = dict(data)
    if "mode" not in data:
        data["mode"] = (
            ProviderMode.SYMMETRIC.value if data.get("salt")
            else ProviderMode.ASYMMETRIC.value
        )

    try:
        manifest = Manifest(**data)
    except ValidationError as exc:
        raise ManifestError(f"Invalid manifest: {exc}") from exc

    seen: set[str] = set()
    ids: set[int] = set()
    for entry in manifest.entries:
        if entry.filename in seen:
            raise ManifestError(f"Duplicate manifest entry for {entry.filename}")
        if entry.id in ids:
            raise ManifestError(f"Duplicate manifest id {entry.id} ({entry.filename})")
        seen.add(entry.filename)
        ids.add(entry.id)

    if manifest.mode == ProviderMode.SYMMETRIC and not (manifest.salt and manifest.iv):
        raise ManifestError("Symmetric manifest is missing its salt or IV")
    return manifest


def load_manifest(path: Path, mode: Optional[ProviderMode] = None) -> Manifest:
    """Load the manifest, or start a new one if the file does not exist.

    Args:
        path: Manifest file location.
        mode: Expected encryption mode. A new manifest is created in this
            mode; an existing one must match it.

    Returns:
        The loaded Manifest.

    Raises:
        ManifestError: If the file is unreadable, corrupt, or written in a
            different mode.
    """
    if not path.exists():
        logger.info("No manifest at %s, starting fresh", path)
        return new_manifest(mode or ProviderMode.SYMMETRIC)

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ManifestError(f"Failed to read manifest {path}: {exc}") from exc

    manifest = parse_manifest(data)
    if mode is not None and manifest.mode != mode:
        raise ManifestError(
            f"Manifest {path} was written in {manifest.mode.value} mode, "
            f"but {mode.value} mode is configured"
        )
    logger.info("Loaded manifest %s (%d entries)", path, len(manifest.entries))
    return manifest


def dump_manifest(manifest: Manifest) -> str:
    """Serialise a manifest to JSON text."""
    return manifest.model_dump_json(indent=2, exclude_none=True)


def save_manifest(manifest: Manifest, path: Path) -> None:
    """Persist the manifest by fully replacing the file at ``path``.

    Raises:
        ManifestError: If the manifest could not be written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent),
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(dump_manifest(manifest))
        os.replace(tmp_name, path)
    except OSError as exc:
        Path(tmp_name).unlink(missing_ok=True)
        raise ManifestError(f"Failed to write manifest {path}: {exc}") from exc
    logger.info("Manifest saved: %s (%d entries)", path, len(manifest.entries))
