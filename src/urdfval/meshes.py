"""Mesh file resolution and loading for description geometry."""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import trimesh

from urdfval.errors import ParseError

logger = logging.getLogger(__name__)

_PACKAGE_PREFIX = "package://"
_FILE_PREFIX = "file://"


def resolve_mesh_path(filename: str, base_dir: Path | None) -> Path | None:
    """Find a mesh file on disk, or None if it cannot be located.

    Relative names resolve against ``base_dir`` (the description's
    directory). ``package://pkg/rel`` tries ``base_dir/rel`` and then
    ``<ancestor named pkg>/rel`` for each ancestor of ``base_dir``.
    """
    if filename.startswith(_FILE_PREFIX):
        path = Path(filename[len(_FILE_PREFIX):])
        return path if path.is_file() else None

    base = base_dir if base_dir is not None else Path.cwd()
    candidates: list[Path] = []
    if filename.startswith(_PACKAGE_PREFIX):
        package, _, relative = filename[len(_PACKAGE_PREFIX):].partition("/")
        if not relative:
            return None
        candidates.append(base / relative)
        for ancestor in (base, *base.parents):
            if ancestor.name == package:
                candidates.append(ancestor / relative)
                break
            candidates.append(ancestor / package / relative)
    else:
        path = Path(filename)
        candidates.append(path if path.is_absolute() else base / path)

    for candidate in candidates:
        if candidate.is_file():
            return candidate.resolve()
    return None


def load_mesh(path: Path) -> tuple[np.ndarray, np.ndarray]:
    """Load a mesh file as ``(vertices, faces)`` arrays.

    Multi-part files are flattened into one mesh.

    Raises:
        ParseError: When the file is unreadable or holds no triangles.
    """
    try:
        mesh = trimesh.load(str(path), force="mesh")
    except (OSError, ValueError) as e:
        raise ParseError(f"Cannot load mesh {path}: {e}") from e
    if not isinstance(mesh, trimesh.Trimesh) or mesh.is_empty:
        raise ParseError(f"Mesh {path} contains no triangles")

    logger.debug("Loaded mesh %s: %d vertices, %d faces", path, len(mesh.vertices), len(mesh.faces))
    return (
        np.asarray(mesh.vertices, dtype=np.float64),
        np.asarray(mesh.faces, dtype=np.int32),
    )
