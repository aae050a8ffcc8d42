from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import List

LOG = logging.getLogger(__name__)

CLONE_DIR_PREFIX = "github-archiver-"
ARCHIVE_PREFIX = "github-archive-"
ARCHIVE_SUFFIX = ".zip"


def sweep_stale_artifacts(work_dir: Path) -> List[Path]:
    """Remove clone folders and archives left behind by an interrupted run."""
    if not work_dir.exists():
        return []

    removed: List[Path] = []
    for child in work_dir.iterdir():
        if not _owned_by_current_user(child):
            continue
        if child.is_dir() and child.name.startswith(CLONE_DIR_PREFIX):
            LOG.info("Removing stale clone %s", child)
            if remove_path(child):
                removed.append(child)
        elif child.is_file() and child.name.startswith(ARCHIVE_PREFIX) and child.name.endswith(ARCHIVE_SUFFIX):
            LOG.info("Removing stale archive %s", child)
            if remove_path(child):
                removed.append(child)
    return removed


def _owned_by_current_user(path: Path) -> bool:
    # The default work dir is the shared system temp dir.
    if not hasattr(os, "getuid"):
        return True
    try:
        return path.lstat().st_uid == os.getuid()
    except OSError:
        return False


def remove_path(path: Path) -> bool:
    """Delete a file or directory tree; failures are logged, not raised."""
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink(missing_ok=True)
    except OSError as exc:
        LOG.warning("Unable to remove %s: %s", path, exc)
        return False
    return True
