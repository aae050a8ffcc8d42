"""Archive inactive GitHub repositories to Google Drive, then delete them."""

from __future__ import annotations

from .config import ArchiverConfig, load_config  # noqa: F401
from .orchestrator import ArchiveOrchestrator  # noqa: F401
