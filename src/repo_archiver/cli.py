from __future__ import annotations

import os
import sys
import traceback
from pathlib import Path
from typing import Mapping, Optional

from .config import ArchiverConfig, ConfigurationError, load_config
from .errors import ArchiverError
from .housekeeping import sweep_stale_artifacts
from .logger import configure_logging, get_logger
from .orchestrator import RunSummary, build_orchestrator

LOG = get_logger(__name__)

CONFIG_PATH_ENV = "REPO_ARCHIVER_CONFIG"


def load_configuration(environ: Mapping[str, str]) -> ArchiverConfig:
    config_path = environ.get(CONFIG_PATH_ENV)
    return load_config(environ, Path(config_path).expanduser() if config_path else None)


def run_archiver(config: ArchiverConfig) -> RunSummary:
    sweep_stale_artifacts(config.work_dir)
    orchestrator = build_orchestrator(config)
    return orchestrator.run()


def main(environ: Optional[Mapping[str, str]] = None) -> int:
    if environ is None:
        environ = os.environ
    configure_logging(environ.get("LOG_LEVEL", "INFO"))

    try:
        config = load_configuration(environ)
    except ConfigurationError as exc:
        LOG.error("Configuration error: %s", exc)
        return 1

    configure_logging(config.log_level)
    LOG.info("Starting archival run for organization %s", config.github.organization)

    try:
        summary = run_archiver(config)
    except KeyboardInterrupt:
        LOG.warning("Interrupted by operator")
        return 130
    except ArchiverError as exc:
        LOG.error("%s: %s", type(exc).__name__, exc)
        LOG.debug("Traceback:\n%s", "".join(traceback.format_exc()))
        return 1
    except Exception as exc:  # noqa: BLE001
        LOG.error("Unexpected error: %s", exc)
        LOG.debug("Traceback:\n%s", "".join(traceback.format_exc()))
        return 1

    LOG.info(
        "Run complete: %d archived, %d skipped",
        len(summary.archived),
        len(summary.skipped),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
