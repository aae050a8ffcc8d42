from __future__ import annotations

import enum
import logging
import os
import stat
import subprocess
import time
import zipfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Callable, Optional, Protocol
from urllib.parse import quote, urlsplit, urlunsplit

from .config import GitHubSettings
from .errors import LocalToolError
from .github.models import RepositoryDescriptor
from .housekeeping import ARCHIVE_PREFIX, ARCHIVE_SUFFIX, CLONE_DIR_PREFIX, remove_path

LOG = logging.getLogger(__name__)


class Uploader(Protocol):
    def upload(self, archive_path: Path) -> str:
        ...


class RepositoryDeleter(Protocol):
    def delete_repository(self, owner: str, name: str) -> None:
        ...


class JobState(str, enum.Enum):
    START = "start"
    CLONED = "cloned"
    PACKAGED = "packaged"
    UPLOADED = "uploaded"
    DELETED = "deleted"
    CLEANED = "cleaned"
    FAILED = "failed"


@dataclass
class ArchivalJob:
    descriptor: RepositoryDescriptor
    clone_dir: Path
    archive_path: Path
    state: JobState = JobState.START
    drive_file_id: Optional[str] = None


class ArchivePipeline:
    """Clones, zips, uploads, then deletes one repository at a time.

    The local clone and archive belong to the job and are removed once the job
    ends, whether it got all the way to deletion or failed on the way.
    """

    def __init__(
        self,
        github: GitHubSettings,
        work_dir: Path,
        uploader: Uploader,
        deleter: RepositoryDeleter,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._github = github
        self._work_dir = work_dir
        self._uploader = uploader
        self._deleter = deleter
        self._clock = clock

    def create_job(self, repository: RepositoryDescriptor) -> ArchivalJob:
        millis = int(self._clock() * 1000)
        return ArchivalJob(
            descriptor=repository,
            clone_dir=self._work_dir / f"{CLONE_DIR_PREFIX}{repository.name}-{millis}",
            archive_path=self._work_dir / f"{ARCHIVE_PREFIX}{repository.name}{ARCHIVE_SUFFIX}",
        )

    def run(self, repository: RepositoryDescriptor) -> ArchivalJob:
        self._work_dir.mkdir(parents=True, exist_ok=True)
        job = self.create_job(repository)
        try:
            self._clone(job)
            self._package(job)
            self._upload(job)
            self._delete(job)
        except Exception:
            LOG.error("Archival of %s failed after reaching state '%s'", repository.full_name, job.state.value)
            job.state = JobState.FAILED
            raise
        finally:
            self._cleanup(job)
        return job

    # Steps -----------------------------------------------------------------
    def _clone(self, job: ArchivalJob) -> None:
        username, token = self._github.credentials
        clone_url = add_user_info(job.descriptor.url, username, token)
        env = os.environ.copy()
        env["GIT_TERMINAL_PROMPT"] = "0"

        LOG.info("Cloning to %s", job.clone_dir)
        cmd = ["git", "clone", clone_url, str(job.clone_dir)]
        try:
            subprocess.run(cmd, env=env, check=True, capture_output=True)
        except FileNotFoundError as exc:
            raise LocalToolError("git executable not found on PATH") from exc
        except subprocess.CalledProcessError as exc:
            stderr = exc.stderr.decode("utf-8", "ignore").replace(token, "***")
            LOG.error("git clone failed: %s", stderr)
            # The command line embeds the token, so the original error is not chained.
            raise LocalToolError(
                f"Failed to clone {job.descriptor.full_name} (git exited with {exc.returncode})"
            ) from None
        job.state = JobState.CLONED

    def _package(self, job: ArchivalJob) -> None:
        LOG.info("Zipping to %s", job.archive_path)
        try:
            with zipfile.ZipFile(job.archive_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
                write_tree(zf, job.clone_dir, job.descriptor.name)
        except (OSError, zipfile.LargeZipFile) as exc:
            raise LocalToolError(f"Failed to package {job.descriptor.full_name}: {exc}") from exc
        job.state = JobState.PACKAGED

    def _upload(self, job: ArchivalJob) -> None:
        job.drive_file_id = self._uploader.upload(job.archive_path)
        job.state = JobState.UPLOADED

    def _delete(self, job: ArchivalJob) -> None:
        LOG.info("Deleting %s", job.descriptor.url)
        self._deleter.delete_repository(job.descriptor.owner_login, job.descriptor.name)
        job.state = JobState.DELETED

    def _cleanup(self, job: ArchivalJob) -> None:
        if job.state is JobState.DELETED:
            LOG.info("All done, cleaning up")
        else:
            LOG.info("Removing local artifacts of %s", job.descriptor.full_name)
        remove_path(job.clone_dir)
        remove_path(job.archive_path)
        if job.state is JobState.DELETED:
            job.state = JobState.CLEANED


def add_user_info(url: str, username: str, password: str) -> str:
    parts = urlsplit(url)
    netloc = f"{quote(username, safe='')}:{quote(password, safe='')}@{parts.hostname}"
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    return urlunsplit(parts._replace(netloc=netloc))


def write_tree(zf: zipfile.ZipFile, source: Path, root_name: str) -> None:
    """Add ``source`` to ``zf`` with every entry rooted at ``root_name``/.

    Symbolic links are stored as links rather than followed.
    """
    for dirpath, dirnames, filenames in os.walk(source):
        current = Path(dirpath)
        arc_dir = PurePosixPath(root_name, current.relative_to(source).as_posix())
        zf.write(current, str(arc_dir))

        linked_dirs = [name for name in dirnames if (current / name).is_symlink()]
        dirnames[:] = sorted(name for name in dirnames if name not in linked_dirs)

        for name in sorted(filenames + linked_dirs):
            path = current / name
            arcname = str(arc_dir / name)
            if path.is_symlink():
                _write_symlink(zf, path, arcname)
            else:
                zf.write(path, arcname)


def _write_symlink(zf: zipfile.ZipFile, path: Path, arcname: str) -> None:
    info = zipfile.ZipInfo(arcname)
    info.create_system = 3
    info.external_attr = (stat.S_IFLNK | 0o777) << 16
    zf.writestr(info, os.readlink(path))
