from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List

from .config import ArchiverConfig
from .drive import DriveUploader
from .github import GitHubAPI, RepositoryDescriptor
from .pipeline import ArchivePipeline
from .prompt import Disposition, prompt_disposition

LOG = logging.getLogger(__name__)

Prompter = Callable[[RepositoryDescriptor], Disposition]


@dataclass
class RunSummary:
    archived: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


class ArchiveOrchestrator:
    """Walks the organization's repositories and archives the ones the operator picks.

    Errors are not caught: the first failure ends the run, and repositories
    archived before it stay archived.
    """

    def __init__(
        self,
        repositories: Iterable[RepositoryDescriptor],
        pipeline: ArchivePipeline,
        prompt: Prompter = prompt_disposition,
    ) -> None:
        self._repositories = repositories
        self._pipeline = pipeline
        self._prompt = prompt

    def run(self) -> RunSummary:
        summary = RunSummary()
        for repository in self._repositories:
            disposition = self._prompt(repository)
            if disposition is Disposition.SKIP:
                LOG.info("Skipping %s", repository.full_name)
                summary.skipped.append(repository.full_name)
                continue

            job = self._pipeline.run(repository)
            LOG.info("Archived %s as Drive file %s", repository.full_name, job.drive_file_id)
            summary.archived.append(repository.full_name)
        return summary


def build_orchestrator(config: ArchiverConfig) -> ArchiveOrchestrator:
    api = GitHubAPI(config.github.username, config.github.token)
    pipeline = ArchivePipeline(
        github=config.github,
        work_dir=config.work_dir,
        uploader=DriveUploader(config.drive),
        deleter=api,
    )
    repositories = api.iterate_repositories(config.github.organization, config.github.page_size)
    return ArchiveOrchestrator(repositories=repositories, pipeline=pipeline)
