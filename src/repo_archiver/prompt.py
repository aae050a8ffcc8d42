from __future__ import annotations

import enum
from typing import Callable

from .github.models import RepositoryDescriptor

Ask = Callable[[str], str]


class Disposition(str, enum.Enum):
    ARCHIVE = "A"
    SKIP = "S"


def build_question(repository: RepositoryDescriptor) -> str:
    pushed_at = repository.pushed_at.isoformat() if repository.pushed_at else "never"
    return (
        f"What should I do with {repository.name} (last pushed to on {pushed_at})? "
        "(A)rchive, (S)kip: "
    )


def prompt_disposition(repository: RepositoryDescriptor, ask: Ask = input) -> Disposition:
    """Ask until the operator answers with exactly one of the accepted keys."""
    question = build_question(repository)
    accepted = {disposition.value: disposition for disposition in Disposition}
    while True:
        answer = ask(question)
        if answer in accepted:
            return accepted[answer]
