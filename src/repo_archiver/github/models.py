from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class RepositoryDescriptor(BaseModel):
    """Repository as reported by the organization repositories query."""

    model_config = ConfigDict(frozen=True)

    name: str
    url: str
    pushed_at: Optional[datetime] = None
    owner_login: str

    @classmethod
    def from_node(cls, node: Dict[str, Any]) -> "RepositoryDescriptor":
        owner = node.get("owner") or {}
        return cls(
            name=node.get("name"),
            url=node.get("url"),
            pushed_at=node.get("pushedAt"),
            owner_login=owner.get("login"),
        )

    @property
    def full_name(self) -> str:
        return f"{self.owner_login}/{self.name}"


@dataclass
class RepositoryPage:
    repositories: List[RepositoryDescriptor] = field(default_factory=list)
    last_cursor: Optional[str] = None
    has_next_page: Optional[bool] = None
