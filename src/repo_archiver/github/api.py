from __future__ import annotations

import json
import logging
from collections import deque
from typing import Any, Deque, Dict, Iterator, Optional

import requests
from pydantic import ValidationError
from requests.auth import HTTPBasicAuth

from repo_archiver.config import ConfigurationError
from repo_archiver.errors import RemoteApiError

from .models import RepositoryDescriptor, RepositoryPage

DEFAULT_API_URL = "https://api.github.com"
DELETE_ACCEPT_HEADER = "application/vnd.github.v3+json"
REQUEST_TIMEOUT = 30

# Private repositories, least recently pushed first.
REPOSITORIES_QUERY = """
query ($organizationLogin: String!, $pageSize: Int!, $cursor: String) {
  organization(login: $organizationLogin) {
    repositories(
      first: $pageSize
      after: $cursor
      privacy: PRIVATE
      orderBy: {field: PUSHED_AT, direction: ASC}
    ) {
      pageInfo {
        hasNextPage
      }
      edges {
        cursor
        node {
          name
          url
          pushedAt
          owner {
            login
          }
        }
      }
    }
  }
}
"""


class GitHubAPI:
    def __init__(self, username: str, token: str, base_url: str = DEFAULT_API_URL) -> None:
        if not username or not token:
            raise ConfigurationError("GitHub username and token must both be provided")
        self._session = requests.Session()
        self._session.auth = HTTPBasicAuth(username, token)
        self._session.headers.update({"User-Agent": "github-repo-archiver"})
        self._base_url = base_url.rstrip("/")
        self._log = logging.getLogger(self.__class__.__name__)

    def graphql(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        response = self._session.post(
            f"{self._base_url}/graphql",
            json={"query": query, "variables": variables},
            timeout=REQUEST_TIMEOUT,
        )
        payload = _decode_body(response)
        if not _is_success(response):
            self._log.error("GitHub GraphQL request failed: %s %s", response.status_code, response.text)
            raise RemoteApiError(
                f"GitHub GraphQL request failed with status {response.status_code}: {_dump(payload)}",
                status=response.status_code,
                payload=payload,
            )
        if not isinstance(payload, dict):
            raise RemoteApiError(
                "GitHub GraphQL response is not a JSON object",
                status=response.status_code,
                payload=payload,
            )
        if payload.get("errors"):
            raise RemoteApiError(
                f"GitHub GraphQL query returned errors: {_dump(payload['errors'])}",
                status=response.status_code,
                payload=payload["errors"],
            )
        return payload.get("data") or {}

    def fetch_repository_page(
        self,
        organization: str,
        page_size: int,
        cursor: Optional[str] = None,
    ) -> RepositoryPage:
        variables: Dict[str, Any] = {"organizationLogin": organization, "pageSize": page_size}
        if cursor:
            variables["cursor"] = cursor

        data = self.graphql(REPOSITORIES_QUERY, variables)
        org = data.get("organization")
        if not org:
            raise RemoteApiError(f"Organization '{organization}' was not found", payload=data)

        connection = org.get("repositories") or {}
        edges = connection.get("edges") or []
        try:
            repositories = [RepositoryDescriptor.from_node(edge["node"]) for edge in edges]
        except (KeyError, TypeError, ValidationError) as exc:
            raise RemoteApiError(f"Unexpected repository payload from GitHub: {exc}", payload=data) from exc

        page_info = connection.get("pageInfo")
        return RepositoryPage(
            repositories=repositories,
            last_cursor=edges[-1].get("cursor") if edges else None,
            has_next_page=page_info.get("hasNextPage") if page_info else None,
        )

    def iterate_repositories(self, organization: str, page_size: int) -> "RepositoryPager":
        return RepositoryPager(self, organization, page_size)

    def delete_repository(self, owner: str, name: str) -> None:
        response = self._session.delete(
            f"{self._base_url}/repos/{owner}/{name}",
            headers={"Accept": DELETE_ACCEPT_HEADER},
            timeout=REQUEST_TIMEOUT,
        )
        if not _is_success(response):
            payload = _decode_body(response)
            raise RemoteApiError(
                f"error while trying to delete repo {owner}/{name}: "
                f"GitHub responded {response.status_code}: {_dump(payload)}",
                status=response.status_code,
                payload=payload,
            )


class RepositoryPager(Iterator[RepositoryDescriptor]):
    """Lazily walks an organization's repositories one GraphQL page at a time.

    The next page is requested with the cursor of the last edge of the current
    page, and only once every repository of the current page has been handed
    out. A page with no edges, a short page, or ``hasNextPage: false`` ends the
    sequence.
    """

    def __init__(self, api: GitHubAPI, organization: str, page_size: int) -> None:
        self._api = api
        self._organization = organization
        self._page_size = page_size
        self._buffer: Deque[RepositoryDescriptor] = deque()
        self._cursor = ""
        self._exhausted = False
        self.pages_fetched = 0

    def __iter__(self) -> "RepositoryPager":
        return self

    def __next__(self) -> RepositoryDescriptor:
        while not self._buffer:
            if self._exhausted:
                raise StopIteration
            self._fetch_next_page()
        return self._buffer.popleft()

    def _fetch_next_page(self) -> None:
        page = self._api.fetch_repository_page(self._organization, self._page_size, self._cursor or None)
        self.pages_fetched += 1
        self._buffer.extend(page.repositories)

        if (
            not page.repositories
            or len(page.repositories) < self._page_size
            or page.has_next_page is False
            or not page.last_cursor
        ):
            self._exhausted = True
        else:
            self._cursor = page.last_cursor


def _is_success(response: requests.Response) -> bool:
    return 200 <= response.status_code < 300


def _decode_body(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def _dump(payload: Any) -> str:
    if isinstance(payload, str):
        return payload
    return json.dumps(payload)
