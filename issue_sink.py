"""Issue-tracker sinks that receive the run report."""
from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Sequence

import httpx
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from config import ReportingConfig
from exceptions import IssueSinkError


class IssueSink(Protocol):
    async def create_issue(self, title: str, body: str, labels: Sequence[str]) -> str:
        """File the issue and return a reference to it."""
        ...


def _is_transient(exc: BaseException) -> bool:
    """Network errors and 5xx/429 responses are worth another try."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status >= 500 or status == 429
    return False


class GitHubIssueSink:
    """Creates a GitHub issue through the REST API."""

    def __init__(
        self,
        repository: str,
        token: str,
        api_url: str = "https://api.github.com",
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.repository = repository
        self.token = token
        self.api_url = api_url.rstrip("/")
        self._client = client
        self.logger = logger or logging.getLogger("issue_sink")

    @retry(
        retry=retry_if_exception(_is_transient),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=2.0, min=2.0, max=10),
        reraise=True,
    )
    async def _post(self, client: httpx.AsyncClient, payload: Dict[str, Any]) -> httpx.Response:
        response = await client.post(
            f"{self.api_url}/repos/{self.repository}/issues",
            json=payload,
            headers={
                "Authorization": f"Bearer {self.token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
        )
        response.raise_for_status()
        return response

    async def create_issue(self, title: str, body: str, labels: Sequence[str]) -> str:
        payload = {"title": title, "body": body, "labels": list(labels)}
        try:
            if self._client is not None:
                response = await self._post(self._client, payload)
            else:
                async with httpx.AsyncClient(timeout=30.0) as client:
                    response = await self._post(client, payload)
        except httpx.HTTPStatusError as exc:
            raise IssueSinkError(
                f"GitHub rejected the issue: {exc.response.text[:200]}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise IssueSinkError(f"Could not reach GitHub: {exc}") from exc

        url = response.json().get("html_url", "")
        self.logger.info(f"Created issue {url}")
        return url


class MarkdownFileSink:
    """Writes the report to disk when no issue tracker is configured."""

    def __init__(self, output_dir: Path, logger: Optional[logging.Logger] = None):
        self.output_dir = output_dir
        self.logger = logger or logging.getLogger("issue_sink")

    async def create_issue(self, title: str, body: str, labels: Sequence[str]) -> str:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.utcnow().strftime("%Y%m%d-%H%M%S")
        target = self.output_dir / f"failures-{timestamp}.md"
        front_matter = f"<!-- title: {title} | labels: {', '.join(labels)} -->\n"
        target.write_text(front_matter + body, encoding="utf-8")
        self.logger.info(f"Failure report written to {target}")
        return str(target)


def build_issue_sink(config: ReportingConfig, logger: Optional[logging.Logger] = None) -> IssueSink:
    """GitHub when a repository and token are configured, a markdown file otherwise."""
    if config.github_repository and config.github_token:
        return GitHubIssueSink(
            repository=config.github_repository,
            token=config.github_token,
            api_url=config.github_api_url,
            logger=logger,
        )
    return MarkdownFileSink(config.reports_folder, logger=logger)
