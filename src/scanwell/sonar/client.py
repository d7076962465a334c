"""Analysis server HTTP client.

One ``httpx.AsyncClient`` per project, bearer-token authenticated. HTTP
failures are mapped to typed errors:

- 401: AuthenticationError (masked token only)
- 403: ServerPermissionError with numbered remediation steps
- 404: ProjectNotFoundError
- anything else: SERVER_API_ERROR / NETWORK_* ScanwellErrors
"""

import asyncio
import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError as ResponseValidationError

from scanwell.foundation.errors import (
    AuthenticationError,
    ErrorCode,
    ProjectNotFoundError,
    ScanwellError,
    ServerPermissionError,
    server_error,
)
from scanwell.foundation.security import mask_token, sanitize_project_key, sanitize_url
from scanwell.foundation.types.config import ServerConfig
from scanwell.foundation.types.scan import ScanConfig
from scanwell.sonar.cache import TTLCache
from scanwell.sonar.models import (
    CeActivity,
    CeTask,
    ComponentMeasures,
    HotspotPage,
    IssuePage,
    MeasuresResponse,
    RuleDetails,
    RuleResponse,
    SecurityHotspot,
    SonarIssue,
)

logger = logging.getLogger(__name__)

PAGE_SIZE = 500
"""Server maximum page size."""

DEFAULT_ISSUE_STATUSES = ("OPEN", "REOPENED")
DEFAULT_HOTSPOT_STATUSES = ("TO_REVIEW", "REVIEWED")

DEFAULT_METRICS = (
    "lines",
    "ncloc",
    "coverage",
    "duplicated_lines_density",
    "duplicated_lines",
    "duplicated_blocks",
    "duplicated_files",
    "complexity",
    "cognitive_complexity",
    "violations",
    "bugs",
    "vulnerabilities",
    "code_smells",
    "security_hotspots",
    "security_rating",
    "reliability_rating",
    "sqale_rating",
    "sqale_index",
    "alert_status",
    # Clean Code impact metrics (JSON values)
    "reliability_issues",
    "maintainability_issues",
    "security_issues",
)

BROWSE_STEPS = [
    "Verify the token has 'Browse' permission on the project",
    "Check that the project exists and the key is correct",
    "Ensure the token has not expired",
    "Use a user or project analysis token, not a global token",
    "Check the server logs for detailed permission errors",
]

ANALYSIS_STATUS_STEPS = [
    "Verify the token has 'Execute Analysis' permission",
    "Check that the token has 'Browse' permission on the project",
    "Ensure the token belongs to a user with sufficient privileges",
    "Verify the project was created successfully",
    "Check whether this operation needs admin permissions",
]


@dataclass(frozen=True, slots=True)
class IssueFilter:
    """Optional narrowing of an issue search."""

    severities: tuple[str, ...] = ()
    types: tuple[str, ...] = ()
    statuses: tuple[str, ...] = DEFAULT_ISSUE_STATUSES

    def to_params(self) -> dict[str, str]:
        params = {"statuses": ",".join(self.statuses or DEFAULT_ISSUE_STATUSES)}
        if self.severities:
            params["severities"] = ",".join(self.severities)
        if self.types:
            params["types"] = ",".join(self.types)
        return params


def _server_messages(response: httpx.Response) -> str:
    try:
        errors = response.json().get("errors") or []
    except (ValueError, AttributeError):
        return ""
    return ", ".join(str(e.get("msg", "")) for e in errors if isinstance(e, dict))


class SonarClient:
    """Async client for one project on the analysis server.

    Usage:
        async with SonarClient(url, token, key) as client:
            issues = await client.get_issues()

    An ``httpx.AsyncClient`` passed as ``http`` is used as is (tests pass one
    built on ``httpx.MockTransport``) and is not closed by this client.
    """

    def __init__(
        self,
        server_url: str,
        token: str,
        project_key: str,
        *,
        http: httpx.AsyncClient | None = None,
        rule_cache: TTLCache[RuleDetails] | None = None,
        timeout: float = 30.0,
        page_size: int = PAGE_SIZE,
    ):
        self.server_url = sanitize_url(server_url)
        self.project_key = sanitize_project_key(project_key)
        self._token = token
        self.page_size = page_size
        self.rule_cache: TTLCache[RuleDetails] = (
            rule_cache if rule_cache is not None else TTLCache(ttl_seconds=300.0)
        )
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(
            base_url=self.server_url,
            headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
            timeout=httpx.Timeout(timeout),
        )

    @classmethod
    def from_config(
        cls,
        config: ScanConfig,
        server: ServerConfig | None = None,
        **kwargs: Any,
    ) -> "SonarClient":
        server = server or ServerConfig()
        kwargs.setdefault("rule_cache", TTLCache(ttl_seconds=server.rule_cache_ttl))
        return cls(
            config.server_url,
            config.token,
            config.project_key,
            timeout=server.request_timeout,
            page_size=server.page_size,
            **kwargs,
        )

    @property
    def masked_token(self) -> str:
        return mask_token(self._token)

    async def __aenter__(self) -> "SonarClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    # ─────────────────────────────────────────────────────────────
    # Transport
    # ─────────────────────────────────────────────────────────────

    async def get_json(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        *,
        operation: str,
        permission_steps: Sequence[str] = BROWSE_STEPS,
    ) -> dict[str, Any]:
        """GET ``path`` and return the decoded JSON body.

        Raises:
            AuthenticationError: On 401
            ServerPermissionError: On 403
            ProjectNotFoundError: On 404
            ScanwellError: Other HTTP, network or decoding failures
        """
        try:
            response = await self._http.get(path, params=params)
        except httpx.TimeoutException as e:
            raise ScanwellError(
                ErrorCode.NETWORK_TIMEOUT,
                {"url": f"{self.server_url}{path}", "timeout": self._http.timeout.read},
                cause=e,
            ) from e
        except httpx.RequestError as e:
            raise ScanwellError(
                ErrorCode.NETWORK_UNREACHABLE, {"url": self.server_url, "detail": str(e)}, cause=e
            ) from e

        status = response.status_code
        if status == 401:
            logger.error("Authentication failed for %s (token %s)", self.server_url, self.masked_token)
            raise AuthenticationError(self.server_url, self.masked_token)
        if status == 403:
            messages = _server_messages(response)
            steps = list(permission_steps)
            if messages:
                logger.debug("Server errors on %s: %s", path, messages)
                steps.append(f"Server said: {messages}")
            raise ServerPermissionError(self.project_key, operation, steps)
        if status == 404:
            raise ProjectNotFoundError(self.project_key, operation)
        if status >= 400:
            detail = _server_messages(response) or f"HTTP {status}: {response.text[:200]}"
            raise server_error(operation, detail, status=status)

        try:
            data = response.json()
        except ValueError as e:
            raise server_error(operation, f"invalid JSON from {path}", cause=e) from e
        if not isinstance(data, dict):
            raise server_error(operation, f"unexpected response shape from {path}")
        return data

    async def _get_model(
        self,
        model: type[BaseModel],
        path: str,
        params: dict[str, Any] | None = None,
        *,
        operation: str,
        permission_steps: Sequence[str] = BROWSE_STEPS,
    ) -> Any:
        data = await self.get_json(
            path, params, operation=operation, permission_steps=permission_steps
        )
        try:
            return model.model_validate(data)
        except ResponseValidationError as e:
            raise server_error(operation, f"unexpected response from {path}: {e}", cause=e) from e

    # ─────────────────────────────────────────────────────────────
    # Compute engine
    # ─────────────────────────────────────────────────────────────

    async def get_latest_task(self) -> CeTask | None:
        """Most recent background task for the project, if any."""
        activity: CeActivity = await self._get_model(
            CeActivity,
            "/api/ce/activity",
            {"component": self.project_key, "ps": 1},
            operation="checking analysis status",
            permission_steps=ANALYSIS_STATUS_STEPS,
        )
        return activity.tasks[0] if activity.tasks else None

    # ─────────────────────────────────────────────────────────────
    # Results
    # ─────────────────────────────────────────────────────────────

    async def get_issues(self, filter: IssueFilter | None = None) -> list[SonarIssue]:
        """All unresolved issues matching ``filter``.

        The first page gives the total; the remaining pages are fetched
        concurrently.
        """
        base = {
            "componentKeys": self.project_key,
            "resolved": "false",
            "ps": self.page_size,
            **(filter or IssueFilter()).to_params(),
        }

        async def fetch(page: int) -> IssuePage:
            return await self._get_model(
                IssuePage,
                "/api/issues/search",
                {**base, "p": page},
                operation="fetching issues",
            )

        first = await fetch(1)
        issues = list(first.issues)
        pages = math.ceil(first.total / self.page_size) if first.total else 1
        if pages > 1:
            logger.debug("Fetching %d more issue pages (%d issues)", pages - 1, first.total)
            rest = await asyncio.gather(*(fetch(page) for page in range(2, pages + 1)))
            for page in rest:
                issues.extend(page.issues)

        logger.info("Fetched %d issues", len(issues))
        return issues

    async def count_issues(self) -> int:
        return len(await self.get_issues())

    async def get_security_hotspots(
        self,
        statuses: Sequence[str] = DEFAULT_HOTSPOT_STATUSES,
    ) -> list[SecurityHotspot]:
        """Hotspots in any of ``statuses``, deduplicated by key.

        The server takes one status per request; a failing status is logged
        and skipped.
        """
        found: dict[str, SecurityHotspot] = {}
        for status in statuses:
            try:
                page: HotspotPage = await self._get_model(
                    HotspotPage,
                    "/api/hotspots/search",
                    {"projectKey": self.project_key, "ps": self.page_size, "status": status},
                    operation=f"fetching {status} security hotspots",
                )
            except ScanwellError as e:
                logger.warning("Skipping %s security hotspots: %s", status, e)
                continue
            for hotspot in page.hotspots:
                found.setdefault(hotspot.key, hotspot)

        logger.info("Fetched %d security hotspots", len(found))
        return list(found.values())

    async def get_project_metrics(
        self,
        metrics: Sequence[str] = DEFAULT_METRICS,
    ) -> ComponentMeasures:
        response: MeasuresResponse = await self._get_model(
            MeasuresResponse,
            "/api/measures/component",
            {"component": self.project_key, "metricKeys": ",".join(metrics)},
            operation="fetching project metrics",
            permission_steps=BROWSE_STEPS[:3],
        )
        return response.component

    async def get_rule_details(self, rule_key: str) -> RuleDetails:
        """Rule description, served from the TTL cache when fresh."""

        operation = f"fetching rule {rule_key}"

        async def load() -> RuleDetails:
            try:
                response: RuleResponse = await self._get_model(
                    RuleResponse,
                    "/api/rules/show",
                    {"key": rule_key, "actives": "true"},
                    operation=operation,
                )
            except ProjectNotFoundError as e:
                raise server_error(operation, f"rule '{rule_key}' not found", cause=e) from e
            return response.rule

        return await self.rule_cache.get_or_load(rule_key, load)
