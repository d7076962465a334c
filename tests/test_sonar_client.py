"""Tests for the analysis server client."""

import httpx
import pytest
from conftest import PROJECT_KEY, SERVER_URL, TOKEN, FakeSonarServer, issue

from scanwell.foundation.errors import (
    AuthenticationError,
    ErrorCode,
    ProjectNotFoundError,
    ScanwellError,
    ServerPermissionError,
    ValidationError,
)
from scanwell.foundation.types.config import ServerConfig
from scanwell.foundation.types.scan import ScanConfig
from scanwell.sonar.cache import TTLCache
from scanwell.sonar.client import IssueFilter, SonarClient


class ReviewedHotspotsDown(FakeSonarServer):
    """Server whose REVIEWED hotspot search fails."""

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/hotspots/search" and request.url.params["status"] == "REVIEWED":
            self.requests.append(request)
            return httpx.Response(500, json={"errors": [{"msg": "index rebuilding"}]})
        return super().handler(request)


# =============================================================================
# Construction
# =============================================================================


class TestConstruction:
    """Tests for client construction and input validation."""

    def test_rejects_bad_project_key(self) -> None:
        with pytest.raises(ValidationError):
            SonarClient(SERVER_URL, TOKEN, "bad key!")

    def test_rejects_bad_url(self) -> None:
        with pytest.raises(ValidationError):
            SonarClient("ftp://sonar", TOKEN, PROJECT_KEY)

    @pytest.mark.asyncio
    async def test_from_config(self, scan_config: ScanConfig) -> None:
        server = ServerConfig(request_timeout=5, page_size=100, rule_cache_ttl=10)

        async with SonarClient.from_config(scan_config, server) as client:
            assert client.page_size == 100
            assert client.rule_cache.ttl_seconds == 10
            assert client.masked_token == "squ_****"
            assert client._http.headers["Authorization"] == f"Bearer {TOKEN}"

    def test_keeps_injected_empty_cache(self) -> None:
        cache: TTLCache = TTLCache(ttl_seconds=10)
        assert len(cache) == 0

        client = SonarClient(SERVER_URL, TOKEN, PROJECT_KEY, rule_cache=cache)

        assert client.rule_cache is cache
        assert client.rule_cache.ttl_seconds == 10


# =============================================================================
# Issues
# =============================================================================


class TestIssues:
    """Tests for issue search."""

    @pytest.mark.asyncio
    async def test_paginates(self, sonar: FakeSonarServer) -> None:
        """Five issues at two per page take three requests."""
        sonar.issues = [issue(f"I{i}") for i in range(5)]

        issues = await sonar.client(page_size=2).get_issues()

        assert [i.key for i in issues] == ["I0", "I1", "I2", "I3", "I4"]
        pages = sorted(r.url.params["p"] for r in sonar.requests_to("/api/issues/search"))
        assert pages == ["1", "2", "3"]

    @pytest.mark.asyncio
    async def test_query_params(self, sonar: FakeSonarServer) -> None:
        sonar.issues = [issue("A", "BLOCKER"), issue("B", "MINOR")]

        issues = await sonar.client().get_issues(
            IssueFilter(severities=("BLOCKER",), types=("BUG",), statuses=("OPEN",))
        )

        params = sonar.requests_to("/api/issues/search")[0].url.params
        assert [i.key for i in issues] == ["A"]
        assert params["componentKeys"] == PROJECT_KEY
        assert params["resolved"] == "false"
        assert params["statuses"] == "OPEN"
        assert params["types"] == "BUG"

    @pytest.mark.asyncio
    async def test_empty_project(self, sonar: FakeSonarServer) -> None:
        client = sonar.client()

        assert await client.get_issues() == []
        assert await client.count_issues() == 0

    @pytest.mark.asyncio
    async def test_camel_case_fields(self, sonar: FakeSonarServer) -> None:
        sonar.hotspots = {"TO_REVIEW": [{
            "key": "H1",
            "vulnerabilityProbability": "HIGH",
            "securityCategory": "sql-injection",
        }]}

        (hotspot,) = await sonar.client().get_security_hotspots()

        assert hotspot.vulnerability_probability == "HIGH"
        assert hotspot.security_category == "sql-injection"


# =============================================================================
# Error mapping
# =============================================================================


class TestErrorMapping:
    """Tests for HTTP status to error mapping."""

    @pytest.mark.asyncio
    async def test_401(self, sonar: FakeSonarServer) -> None:
        sonar.failures["/api/issues/search"] = (401, {})

        with pytest.raises(AuthenticationError) as exc_info:
            await sonar.client().get_issues()

        assert "squ_****" in exc_info.value.message
        assert TOKEN not in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_403_includes_server_message(self, sonar: FakeSonarServer) -> None:
        sonar.failures["/api/ce/activity"] = (403, {"errors": [{"msg": "Insufficient privileges"}]})

        with pytest.raises(ServerPermissionError) as exc_info:
            await sonar.client().get_latest_task()

        message = exc_info.value.message
        assert "while checking analysis status" in message
        assert "1. Verify the token has 'Execute Analysis' permission" in message
        assert message.endswith("6. Server said: Insufficient privileges")

    @pytest.mark.asyncio
    async def test_404(self, sonar: FakeSonarServer) -> None:
        sonar.failures["/api/measures/component"] = (404, {})

        with pytest.raises(ProjectNotFoundError) as exc_info:
            await sonar.client().get_project_metrics()

        assert exc_info.value.is_recoverable is False

    @pytest.mark.asyncio
    async def test_500(self, sonar: FakeSonarServer) -> None:
        sonar.failures["/api/issues/search"] = (500, {"errors": [{"msg": "boom"}]})

        with pytest.raises(ScanwellError) as exc_info:
            await sonar.client().get_issues()

        assert exc_info.value.code == ErrorCode.SERVER_API_ERROR
        assert exc_info.value.context["status"] == 500
        assert exc_info.value.raw_message == "boom"

    @pytest.mark.asyncio
    async def test_unexpected_shape(self, sonar: FakeSonarServer) -> None:
        sonar.tasks = [{"id": "T1"}]

        with pytest.raises(ScanwellError) as exc_info:
            await sonar.client().get_latest_task()

        assert exc_info.value.code == ErrorCode.SERVER_API_ERROR

    @pytest.mark.asyncio
    async def test_network_error(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        http = httpx.AsyncClient(transport=httpx.MockTransport(refuse), base_url=SERVER_URL)
        client = SonarClient(SERVER_URL, TOKEN, PROJECT_KEY, http=http)

        with pytest.raises(ScanwellError) as exc_info:
            await client.get_latest_task()

        assert exc_info.value.code == ErrorCode.NETWORK_UNREACHABLE


# =============================================================================
# Hotspots, metrics and rules
# =============================================================================


class TestHotspotsMetricsRules:
    """Tests for the secondary result endpoints."""

    @pytest.mark.asyncio
    async def test_hotspots_deduplicated(self, sonar: FakeSonarServer) -> None:
        sonar.hotspots = {
            "TO_REVIEW": [{"key": "H1"}, {"key": "H2"}],
            "REVIEWED": [{"key": "H2", "status": "REVIEWED"}, {"key": "H3", "status": "REVIEWED"}],
        }

        hotspots = await sonar.client().get_security_hotspots()

        assert [h.key for h in hotspots] == ["H1", "H2", "H3"]
        assert hotspots[1].status == "TO_REVIEW"

    @pytest.mark.asyncio
    async def test_failing_status_skipped(self) -> None:
        server = ReviewedHotspotsDown()
        server.hotspots = {"TO_REVIEW": [{"key": "H1"}]}

        hotspots = await server.client().get_security_hotspots()

        assert [h.key for h in hotspots] == ["H1"]
        assert len(server.requests_to("/api/hotspots/search")) == 2

    @pytest.mark.asyncio
    async def test_metrics(self, sonar: FakeSonarServer) -> None:
        sonar.measures = [
            {"metric": "ncloc", "value": "1200"},
            {"metric": "security_issues", "value": '{"total": 2}'},
        ]

        measures = await sonar.client().get_project_metrics(("ncloc", "security_issues"))

        assert measures.key == PROJECT_KEY
        assert measures.value("ncloc") == "1200"
        assert measures.value("coverage") is None
        params = sonar.requests_to("/api/measures/component")[0].url.params
        assert params["metricKeys"] == "ncloc,security_issues"

    @pytest.mark.asyncio
    async def test_rule_details_cached(self, sonar: FakeSonarServer) -> None:
        sonar.rules["java:S1000"] = {
            "key": "java:S1000",
            "name": "Avoid empty blocks",
            "defaultSeverity": "MAJOR",
            "descriptionSections": [{"key": "root_cause", "content": "Empty blocks hide bugs."}],
        }
        client = sonar.client()

        first = await client.get_rule_details("java:S1000")
        second = await client.get_rule_details("java:S1000")

        assert first is second
        assert first.effective_severity == "MAJOR"
        assert first.description == "Empty blocks hide bugs."
        assert len(sonar.requests_to("/api/rules/show")) == 1

    @pytest.mark.asyncio
    async def test_rule_cache_expires(self, sonar: FakeSonarServer) -> None:
        now = [0.0]
        sonar.rules["py:S1"] = {"key": "py:S1"}
        client = sonar.client(rule_cache=TTLCache(ttl_seconds=60, clock=lambda: now[0]))

        await client.get_rule_details("py:S1")
        now[0] = 61.0
        await client.get_rule_details("py:S1")

        assert len(sonar.requests_to("/api/rules/show")) == 2

    @pytest.mark.asyncio
    async def test_unknown_rule(self, sonar: FakeSonarServer) -> None:
        """A missing rule is a server error, not a missing project."""
        with pytest.raises(ScanwellError) as exc_info:
            await sonar.client().get_rule_details("java:S9999")

        assert not isinstance(exc_info.value, ProjectNotFoundError)
        assert exc_info.value.code == ErrorCode.SERVER_API_ERROR
        assert "rule 'java:S9999' not found" in exc_info.value.message
