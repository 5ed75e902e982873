"""Runs discovered endpoints against a server, or against a mock of one.

If the target answers its health check, every endpoint gets a real request.
Otherwise responses are simulated so the rest of the pipeline can still be
exercised.
"""

import logging
import random
import time
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Literal

import requests
from pydantic import BaseModel, ConfigDict, Field

from gitlit.discovery.base import BODY_METHODS, EndpointRecord

from .samples import MOCK_ERRORS, mock_response_body, mock_status_code, sample_body

logger = logging.getLogger(__name__)

HEALTH_PATH = "/api/health"
MOCK_DELAY_MS = (50, 200)
MOCK_SUCCESS_RATE = 0.9


class TestResult(BaseModel):
    """Outcome of calling one endpoint."""

    __test__ = False  # not a pytest class
    model_config = ConfigDict(populate_by_name=True)

    method: str
    path: str
    url: str
    status: Literal["success", "error", "pending"] = "pending"
    status_code: int | None = Field(default=None, alias="statusCode")
    response_time_ms: float | None = Field(default=None, alias="responseTimeMs")
    response_body: Any = Field(default=None, alias="responseBody")
    error: str | None = None


class TestSummary(BaseModel):
    __test__ = False
    model_config = ConfigDict(populate_by_name=True)

    total: int
    passed: int
    failed: int
    avg_response_time_ms: float = Field(alias="avgResponseTimeMs")


class TestRun(BaseModel):
    __test__ = False
    model_config = ConfigDict(populate_by_name=True)

    tests: list[TestResult]
    summary: TestSummary
    mode: Literal["real", "mock"]
    timestamp: str


def summarize(tests: list[TestResult]) -> TestSummary:
    """Counts plus mean latency; results with no latency count as 0 ms."""
    total = len(tests)
    avg = sum(t.response_time_ms or 0 for t in tests) / total if total else 0.0
    return TestSummary(
        total=total,
        passed=sum(1 for t in tests if t.status == "success"),
        failed=sum(1 for t in tests if t.status == "error"),
        avg_response_time_ms=avg,
    )


class EndpointExecutor:
    """Tests endpoints one after another against ``base_url``."""

    def __init__(
        self,
        session: requests.Session | None = None,
        probe_path: str = HEALTH_PATH,
        probe_timeout: float = 1.0,
        request_timeout: float = 10.0,
        success_rate: float = MOCK_SUCCESS_RATE,
        rng: random.Random | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.session = session or requests.Session()
        self.probe_path = probe_path
        self.probe_timeout = probe_timeout
        self.request_timeout = request_timeout
        self.success_rate = success_rate
        self.rng = rng or random.Random()
        self.sleep = sleep

    def probe(self, base_url: str) -> bool:
        """True if the target answers its health check in time."""
        url = f"{base_url.rstrip('/')}{self.probe_path}"
        try:
            resp = self.session.get(url, timeout=self.probe_timeout)
        except requests.RequestException as e:
            logger.info("No server at %s (%s); using mock responses", base_url, e.__class__.__name__)
            return False
        return resp.ok

    def run(
        self,
        endpoints: Iterable[EndpointRecord],
        base_url: str,
        mode: Literal["auto", "real", "mock"] = "auto",
    ) -> TestRun:
        base_url = base_url.rstrip("/")
        if mode == "auto":
            mode = "real" if self.probe(base_url) else "mock"

        call = self._call_real if mode == "real" else self._call_mock
        tests = []
        for ep in endpoints:
            path = ep.path if ep.path.startswith("/") else f"/{ep.path}"
            result = TestResult(method=ep.method, path=ep.path, url=f"{base_url}{path}")
            started = time.perf_counter()
            try:
                call(ep.method, path, result)
            except Exception as e:  # one endpoint must not stop the batch
                logger.warning("%s %s failed: %s", ep.method, result.url, e)
                result.status = "error"
                result.status_code = 0
                result.error = str(e) or e.__class__.__name__
                result.response_time_ms = _elapsed_ms(started)
            tests.append(result)

        return TestRun(
            tests=tests,
            summary=summarize(tests),
            mode=mode,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    # -- real requests --------------------------------------------------------

    def _call_real(self, method: str, path: str, result: TestResult) -> None:
        logger.info("Testing %s %s", method, result.url)
        kwargs = {
            "headers": {"Content-Type": "application/json", "Accept": "application/json"},
            "timeout": self.request_timeout,
        }
        if method in BODY_METHODS:
            kwargs["json"] = sample_body(path)

        started = time.perf_counter()
        resp = self.session.request(method, result.url, **kwargs)
        result.response_time_ms = _elapsed_ms(started)
        result.status_code = resp.status_code
        result.status = "success" if resp.status_code < 400 else "error"
        result.response_body = _decode_body(resp)
        if resp.status_code >= 400:
            result.error = f"HTTP {resp.status_code}: {resp.reason}"

    # -- mock responses -------------------------------------------------------

    def _call_mock(self, method: str, path: str, result: TestResult) -> None:
        delay_ms = self.rng.randint(*MOCK_DELAY_MS)
        self.sleep(delay_ms / 1000)
        result.response_time_ms = float(delay_ms)

        if self.rng.random() < self.success_rate:
            result.status = "success"
            result.status_code = mock_status_code(method, path)
            result.response_body = mock_response_body(method, path)
        else:
            code = self.rng.choice(list(MOCK_ERRORS))
            result.status = "error"
            result.status_code = code
            result.error = f"HTTP {code}: {MOCK_ERRORS[code]}"
            result.response_body = {"error": MOCK_ERRORS[code]}


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def _decode_body(resp: requests.Response):
    try:
        return resp.json()
    except ValueError:
        pass
    try:
        return resp.text
    except (UnicodeDecodeError, LookupError):
        return None
