"""Verification gate for collection evidence.

Adapts an external verification oracle's judgment into an accept/reject
decision for the collection task state machine. The oracle itself is an
external service; this module only defines its contract, an HTTP client
for it, and the timeout and error policy around the call.

Usage:
    oracle = HttpVerificationOracle(OracleConfig(base_url="http://oracle:8080"))
    gate = VerificationGate(oracle, timeout=30.0, threshold=0.5)

    decision = await gate.judge(evidence)
    outcome = task_service.resolve_verification(
        evidence.report_id, evidence.collector_id, decision.judgment,
        rejection_reason=decision.reason,
    )
"""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any, Optional

import httpx

from ecoledger_core.observability.logging import get_logger

logger = get_logger(__name__)


DEFAULT_CONFIDENCE_THRESHOLD = 0.5
DEFAULT_TIMEOUT_SECONDS = 30.0

# Rejection reasons reported to callers
REASON_AREA_NOT_CLEAN = "area_not_clean"
REASON_LOW_CONFIDENCE = "low_confidence"
REASON_ORACLE_TIMEOUT = "oracle_timeout"
REASON_ORACLE_ERROR = "oracle_error"


# =============================================================================
# EXCEPTIONS
# =============================================================================


class OracleError(Exception):
    """Base exception for oracle failures."""

    pass


class OracleConnectionError(OracleError):
    """The oracle could not be reached or answered with an error status."""

    pass


class OracleResponseError(OracleError):
    """The oracle answered with a malformed judgment."""

    pass


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class OracleJudgment:
    """Structured judgment about collection evidence.

    Attributes:
        area_clean: Whether the photographed area has been cleaned up
        waste_type_match: Whether the collected waste matches the report
        confidence: Oracle confidence in [0, 1]
        quantity_match: Optional quantity agreement flag
    """

    area_clean: bool
    waste_type_match: bool
    confidence: float
    quantity_match: Optional[bool] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "OracleJudgment":
        """Parse the oracle's JSON (``areaClean``, ``wasteTypeMatch``, ``confidence``).

        Raises:
            OracleResponseError: If keys are missing or confidence is out of range.
        """
        if not isinstance(payload, dict):
            raise OracleResponseError("Oracle judgment must be a JSON object")

        try:
            area_clean = payload["areaClean"]
            waste_type_match = payload["wasteTypeMatch"]
            confidence = payload["confidence"]
        except KeyError as e:
            raise OracleResponseError(f"Oracle judgment missing {e.args[0]}") from e

        if not isinstance(area_clean, bool) or not isinstance(waste_type_match, bool):
            raise OracleResponseError("areaClean and wasteTypeMatch must be booleans")
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            raise OracleResponseError("confidence must be a number")
        if not 0.0 <= float(confidence) <= 1.0:
            raise OracleResponseError(f"confidence {confidence} outside [0, 1]")

        quantity_match = payload.get("quantityMatch")
        if quantity_match is not None and not isinstance(quantity_match, bool):
            quantity_match = None

        return cls(
            area_clean=area_clean,
            waste_type_match=waste_type_match,
            confidence=float(confidence),
            quantity_match=quantity_match,
        )

    @classmethod
    def rejected(cls) -> "OracleJudgment":
        """Judgment used when no answer could be obtained."""
        return cls(area_clean=False, waste_type_match=False, confidence=0.0)

    def to_payload(self) -> dict[str, Any]:
        payload = {
            "areaClean": self.area_clean,
            "wasteTypeMatch": self.waste_type_match,
            "confidence": self.confidence,
        }
        if self.quantity_match is not None:
            payload["quantityMatch"] = self.quantity_match
        return payload


@dataclass
class EvidenceSubmission:
    """Collector evidence for an in-progress report, as sent to the oracle."""

    report_id: int
    collector_id: int
    image_url: str
    waste_type: str
    amount: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class GateDecision:
    """Result of asking the oracle.

    ``reason`` is set only when the oracle gave no usable answer.
    """

    judgment: OracleJudgment
    reason: Optional[str] = None
    latency_ms: int = 0


def evaluate(
    judgment: OracleJudgment, threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
) -> Optional[str]:
    """Apply the acceptance rule.

    Accepted when the area is clean and confidence is strictly above the
    threshold.

    Returns:
        None if accepted, otherwise the rejection reason.
    """
    if not judgment.area_clean:
        return REASON_AREA_NOT_CLEAN
    if not judgment.confidence > threshold:
        return REASON_LOW_CONFIDENCE
    return None


# =============================================================================
# ORACLE ADAPTERS
# =============================================================================


class VerificationOracle(ABC):
    """Contract for the external verification service."""

    @abstractmethod
    async def verify_collection(self, evidence: EvidenceSubmission) -> OracleJudgment:
        """Judge whether the evidence shows a completed collection."""
        ...

    async def close(self) -> None:
        """Release any resources held by the adapter."""
        return None


@dataclass
class OracleConfig:
    """Configuration for the HTTP oracle client.

    Attributes:
        base_url: URL of the oracle service
        verify_path: Path of the collection verification endpoint
        timeout: Transport timeout in seconds
        api_key: Optional bearer token
    """

    base_url: str
    verify_path: str = "/verify/collection"
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    api_key: Optional[str] = None


class HttpVerificationOracle(VerificationOracle):
    """Oracle adapter that POSTs evidence as JSON over HTTP."""

    def __init__(self, config: OracleConfig):
        self.config = config
        self._http_client: Optional[httpx.AsyncClient] = None

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            headers = {}
            if self.config.api_key:
                headers["Authorization"] = f"Bearer {self.config.api_key}"
            self._http_client = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                headers=headers,
            )
        return self._http_client

    async def close(self) -> None:
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def verify_collection(self, evidence: EvidenceSubmission) -> OracleJudgment:
        client = await self._get_http_client()
        try:
            response = await client.post(self.config.verify_path, json=evidence.to_dict())
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise OracleConnectionError(
                f"Oracle returned {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise OracleConnectionError(f"Oracle unreachable: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            raise OracleResponseError("Oracle response is not JSON") from e

        return OracleJudgment.from_payload(payload)


# =============================================================================
# GATE
# =============================================================================


class VerificationGate:
    """Asks the oracle under a timeout and never reports failure as success."""

    def __init__(
        self,
        oracle: VerificationOracle,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
    ):
        self.oracle = oracle
        self.timeout = timeout
        self.threshold = threshold

    def accepts(self, judgment: OracleJudgment) -> bool:
        return evaluate(judgment, self.threshold) is None

    async def judge(self, evidence: EvidenceSubmission) -> GateDecision:
        """Obtain the oracle's judgment for ``evidence``.

        Timeouts and oracle failures produce a rejecting judgment with
        reason ``oracle_timeout`` or ``oracle_error``.
        """
        started = time.monotonic()
        try:
            judgment = await asyncio.wait_for(
                self.oracle.verify_collection(evidence), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Oracle timed out",
                report_id=evidence.report_id,
                timeout_seconds=self.timeout,
            )
            return GateDecision(
                judgment=OracleJudgment.rejected(),
                reason=REASON_ORACLE_TIMEOUT,
                latency_ms=int((time.monotonic() - started) * 1000),
            )
        except OracleError as e:
            logger.warning(
                "Oracle failed",
                report_id=evidence.report_id,
                error=str(e),
            )
            return GateDecision(
                judgment=OracleJudgment.rejected(),
                reason=REASON_ORACLE_ERROR,
                latency_ms=int((time.monotonic() - started) * 1000),
            )

        latency_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            "Oracle judged evidence",
            report_id=evidence.report_id,
            area_clean=judgment.area_clean,
            confidence=judgment.confidence,
            latency_ms=latency_ms,
        )
        return GateDecision(judgment=judgment, latency_ms=latency_ms)
