"""Unit tests for the verification gate and oracle client.

Tests cover:
1. Parsing oracle judgments
2. The acceptance rule
3. Timeout and failure handling in the gate
4. The HTTP oracle client
"""

import json

import httpx
import pytest

from ecoledger_core.domain.services.verification import (
    REASON_AREA_NOT_CLEAN,
    REASON_LOW_CONFIDENCE,
    REASON_ORACLE_ERROR,
    REASON_ORACLE_TIMEOUT,
    EvidenceSubmission,
    HttpVerificationOracle,
    OracleConfig,
    OracleConnectionError,
    OracleJudgment,
    OracleResponseError,
    VerificationGate,
    evaluate,
)
from tests.factories import ScriptedOracle


@pytest.fixture
def evidence():
    return EvidenceSubmission(
        report_id=1,
        collector_id=2,
        image_url="https://img.example.com/after.jpg",
        waste_type="plastic",
        amount="5 kg",
    )


# =============================================================================
# JUDGMENT PARSING TESTS
# =============================================================================


class TestOracleJudgment:
    """Tests for parsing oracle payloads."""

    def test_from_payload(self):
        judgment = OracleJudgment.from_payload(
            {"areaClean": True, "wasteTypeMatch": False, "confidence": 0.75}
        )

        assert judgment.area_clean is True
        assert judgment.waste_type_match is False
        assert judgment.confidence == 0.75
        assert judgment.quantity_match is None

    def test_from_payload_keeps_quantity_match(self):
        judgment = OracleJudgment.from_payload(
            {
                "areaClean": True,
                "wasteTypeMatch": True,
                "confidence": 1,
                "quantityMatch": True,
            }
        )

        assert judgment.quantity_match is True
        assert judgment.to_payload()["quantityMatch"] is True

    @pytest.mark.parametrize(
        "payload",
        [
            ["not", "an", "object"],
            {"wasteTypeMatch": True, "confidence": 0.9},
            {"areaClean": "yes", "wasteTypeMatch": True, "confidence": 0.9},
            {"areaClean": True, "wasteTypeMatch": True, "confidence": "high"},
            {"areaClean": True, "wasteTypeMatch": True, "confidence": 1.5},
            {"areaClean": True, "wasteTypeMatch": True, "confidence": -0.1},
        ],
    )
    def test_malformed_payload_is_rejected(self, payload):
        with pytest.raises(OracleResponseError):
            OracleJudgment.from_payload(payload)

    def test_rejected_judgment_never_passes(self):
        assert evaluate(OracleJudgment.rejected()) is not None


# =============================================================================
# ACCEPTANCE RULE TESTS
# =============================================================================


class TestEvaluate:
    """Tests for the acceptance rule."""

    @pytest.mark.parametrize(
        "area_clean,confidence,expected",
        [
            (True, 0.9, None),
            (True, 0.51, None),
            (True, 0.5, REASON_LOW_CONFIDENCE),
            (True, 0.0, REASON_LOW_CONFIDENCE),
            (False, 0.99, REASON_AREA_NOT_CLEAN),
        ],
    )
    def test_evaluate(self, area_clean, confidence, expected):
        judgment = OracleJudgment(
            area_clean=area_clean, waste_type_match=True, confidence=confidence
        )

        assert evaluate(judgment, threshold=0.5) == expected

    def test_waste_type_mismatch_does_not_block(self):
        judgment = OracleJudgment(
            area_clean=True, waste_type_match=False, confidence=0.9
        )

        assert evaluate(judgment) is None


# =============================================================================
# GATE TESTS
# =============================================================================


class TestVerificationGate:
    """Tests for the timeout and error policy around the oracle."""

    @pytest.mark.asyncio
    async def test_judge_returns_oracle_judgment(self, evidence):
        oracle = ScriptedOracle()
        gate = VerificationGate(oracle, timeout=1.0)

        decision = await gate.judge(evidence)

        assert decision.reason is None
        assert decision.judgment.confidence == 0.9
        assert gate.accepts(decision.judgment)
        assert oracle.calls == [evidence]

    @pytest.mark.asyncio
    async def test_timeout_rejects(self, evidence):
        gate = VerificationGate(ScriptedOracle(delay=0.5), timeout=0.01)

        decision = await gate.judge(evidence)

        assert decision.reason == REASON_ORACLE_TIMEOUT
        assert decision.judgment.area_clean is False
        assert not gate.accepts(decision.judgment)

    @pytest.mark.asyncio
    async def test_oracle_error_rejects(self, evidence):
        gate = VerificationGate(
            ScriptedOracle(error=OracleConnectionError("connection refused"))
        )

        decision = await gate.judge(evidence)

        assert decision.reason == REASON_ORACLE_ERROR
        assert decision.judgment.confidence == 0.0

    @pytest.mark.asyncio
    async def test_malformed_answer_rejects(self, evidence):
        gate = VerificationGate(ScriptedOracle(error=OracleResponseError("bad json")))

        decision = await gate.judge(evidence)

        assert decision.reason == REASON_ORACLE_ERROR


# =============================================================================
# HTTP ORACLE TESTS
# =============================================================================


def _oracle_with_transport(handler) -> HttpVerificationOracle:
    oracle = HttpVerificationOracle(
        OracleConfig(base_url="http://oracle.test", api_key="secret")
    )
    oracle._http_client = httpx.AsyncClient(
        base_url="http://oracle.test",
        transport=httpx.MockTransport(handler),
        headers={"Authorization": "Bearer secret"},
    )
    return oracle


class TestHttpVerificationOracle:
    """Tests for the HTTP oracle client."""

    @pytest.mark.asyncio
    async def test_posts_evidence_and_parses_judgment(self, evidence):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["auth"] = request.headers.get("authorization")
            seen["body"] = request.content
            return httpx.Response(
                200,
                json={"areaClean": True, "wasteTypeMatch": True, "confidence": 0.8},
            )

        oracle = _oracle_with_transport(handler)
        try:
            judgment = await oracle.verify_collection(evidence)
        finally:
            await oracle.close()

        assert judgment.confidence == 0.8
        assert seen["path"] == "/verify/collection"
        assert seen["auth"] == "Bearer secret"
        assert json.loads(seen["body"])["report_id"] == 1

    @pytest.mark.asyncio
    async def test_error_status_raises_connection_error(self, evidence):
        oracle = _oracle_with_transport(lambda request: httpx.Response(502))
        try:
            with pytest.raises(OracleConnectionError):
                await oracle.verify_collection(evidence)
        finally:
            await oracle.close()

    @pytest.mark.asyncio
    async def test_non_json_body_raises_response_error(self, evidence):
        oracle = _oracle_with_transport(
            lambda request: httpx.Response(200, content=b"<html>oops</html>")
        )
        try:
            with pytest.raises(OracleResponseError):
                await oracle.verify_collection(evidence)
        finally:
            await oracle.close()

    @pytest.mark.asyncio
    async def test_transport_failure_raises_connection_error(self, evidence):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        oracle = _oracle_with_transport(handler)
        try:
            with pytest.raises(OracleConnectionError):
                await oracle.verify_collection(evidence)
        finally:
            await oracle.close()
