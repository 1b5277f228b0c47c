from __future__ import annotations

import pytest

from app.analytics import fetch_analytics
from app.errors import UpstreamAnalyticsError
from app.schemas import TrustAnalytics


@pytest.mark.asyncio
async def test_fetch_analytics_parses_record(http_client, settings, upstream):
    record = await fetch_analytics(http_client, settings, 42, "1001")
    assert isinstance(record, TrustAnalytics)
    assert record.verdict == "GoodStage"
    assert record.trust_score == 80
    assert record.issuer.report_id == "rep-0001"
    assert [f.sampler for f in record.factors] == ["text"]

    (request,) = upstream.find("trust.test/@/trust/42")
    assert request.url.scheme == "https"
    assert request.url.params["messageId"] == "1001"
    assert request.headers["Authorization"] == "secret-token"


@pytest.mark.asyncio
async def test_empty_message_id_is_forwarded(http_client, settings, upstream):
    await fetch_analytics(http_client, settings, 42, "")
    (request,) = upstream.find("trust.test/@/trust/42")
    assert request.url.params["messageId"] == ""


@pytest.mark.asyncio
async def test_upstream_error_keeps_payload(http_client, settings, upstream):
    upstream.add("trust.test/@/trust/42", 404, json={"error": "not_found"})
    with pytest.raises(UpstreamAnalyticsError) as excinfo:
        await fetch_analytics(http_client, settings, 42, "1001")
    assert excinfo.value.status_code == 404
    assert excinfo.value.payload == {"error": "not_found"}


@pytest.mark.asyncio
async def test_upstream_error_payload_of_any_shape(http_client, settings, upstream):
    upstream.add("trust.test/@/trust/42", 500, json=["rate", "limited"])
    with pytest.raises(UpstreamAnalyticsError) as excinfo:
        await fetch_analytics(http_client, settings, 42, "1001")
    assert excinfo.value.payload == ["rate", "limited"]
