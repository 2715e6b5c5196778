from __future__ import annotations

import httpx
import pytest

from docdesk.core.metrics import observe_batch_latency, record_batch_item, record_chat_request


@pytest.mark.asyncio
async def test_metrics_endpoint_includes_custom_series(monkeypatch: pytest.MonkeyPatch) -> None:
    from docdesk import main

    monkeypatch.setattr(main.settings.observability, "prometheus_enabled", True, raising=False)

    record_batch_item(operation="split", outcome="failed")
    observe_batch_latency(operation="split", latency=0.4)
    record_chat_request(outcome="rejected")

    transport = httpx.ASGITransport(app=main.app)
    try:
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            response = await client.get("/metrics")
    finally:
        await transport.aclose()

    assert response.status_code == 200
    assert response.headers.get("content-type", "").startswith("text/plain")

    body = response.text
    assert 'docdesk_batch_items_total{operation="split",outcome="failed"}' in body
    assert "docdesk_batch_latency_seconds_bucket" in body
    assert 'docdesk_chat_requests_total{outcome="rejected"}' in body


@pytest.mark.asyncio
async def test_metrics_endpoint_can_be_disabled(monkeypatch: pytest.MonkeyPatch) -> None:
    from docdesk import main

    monkeypatch.setattr(main.settings.observability, "prometheus_enabled", False, raising=False)

    transport = httpx.ASGITransport(app=main.app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        response = await client.get("/metrics")

    assert response.status_code == 404
