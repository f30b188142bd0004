import pytest


@pytest.mark.anyio("asyncio")
async def test_healthcheck(client):
    response = await client.get("/health")
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] in {"ok", "degraded"}
    assert payload["db_status"] in {"ok", "error"}
    assert payload["migrations_status"] in {"up_to_date", "out_of_date", "unknown"}
    assert isinstance(payload["scheduler_config_enabled"], bool)
    assert isinstance(payload["scheduler_running"], bool)
    assert "scheduler_lock" in payload


@pytest.mark.anyio("asyncio")
async def test_health_reports_gateway_fingerprints_not_secrets(client):
    payload = (await client.get("/health")).json()
    razorpay = payload["razorpay"]
    assert razorpay["configured"] is True
    assert razorpay["payouts_configured"] is True
    assert len(razorpay["key_secret_fingerprint"]) == 12
    assert "test-razorpay-secret" not in str(payload)


@pytest.mark.anyio("asyncio")
async def test_health_degrades_on_db_failure(monkeypatch, client):
    class BrokenEngine:
        def connect(self):  # pragma: no cover - simple stub
            raise RuntimeError("DB down")

    monkeypatch.setattr("app.routers.health.get_engine", lambda: BrokenEngine())

    response = await client.get("/health")
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "degraded"
    assert payload["db_status"] == "error"
    assert payload["db_ok"] is False
    assert payload["migrations_ok"] is False
