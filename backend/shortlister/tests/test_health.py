import pytest

@pytest.mark.anyio
async def test_health(client):
    r = await client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert "ok" in data
    assert data["ok"] is True
    assert data["provider_configured"] is True
