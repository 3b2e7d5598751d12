"""Tests for the health and metrics endpoints."""


async def test_health(client) -> None:
    response = await client.get("/api/v1/health/")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["timestamp"].endswith("Z")


async def test_metrics_exposed(client, user_factory, upload_factory) -> None:
    _, headers = await user_factory()
    await upload_factory(headers, text="metrics sample")

    response = await client.get("/metrics")

    assert response.status_code == 200
    assert "documents_ingested_total" in response.text
    assert "chunks_created_total" in response.text


async def test_unknown_route_uses_error_shape(client) -> None:
    response = await client.get("/api/v1/nowhere")
    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}
