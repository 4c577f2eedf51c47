"""Integration tests for the circuit diagnostics endpoints."""

import pytest

from provider_gateway.domain.entities import Provider


class TestCircuitEndpoints:

    @pytest.mark.asyncio
    async def test_unknown_partition_is_closed(self, client):
        response = await client.get("/v1/providers/plaid/circuit")

        assert response.status_code == 200
        data = response.json()
        assert data["provider"] == "plaid"
        assert data["region"] == "US"
        assert data["state"] == "closed"
        assert data["failures"] == 0

    @pytest.mark.asyncio
    async def test_open_circuit_reports_next_attempt(self, client, breaker):
        for _ in range(5):
            await breaker.record_failure(Provider.BELVO, "MX", "HTTP 502")

        response = await client.get("/v1/providers/belvo/circuit", params={"region": "MX"})

        assert response.status_code == 200
        data = response.json()
        assert data["state"] == "open"
        assert data["failures"] == 5
        assert data["last_error"] == "HTTP 502"
        assert data["next_attempt_at"] is not None

    @pytest.mark.asyncio
    async def test_reset_closes_circuit(self, client, breaker):
        for _ in range(5):
            await breaker.record_failure(Provider.PLAID, "US", "timeout")

        response = await client.post("/v1/providers/plaid/circuit/reset")

        assert response.status_code == 200
        assert response.json()["state"] == "closed"
        assert await breaker.is_circuit_open(Provider.PLAID, "US") is False

    @pytest.mark.asyncio
    async def test_unknown_provider_rejected(self, client):
        response = await client.get("/v1/providers/acme/circuit")

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_store_outage_maps_to_503(self, client, flaky_repository):
        flaky_repository.down = True

        response = await client.post("/v1/providers/plaid/circuit/reset")

        assert response.status_code == 503
        assert response.json()["error"] == "HEALTH_STORE_UNAVAILABLE"
