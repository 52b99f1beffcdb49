"""Tests for the Helius webhook endpoint."""

import pytest
from fastapi.testclient import TestClient

MINT = "7vfCXTUXx5WJV5JADk17DUJ4ksgau7utNKj4b963voxs"


class FakeOrchestrator:
    """Records the batches handed to it."""

    def __init__(self) -> None:
        self.batches: list[list] = []

    async def evaluate_batch(self, candidates):
        self.batches.append(list(candidates))


@pytest.fixture
def orchestrator(monkeypatch: pytest.MonkeyPatch) -> FakeOrchestrator:
    fake = FakeOrchestrator()

    async def _get_orchestrator() -> FakeOrchestrator:
        return fake

    monkeypatch.setattr("tokenwatch.services.pipeline.get_orchestrator", _get_orchestrator)
    return fake


@pytest.fixture
def client() -> TestClient:
    """Test client without running the lifespan."""
    from tokenwatch.api.app import create_app

    return TestClient(create_app())


class TestHeliusWebhook:
    """Tests for POST /webhooks/helius."""

    def test_tokens_scheduled_for_evaluation(
        self, client: TestClient, orchestrator: FakeOrchestrator
    ) -> None:
        """
        Given: A payload with one mint
        When: Posted to the webhook
        Then: Accepted and the candidate is evaluated in the background
        """
        response = client.post("/webhooks/helius", json={"mint": MINT})

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "accepted"
        assert data["tokens_received"] == 1
        assert "processing_time_ms" in data
        assert len(orchestrator.batches) == 1
        assert orchestrator.batches[0][0].query_address == MINT

    def test_singular_path_alias(
        self, client: TestClient, orchestrator: FakeOrchestrator
    ) -> None:
        """
        Given: A Helius webhook configured with /webhook/helius
        When: A payload is posted there
        Then: It is handled like /webhooks/helius
        """
        response = client.post("/webhook/helius", json={"mint": MINT})

        assert response.status_code == 200
        assert response.json()["tokens_received"] == 1
        assert len(orchestrator.batches) == 1

    def test_payload_without_tokens(
        self, client: TestClient, orchestrator: FakeOrchestrator
    ) -> None:
        response = client.post("/webhooks/helius", json={"type": "UNKNOWN"})

        assert response.status_code == 200
        assert response.json()["status"] == "no_tokens"
        assert orchestrator.batches == []

    def test_invalid_json(self, client: TestClient, orchestrator: FakeOrchestrator) -> None:
        response = client.post(
            "/webhooks/helius",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert orchestrator.batches == []

    def test_background_failure_does_not_fail_request(
        self, client: TestClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        async def _broken():
            raise RuntimeError("ledger exploded")

        monkeypatch.setattr("tokenwatch.services.pipeline.get_orchestrator", _broken)

        response = client.post("/webhooks/helius", json={"mint": MINT})

        assert response.status_code == 200
