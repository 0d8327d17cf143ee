"""Tests for the charge creation and verification endpoints."""

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from music_storefront.core.config import Config
from music_storefront.domain.errors import UpstreamError
from music_storefront.domain.payments import Charge
from web.backend.deps import get_commerce_client, get_config, get_download_signer
from web.backend.main import app

CHARGE_BODY = {
    "trackName": "Orion",
    "trackId": "1",
    "price": "1.00",
    "fileKey": "1_Orion.mp3",
}


def make_config(api_key="test-key", storage=True, success_url=""):
    config = Config()
    config.coinbase.api_key = api_key
    config.coinbase.success_url = success_url
    if storage:
        config.storage.endpoint = "https://acct.r2.cloudflarestorage.com/bucket"
        config.storage.access_key_id = "id"
        config.storage.secret_access_key = "secret"
        config.storage.bucket_name = "bucket"
    return config


def completed_charge(**metadata):
    return Charge(
        code="ABC123",
        metadata=metadata,
        timeline=[{"status": "NEW"}, {"status": "PENDING"}, {"status": "COMPLETED"}],
    )


@pytest.fixture
def commerce():
    return Mock()


@pytest.fixture
def signer():
    mock_signer = Mock()
    mock_signer.sign.return_value = "https://signed.example/1_Orion.mp3?sig=1"
    return mock_signer


@pytest.fixture
def client(commerce, signer):
    config = make_config()
    app.dependency_overrides[get_config] = lambda: config
    app.dependency_overrides[get_commerce_client] = lambda: commerce
    app.dependency_overrides[get_download_signer] = lambda: signer
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestCreateCharge:
    def test_returns_hosted_url_and_code(self, client, commerce):
        commerce.create_charge.return_value = Charge(
            code="ABC123", hosted_url="https://commerce.coinbase.com/charges/ABC123"
        )

        response = client.post(
            "/api/create-coinbase-charge",
            json=CHARGE_BODY,
            headers={"Origin": "https://store.example"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "hosted_url": "https://commerce.coinbase.com/charges/ABC123",
            "code": "ABC123",
        }
        kwargs = commerce.create_charge.call_args.kwargs
        assert kwargs["file_key"] == "1_Orion.mp3"
        assert kwargs["redirect_url"] == "https://store.example/success"
        assert kwargs["currency"] == "USD"

    def test_configured_success_url_wins(self, client, commerce):
        app.dependency_overrides[get_config] = lambda: make_config(
            success_url="http://localhost:8765/success"
        )
        commerce.create_charge.return_value = Charge(code="C", hosted_url="https://h")

        client.post("/api/create-coinbase-charge", json=CHARGE_BODY)

        assert commerce.create_charge.call_args.kwargs["redirect_url"] == (
            "http://localhost:8765/success"
        )

    @pytest.mark.parametrize("field", ["trackName", "trackId", "price", "fileKey"])
    def test_missing_field_is_400(self, client, commerce, field):
        body = {k: v for k, v in CHARGE_BODY.items() if k != field}

        response = client.post("/api/create-coinbase-charge", json=body)

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required parameters."}
        commerce.create_charge.assert_not_called()

    def test_missing_api_key_is_500(self, client):
        app.dependency_overrides[get_commerce_client] = lambda: None

        response = client.post("/api/create-coinbase-charge", json=CHARGE_BODY)

        assert response.status_code == 500
        assert "COINBASE_COMMERCE_API_KEY" in response.json()["error"]

    def test_upstream_failure_is_500(self, client, commerce):
        commerce.create_charge.side_effect = UpstreamError(
            "Failed to create Coinbase Commerce charge.", status_code=401
        )

        response = client.post("/api/create-coinbase-charge", json=CHARGE_BODY)

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to create Coinbase Commerce charge."}


class TestGetDownloadLink:
    def test_completed_signs_metadata_file_key(self, client, commerce, signer):
        commerce.get_charge.return_value = completed_charge(
            trackId="1", trackName="Orion", fileKey="1_Orion.mp3"
        )

        response = client.post("/api/get-download-link", json={"chargeCode": "ABC123"})

        assert response.status_code == 200
        assert response.json() == {
            "url": "https://signed.example/1_Orion.mp3?sig=1",
            "trackName": "Orion",
        }
        signer.sign.assert_called_once_with("1_Orion.mp3")

    def test_completed_without_file_key_is_500(self, client, commerce, signer):
        commerce.get_charge.return_value = completed_charge(trackName="Orion")

        response = client.post("/api/get-download-link", json={"chargeCode": "ABC123"})

        assert response.status_code == 500
        assert response.json()["error"] == (
            "Purchase verified, but could not determine which file to download."
        )
        signer.sign.assert_not_called()

    @pytest.mark.parametrize("status", ["NEW", "PENDING"])
    def test_pending_statuses_are_202(self, client, commerce, status):
        commerce.get_charge.return_value = Charge(code="ABC123", timeline=[{"status": status}])

        response = client.post("/api/get-download-link", json={"chargeCode": "ABC123"})

        assert response.status_code == 202
        assert response.json() == {
            "status": "pending",
            "message": "Payment is pending confirmation.",
        }

    @pytest.mark.parametrize("status", ["CANCELED", "EXPIRED", "UNRESOLVED"])
    def test_terminal_statuses_are_402(self, client, commerce, status):
        commerce.get_charge.return_value = Charge(
            code="ABC123", timeline=[{"status": "NEW"}, {"status": status}]
        )

        response = client.post("/api/get-download-link", json={"chargeCode": "ABC123"})

        assert response.status_code == 402
        assert response.json()["error"] == (
            f"Payment status is {status}. Please complete payment or try again."
        )

    def test_missing_charge_code_is_400(self, client, commerce):
        response = client.post("/api/get-download-link", json={})

        assert response.status_code == 400
        commerce.get_charge.assert_not_called()

    def test_missing_settings_are_listed(self, client):
        app.dependency_overrides[get_config] = lambda: make_config(api_key="", storage=False)
        app.dependency_overrides[get_commerce_client] = lambda: None
        app.dependency_overrides[get_download_signer] = lambda: None

        response = client.post("/api/get-download-link", json={"chargeCode": "ABC123"})

        assert response.status_code == 500
        assert response.json()["error"] == (
            "Server configuration error. Missing environment variables: "
            "COINBASE_COMMERCE_API_KEY, R2_ENDPOINT, R2_ACCESS_KEY_ID, "
            "R2_SECRET_ACCESS_KEY, R2_BUCKET_NAME"
        )

    def test_upstream_failure_is_500(self, client, commerce):
        commerce.get_charge.side_effect = UpstreamError(
            "Could not retrieve charge details from Coinbase.", status_code=404
        )

        response = client.post("/api/get-download-link", json={"chargeCode": "NOPE"})

        assert response.status_code == 500
        assert response.json() == {"error": "Could not retrieve charge details from Coinbase."}
