"""End-to-end tests for the chain and public status routes."""

from datetime import datetime, timedelta
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
import redis
from fastapi.testclient import TestClient

from sentinel_api.auth.api_key import (
    ROLE_COURT_AUTHORITY,
    ROLE_DEVICE,
    ROLE_JUDGE,
    ROLE_POLICE_OFFICER,
    ROLE_STATION_AUTHORITY,
    create_api_key,
)
from sentinel_api.db.session import get_db
from sentinel_api.main import app
from sentinel_api.middleware.rate_limit import TOKEN_BUCKET_SCRIPT
from sentinel_api.models import EmissionReading, PublicStatusOtp
from sentinel_api.settings import Settings


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def keys(db, registry):
    """Raw API keys per role, bound to the registry's subjects."""
    _, device = create_api_key(db, ROLE_DEVICE, device_id=registry.device.id)
    _, officer = create_api_key(db, ROLE_POLICE_OFFICER, officer_id=registry.officer.id)
    _, station = create_api_key(db, ROLE_STATION_AUTHORITY, station_id=registry.station.id)
    _, court = create_api_key(db, ROLE_COURT_AUTHORITY, court_id=registry.court.id)
    _, judge = create_api_key(db, ROLE_JUDGE, judge_id=registry.judge.id)
    _, other_judge = create_api_key(db, ROLE_JUDGE, judge_id=registry.other_judge.id)
    db.commit()
    return SimpleNamespace(
        device=device,
        officer=officer,
        station=station,
        court=court,
        judge=judge,
        other_judge=other_judge,
    )


def auth(raw_key: str) -> dict:
    return {"x-api-key": raw_key}


def post_reading(client, keys, registry, minutes_ago: int = 1):
    return client.post(
        "/v1/readings",
        json={
            "device_id": registry.device.id,
            "sound_level_dba": 92.5,
            "co2": 412.5,
            "captured_at": (datetime.utcnow() - timedelta(minutes=minutes_ago)).isoformat(),
        },
        headers=auth(keys.device),
    )


def post_challan(client, keys, registry, violation=None, reading_id=None):
    return client.post(
        "/v1/challans",
        json={
            "accused_id": registry.accused.id,
            "vehicle_id": registry.vehicle.id,
            "violation_id": (violation or registry.cognizable).id,
            "emission_reading_id": reading_id,
        },
        headers=auth(keys.officer),
    )


def test_full_chain(client, keys, registry):
    """Reading -> Challan -> FIR -> Case -> verdict over HTTP."""
    year = datetime.utcnow().year

    response = post_reading(client, keys, registry)
    assert response.status_code == 201
    reading = response.json()
    assert reading["is_violation"] is True
    assert reading["signature_alg"] == "HMAC-SHA256"

    response = client.get(f"/v1/readings/{reading['id']}/verification", headers=auth(keys.officer))
    assert response.status_code == 200
    assert response.json()["is_authentic"] is True
    assert response.json()["admissible"] is True

    response = post_challan(client, keys, registry, reading_id=reading["id"])
    assert response.status_code == 201
    challan = response.json()
    assert challan["officer_id"] == registry.officer.id
    assert challan["is_cognizable"] is True

    response = client.post(
        "/v1/firs",
        json={"challan_id": challan["id"], "informant_id": registry.officer.id},
        headers=auth(keys.station),
    )
    assert response.status_code == 201
    fir = response.json()
    assert fir["fir_no"] == f"FIR-S1-{year}-0001"

    response = client.post(
        "/v1/cases",
        json={"fir_id": fir["id"], "judge_id": registry.judge.id},
        headers=auth(keys.court),
    )
    assert response.status_code == 201
    case = response.json()
    assert case["case_no"] == f"CASE-DC-LHR-{year}-0001"

    response = client.post(
        f"/v1/cases/{case['id']}/statements",
        json={"statement_text": "Accused present"},
        headers=auth(keys.judge),
    )
    assert response.status_code == 201

    response = client.post(
        f"/v1/cases/{case['id']}/verdict", json={"verdict": "Guilty"}, headers=auth(keys.judge)
    )
    assert response.status_code == 200
    assert response.json()["status"] == "Convicted"

    response = client.post(
        f"/v1/cases/{case['id']}/verdict", json={"verdict": "Not guilty"}, headers=auth(keys.judge)
    )
    assert response.status_code == 409
    assert response.json()["error_code"] == "VERDICT_ALREADY_RECORDED"


def test_duplicate_links_map_to_conflict(client, keys, registry):
    reading_id = post_reading(client, keys, registry).json()["id"]
    challan_id = post_challan(client, keys, registry, reading_id=reading_id).json()["id"]

    response = post_challan(client, keys, registry, reading_id=reading_id)
    assert response.status_code == 409
    assert response.json()["error_code"] == "ALREADY_LINKED"

    fir_request = {"challan_id": challan_id, "informant_id": registry.officer.id}
    assert client.post("/v1/firs", json=fir_request, headers=auth(keys.station)).status_code == 201
    response = client.post("/v1/firs", json=fir_request, headers=auth(keys.station))
    assert response.status_code == 409
    assert response.json() == {
        "error_code": "ALREADY_LINKED",
        "message": f"Challan {challan_id} already has a FIR",
    }


def test_business_rule_violations_map_to_422(client, keys, registry):
    challan_id = post_challan(client, keys, registry, violation=registry.minor).json()["id"]

    response = client.post(
        "/v1/firs",
        json={"challan_id": challan_id, "informant_id": registry.officer.id},
        headers=auth(keys.station),
    )
    assert response.status_code == 422
    assert response.json()["error_code"] == "VALIDATION_ERROR"


@pytest.mark.parametrize(
    "overrides",
    [
        {"sound_level_dba": 10000},
        {"sound_level_dba": -1},
        {"co2": 100000000},
        {"nox": -0.5},
    ],
)
def test_out_of_range_readings_are_rejected(client, keys, registry, db, overrides):
    body = {
        "device_id": registry.device.id,
        "sound_level_dba": 92.5,
        "captured_at": (datetime.utcnow() - timedelta(minutes=1)).isoformat(),
    }
    body.update(overrides)

    response = client.post("/v1/readings", json=body, headers=auth(keys.device))

    assert response.status_code == 422
    assert db.query(EmissionReading).count() == 0


def test_reading_at_column_limit_is_accepted(client, keys, registry):
    response = client.post(
        "/v1/readings",
        json={
            "device_id": registry.device.id,
            "sound_level_dba": "9999.99",
            "co2": "99999999.99",
            "captured_at": (datetime.utcnow() - timedelta(minutes=1)).isoformat(),
        },
        headers=auth(keys.device),
    )
    assert response.status_code == 201
    assert response.json()["is_violation"] is True


def test_missing_entities_map_to_404(client, keys):
    response = client.get("/v1/readings/999", headers=auth(keys.officer))
    assert response.status_code == 404
    assert response.json()["error_code"] == "NOT_FOUND"


def test_authentication_and_roles(client, keys, registry):
    assert client.get("/v1/readings/1").status_code == 401
    assert client.get("/v1/readings/1", headers=auth("ns_not-a-real-key")).status_code == 401

    response = client.post(
        "/v1/firs",
        json={"challan_id": 1, "informant_id": registry.officer.id},
        headers=auth(keys.officer),
    )
    assert response.status_code == 403


def test_keys_are_bound_to_their_subjects(client, keys, registry):
    response = client.post(
        "/v1/readings",
        json={
            "device_id": registry.uncalibrated.id,
            "sound_level_dba": 80,
            "captured_at": datetime.utcnow().isoformat(),
        },
        headers=auth(keys.device),
    )
    assert response.status_code == 403

    response = client.post(
        "/v1/challans",
        json={
            "accused_id": registry.accused.id,
            "vehicle_id": registry.vehicle.id,
            "violation_id": registry.cognizable.id,
            "officer_id": registry.other_officer.id,
        },
        headers=auth(keys.officer),
    )
    assert response.status_code == 403

    response = client.post(
        "/v1/firs",
        json={
            "challan_id": 1,
            "informant_id": registry.other_officer.id,
            "station_id": registry.other_station.id,
        },
        headers=auth(keys.station),
    )
    assert response.status_code == 403


def test_statement_by_unassigned_judge(client, keys, registry):
    challan_id = post_challan(client, keys, registry).json()["id"]
    fir_id = client.post(
        "/v1/firs",
        json={"challan_id": challan_id, "informant_id": registry.officer.id},
        headers=auth(keys.station),
    ).json()["id"]
    case_id = client.post(
        "/v1/cases",
        json={"fir_id": fir_id, "judge_id": registry.judge.id},
        headers=auth(keys.court),
    ).json()["id"]

    response = client.post(
        f"/v1/cases/{case_id}/statements",
        json={"statement_text": "Not my case"},
        headers=auth(keys.other_judge),
    )
    assert response.status_code == 403
    assert response.json()["error_code"] == "ACCESS_DENIED"


def test_reassign_case_judge(client, keys, registry):
    challan_id = post_challan(client, keys, registry).json()["id"]
    fir_id = client.post(
        "/v1/firs",
        json={"challan_id": challan_id, "informant_id": registry.officer.id},
        headers=auth(keys.station),
    ).json()["id"]
    case = client.post(
        "/v1/cases",
        json={"fir_id": fir_id, "judge_id": registry.judge.id},
        headers=auth(keys.court),
    ).json()

    # Judges cannot reassign themselves
    response = client.patch(
        f"/v1/cases/{case['id']}/judge",
        json={"judge_id": registry.bench_judge.id},
        headers=auth(keys.judge),
    )
    assert response.status_code == 403

    response = client.patch(
        f"/v1/cases/{case['id']}/judge",
        json={"judge_id": registry.other_judge.id},
        headers=auth(keys.court),
    )
    assert response.status_code == 422
    assert response.json()["error_code"] == "VALIDATION_ERROR"

    response = client.patch(
        f"/v1/cases/{case['id']}/judge",
        json={"judge_id": registry.bench_judge.id},
        headers=auth(keys.court),
    )
    assert response.status_code == 200
    assert response.json()["judge_id"] == registry.bench_judge.id
    assert response.json()["case_no"] == case["case_no"]

    response = client.post(
        f"/v1/cases/{case['id']}/verdict",
        json={"verdict": "Guilty"},
        headers=auth(keys.judge),
    )
    assert response.status_code == 403


class TestPublicStatus:
    OTP_REQUEST = {
        "vehicle_no": "LEB-123",
        "cnic": "35202-1111111-1",
        "email": "bilal.ahmed@example.com",
    }

    @pytest.fixture
    def dispatch(self):
        with patch("sentinel_api.public.otp.enqueue_status_otp_email") as dispatch:
            yield dispatch

    def test_otp_flow(self, client, keys, registry, dispatch):
        post_challan(client, keys, registry)

        response = client.post("/v1/public/status/otp", json=self.OTP_REQUEST)
        assert response.status_code == 200
        assert response.json()["masked_email"] == "b***d@example.com"
        code = dispatch.call_args.kwargs["code"]

        verify = {"vehicle_no": "LEB123", "cnic": self.OTP_REQUEST["cnic"], "code": code}
        response = client.post("/v1/public/status/verify", json=verify)
        assert response.status_code == 200
        token = response.json()["access_token"]

        response = client.get("/v1/public/status", headers={"x-status-token": token})
        assert response.status_code == 200
        assert response.json()["summary"]["total_challans"] == 1
        assert response.json()["vehicle"]["plate_number"] == "LEB 123"

        response = client.post("/v1/public/status/verify", json=verify)
        assert response.status_code == 409
        assert response.json()["error_code"] == "OTP_ALREADY_USED"

    def test_mismatched_identity_is_rejected(self, client, registry, db, dispatch):
        response = client.post(
            "/v1/public/status/otp", json={**self.OTP_REQUEST, "cnic": "35202-0000000-0"}
        )
        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"
        assert db.query(PublicStatusOtp).count() == 0
        dispatch.assert_not_called()

    def test_unknown_token(self, client, registry):
        response = client.get("/v1/public/status", headers={"x-status-token": "bogus"})
        assert response.status_code == 404
        assert response.json()["error_code"] == "TOKEN_NOT_FOUND"

        assert client.get("/v1/public/status").status_code == 404

    def test_public_routes_are_rate_limited(self, client, registry):
        limited = Settings(rate_limit_enabled=True, rate_limit_requests_per_minute=1)
        redis_client = MagicMock()
        redis_client.register_script.return_value.return_value = [0, 0]

        with patch("sentinel_api.middleware.rate_limit.get_settings", return_value=limited), patch(
            "sentinel_api.middleware.rate_limit.get_redis_client", return_value=redis_client
        ):
            response = client.post("/v1/public/status/otp", json=self.OTP_REQUEST)

        assert response.status_code == 429
        assert response.json()["error_code"] == "RATE_LIMITED"

    def test_bucket_is_spent_in_one_script_call(self, client, registry, dispatch):
        limited = Settings(rate_limit_enabled=True, rate_limit_requests_per_minute=20)
        redis_client = MagicMock()
        take_token = redis_client.register_script.return_value
        take_token.return_value = [1, 19]

        with patch("sentinel_api.middleware.rate_limit.get_settings", return_value=limited), patch(
            "sentinel_api.middleware.rate_limit.get_redis_client", return_value=redis_client
        ):
            response = client.post("/v1/public/status/otp", json=self.OTP_REQUEST)

        assert response.status_code == 200
        assert response.headers["X-RateLimit-Remaining"] == "19"
        redis_client.register_script.assert_called_once_with(TOKEN_BUCKET_SCRIPT)
        take_token.assert_called_once()
        keys = take_token.call_args.kwargs["keys"]
        args = take_token.call_args.kwargs["args"]
        assert keys == ["rate_limit:public:testclient", "rate_limit:public:testclient:last_refill"]
        assert args[0] == 20
        assert args[2] == limited.rate_limit_ttl_seconds
        # Read-modify-write happens server side only
        redis_client.get.assert_not_called()
        redis_client.set.assert_not_called()
        redis_client.pipeline.assert_not_called()

    def test_rate_limiter_fails_open(self, client, registry, dispatch):
        limited = Settings(rate_limit_enabled=True)
        redis_client = MagicMock()
        redis_client.register_script.return_value.side_effect = redis.ConnectionError("redis down")

        with patch("sentinel_api.middleware.rate_limit.get_settings", return_value=limited), patch(
            "sentinel_api.middleware.rate_limit.get_redis_client", return_value=redis_client
        ):
            response = client.post("/v1/public/status/otp", json=self.OTP_REQUEST)

        assert response.status_code == 200
