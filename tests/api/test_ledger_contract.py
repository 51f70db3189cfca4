import pytest
from fastapi.testclient import TestClient

from reelstudio.adapters.provider import MockVideoProvider
from reelstudio.core.config import get_settings
from reelstudio.main import create_app
from reelstudio.repositories.database import Database

INTERNAL = {"X-Internal-Secret": "contract-secret"}
OWNER = {"Authorization": "Bearer test:owner-1"}


@pytest.fixture
def provider():
    return MockVideoProvider()


@pytest.fixture
def client(monkeypatch, tmp_path, provider):
    monkeypatch.setenv("REELSTUDIO_AUTH_PROVIDER", "mock")
    monkeypatch.setenv("REELSTUDIO_INTERNAL_SECRET", INTERNAL["X-Internal-Secret"])
    get_settings.cache_clear()
    database = Database(f"sqlite:///{tmp_path / 'contract.db'}")
    with TestClient(create_app(database=database, provider=provider)) as test_client:
        yield test_client
    database.dispose()
    get_settings.cache_clear()


def _funded_work(client, amount=50):
    client.post("/api/v1/internal/balances/owner-1/credit", json={"amount": amount}, headers=INTERNAL)
    return client.post("/api/v1/works", json={"title": "Contract"}, headers=OWNER).json()["id"]


def _submitted_job(client, work_id):
    body = {"sub_unit": 1, "prompt": "p", "model": "seedance_1_5_pro", "resolution": "720p", "submit": True}
    return client.post(f"/api/v1/works/{work_id}/jobs", json=body, headers=OWNER).json()


def _balance(client):
    return client.get("/api/v1/balance", headers=OWNER).json()


@pytest.mark.p0
@pytest.mark.test_id("LED_001")
def test_led_001(client):
    """Given a funded user, when a job is submitted, then its cost moves from available to reserved."""
    work_id = _funded_work(client)
    job = _submitted_job(client, work_id)

    assert job["token_cost"] == 5
    balance = _balance(client)
    assert (balance["balance"], balance["reserved"], balance["available"]) == (50, 5, 45)


@pytest.mark.p0
@pytest.mark.test_id("LED_002")
def test_led_002(client):
    """Given available funds below cost, when a job is submitted, then 402 is returned and nothing is reserved."""
    work_id = _funded_work(client, amount=4)

    response = client.post(
        f"/api/v1/works/{work_id}/jobs",
        json={"sub_unit": 1, "prompt": "p", "model": "seedance_1_5_pro", "resolution": "720p", "submit": True},
        headers=OWNER,
    )

    assert response.status_code == 402
    assert response.json()["details"] == {"required": 5, "available": 4}
    assert _balance(client)["reserved"] == 0


@pytest.mark.p0
@pytest.mark.test_id("REC_001")
def test_rec_001(client, provider):
    """Given a completed provider task, when the job is read repeatedly, then the cost is consumed exactly once."""
    work_id = _funded_work(client)
    job = _submitted_job(client, work_id)
    provider.complete(job["provider_task_id"])

    for _ in range(3):
        assert client.get(f"/api/v1/jobs/{job['id']}", headers=OWNER).json()["status"] == "done"

    balance = _balance(client)
    assert (balance["balance"], balance["reserved"], balance["total_consumed"]) == (45, 0, 5)


@pytest.mark.p0
@pytest.mark.test_id("REC_002")
def test_rec_002(client, provider):
    """Given a failed provider task, when the job is reconciled, then the reservation is released and balance is untouched."""
    work_id = _funded_work(client)
    job = _submitted_job(client, work_id)
    provider.fail(job["provider_task_id"])

    client.post("/api/v1/internal/reconcile", headers=INTERNAL)

    balance = _balance(client)
    assert (balance["balance"], balance["reserved"]) == (50, 0)
    assert client.get(f"/api/v1/jobs/{job['id']}", headers=OWNER).json()["status"] == "failed"


@pytest.mark.p0
@pytest.mark.test_id("REC_003")
def test_rec_003(client, provider):
    """Given an unreachable provider, when jobs are listed, then the listing succeeds with unchanged statuses."""
    work_id = _funded_work(client)
    job = _submitted_job(client, work_id)
    provider.complete(job["provider_task_id"])
    provider.fail_queries = True

    response = client.get(f"/api/v1/works/{work_id}/jobs", headers=OWNER)

    assert response.status_code == 200
    assert response.json()["items"][0]["status"] == "submitted"
    assert _balance(client)["reserved"] == 5


@pytest.mark.p0
@pytest.mark.test_id("SEQ_001")
def test_seq_001(client):
    """Given a contiguous scope, when a job is inserted after position k, then later jobs shift by one."""
    work_id = _funded_work(client)
    for prompt in ("a", "b", "c"):
        client.post(f"/api/v1/works/{work_id}/jobs", json={"sub_unit": 1, "prompt": prompt}, headers=OWNER)

    client.post(f"/api/v1/works/{work_id}/jobs", json={"sub_unit": 1, "prompt": "x", "after_position": 1}, headers=OWNER)

    items = client.get(f"/api/v1/works/{work_id}/jobs?sub_unit=1", headers=OWNER).json()["items"]
    assert [(job["position"], job["prompt"]) for job in items] == [(1, "a"), (2, "x"), (3, "b"), (4, "c")]


@pytest.mark.p0
@pytest.mark.test_id("SEQ_002")
def test_seq_002(client):
    """Given a mapping with duplicate targets, when reorder is called, then 409 is returned and positions are unchanged."""
    work_id = _funded_work(client)
    ids = [
        client.post(f"/api/v1/works/{work_id}/jobs", json={"sub_unit": 1, "prompt": prompt}, headers=OWNER).json()["id"]
        for prompt in ("a", "b")
    ]

    response = client.post(
        f"/api/v1/works/{work_id}/jobs/reorder",
        json={"sub_unit": 1, "order": [{"job_id": ids[0], "new_position": 5}, {"job_id": ids[1], "new_position": 5}]},
        headers=OWNER,
    )

    assert response.status_code == 409
    assert response.json()["code"] == "REINDEX_CONFLICT"
    items = client.get(f"/api/v1/works/{work_id}/jobs", headers=OWNER).json()["items"]
    assert [job["position"] for job in items] == [1, 2]


@pytest.mark.p0
@pytest.mark.test_id("DEL_001")
def test_del_001(client, provider):
    """Given a failed job whose reservation was already released, when it is deleted, then nothing is refunded twice."""
    work_id = _funded_work(client)
    job = _submitted_job(client, work_id)
    provider.fail(job["provider_task_id"])
    client.get(f"/api/v1/jobs/{job['id']}", headers=OWNER)

    response = client.delete(f"/api/v1/jobs/{job['id']}", headers=OWNER)

    assert response.json()["refunded"] == 0
    releases = [
        tx for tx in client.get("/api/v1/balance/transactions", headers=OWNER).json()["items"] if tx["type"] == "release"
    ]
    assert len(releases) == 1
