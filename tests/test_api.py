from services.errors import StorageTransactionError
from services.release_service import ReleaseService


def _register(client, uid):
    return client.post("/api/users", json={"uid": uid})


def _published_experience(client, host="host", max_participants=2, coin_price=100):
    _register(client, host)
    resp = client.post("/api/experiences", json={
        "host_id": host,
        "title": "Rooftop tasting",
        "max_participants": max_participants,
        "coin_price": coin_price,
    })
    assert resp.status_code == 201
    experience_id = resp.get_json()["id"]
    resp = client.post(f"/api/experiences/{experience_id}/publish")
    assert resp.status_code == 200
    return experience_id


def test_register_user_is_idempotent(client):
    resp = _register(client, "alice")
    assert resp.status_code == 201
    assert resp.get_json()["wallet_balance"] == 500

    resp = _register(client, "alice")
    assert resp.status_code == 200

    wallet = client.get("/api/users/alice/wallet").get_json()
    assert wallet["balance"] == 500
    assert len(wallet["transactions"]) == 1


def test_join_start_release_flow(client):
    experience_id = _published_experience(client, coin_price=300)
    for uid in ("a", "b"):
        _register(client, uid)

    resp = client.post(f"/api/experiences/{experience_id}/join", json={"user_id": "a"})
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["ticket_id"].startswith("T")
    assert body["chat_id"]

    client.post(f"/api/experiences/{experience_id}/join", json={"user_id": "b"})

    view = client.get(f"/api/experiences/{experience_id}").get_json()
    assert view["status"] == "full"
    assert view["escrow"]["total_coins"] == 600

    resp = client.post(f"/api/experiences/{experience_id}/start", json={"user_id": "a"})
    assert resp.get_json()["released"] is False

    resp = client.post(f"/api/experiences/{experience_id}/start", json={"user_id": "b"})
    body = resp.get_json()
    assert body["released"] is True
    assert body["ticket"]["started"] is True

    host_wallet = client.get("/api/users/host/wallet").get_json()
    assert host_wallet["balance"] == 500 + 600

    ticket = client.get(f"/api/experiences/{experience_id}/ticket/a").get_json()
    assert ticket["status"] == "checked_in"


def test_join_errors_map_to_status_codes(client):
    experience_id = _published_experience(client, max_participants=1, coin_price=400)
    _register(client, "a")
    _register(client, "b")

    resp = client.post(f"/api/experiences/{experience_id}/join", json={})
    assert resp.status_code == 400

    resp = client.post("/api/experiences/nope/join", json={"user_id": "a"})
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "not_found"

    assert client.post(f"/api/experiences/{experience_id}/join", json={"user_id": "a"}).status_code == 201

    resp = client.post(f"/api/experiences/{experience_id}/join", json={"user_id": "a"})
    assert resp.status_code == 409
    assert resp.get_json()["error"] == "already_joined"

    resp = client.post(f"/api/experiences/{experience_id}/join", json={"user_id": "b"})
    assert resp.status_code == 409
    assert resp.get_json()["error"] == "no_seats"


def test_insufficient_balance_returns_402(client):
    experience_id = _published_experience(client, coin_price=501)
    _register(client, "a")
    resp = client.post(f"/api/experiences/{experience_id}/join", json={"user_id": "a"})
    assert resp.status_code == 402
    assert resp.get_json()["error"] == "insufficient_balance"


def test_invalid_ratio_is_bad_request(client):
    experience_id = _published_experience(client)
    resp = client.post(f"/api/experiences/{experience_id}/release", json={"min_started_ratio": 2})
    assert resp.status_code == 400


def test_non_numeric_ratio_is_bad_request(client):
    experience_id = _published_experience(client, max_participants=1, coin_price=10)
    _register(client, "a")
    client.post(f"/api/experiences/{experience_id}/join", json={"user_id": "a"})

    resp = client.post(f"/api/experiences/{experience_id}/release", json={"min_started_ratio": "abc"})
    assert resp.status_code == 400

    resp = client.post(f"/api/experiences/{experience_id}/start",
                       json={"user_id": "a", "min_started_ratio": "abc"})
    assert resp.status_code == 400

    ticket = client.get(f"/api/experiences/{experience_id}/ticket/a").get_json()
    assert ticket["started"] is False
    assert client.get(f"/api/experiences/{experience_id}").get_json()["participants_started"] == 0


def test_cancel_endpoint_refunds(client):
    experience_id = _published_experience(client, coin_price=120)
    _register(client, "a")
    client.post(f"/api/experiences/{experience_id}/join", json={"user_id": "a"})

    resp = client.post(f"/api/experiences/{experience_id}/cancel")
    assert resp.status_code == 200
    assert resp.get_json()["refunded_user_ids"] == ["a"]
    assert client.get("/api/users/a/wallet").get_json()["balance"] == 500

    view = client.get(f"/api/experiences/{experience_id}").get_json()
    assert view["status"] == "cancelled"
    assert view["escrow"]["released"] is True
    assert view["escrow"]["released_to"] == "refund"


def test_release_conflict_is_scheduled_for_retry(app, client, monkeypatch):
    experience_id = _published_experience(client, max_participants=1, coin_price=10)
    _register(client, "a")
    client.post(f"/api/experiences/{experience_id}/join", json={"user_id": "a"})

    scheduled = []

    class FakeScheduler:
        def enqueue_in(self, delay, func, *args):
            scheduled.append((delay.total_seconds(), func.__name__, args))

    def _conflict(*args, **kwargs):
        raise StorageTransactionError("Transaction conflicted, please retry.")

    app.extensions["scheduler"] = FakeScheduler()
    monkeypatch.setattr(ReleaseService, "release_escrow_if_threshold", staticmethod(_conflict))

    resp = client.post(f"/api/experiences/{experience_id}/start", json={"user_id": "a"})
    body = resp.get_json()
    assert resp.status_code == 200
    assert body["released"] is False
    assert body["release_scheduled"] is True
    assert scheduled == [(30.0, "attempt_release", (experience_id, 1.0))]
