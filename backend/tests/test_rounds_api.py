"""
Rounds, bracket and tournament config over HTTP.
"""
from datetime import datetime

from sqlmodel import Session

from knockout.models.match import MATCH_COMPLETED
from tests.factories import add_match, add_participant, add_round


def test_create_and_list_rounds(client):
    response = client.post("/api/rounds", json={"name": "Round 1", "round_number": 1})
    assert response.status_code == 201
    created = response.json()
    assert created["status"] == "upcoming"
    assert created["released"] is False
    assert created["match_count"] == 0

    client.post("/api/rounds", json={"name": "Round of 64", "round_number": 2})

    rounds = client.get("/api/rounds").json()
    assert [r["round_number"] for r in rounds] == [1, 2]


def test_create_round_validation(client):
    assert client.post("/api/rounds", json={"name": "", "round_number": 1}).status_code == 422
    assert client.post("/api/rounds", json={"name": "Zero", "round_number": 0}).status_code == 422
    response = client.post(
        "/api/rounds",
        json={"name": "Bad", "round_number": 1, "start_date": "2024-02-01", "end_date": "2024-01-01"},
    )
    assert response.status_code == 422


def test_get_round_not_found(client):
    response = client.get("/api/rounds/4242")
    assert response.status_code == 404
    assert response.json()["detail"] == "Round not found"


def test_release_gate(client, session: Session):
    first = add_round(session, 1, status="in_progress")
    second = add_round(session, 2)

    response = client.patch(f"/api/rounds/{second.id}", json={"released": True})
    assert response.status_code == 400
    assert response.json()["detail"] == "Previous round must be completed before releasing this round"

    response = client.patch(f"/api/rounds/{first.id}", json={"status": "completed"})
    assert response.status_code == 200

    response = client.patch(f"/api/rounds/{second.id}", json={"released": True})
    assert response.status_code == 200
    assert response.json()["released"] is True


def test_release_gate_cannot_be_bypassed_by_renumbering(client, session: Session):
    add_round(session, 1, status="in_progress")
    draft = add_round(session, 1, name="Draft")

    response = client.patch(f"/api/rounds/{draft.id}", json={"round_number": 2, "released": True})
    assert response.status_code == 400
    assert response.json()["detail"] == "Previous round must be completed before releasing this round"

    unchanged = client.get(f"/api/rounds/{draft.id}").json()
    assert unchanged["round_number"] == 1
    assert unchanged["released"] is False


def test_update_round_rejects_null_required_fields(client, session: Session):
    round_ = add_round(session, 1)
    client.patch(f"/api/rounds/{round_.id}", json={"released": True})

    response = client.patch(f"/api/rounds/{round_.id}", json={"total_matches": None})
    assert response.status_code == 400
    assert response.json()["detail"] == "total_matches must be >= 0"

    response = client.patch(f"/api/rounds/{round_.id}", json={"released": None})
    assert response.status_code == 400

    current = client.get(f"/api/rounds/{round_.id}").json()
    assert current["released"] is True
    assert current["total_matches"] == 0


def test_update_round_invalid_status(client, session: Session):
    round_ = add_round(session, 1)
    response = client.patch(f"/api/rounds/{round_.id}", json={"status": "done"})
    assert response.status_code == 400


def test_delete_round(client, session: Session):
    busy = add_round(session, 1)
    add_match(session, busy.id)
    empty = add_round(session, 2)

    response = client.delete(f"/api/rounds/{busy.id}")
    assert response.status_code == 400
    assert "Delete matches first" in response.json()["detail"]

    assert client.delete(f"/api/rounds/{empty.id}").status_code == 204
    assert client.get(f"/api/rounds/{empty.id}").status_code == 404


def test_seed_bracket(client, session: Session):
    for i, acc in enumerate([80.0, 70.0, 90.0, 60.0]):
        add_participant(session, f"P{i + 1}", accuracy=acc)

    response = client.post("/api/bracket/seed", json={"tournament_start_date": "2024-01-01"})
    assert response.status_code == 201
    assert response.json()["match_count"] == 2

    bracket = client.get("/api/bracket").json()["bracket"]
    assert len(bracket) == 1
    assert bracket[0]["round"]["name"] == "Round 1"
    assert bracket[0]["round"]["match_count"] == 2
    first = bracket[0]["matches"][0]
    assert (first["home_name"], first["away_name"]) == ("P3", "P1")
    assert first["scheduled_at"] == "2024-01-01T17:00:00"


def test_seed_bracket_insufficient(client, session: Session):
    add_participant(session, "Solo")
    response = client.post("/api/bracket/seed", json={})
    assert response.status_code == 400
    assert client.get("/api/rounds").json() == []


def test_advance_and_try_advance(client, session: Session):
    a = add_participant(session, "A")
    b = add_participant(session, "B")
    c = add_participant(session, "C")
    d = add_participant(session, "D")
    round_ = add_round(session, 1)
    add_match(session, round_.id, home=a, away=b, status=MATCH_COMPLETED, home_goals=1,
              scheduled_at=datetime(2024, 1, 1, 17, 0), home_pass_accuracy=80.0)
    pending = add_match(session, round_.id, home=c, away=d, scheduled_at=datetime(2024, 1, 1, 17, 12))

    response = client.post(f"/api/rounds/{round_.id}/advance")
    assert response.status_code == 400

    response = client.post(f"/api/rounds/{round_.id}/try-advance")
    assert response.json() == {"ready": False, "advanced": False, "round_id": round_.id, "next_round": None}

    response = client.post(f"/api/matches/{pending.id}/end", json={"home_goals": 0, "away_goals": 2})
    assert response.status_code == 200
    assert response.json()["round_ready"] is True

    response = client.post(f"/api/rounds/{round_.id}/try-advance")
    assert response.json()["ready"] is True
    assert response.json()["advanced"] is False

    response = client.post(f"/api/rounds/{round_.id}/try-advance", params={"auto_advance": True})
    data = response.json()
    assert data["advanced"] is True
    assert data["next_round"]["round_number"] == 2
    assert data["next_round"]["match_count"] == 1

    matches = client.get("/api/matches", params={"round_id": data["next_round"]["round_id"]}).json()
    assert (matches[0]["participant_home_id"], matches[0]["participant_away_id"]) == (a.id, d.id)
    assert matches[0]["scheduled_at"] == "2024-01-01T17:24:00"


def test_advance_empty_round(client, session: Session):
    round_ = add_round(session, 1)
    response = client.post(f"/api/rounds/{round_.id}/advance")
    assert response.status_code == 400
    assert response.json()["detail"] == f"Round {round_.id} has no matches"


def test_tournament_config(client):
    config = client.get("/api/tournament/config").json()
    assert config["daily_start_time"] == "17:00"
    assert config["games_per_day_round1"] == 10
    assert config["tournament_status"] == "not_started"

    response = client.put(
        "/api/tournament/config",
        json={"daily_start_time": "18:30", "games_per_day_round1": 4, "tournament_status": "running"},
    )
    assert response.status_code == 200
    updated = response.json()
    assert updated["daily_start_time"] == "18:30"
    assert updated["games_per_day_round1"] == 4
    assert updated["tournament_status"] == "running"

    assert client.put("/api/tournament/config", json={"daily_start_time": "7pm"}).status_code == 422
    assert client.put("/api/tournament/config", json={"games_per_day_round1": 0}).status_code == 422


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
