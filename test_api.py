#!/usr/bin/env python3
"""
HTTP API Tests
===============

Exercises api.main through FastAPI's TestClient against a fresh Game.
"""

import random

import pytest
from fastapi.testclient import TestClient

import api.main as api_main
from cyclesense import db
from cyclesense.game import Game


ALLOC_A = {"equity": 40, "debt": 30, "gold": 20, "cash": 10}
ALLOC_B = {"equity": 35, "debt": 25, "gold": 20, "cash": 20}


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(api_main, "game", Game(rng=random.Random(3)))
    return TestClient(api_main.app)


@pytest.fixture
def tmp_db(tmp_path):
    old = db.get_db_path()
    db.set_db_path(tmp_path / "api.db")
    yield
    db.set_db_path(old)


def _new_game(client, mode="virtual"):
    resp = client.post("/api/game/new", json={"mode": mode, "teams": ["Alpha", "Beta"]})
    assert resp.status_code == 200
    return {t["name"]: t["id"] for t in client.get("/api/teams").json()}


def _card_id(client, number, kind="color"):
    for card in client.get(f"/api/cards/{kind}").json():
        if card["card_number"] == number:
            return card["id"]
    raise AssertionError(f"no card {number}")


def _play_round(client, teams):
    rnd = client.post("/api/rounds/start", json={"card_id": _card_id(client, "G1")}).json()
    round_id = rnd["round"]["id"]
    resp = client.post(f"/api/rounds/{round_id}/allocations", json={"allocations": [
        {"team_id": teams["Alpha"], "allocation": ALLOC_A, "pitch_score": 3},
        {"team_id": teams["Beta"], "allocation": ALLOC_B, "pitch_score": 2},
    ]})
    assert resp.status_code == 200
    return round_id


class TestGameEndpoints:
    def test_health(self, client):
        data = client.get("/api/health").json()
        assert data["status"] == "ok"
        assert data["color_cards"] == 12
        assert data["black_cards"] == 6

    def test_new_game_and_state(self, client):
        _new_game(client)
        state = client.get("/api/game").json()
        assert state["session"]["mode"] == "virtual"
        assert state["team_count"] == 2
        assert state["round_state"] == "awaiting_event"

    def test_bad_mode(self, client):
        resp = client.post("/api/game/new", json={"mode": "hybrid"})
        assert resp.status_code == 400
        assert resp.json()["detail"]["kind"] == "validation"

    def test_no_game_yet(self, client):
        resp = client.post("/api/rounds/draw-card", json={})
        assert resp.status_code == 404

    def test_reset(self, client):
        teams = _new_game(client)
        _play_round(client, teams)
        client.post("/api/game/reset", json={"keep_teams": True})
        board = client.get("/api/leaderboard").json()
        assert {row["current_nav"] for row in board} == {"10.00"}
        assert client.get("/api/rounds").json() == []

    def test_save_and_load(self, client, tmp_db):
        teams = _new_game(client)
        _play_round(client, teams)
        assert client.post("/api/game/save", json={"save_key": "slot"}).json()["saved"]
        client.post("/api/game/reset", json={"keep_teams": False})
        assert client.get("/api/teams").json() == []

        resp = client.post("/api/game/load", json={"save_key": "slot"})
        assert resp.status_code == 200
        assert resp.json()["team_count"] == 2
        assert [s["save_key"] for s in client.get("/api/saves").json()] == ["slot"]

    def test_load_missing(self, client, tmp_db):
        assert client.post("/api/game/load", json={"save_key": "nope"}).status_code == 404

    def test_delete_save(self, client, tmp_db):
        _new_game(client)
        client.post("/api/game/save", json={"save_key": "slot"})
        assert client.delete("/api/saves/slot").json()["deleted"]
        assert client.get("/api/saves").json() == []
        assert client.delete("/api/saves/slot").status_code == 404


class TestTeamEndpoints:
    def test_create_and_fetch(self, client):
        resp = client.post("/api/teams", json={"name": "Gamma", "initial_allocation": {"equity": 0, "debt": 50, "gold": 25, "cash": 25}})
        assert resp.status_code == 200
        team = resp.json()
        assert team["current_nav"] == "10.00"
        assert client.get(f"/api/teams/{team['id']}").json()["name"] == "Gamma"

    def test_invalid_setup_allocation(self, client):
        resp = client.post("/api/teams", json={"name": "Gamma", "initial_allocation": {"equity": 50, "debt": 50, "gold": 50, "cash": 0}})
        assert resp.status_code == 400
        assert resp.json()["detail"]["violations"][0]["kind"] == "sum_mismatch"

    def test_empty_name(self, client):
        assert client.post("/api/teams", json={"name": " "}).status_code == 400

    def test_update_team(self, client):
        teams = _new_game(client)
        _play_round(client, teams)
        resp = client.patch(f"/api/teams/{teams['Alpha']}", json={"name": "Alpha Capital"})
        assert resp.status_code == 200
        assert resp.json()["name"] == "Alpha Capital"
        assert resp.json()["current_nav"] == "13.61"
        assert client.get("/api/leaderboard").json()[0]["name"] == "Alpha Capital"

        bad = client.patch(f"/api/teams/{teams['Beta']}", json={"initial_allocation": {"equity": 90, "debt": 90, "gold": 0, "cash": 0}})
        assert bad.status_code == 400
        assert bad.json()["detail"]["kind"] == "validation"
        assert client.patch(f"/api/teams/{teams['Beta']}", json={"name": ""}).status_code == 400
        assert client.patch("/api/teams/missing", json={"name": "Ghost"}).status_code == 404

    def test_unknown_team(self, client):
        resp = client.get("/api/teams/missing")
        assert resp.status_code == 404
        assert resp.json()["detail"]["kind"] == "lookup"

    def test_delete_and_reset_nav(self, client):
        teams = _new_game(client)
        _play_round(client, teams)
        reset = client.post(f"/api/teams/{teams['Alpha']}/reset-nav").json()
        assert reset["current_nav"] == "10.00"
        assert reset["pitch_total"] == 3
        history = client.get(f"/api/teams/{teams['Alpha']}/allocations").json()
        assert history[0]["nav_after"] == "13.61"
        assert client.delete(f"/api/teams/{teams['Beta']}").json()["deleted"]
        assert len(client.get("/api/teams").json()) == 1


class TestCardEndpoints:
    def test_by_phase(self, client):
        cards = client.get("/api/cards/color/phase/red").json()
        assert {c["phase"] for c in cards} == {"red"}
        assert len(client.get("/api/cards/color", params={"phase": "blue"}).json()) == 3
        assert client.get("/api/cards/color/phase/purple").status_code == 400

    def test_import(self, client):
        resp = client.post("/api/cards/color/import", json={"text": "G20,Fresh,1,2,3,4\nR20,Stale,-1,-2,3,4"})
        assert resp.json()["imported"] == 2
        assert len(client.get("/api/cards/color").json()) == 14

    def test_import_rejects_whole_batch(self, client):
        resp = client.post("/api/cards/black/import", json={"text": "BC7,a,1,1,1,1\nBC8,b,1,1,1,1\nBC9,c,1,oops,1,1"})
        assert resp.status_code == 400
        assert resp.json()["detail"]["line"] == 3
        assert len(client.get("/api/cards/black").json()) == 6

    def test_import_oversized_value(self, client):
        resp = client.post("/api/cards/color/import", json={"text": "G20,Huge,1e30,0,0,0"})
        assert resp.status_code == 400
        assert resp.json()["detail"]["field"] == "equity"
        assert len(client.get("/api/cards/color").json()) == 12

    def test_clear_and_get(self, client):
        black_id = _card_id(client, "BC3", kind="black")
        assert client.get(f"/api/cards/black/{black_id}").json()["card_number"] == "BC3"
        client.delete("/api/cards/black")
        assert client.get(f"/api/cards/black/{black_id}").status_code == 404


class TestRoundEndpoints:
    def test_full_round(self, client):
        teams = _new_game(client)
        draw = client.post("/api/rounds/draw-card", json={"phase": "green"}).json()
        assert draw["phase"] == "green"

        summary = client.post("/api/rounds/start", json={}).json()
        round_id = summary["round"]["id"]
        assert summary["round"]["round_number"] == 1
        assert summary["color_card"]["id"] == draw["card"]["id"]

        resp = client.post(f"/api/rounds/{round_id}/allocations", json={"allocations": [
            {"team_id": teams["Alpha"], "allocation": ALLOC_A, "pitch_score": 3},
            {"team_id": teams["Beta"], "allocation": ALLOC_B},
        ]})
        assert resp.status_code == 200
        assert resp.json()["round"]["state"] == "allocations_complete"

        shock = client.post("/api/rounds/draw-shock").json()
        resp = client.post(f"/api/rounds/{round_id}/black-card", json={"black_card_id": shock["id"]})
        assert resp.json()["round"]["state"] == "shock_applied"

        again = client.post(f"/api/rounds/{round_id}/black-card", json={"black_card_id": shock["id"]})
        assert again.status_code == 400
        assert again.json()["detail"]["kind"] == "transition"

        assert client.post(f"/api/rounds/{round_id}/finalize").json()["state"] == "finalized"
        assert client.get("/api/rounds/current").json()["round"]["id"] == round_id

    def test_rejected_batch_lists_teams(self, client):
        teams = _new_game(client)
        round_id = client.post("/api/rounds/start", json={"card_id": _card_id(client, "G1")}).json()["round"]["id"]
        resp = client.post(f"/api/rounds/{round_id}/allocations", json={"allocations": [
            {"team_id": teams["Alpha"], "allocation": ALLOC_A},
            {"team_id": teams["Beta"], "allocation": {"equity": 10, "debt": 10, "gold": 20, "cash": 60}},
        ]})
        assert resp.status_code == 400
        detail = resp.json()["detail"]
        assert [t["team_name"] for t in detail["teams"]] == ["Beta"]
        assert detail["teams"][0]["violations"][0]["field"] == "cash"
        assert {row["current_nav"] for row in client.get("/api/leaderboard").json()} == {"10.00"}

    def test_in_person_requires_phase(self, client):
        _new_game(client, mode="in-person")
        resp = client.post("/api/rounds/draw-card", json={})
        assert resp.status_code == 400
        assert resp.json()["detail"]["message"] == "Phase is required in in-person mode"

    def test_rollback(self, client):
        teams = _new_game(client)
        round_id = _play_round(client, teams)
        state = client.post(f"/api/rounds/{round_id}/rollback").json()
        assert state["session"]["current_round"] == 0
        assert {row["current_nav"] for row in client.get("/api/leaderboard").json()} == {"10.00"}
        assert client.get(f"/api/rounds/{round_id}").status_code == 404
        assert client.get("/api/rounds/current").status_code == 404


class TestExportEndpoints:
    def test_csv_exports(self, client):
        teams = _new_game(client)
        _play_round(client, teams)
        resp = client.get("/api/export/standings.csv")
        assert resp.headers["content-type"].startswith("text/csv")
        lines = resp.text.strip().splitlines()
        assert lines[0].startswith("rank,team,current_nav")
        assert lines[1].startswith("1,Alpha,13.61")

        history = client.get("/api/export/rounds.csv").text.strip().splitlines()
        assert len(history) == 3
