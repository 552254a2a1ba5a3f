"""
Integration tests for API endpoints using SQLite in-memory DB.
"""


def _open(client, wake="2024-03-15T08:00:00Z"):
    r = client.post("/days", json={"wake_time": wake})
    assert r.status_code == 200
    return r.json()


def _log(client, content, **extra):
    r = client.post("/entries", json={"content": content, **extra})
    assert r.status_code == 201, r.text
    return r.json()


class TestHealth:
    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"


class TestDays:
    def test_current_day_empty(self, client):
        r = client.get("/days/current")
        assert r.status_code == 200
        assert r.json() == {"day": None}

    def test_open_and_fetch(self, client):
        day = _open(client)
        assert day["status"] == "open"
        assert day["signal_total"] == 0
        assert day["entries"] == []

        r = client.get(f"/days/{day['id']}")
        assert r.status_code == 200
        assert r.json()["id"] == day["id"]

        current = client.get("/days/current").json()["day"]
        assert current["id"] == day["id"]

    def test_open_is_idempotent(self, client):
        first = _open(client)
        second = _open(client, "2024-03-15T09:30:00Z")
        assert second["id"] == first["id"]
        assert client.get("/days").json()["total"] == 1

    def test_future_wake_time(self, client):
        r = client.post("/days", json={"wake_time": "2030-01-01T08:00:00Z"})
        assert r.status_code == 422
        body = r.json()
        assert body["code"] == "FUTURE_TIMESTAMP"
        assert body["details"]["field"] == "wake_time"

    def test_missing_wake_time(self, client):
        r = client.post("/days", json={})
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"

    def test_close_and_reopen(self, client):
        day = _open(client)
        r = client.post(f"/days/{day['id']}/close", json={"sleep_time": "2024-03-15T21:00:00Z"})
        assert r.status_code == 200
        assert r.json()["status"] == "closed"

        r = client.post(f"/days/{day['id']}/reopen")
        assert r.status_code == 200
        assert r.json()["status"] == "open"
        assert r.json()["sleep_time"] is None

    def test_reopen_older_day_conflicts(self, client):
        older = _open(client, "2024-03-13T08:00:00Z")
        client.post(f"/days/{older['id']}/close", json={"sleep_time": "2024-03-13T22:00:00Z"})
        newer = _open(client, "2024-03-15T08:00:00Z")
        client.post(f"/days/{newer['id']}/close", json={"sleep_time": "2024-03-15T21:00:00Z"})

        r = client.post(f"/days/{older['id']}/reopen")
        assert r.status_code == 409
        assert r.json()["code"] == "DAY_NOT_REOPENABLE"

    def test_navigation_ids(self, client):
        older = _open(client, "2024-03-13T08:00:00Z")
        client.post(f"/days/{older['id']}/close", json={"sleep_time": "2024-03-13T22:00:00Z"})
        newer = _open(client, "2024-03-15T08:00:00Z")

        assert newer["previous_day_id"] == older["id"]
        assert newer["next_day_id"] is None
        r = client.get(f"/days/{older['id']}")
        assert r.json()["next_day_id"] == newer["id"]
        assert r.json()["previous_day_id"] is None

    def test_list_days(self, client):
        older = _open(client, "2024-03-13T08:00:00Z")
        client.post(f"/days/{older['id']}/close", json={"sleep_time": "2024-03-13T22:00:00Z"})
        newer = _open(client)
        _log(client, "work [signal: 10]")
        _log(client, "timer", is_draft=True)

        body = client.get("/days").json()
        assert body["total"] == 2
        assert [d["id"] for d in body["items"]] == [newer["id"], older["id"]]
        assert body["items"][0]["entry_count"] == 1

    def test_update_wake_time(self, client):
        day = _open(client)
        r = client.patch(f"/days/{day['id']}/wake-time", json={"wake_time": "2024-03-15T06:30:00Z"})
        assert r.status_code == 200
        assert r.json()["wake_time"].startswith("2024-03-15T06:30:00")

    def test_recompute(self, client):
        day = _open(client)
        _log(client, "work [signal: 10]")
        r = client.post(f"/days/{day['id']}/recompute")
        assert r.status_code == 200
        assert r.json()["signal_total"] == 10

    def test_unknown_day(self, client):
        r = client.get("/days/999")
        assert r.status_code == 404
        body = r.json()
        assert body["code"] == "DAY_NOT_FOUND"
        assert body["details"]["day_id"] == 999


class TestEntries:
    def test_create_opens_day_when_needed(self, client):
        body = _log(client, "morning coffee")
        assert body["entry"]["type"] == "neutral"
        assert body["day"]["status"] == "open"
        assert body["boundary"] == {"wake": True, "sleep": False}

    def test_create_into_explicit_day(self, client):
        day = _open(client)
        body = _log(client, "deep work [signal: 45]", day_id=day["id"])
        assert body["entry"]["day_id"] == day["id"]
        assert body["entry"]["duration"] == 45
        assert body["day"]["signal_total"] == 45

    def test_empty_content(self, client):
        r = client.post("/entries", json={"content": "   "})
        assert r.status_code == 422
        errors = r.json()["details"]["errors"]
        assert errors[0]["field"] == "content"

    def test_negative_duration(self, client):
        r = client.post("/entries", json={"content": "work", "duration": -5})
        assert r.status_code == 422

    def test_unknown_day(self, client):
        r = client.post("/entries", json={"content": "work", "day_id": 321})
        assert r.status_code == 404
        assert r.json()["code"] == "DAY_NOT_FOUND"

    def test_list_entries(self, client):
        day = _open(client)
        _log(client, "first", timestamp="2024-03-15T09:00:00Z")
        _log(client, "second", timestamp="2024-03-15T10:00:00Z")
        _log(client, "draft", is_draft=True, timestamp="2024-03-15T09:30:00Z")

        r = client.get("/entries", params={"day_id": day["id"]})
        assert [e["content"] for e in r.json()["entries"]] == ["first", "second"]

        r = client.get("/entries", params={"day_id": day["id"], "order": "desc", "include_drafts": True})
        assert [e["content"] for e in r.json()["entries"]] == ["second", "draft", "first"]

    def test_update_reconciles_totals(self, client):
        _open(client)
        created = _log(client, "session", quality="deep", duration=30)
        assert created["day"]["signal_total"] == 30

        r = client.patch(f"/entries/{created['entry']['id']}", json={"quality": "wasted"})
        assert r.status_code == 200
        day = r.json()["day"]
        assert (day["signal_total"], day["wasted_total"]) == (0, 30)

    def test_finalize_draft(self, client):
        _open(client)
        draft = _log(client, "placeholder", is_draft=True)["entry"]
        r = client.post(f"/entries/{draft['id']}/finalize", json={"duration": 20, "quality": "focused"})
        assert r.status_code == 200
        assert r.json()["entry"]["is_draft"] is False
        assert r.json()["day"]["signal_total"] == 20

        r = client.post(f"/entries/{draft['id']}/finalize", json={"duration": 20})
        assert r.status_code == 409
        assert r.json()["code"] == "ENTRY_ALREADY_FINAL"

    def test_delete(self, client):
        _open(client)
        entry = _log(client, "feeds [wasted: 15]")["entry"]
        r = client.delete(f"/entries/{entry['id']}")
        assert r.status_code == 200
        assert r.json()["day"]["wasted_total"] == 0

        r = client.delete(f"/entries/{entry['id']}")
        assert r.status_code == 404
        assert r.json()["code"] == "ENTRY_NOT_FOUND"

    def test_delete_unknown_keeps_totals(self, client):
        day = _open(client)
        _log(client, "work [signal: 40]")
        _log(client, "feeds [wasted: 10]")

        r = client.delete("/entries/9999")
        assert r.status_code == 404

        body = client.get(f"/days/{day['id']}").json()
        assert (body["signal_total"], body["wasted_total"]) == (40, 10)
        assert len(body["entries"]) == 2


class TestTimer:
    def test_full_session(self, client, fake_clock):
        r = client.get("/timer")
        assert r.json()["state"] == "idle"

        r = client.post("/timer/start", json={"quality": "deep"})
        assert r.status_code == 200
        started = r.json()
        assert started["state"] == "running"

        fake_clock.advance(125_000)
        r = client.get("/timer")
        assert r.json()["formatted_elapsed"] == "00:02:05"

        r = client.post("/timer/stop", json={"content": "parser work"})
        assert r.status_code == 200
        body = r.json()
        assert body["duration"] == 2
        assert body["entry"]["id"] == started["current_entry_id"]
        assert body["entry"]["duration"] == 2
        assert body["day"]["signal_total"] == 2

    def test_start_without_body(self, client):
        r = client.post("/timer/start")
        assert r.status_code == 200
        assert r.json()["is_running"] is True

    def test_double_start_conflicts(self, client):
        client.post("/timer/start")
        r = client.post("/timer/start")
        assert r.status_code == 409
        assert r.json()["code"] == "TIMER_ALREADY_RUNNING"

    def test_stop_idle_conflicts(self, client):
        r = client.post("/timer/stop")
        assert r.status_code == 409
        assert r.json()["code"] == "TIMER_NOT_RUNNING"

    def test_pause_resume(self, client, fake_clock):
        client.post("/timer/start")
        fake_clock.advance(3_000)
        assert client.post("/timer/pause").json()["state"] == "paused"
        fake_clock.advance(10_000)
        r = client.post("/timer/resume")
        assert r.json()["state"] == "running"
        assert r.json()["elapsed_ms"] == 3_000

    def test_deleted_draft_self_resets(self, client):
        started = client.post("/timer/start").json()
        client.delete(f"/entries/{started['current_entry_id']}")

        r = client.get("/timer")
        assert r.json()["state"] == "idle"
        assert r.json()["message"]

    def test_reset(self, client):
        client.post("/timer/start")
        r = client.post("/timer/reset")
        assert r.json()["state"] == "idle"

    def test_stream_when_idle(self, client):
        r = client.get("/timer/stream")
        assert r.status_code == 200
        assert r.text == "data: 00:00:00\n\n"


class TestInsights:
    def test_trends(self, client):
        _open(client)
        _log(client, "work [signal: 60]", timestamp="2024-03-15T09:10:00Z")
        _log(client, "feeds [wasted: 30]", timestamp="2024-03-15T12:00:00Z")

        body = client.get("/insights/trends").json()
        assert body["total_days"] == 1
        assert body["signal_to_wasted_ratio"] == 2.0
        assert body["peak_hours"] == ["9AM-10AM"]
        assert body["best_day"]["signal"] == 60
        assert body["worst_day"]["wasted"] == 30
        assert body["recent_trend"] == "stable"

    def test_context_without_days(self, client):
        r = client.get("/insights/context")
        assert r.json() == {"day_id": None, "context": "No active day."}

    def test_context_for_day(self, client):
        day = _open(client)
        _log(client, "work [signal: 60]", timestamp="2024-03-15T09:10:00Z")
        body = client.get("/insights/context", params={"day_id": day["id"]}).json()
        assert body["day_id"] == day["id"]
        assert body["context"].startswith("09:10 - work [signal: 60]")


def test_day_lifecycle_scenario(client):
    day = _open(client, "2024-01-01T09:00:00Z")

    first = _log(client, "deep work [signal: 90]")
    assert first["day"]["signal_total"] == 90

    second = _log(client, "doomscroll [wasted: 20]")
    assert second["day"]["wasted_total"] == 20

    r = client.delete(f"/entries/{second['entry']['id']}")
    assert r.json()["day"]["wasted_total"] == 0

    r = client.post(f"/days/{day['id']}/close", json={"sleep_time": "2024-01-01T17:00:00Z"})
    closed = r.json()
    assert closed["status"] == "closed"
    assert closed["signal_total"] == 90
    assert closed["previous_day_id"] is None
    assert closed["next_day_id"] is None
