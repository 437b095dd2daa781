"""
Integration tests for the lending workflow, reviews, events and cascades.
"""

import pytest

pytestmark = pytest.mark.asyncio


D1 = "2030-05-01T10:00:00"
D2 = "2030-05-08T10:00:00"


@pytest.fixture
def parties(client, register_and_login):
    """
    Owner A with game G, and borrower B.

    Returns a coroutine factory so each test awaits the setup.
    """

    async def _setup():
        owner_headers, owner = await register_and_login("a@example.com", "alice", game_owner=True)
        borrower_headers, borrower = await register_and_login("b@example.com", "bob")

        game = await client.post(
            "/api/games",
            json={"name": "Catan", "min_players": 3, "max_players": 4, "category": "Strategy"},
            headers=owner_headers,
        )
        assert game.status_code == 201, game.text
        game = game.json()
        instance = (await client.get(f"/api/games/{game['id']}/instances")).json()[0]

        return {
            "owner": owner,
            "owner_headers": owner_headers,
            "borrower": borrower,
            "borrower_headers": borrower_headers,
            "game": game,
            "instance": instance,
        }

    return _setup


async def _request(client, ctx, start=D1, end=D2, headers=None):
    return await client.post(
        "/api/borrowrequests",
        json={
            "requested_game_id": ctx["game"]["id"],
            "game_instance_id": ctx["instance"]["id"],
            "start_date": start,
            "end_date": end,
        },
        headers=headers or ctx["borrower_headers"],
    )


async def _approved_record(client, ctx, start=D1, end=D2):
    request = (await _request(client, ctx, start, end)).json()
    approved = await client.put(
        f"/api/borrowrequests/{request['id']}",
        json={"status": "APPROVED"},
        headers=ctx["owner_headers"],
    )
    assert approved.status_code == 200, approved.text

    record = await client.get(f"/api/lending-records/request/{request['id']}", headers=ctx["owner_headers"])
    return request, record.json()


class TestLendingScenario:
    """Request, approve, return and confirm."""

    async def test_full_lending_cycle(self, client, parties):
        """A lends G to B for one week and confirms an undamaged return."""
        ctx = await parties()

        created = await _request(client, ctx)
        assert created.status_code == 201
        request = created.json()
        assert request["status"] == "PENDING"

        approved = await client.put(
            f"/api/borrowrequests/{request['id']}",
            json={"status": "APPROVED"},
            headers=ctx["owner_headers"],
        )
        assert approved.status_code == 200
        assert approved.json()["status"] == "APPROVED"

        record = (await client.get(
            f"/api/lending-records/request/{request['id']}", headers=ctx["owner_headers"]
        )).json()
        assert record["status"] == "ACTIVE"
        assert record["record_owner_id"] == ctx["owner"]["id"]
        assert record["borrower_id"] == ctx["borrower"]["id"]

        returned = await client.post(
            f"/api/lending-records/{record['id']}/mark-returned", headers=ctx["borrower_headers"]
        )
        assert returned.status_code == 200
        assert returned.json()["status"] == "PENDING_RETURN"

        confirmed = await client.post(
            f"/api/lending-records/{record['id']}/confirm-return",
            json={"is_damaged": False},
            headers=ctx["owner_headers"],
        )
        assert confirmed.status_code == 200
        body = confirmed.json()
        assert body["success"] is True
        assert body["message"] == "Game return confirmed successfully"
        assert "damage_severity" not in body

        closed = (await client.get(f"/api/lending-records/{record['id']}", headers=ctx["owner_headers"])).json()
        assert closed["status"] == "CLOSED"
        assert closed["duration_in_days"] == 7

    async def test_overlapping_request_rejected(self, client, parties):
        """A second request overlapping an approved booking is a 400."""
        ctx = await parties()
        await _approved_record(client, ctx)

        response = await _request(client, ctx, start="2030-05-04T10:00:00", end="2030-05-10T10:00:00")

        assert response.status_code == 400
        assert response.json()["error"] == "Game instance is unavailable for the requested period."

    @pytest.mark.parametrize("copy_first", [True, False])
    async def test_copy_and_game_level_bookings_exclude_each_other(
        self, client, parties, register_and_login, copy_first
    ):
        """A copy booking and a game-level booking cannot share a period."""
        ctx = await parties()
        carol_headers, _ = await register_and_login("c@example.com", "carol")
        game_level = {"requested_game_id": ctx["game"]["id"], "start_date": D1, "end_date": D2}

        copy_request = (await _request(client, ctx)).json()
        game_request = (await client.post(
            "/api/borrowrequests", json=game_level, headers=carol_headers
        )).json()

        first, second = (copy_request, game_request) if copy_first else (game_request, copy_request)
        ok = await client.put(
            f"/api/borrowrequests/{first['id']}", json={"status": "APPROVED"}, headers=ctx["owner_headers"]
        )
        assert ok.status_code == 200
        refused = await client.put(
            f"/api/borrowrequests/{second['id']}", json={"status": "APPROVED"}, headers=ctx["owner_headers"]
        )
        assert refused.status_code == 400

        approved = (await client.get("/api/borrowrequests/status/APPROVED", headers=ctx["owner_headers"])).json()
        assert [r["id"] for r in approved] == [first["id"]]

        # New requests in either scope are refused up front
        assert (await _request(client, ctx, headers=carol_headers)).status_code == 400
        assert (await client.post(
            "/api/borrowrequests", json=game_level, headers=ctx["borrower_headers"]
        )).status_code == 400

    async def test_adjacent_request_accepted(self, client, parties):
        ctx = await parties()
        await _approved_record(client, ctx)

        response = await _request(client, ctx, start=D2, end="2030-05-10T10:00:00")

        assert response.status_code == 201

    async def test_review_gate(self, client, parties):
        """Reviews are refused until a lending of the game is closed."""
        ctx = await parties()
        game_id = ctx["game"]["id"]
        review = {"rating": 5, "comment": "Great trading game"}

        early = await client.post(f"/api/games/{game_id}/reviews", json=review, headers=ctx["borrower_headers"])
        assert early.status_code == 403

        _, record = await _approved_record(client, ctx)
        await client.post(
            f"/api/lending-records/{record['id']}/confirm-return",
            json={"is_damaged": False},
            headers=ctx["owner_headers"],
        )

        gate = await client.get(
            "/api/lending-records/can-review",
            params={"game_id": game_id},
            headers=ctx["borrower_headers"],
        )
        assert gate.json()["can_review"] is True

        late = await client.post(f"/api/games/{game_id}/reviews", json=review, headers=ctx["borrower_headers"])
        assert late.status_code == 201

        rating = (await client.get(f"/api/games/{game_id}/rating")).json()
        assert rating["review_count"] == 1
        assert rating["average_rating"] == 5.0

    async def test_damaged_return(self, client, parties):
        ctx = await parties()
        _, record = await _approved_record(client, ctx)

        response = await client.post(
            f"/api/lending-records/{record['id']}/confirm-return",
            json={"is_damaged": True, "damage_notes": "Cards bent", "damage_severity": 3},
            headers=ctx["owner_headers"],
        )

        assert response.status_code == 200
        body = response.json()
        assert body["damage_severity"] == 3
        assert body["damage_severity_label"] == "Severe"
        assert body["damage_notes"] == "Cards bent"

    async def test_borrower_cannot_approve(self, client, parties):
        ctx = await parties()
        request = (await _request(client, ctx)).json()

        response = await client.put(
            f"/api/borrowrequests/{request['id']}",
            json={"status": "APPROVED"},
            headers=ctx["borrower_headers"],
        )

        assert response.status_code == 403
        assert response.json()["code"] == "FORBIDDEN"

    async def test_closed_record_status_is_terminal(self, client, parties):
        ctx = await parties()
        _, record = await _approved_record(client, ctx)
        url = f"/api/lending-records/{record['id']}/status"

        missing_reason = await client.put(url, json={"new_status": "CLOSED"}, headers=ctx["owner_headers"])
        assert missing_reason.status_code == 400

        closed = await client.put(
            url, json={"new_status": "CLOSED", "reason": "Handed back"}, headers=ctx["owner_headers"]
        )
        assert closed.status_code == 200

        reopened = await client.put(
            url, json={"new_status": "ACTIVE", "reason": "Oops"}, headers=ctx["owner_headers"]
        )
        assert reopened.status_code == 400
        assert reopened.json()["code"] == "INVALID_OPERATION"

    async def test_availability(self, client, parties):
        ctx = await parties()
        game_id = ctx["game"]["id"]
        await _approved_record(client, ctx)

        busy = (await client.get(
            f"/api/games/{game_id}/availability",
            params={"start_date": "2030-05-02T00:00:00", "end_date": "2030-05-03T00:00:00"},
        )).json()
        free = (await client.get(
            f"/api/games/{game_id}/availability",
            params={"start_date": D2, "end_date": "2030-05-09T00:00:00"},
        )).json()

        assert busy["available"] is False
        assert free["available"] is True

    async def test_borrowed_games_view(self, client, parties):
        ctx = await parties()
        await _approved_record(client, ctx)

        response = await client.get(
            f"/api/users/{ctx['borrower']['id']}/games/borrowed", headers=ctx["borrower_headers"]
        )

        assert [g["name"] for g in response.json()] == ["Catan"]


class TestRecordPagination:

    async def test_owner_records_are_paged(self, client, parties):
        ctx = await parties()
        for day in (1, 8, 15):
            await _approved_record(
                client,
                ctx,
                start=f"2030-07-{day:02d}T10:00:00",
                end=f"2030-07-{day + 6:02d}T10:00:00",
            )

        response = await client.get(
            f"/api/lending-records/owner/{ctx['owner']['id']}",
            params={"page": 1, "size": 2, "sort": "start_date", "direction": "desc"},
            headers=ctx["owner_headers"],
        )

        assert response.status_code == 200
        page = response.json()
        assert page["current_page"] == 1
        assert page["total_items"] == 3
        assert page["total_pages"] == 2
        assert len(page["records"]) == 1
        assert page["records"][0]["start_date"].startswith("2030-07-01")

    async def test_filter_by_borrower(self, client, parties):
        ctx = await parties()
        await _approved_record(client, ctx)

        response = await client.post(
            "/api/lending-records/filter",
            json={"borrower_id": ctx["borrower"]["id"], "status": "ACTIVE"},
            headers=ctx["owner_headers"],
        )

        assert response.status_code == 200
        assert response.json()["total_items"] == 1


class TestGameSearch:

    async def test_search_filters(self, client, register_and_login):
        headers, _ = await register_and_login("a@example.com", "alice", game_owner=True)
        for name, lo, hi, category in (
            ("Catan", 3, 4, "Strategy"),
            ("Codenames", 4, 8, "Party"),
            ("Patchwork", 2, 2, "Strategy"),
        ):
            await client.post(
                "/api/games",
                json={"name": name, "min_players": lo, "max_players": hi, "category": category},
                headers=headers,
            )

        by_category = (await client.get("/api/games", params={"category": "Strategy"})).json()
        by_name = (await client.get("/api/games", params={"name": "code"})).json()

        assert sorted(g["name"] for g in by_category) == ["Catan", "Patchwork"]
        assert [g["name"] for g in by_name] == ["Codenames"]


class TestEventsAndRegistrations:

    @pytest.fixture
    def event_setup(self, client, parties):
        async def _setup(max_participants=1):
            ctx = await parties()
            event = await client.post(
                "/api/events",
                json={
                    "title": "Catan night",
                    "date_time": "2030-06-01T18:00:00",
                    "location": "Community Hall",
                    "description": "Friendly games",
                    "max_participants": max_participants,
                    "featured_game_id": ctx["game"]["id"],
                },
                headers=ctx["owner_headers"],
            )
            assert event.status_code == 201, event.text
            ctx["event"] = event.json()
            return ctx

        return _setup

    async def test_capacity_is_enforced(self, client, register_and_login, event_setup):
        ctx = await event_setup(max_participants=1)
        event_id = ctx["event"]["id"]

        first = await client.post(
            "/api/registrations", json={"event_id": event_id}, headers=ctx["borrower_headers"]
        )
        assert first.status_code == 201

        late_headers, _ = await register_and_login("c@example.com", "carol")
        second = await client.post("/api/registrations", json={"event_id": event_id}, headers=late_headers)
        assert second.status_code == 400
        assert second.json()["error"] == "Event is at full capacity"

        event = (await client.get(f"/api/events/{event_id}")).json()
        assert event["current_number_participants"] == 1

    async def test_cancel_releases_seat(self, client, event_setup):
        ctx = await event_setup(max_participants=2)
        event_id = ctx["event"]["id"]
        registration = (await client.post(
            "/api/registrations", json={"event_id": event_id}, headers=ctx["borrower_headers"]
        )).json()

        deleted = await client.delete(
            f"/api/registrations/{registration['id']}", headers=ctx["borrower_headers"]
        )

        assert deleted.status_code == 200
        event = (await client.get(f"/api/events/{event_id}")).json()
        assert event["current_number_participants"] == 0

    async def test_event_lookups(self, client, event_setup):
        ctx = await event_setup()

        by_date = (await client.get("/api/events/by-date", params={"date": "2030-06-01"})).json()
        other_day = (await client.get("/api/events/by-date", params={"date": "2030-06-02"})).json()
        by_game = (await client.get("/api/events/by-game-name", params={"game_name": "catan"})).json()
        by_location = (await client.get("/api/events/by-location", params={"location": "hall"})).json()

        assert [e["id"] for e in by_date] == [ctx["event"]["id"]]
        assert other_day == []
        assert len(by_game) == 1
        assert len(by_location) == 1

    async def test_only_host_updates(self, client, event_setup):
        ctx = await event_setup()
        url = f"/api/events/{ctx['event']['id']}"

        denied = await client.put(url, json={"title": "Hijacked"}, headers=ctx["borrower_headers"])
        allowed = await client.put(url, json={"title": "Catan league"}, headers=ctx["owner_headers"])

        assert denied.status_code == 403
        assert allowed.json()["title"] == "Catan league"


class TestCascadeDelete:

    async def test_deleting_game_removes_dependents(self, client, parties):
        """Deleting a game removes its requests, records, events and reviews."""
        ctx = await parties()
        game_id = ctx["game"]["id"]
        request, record = await _approved_record(client, ctx)
        await client.post(
            "/api/events",
            json={
                "title": "Catan night",
                "date_time": "2030-06-01T18:00:00",
                "location": "Hall",
                "description": "Games",
                "max_participants": 4,
                "featured_game_id": game_id,
            },
            headers=ctx["owner_headers"],
        )

        response = await client.delete(f"/api/games/{game_id}", headers=ctx["owner_headers"])
        assert response.status_code == 200

        assert (await client.get(f"/api/games/{game_id}")).status_code == 404
        assert (await client.get(
            f"/api/borrowrequests/{request['id']}", headers=ctx["owner_headers"]
        )).status_code == 404
        assert (await client.get(
            f"/api/lending-records/{record['id']}", headers=ctx["owner_headers"]
        )).status_code == 404
        assert (await client.get("/api/events")).json() == []

    async def test_deleting_account(self, client, parties):
        ctx = await parties()
        await _approved_record(client, ctx)

        response = await client.delete("/api/account/a@example.com", headers=ctx["owner_headers"])
        assert response.status_code == 200

        assert (await client.get("/api/games")).json() == []
        assert (await client.get("/auth/me", headers=ctx["owner_headers"])).status_code == 401
