"""Tests for the attendance endpoints."""

import pytest
from httpx import AsyncClient

from conftest import auth

BASE = "/api/v1/attendance"


@pytest.mark.asyncio
async def test_clock_in_requires_token(async_client: AsyncClient):
    resp = await async_client.post(f"{BASE}/clock-in", json={})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_garbage_token_rejected(async_client: AsyncClient, org):
    resp = await async_client.get(f"{BASE}/status", headers={"Authorization": "Bearer nope"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_token_accepted_from_cookie(async_client: AsyncClient, org):
    token = auth(org["alice"])["Authorization"].removeprefix("Bearer ")
    resp = await async_client.get(f"{BASE}/status", headers={"Cookie": f"access_token={token}"})
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_status_before_clock_in(async_client: AsyncClient, org):
    resp = await async_client.get(f"{BASE}/status", headers=auth(org["alice"]))
    assert resp.status_code == 200
    data = resp.json()
    assert data["phase"] == "EMPTY"
    assert data["id"] is None
    assert data["date"] == "2025-03-10"


@pytest.mark.asyncio
async def test_full_day(async_client: AsyncClient, org, clock):
    headers = auth(org["alice"])

    resp = await async_client.post(f"{BASE}/clock-in", json={"location": "HQ"}, headers=headers)
    assert resp.status_code == 201
    data = resp.json()
    assert data["status"] == "PRESENT"
    assert data["phase"] == "CLOCKED_IN"
    assert data["location"] == "HQ"
    assert data["is_late"] is False

    clock.set(12, 0)
    resp = await async_client.post(f"{BASE}/break/start", headers=headers)
    assert resp.json()["phase"] == "ON_BREAK"

    clock.set(12, 30)
    resp = await async_client.post(f"{BASE}/break/end", headers=headers)
    assert resp.json()["phase"] == "CLOCKED_IN"

    clock.set(17, 30)
    resp = await async_client.post(f"{BASE}/clock-out", json={"notes": "shipped"}, headers=headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["phase"] == "CLOCKED_OUT"
    assert data["hours_worked"] == pytest.approx(8.08)
    assert data["break_duration"] == pytest.approx(0.5)
    assert data["overtime_hours"] == pytest.approx(0.08)
    assert data["approved"] is True
    assert data["notes"] == "shipped"


@pytest.mark.asyncio
async def test_late_clock_in(async_client: AsyncClient, org, clock):
    clock.set(9, 20)
    resp = await async_client.post(f"{BASE}/clock-in", json={}, headers=auth(org["alice"]))
    assert resp.json()["status"] == "LATE"
    assert resp.json()["is_late"] is True


@pytest.mark.asyncio
async def test_double_clock_in(async_client: AsyncClient, org):
    headers = auth(org["alice"])
    await async_client.post(f"{BASE}/clock-in", json={}, headers=headers)
    resp = await async_client.post(f"{BASE}/clock-in", json={}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["code"] == "AlreadyClockedIn"
    assert resp.json()["success"] is False


@pytest.mark.asyncio
async def test_director_does_not_clock_in(async_client: AsyncClient, org):
    resp = await async_client.post(f"{BASE}/clock-in", json={}, headers=auth(org["director"]))
    assert resp.status_code == 403
    assert resp.json()["code"] == "RoleNotEligible"


@pytest.mark.asyncio
async def test_clock_out_without_clock_in(async_client: AsyncClient, org):
    resp = await async_client.post(f"{BASE}/clock-out", json={}, headers=auth(org["alice"]))
    assert resp.status_code == 400
    assert resp.json()["code"] == "NoClockInFound"


@pytest.mark.asyncio
async def test_end_break_without_break(async_client: AsyncClient, org):
    headers = auth(org["alice"])
    await async_client.post(f"{BASE}/clock-in", json={}, headers=headers)
    resp = await async_client.post(f"{BASE}/break/end", headers=headers)
    assert resp.status_code == 400
    assert resp.json()["code"] == "NoOpenBreak"


@pytest.mark.asyncio
async def test_any_status_can_be_declared_at_clock_in(async_client: AsyncClient, org):
    resp = await async_client.post(
        f"{BASE}/clock-in", json={"status": "SICK_LEAVE"}, headers=auth(org["alice"])
    )
    assert resp.status_code == 201
    assert resp.json()["status"] == "SICK_LEAVE"


@pytest.mark.asyncio
async def test_unknown_declared_status_rejected(async_client: AsyncClient, org):
    resp = await async_client.post(
        f"{BASE}/clock-in", json={"status": "NAPPING"}, headers=auth(org["alice"])
    )
    assert resp.status_code == 422


# ── History & stats ─────────────────────────────────────────────────
async def _work_day(client: AsyncClient, clock, user, **clock_in):
    clock.set(8, 55)
    await client.post(f"{BASE}/clock-in", json=clock_in, headers=auth(user))
    clock.set(17, 30)
    resp = await client.post(f"{BASE}/clock-out", json={}, headers=auth(user))
    return resp.json()


@pytest.mark.asyncio
async def test_history_visibility(async_client: AsyncClient, org, clock):
    await _work_day(async_client, clock, org["alice"])
    alice_id = org["alice"].id

    mine = await async_client.get(f"{BASE}/my-history", headers=auth(org["alice"]))
    assert mine.status_code == 200
    assert len(mine.json()) == 1

    peer = await async_client.get(f"{BASE}/user/{alice_id}/history", headers=auth(org["bob"]))
    assert peer.status_code == 403

    for viewer in ("lead", "hr", "director"):
        resp = await async_client.get(f"{BASE}/user/{alice_id}/history", headers=auth(org[viewer]))
        assert resp.status_code == 200, viewer
        assert len(resp.json()) == 1

    other = await async_client.get(f"{BASE}/user/{alice_id}/history", headers=auth(org["other_lead"]))
    assert other.status_code == 403


@pytest.mark.asyncio
async def test_history_invalid_range(async_client: AsyncClient, org):
    resp = await async_client.get(
        f"{BASE}/my-history",
        params={"start_date": "2025-03-14", "end_date": "2025-03-10"},
        headers=auth(org["alice"]),
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_unknown_user_history(async_client: AsyncClient, org):
    resp = await async_client.get(f"{BASE}/user/9999/history", headers=auth(org["hr"]))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_my_stats(async_client: AsyncClient, org, clock):
    await _work_day(async_client, clock, org["alice"])
    resp = await async_client.get(
        f"{BASE}/my-stats",
        params={"start_date": "2025-03-10", "end_date": "2025-03-14"},
        headers=auth(org["alice"]),
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["total_days"] == 1
    assert data["present_days"] == 1
    assert data["attendance_rate"] == pytest.approx(20.0)
    assert data["punctuality_rate"] == pytest.approx(100.0)
    assert data["total_hours_worked"] == pytest.approx(8.58)


@pytest.mark.asyncio
async def test_user_stats_for_manager(async_client: AsyncClient, org, clock):
    await _work_day(async_client, clock, org["alice"])
    resp = await async_client.get(f"{BASE}/user/{org['alice'].id}/stats", headers=auth(org["lead"]))
    assert resp.status_code == 200
    assert resp.json()["user_id"] == org["alice"].id


@pytest.mark.asyncio
async def test_today_stats(async_client: AsyncClient, org, clock):
    await async_client.post(f"{BASE}/clock-in", json={}, headers=auth(org["alice"]))
    clock.set(9, 30)
    await async_client.post(f"{BASE}/clock-in", json={}, headers=auth(org["bob"]))
    await async_client.post(f"{BASE}/break/start", headers=auth(org["bob"]))

    resp = await async_client.get(f"{BASE}/today/stats", headers=auth(org["director"]))
    assert resp.status_code == 200
    data = resp.json()
    assert data["total_employees"] == 7
    assert data["present"] == 2
    assert data["late"] == 1
    assert data["on_break"] == 1
    assert data["absent"] == 5

    denied = await async_client.get(f"{BASE}/today/stats", headers=auth(org["alice"]))
    assert denied.status_code == 403


# ── Approval ────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_remote_day_approval_flow(async_client: AsyncClient, org, clock):
    record = await _work_day(async_client, clock, org["bob"], status="REMOTE", is_remote=True)
    assert record["approved"] is False

    pending = await async_client.get(f"{BASE}/pending-approvals", headers=auth(org["lead"]))
    assert [r["id"] for r in pending.json()] == [record["id"]]

    not_mine = await async_client.get(f"{BASE}/pending-approvals", headers=auth(org["other_lead"]))
    assert not_mine.json() == []

    skipped = await async_client.put(
        f"{BASE}/approve", json={"attendance_ids": [record["id"]]}, headers=auth(org["other_lead"])
    )
    assert skipped.json() == {"approved": [], "skipped": [record["id"]]}

    resp = await async_client.put(
        f"{BASE}/approve", json={"attendance_ids": [record["id"], 9999]}, headers=auth(org["lead"])
    )
    assert resp.status_code == 200
    assert resp.json() == {"approved": [record["id"]], "skipped": [9999]}

    history = await async_client.get(f"{BASE}/my-history", headers=auth(org["bob"]))
    approved = history.json()[0]
    assert approved["approved"] is True
    assert approved["approved_by"] == org["lead"].id

    pending = await async_client.get(f"{BASE}/pending-approvals", headers=auth(org["hr"]))
    assert pending.json() == []


@pytest.mark.asyncio
async def test_employee_cannot_approve(async_client: AsyncClient, org):
    resp = await async_client.put(f"{BASE}/approve", json={"attendance_ids": [1]}, headers=auth(org["alice"]))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_empty_batch_rejected(async_client: AsyncClient, org):
    resp = await async_client.put(f"{BASE}/approve", json={"attendance_ids": []}, headers=auth(org["lead"]))
    assert resp.status_code == 422
