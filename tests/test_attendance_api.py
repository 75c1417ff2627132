# tests/test_attendance_api.py
from http import HTTPStatus


def _setup(client) -> tuple[int, int]:
    member = client.post(
        "/members", json={"name": "Ravi Kumar", "email": "ravi@example.org"}
    ).json()
    meeting = client.post(
        "/meetings",
        json={
            "title": "Weekly Sync",
            "meeting_date": "2025-03-18T09:00:00Z",
            "status": "completed",
        },
    ).json()
    return meeting["id"], member["id"]


def test_record_attendance_and_dispatch(client, recording_dispatcher):
    """
    Recording attendance returns the stored fact and asks for a performance
    recomputation of the member.
    """
    meeting_id, member_id = _setup(client)

    response = client.post(
        "/attendance",
        json={"meeting_id": meeting_id, "member_id": member_id, "status": "present"},
    )
    assert response.status_code == HTTPStatus.OK

    data = response.json()
    assert data["meeting_id"] == meeting_id
    assert data["member_id"] == member_id
    assert data["status"] == "present"
    assert data["check_in_time"].startswith("2025-03-20T12:00:00")
    assert data["check_out_time"] is None

    assert recording_dispatcher.dispatched == [member_id]


def test_re_recording_updates_same_fact(client):
    meeting_id, member_id = _setup(client)
    body = {"meeting_id": meeting_id, "member_id": member_id}

    first = client.post("/attendance", json={**body, "status": "present"}).json()
    second = client.post(
        "/attendance", json={**body, "status": "excused", "notes": "Medical"}
    ).json()

    assert second["id"] == first["id"]
    assert second["status"] == "excused"
    assert second["check_in_time"] is None
    assert second["notes"] == "Medical"

    attendees = client.get(f"/meetings/{meeting_id}").json()["attendees"]
    assert len(attendees) == 1
    assert attendees[0]["status"] == "excused"


def test_invalid_status_returns_422(client, recording_dispatcher):
    meeting_id, member_id = _setup(client)

    response = client.post(
        "/attendance",
        json={"meeting_id": meeting_id, "member_id": member_id, "status": "asleep"},
    )

    assert response.status_code == HTTPStatus.UNPROCESSABLE_ENTITY
    assert "invalid attendance status" in response.json()["detail"].lower()
    assert recording_dispatcher.dispatched == []


def test_unknown_meeting_or_member_returns_404(client):
    meeting_id, member_id = _setup(client)

    missing_meeting = client.post(
        "/attendance", json={"meeting_id": 777, "member_id": member_id, "status": "present"}
    )
    missing_member = client.post(
        "/attendance", json={"meeting_id": meeting_id, "member_id": 777, "status": "present"}
    )

    assert missing_meeting.status_code == HTTPStatus.NOT_FOUND
    assert missing_member.status_code == HTTPStatus.NOT_FOUND
    assert client.get(f"/meetings/{meeting_id}/attendance").json() == []


def test_check_out(client, clock):
    meeting_id, member_id = _setup(client)
    body = {"meeting_id": meeting_id, "member_id": member_id}

    # Nothing recorded yet
    assert client.post("/attendance/check-out", json=body).status_code == HTTPStatus.NOT_FOUND

    client.post("/attendance", json={**body, "status": "present"})
    clock.advance(hours=1, minutes=30)

    response = client.post("/attendance/check-out", json=body)
    assert response.status_code == HTTPStatus.OK
    assert response.json()["check_out_time"].startswith("2025-03-20T13:30:00")

    client.post("/attendance", json={**body, "status": "absent"})
    response = client.post("/attendance/check-out", json=body)
    assert response.status_code == HTTPStatus.UNPROCESSABLE_ENTITY
