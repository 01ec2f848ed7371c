"""Access gate (Auth-Key + roles) and the student access recorder."""

from conftest import run


# =============================================================================
# GATE
# =============================================================================

def test_missing_token_is_400(client):
    response = client.get("/user")
    assert response.status_code == 400
    assert response.json() == {"status": 400, "message": "Authorization token not provided."}


def test_unknown_token_is_401(client):
    response = client.get("/user", headers={"Auth-Key": "not-a-real-token"})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid authorization token."


def test_wrong_role_is_403(client, make_user):
    _, token = make_user("student")
    response = client.get("/user", headers={"Auth-Key": token})
    assert response.status_code == 403
    assert response.json()["message"] == "Access forbidden for this role."


def test_allowed_role_passes(client, teacher_headers):
    response = client.get("/user", headers=teacher_headers)
    assert response.status_code == 200


def test_station_can_write_readings_but_not_delete(client, station_headers):
    response = client.post(
        "/weather-reading",
        json={"deviceName": "Woodford_Sensor", "time": "2024-03-14T10:30:00Z"},
        headers=station_headers,
    )
    assert response.status_code == 200

    response = client.request(
        "DELETE",
        "/weather-reading/delete",
        json={"weatherDataId": "65f2c1e4a1b2c3d4e5f60718"},
        headers=station_headers,
    )
    assert response.status_code == 403


def test_logged_out_token_is_rejected(client, make_user, directory):
    user, token = make_user("teacher")
    run(directory.end_session(user))

    response = client.get("/user", headers={"Auth-Key": token})
    assert response.status_code == 401


def test_tokens_do_not_expire_until_logout(client, make_user):
    _, token = make_user("teacher")
    for _ in range(3):
        assert client.get("/user", headers={"Auth-Key": token}).status_code == 200


# =============================================================================
# RECORDER
# =============================================================================

def test_student_read_advances_last_access(client, make_user, make_reading, directory):
    make_reading()
    student, token = make_user("student")
    assert student.last_access is None

    response = client.get("/weather-reading", headers={"Auth-Key": token})
    assert response.status_code == 200

    first = run(directory.get_by_id(student.id)).last_access
    assert first is not None

    client.get("/weather-reading/by-device?deviceName=Woodford_Sensor", headers={"Auth-Key": token})
    second = run(directory.get_by_id(student.id)).last_access
    assert second >= first


def test_other_roles_leave_last_access_alone(client, make_user, directory):
    for role in ("teacher", "station", "admin"):
        user, token = make_user(role)
        client.get("/weather-reading", headers={"Auth-Key": token})
        assert run(directory.get_by_id(user.id)).last_access is None


def test_no_token_means_no_lookup(client, app, monkeypatch):
    calls = []

    async def spy(token):
        calls.append(token)
        return None

    monkeypatch.setattr(app.state.user_directory, "get_by_token", spy)

    response = client.get("/weather-reading")
    assert response.status_code == 200
    assert calls == []


def test_unknown_token_does_not_block_reads(client):
    response = client.get("/weather-reading", headers={"Auth-Key": "whatever"})
    assert response.status_code == 200


def test_failed_stamp_is_swallowed(client, app, make_user, monkeypatch):
    _, token = make_user("student")

    async def broken(user):
        raise RuntimeError("write failed")

    monkeypatch.setattr(app.state.user_directory, "record_access", broken)

    response = client.get("/weather-reading", headers={"Auth-Key": token})
    assert response.status_code == 200


def test_failed_lookup_is_swallowed(client, app, monkeypatch):
    async def broken(token):
        raise RuntimeError("store down")

    monkeypatch.setattr(app.state.user_directory, "get_by_token", broken)

    response = client.get("/weather-reading", headers={"Auth-Key": "abc"})
    assert response.status_code == 200
