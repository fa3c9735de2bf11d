import pytest


@pytest.mark.django_db
def test_capabilities_describes_socket_contract(api, make_profile):
    api.force_authenticate(user=make_profile("alice").user)

    body = api.get("/api/v1/realtime/capabilities").json()

    assert body["websocket_url"] == "/ws/notifications/"
    assert "4401" in body["close_codes"]
    assert {"snapshot", "state", "mark_read", "mark_all_read"} <= {e["type"] for e in body["events"]}


def test_capabilities_requires_auth(api):
    assert api.get("/api/v1/realtime/capabilities").status_code == 401
