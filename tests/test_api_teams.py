"""
Tests: Team Blueprint — manager ↔ member relations over HTTP.
"""

BASE = "/api/v1/efiling/teams"


def test_list_team_members(client, directory):
    res = client.get(f"{BASE}?manager_id={directory.creator.id}")
    assert res.status_code == 200
    body = res.get_json()
    assert body["total"] == 2
    assert [m["team_role"] for m in body["team_members"]] == ["AEE", "SUB_ENGINEER"]


def test_list_requires_manager_id(client, directory):
    res = client.get(BASE)
    assert res.status_code == 400
    assert client.get(f"{BASE}?manager_id=abc").status_code == 400


def test_add_team_member(client, directory):
    res = client.post(BASE, json={
        "manager_id": directory.ce.id,
        "team_member_id": directory.outsider.id,
        "team_role": "assistant",
    })
    assert res.status_code == 201
    body = res.get_json()
    assert body["relation"]["team_role"] == "ASSISTANT"
    assert [m["team_member_id"] for m in body["team_members"]] == [directory.outsider.id]


def test_add_team_member_validation(client, directory):
    res = client.post(BASE, json={"manager_id": directory.ce.id, "team_member_id": directory.outsider.id})
    assert res.status_code == 400

    res = client.post(BASE, json={
        "manager_id": directory.ce.id, "team_member_id": directory.ce.id, "team_role": "AO",
    })
    assert res.status_code == 422

    res = client.post(BASE, json={
        "manager_id": directory.ce.id, "team_member_id": 9999, "team_role": "AO",
    })
    assert res.status_code == 404


def test_remove_team_member(client, directory):
    url = f"{BASE}?manager_id={directory.creator.id}&team_member_id={directory.aee.id}"
    res = client.delete(url)
    assert res.status_code == 200
    assert res.get_json() == {"removed": True}

    assert client.delete(url).status_code == 404
    listed = client.get(f"{BASE}?manager_id={directory.creator.id}").get_json()
    assert [m["team_member_id"] for m in listed["team_members"]] == [directory.sub_engineer.id]


def test_remove_requires_both_ids(client, directory):
    assert client.delete(f"{BASE}?manager_id={directory.creator.id}").status_code == 400


def test_marking_candidates(client, directory):
    res = client.get(f"{BASE}/{directory.creator.id}/marking-candidates")
    assert res.status_code == 200
    candidates = res.get_json()["candidates"]
    assert candidates[-1]["id"] == directory.creator.id
    assert candidates[-1]["team_role"] == "CREATOR"


def test_assistants(client, directory):
    res = client.get(f"{BASE}/{directory.se.id}/assistants")
    assert res.status_code == 200
    assistants = res.get_json()["assistants"]
    assert [a["team_member_id"] for a in assistants] == [directory.se_assistant.id]


def test_manager_for_user(client, directory):
    res = client.get(f"{BASE}/members/{directory.sub_engineer.id}/manager")
    assert res.status_code == 200
    assert res.get_json()["manager_id"] == directory.creator.id

    assert client.get(f"{BASE}/members/{directory.ceo.id}/manager").status_code == 404
