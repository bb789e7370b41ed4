"""
anning
Tests — groups & papers API.

Covers:
    - group create / subgroup / depth error / rename / toggle / delete
    - sidebar tree endpoint
    - paper CRUD, notes, move, error envelope
"""

import pytest

ARXIV_ABS = "https://arxiv.org/abs/2106.09685"
MISSING = "00000000-0000-0000-0000-000000000000"


def _create_group(client, **body):
    res = client.post("/api/v1/groups", json=body)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


def _create_paper(client, title="LoRA", **kw):
    payload = {"title": title, "source_url": ARXIV_ABS}
    payload.update(kw)
    res = client.post("/api/v1/papers", json=payload)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


def _move(client, paper_id, **body):
    return client.post(f"/api/v1/papers/{paper_id}/move", json=body)


# ═════════════════════════════════════════════════════════════════════════════
# GROUPS
# ═════════════════════════════════════════════════════════════════════════════

class TestGroupsAPI:
    def test_create_root_and_subgroup(self, client):
        root = _create_group(client, name="Fine-tuning")
        sub = _create_group(client, name="Adapters", parent_id=root["id"])

        assert root["parent_id"] is None
        assert root["order_index"] == 0
        assert sub["parent_id"] == root["id"]
        assert sub["order_index"] == 0

    def test_third_level_is_422(self, client):
        root = _create_group(client, name="A")
        sub = _create_group(client, name="A1", parent_id=root["id"])

        res = client.post("/api/v1/groups", json={"name": "A1a", "parent_id": sub["id"]})

        assert res.status_code == 422
        body = res.get_json()
        assert body["code"] == "ERR_INVALID_DEPTH"
        assert body["details"]["parent_id"] == sub["id"]
        assert client.get("/api/v1/groups/tree").get_json()["total_groups"] == 2

    def test_unknown_parent_is_404(self, client):
        res = client.post("/api/v1/groups", json={"name": "x", "parent_id": MISSING})
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"

    def test_rename_and_toggle(self, client):
        group = _create_group(client, name="Old")

        res = client.put(f"/api/v1/groups/{group['id']}", json={"name": "New"})
        assert res.get_json()["name"] == "New"

        res = client.post(f"/api/v1/groups/{group['id']}/toggle")
        assert res.get_json()["is_collapsed"] is True
        res = client.post(f"/api/v1/groups/{group['id']}/toggle", json={"collapsed": False})
        assert res.get_json()["is_collapsed"] is False

    def test_toggle_rejects_non_boolean(self, client):
        group = _create_group(client, name="G")
        res = client.post(f"/api/v1/groups/{group['id']}/toggle", json={"collapsed": "yes"})
        assert res.status_code == 422

    def test_delete_root_promotes_subgroups(self, client):
        a = _create_group(client, name="A")
        a1 = _create_group(client, name="A1", parent_id=a["id"])
        p1 = _create_paper(client, title="P1")
        p2 = _create_paper(client, title="P2")
        assert _move(client, p1["id"], group_id=a1["id"]).status_code == 200

        res = client.delete(f"/api/v1/groups/{a['id']}")
        assert res.status_code == 200

        tree = client.get("/api/v1/groups/tree").get_json()
        assert [r["name"] for r in tree["roots"]] == ["A1"]
        assert tree["roots"][0]["order_index"] == 0
        assert [p["id"] for p in tree["roots"][0]["papers"]] == [p1["id"]]
        assert [p["id"] for p in tree["ungrouped"]] == [p2["id"]]

    def test_delete_missing_group(self, client):
        assert client.delete(f"/api/v1/groups/{MISSING}").status_code == 404


# ═════════════════════════════════════════════════════════════════════════════
# PAPERS
# ═════════════════════════════════════════════════════════════════════════════

class TestPapersAPI:
    def test_create_normalises_url(self, client):
        paper = _create_paper(client, authors=[{"firstName": "Edward", "lastName": "Hu"}])

        assert paper["source_url"] == "https://arxiv.org/pdf/2106.09685.pdf"
        assert paper["authors_display"] == "Hu, Edward"
        assert paper["group_id"] is None
        assert paper["cached_file_path"] is None

    def test_create_invalid_is_422_with_details(self, client):
        res = client.post("/api/v1/papers", json={"title": "", "source_url": "https://example.com"})
        assert res.status_code == 422
        details = res.get_json()["details"]
        assert set(details) == {"title", "source_url"}

    def test_get_update_delete(self, client):
        paper = _create_paper(client)

        res = client.put(f"/api/v1/papers/{paper['id']}", json={"short_title": "LoRA adapters"})
        assert res.status_code == 200
        assert res.get_json()["display_title"] == "LoRA adapters"

        assert client.get(f"/api/v1/papers/{paper['id']}").status_code == 200
        assert client.delete(f"/api/v1/papers/{paper['id']}").status_code == 200
        assert client.get(f"/api/v1/papers/{paper['id']}").status_code == 404

    def test_list(self, client):
        _create_paper(client, title="one")
        _create_paper(client, title="two")
        data = client.get("/api/v1/papers").get_json()
        assert data["total"] == 2

    def test_notes(self, client):
        paper = _create_paper(client)
        res = client.put(f"/api/v1/papers/{paper['id']}/notes",
                         json={"notes": {"history": "Follows adapters", "results": "Matches FT"}})
        assert res.status_code == 200
        assert res.get_json()["notes"] == {"history": "Follows adapters", "results": "Matches FT"}

        res = client.put(f"/api/v1/papers/{paper['id']}/notes", json={"notes": "flat"})
        assert res.status_code == 422

    def test_move_before_anchor(self, client):
        group = _create_group(client, name="G")
        p1 = _create_paper(client, title="P1")
        p2 = _create_paper(client, title="P2")
        _move(client, p1["id"], group_id=group["id"])
        _move(client, p2["id"], group_id=group["id"])

        res = _move(client, p2["id"], group_id=group["id"], before_paper_id=p1["id"])

        assert res.status_code == 200
        assert res.get_json()["sort_index"] == 0
        tree = client.get("/api/v1/groups/tree").get_json()
        assert [p["title"] for p in tree["roots"][0]["papers"]] == ["P2", "P1"]

    @pytest.mark.parametrize("body", [
        {"group_id": MISSING},
        {"group_id": None, "before_paper_id": MISSING},
    ])
    def test_move_failures_are_404(self, client, body):
        paper = _create_paper(client)
        res = _move(client, paper["id"], **body)
        assert res.status_code == 404
        assert client.get(f"/api/v1/papers/{paper['id']}").get_json()["sort_index"] == 0

    @pytest.mark.parametrize("body, field", [
        ({"group_id": {"id": MISSING}}, "group_id"),
        ({"group_id": None, "before_paper_id": [MISSING]}, "before_paper_id"),
        ({"group_id": 7}, "group_id"),
    ])
    def test_move_rejects_non_string_ids(self, client, body, field):
        paper = _create_paper(client)
        res = _move(client, paper["id"], **body)
        assert res.status_code == 422
        assert res.get_json()["details"] == {field: "invalid"}

    def test_unknown_api_route(self, client):
        res = client.get("/api/v1/nothing-here")
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"
