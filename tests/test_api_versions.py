"""Tests for version history endpoints."""

from conftest import post_data

POSTS = "/api/v1/posts"


def _create(client, headers, **overrides) -> dict:
    response = client.post(POSTS, json=post_data(**overrides), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def _edit(client, headers, post_id: int, **fields) -> dict:
    response = client.patch(f"{POSTS}/{post_id}", json=fields, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


class TestVersionHistory:
    def test_list_versions_newest_first(self, client, auth_headers, superuser):
        post = _create(client, auth_headers, title="Draft 1")
        _edit(client, auth_headers, post["id"], title="Draft 2")
        _edit(client, auth_headers, post["id"], title="Draft 3", comment="final pass")

        response = client.get(f"{POSTS}/{post['id']}/versions", headers=auth_headers)

        assert response.status_code == 200
        history = response.json()
        assert [v["version"] for v in history] == [2, 1]
        assert [v["title"] for v in history] == ["Draft 2", "Draft 1"]
        assert history[0]["comment"] == "final pass"
        assert history[0]["created_by"] == superuser.id

    def test_versions_require_admin(self, client, auth_headers, regular_auth_headers):
        post = _create(client, auth_headers)
        assert client.get(f"{POSTS}/{post['id']}/versions").status_code == 401
        assert client.get(f"{POSTS}/{post['id']}/versions", headers=regular_auth_headers).status_code == 403

    def test_versions_of_missing_post(self, client, auth_headers):
        assert client.get(f"{POSTS}/999/versions", headers=auth_headers).status_code == 404

    def test_get_single_version(self, client, auth_headers):
        post = _create(client, auth_headers, title="Original")
        _edit(client, auth_headers, post["id"], title="Changed")
        (version,) = client.get(f"{POSTS}/{post['id']}/versions", headers=auth_headers).json()

        response = client.get(f"/api/v1/versions/{version['id']}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["title"] == "Original"
        assert client.get("/api/v1/versions/12345", headers=auth_headers).status_code == 404


class TestRestore:
    def test_restore_creates_new_version(self, client, auth_headers):
        post = _create(client, auth_headers, title="Title v1")
        for n in range(2, 5):
            _edit(client, auth_headers, post["id"], title=f"Title v{n}")
        client.post(f"{POSTS}/{post['id']}/publish", headers=auth_headers)

        history = client.get(f"{POSTS}/{post['id']}/versions", headers=auth_headers).json()
        v3 = next(v for v in history if v["version"] == 3)

        response = client.post(f"{POSTS}/{post['id']}/versions/{v3['id']}/restore", headers=auth_headers)

        assert response.status_code == 200
        restored = response.json()
        assert restored["title"] == "Title v3"
        assert restored["status"] == "draft"

        history = client.get(f"{POSTS}/{post['id']}/versions", headers=auth_headers).json()
        assert [v["version"] for v in history] == [4, 3, 2, 1]
        assert history[0]["title"] == "Title v4"

    def test_restore_version_of_other_post(self, client, auth_headers):
        a = _create(client, auth_headers)
        b = _create(client, auth_headers)
        _edit(client, auth_headers, a["id"], excerpt="changed")
        (version,) = client.get(f"{POSTS}/{a['id']}/versions", headers=auth_headers).json()

        response = client.post(f"{POSTS}/{b['id']}/versions/{version['id']}/restore", headers=auth_headers)
        assert response.status_code == 404

    def test_restore_requires_admin(self, client, regular_auth_headers):
        response = client.post(f"{POSTS}/1/versions/1/restore", headers=regular_auth_headers)
        assert response.status_code == 403

    def test_delete_removes_history(self, client, auth_headers):
        post = _create(client, auth_headers)
        _edit(client, auth_headers, post["id"], excerpt="one")
        (version,) = client.get(f"{POSTS}/{post['id']}/versions", headers=auth_headers).json()

        client.delete(f"{POSTS}/{post['id']}", headers=auth_headers)

        assert client.get(f"/api/v1/versions/{version['id']}", headers=auth_headers).status_code == 404
