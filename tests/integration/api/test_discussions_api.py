"""Integration tests for /api/posts and /api/comments."""

from conftest import OK_COMPUTER_MBID, register_user
from fastapi.testclient import TestClient


def _post(client: TestClient, headers: dict[str, str], title: str = "Airbag") -> str:
    response = client.post(
        "/api/posts",
        json={"albumId": OK_COMPUTER_MBID, "title": title, "body": "Still the best opener."},
        headers=headers,
    )
    assert response.status_code == 200, response.text
    return response.json()["post"]["id"]


def _comment(client, headers, post_id, body, parent_id=None) -> str:
    response = client.post(
        "/api/comments",
        json={"postId": post_id, "parentId": parent_id, "body": body},
        headers=headers,
    )
    assert response.status_code == 200, response.text
    return response.json()["comment"]["id"]


class TestPosts:
    def test_create_and_list(self, client: TestClient) -> None:
        headers = register_user(client, "ana@example.com", username="ana")
        post_id = _post(client, headers)
        _comment(client, headers, post_id, "Agreed.")

        response = client.get("/api/posts", params={"albumId": OK_COMPUTER_MBID})

        assert response.status_code == 200
        (post,) = response.json()["items"]
        assert post["id"] == post_id
        assert post["title"] == "Airbag"
        assert post["user"]["username"] == "ana"
        assert post["commentCount"] == 1
        assert post["score"] == 0
        assert post["myVote"] == 0

    def test_top_sort_follows_votes(self, client: TestClient) -> None:
        headers = register_user(client, "ana@example.com")
        _post(client, headers, title="first")
        liked = _post(client, headers, title="second")
        client.post(
            "/api/votes",
            json={"entityType": "POST", "entityId": liked, "value": 1},
            headers=headers,
        )

        items = client.get(
            "/api/posts", params={"albumId": OK_COMPUTER_MBID, "sort": "top"}, headers=headers
        ).json()["items"]

        assert items[0]["id"] == liked
        assert items[0]["myVote"] == 1

    def test_title_too_long(self, client: TestClient) -> None:
        headers = register_user(client, "ana@example.com")
        response = client.post(
            "/api/posts",
            json={"albumId": OK_COMPUTER_MBID, "title": "x" * 121, "body": "body"},
            headers=headers,
        )
        assert response.status_code == 400

    def test_unresolvable_album(self, client: TestClient) -> None:
        headers = register_user(client, "ana@example.com")
        response = client.post(
            "/api/posts",
            json={"albumId": "MockBlonde000000000001", "title": "t", "body": "b"},
            headers=headers,
        )
        assert response.status_code == 400

    def test_list_for_unknown_album_is_empty(self, client: TestClient) -> None:
        response = client.get("/api/posts", params={"albumId": "MockBlonde000000000001"})
        assert response.json() == {"items": []}


class TestComments:
    def test_new_is_oldest_first(self, client: TestClient) -> None:
        headers = register_user(client, "ana@example.com")
        post_id = _post(client, headers)
        first = _comment(client, headers, post_id, "first")
        reply = _comment(client, headers, post_id, "reply", parent_id=first)

        items = client.get("/api/comments", params={"postId": post_id}).json()["items"]

        assert [c["id"] for c in items] == [first, reply]
        assert items[1]["parentId"] == first

    def test_unknown_post(self, client: TestClient) -> None:
        headers = register_user(client, "ana@example.com")
        response = client.post(
            "/api/comments", json={"postId": "missing", "body": "hello"}, headers=headers
        )
        assert response.status_code == 404

    def test_parent_from_other_post(self, client: TestClient) -> None:
        headers = register_user(client, "ana@example.com")
        one = _post(client, headers, title="one")
        other = _post(client, headers, title="other")
        parent = _comment(client, headers, one, "on post one")

        response = client.post(
            "/api/comments",
            json={"postId": other, "parentId": parent, "body": "misplaced"},
            headers=headers,
        )

        assert response.status_code == 400

    def test_hot_sort_rejected(self, client: TestClient) -> None:
        response = client.get("/api/comments", params={"postId": "any", "sort": "hot"})
        assert response.status_code == 400
