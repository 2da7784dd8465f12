"""Tests for the HTTP routes."""

import pytest
from fastapi.testclient import TestClient

from main import app, get_store
from services.export import GOODREADS_COLUMNS
from services.store import RecordStore

DUNE_CSV = (
    "Title,Author,My Rating,Exclusive Shelf,Date Read\n"
    "Dune,Frank Herbert,5,read,2023/05/01\n"
    "Project Hail Mary,Andy Weir,,to-read,\n"
)


@pytest.fixture
def client(store: RecordStore):
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def _upload(client, user_id="me", name="export.csv", body=DUNE_CSV):
    return client.post(
        "/import/goodreads",
        files={"file": (name, body.encode("utf-8"), "text/csv")},
        headers={"X-User-Id": user_id},
    )


class TestImportExport:
    def test_health(self, client: TestClient) -> None:
        assert client.get("/").json() == {"status": "ok"}

    def test_import_then_export(self, client: TestClient) -> None:
        resp = _upload(client)
        assert resp.status_code == 200
        assert resp.json() == {"imported": 2, "errors": []}

        resp = client.get("/export/goodreads", headers={"X-User-Id": "me"})
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/csv")
        assert "attachment" in resp.headers["content-disposition"]
        lines = resp.text.split("\n")
        assert lines[0] == ",".join(GOODREADS_COLUMNS)
        assert len(lines) == 3
        assert "Dune" in resp.text

    def test_rejects_non_csv(self, client: TestClient) -> None:
        assert _upload(client, name="export.xlsx").status_code == 415

    def test_user_header_required(self, client: TestClient) -> None:
        assert client.get("/export/goodreads").status_code == 422


class TestFollowedBooks:
    def test_without_user_is_empty(self, client: TestClient) -> None:
        resp = client.get("/followed/books", params={"title": "Dune"})
        assert resp.status_code == 200
        assert resp.json() == []

    def test_finds_followed_users_books(self, client: TestClient, make_profile) -> None:
        me = make_profile("me")
        alice = make_profile("alice")
        _upload(client, user_id=alice.id)
        assert client.post(f"/follows/{alice.id}", headers={"X-User-Id": me.id}).status_code == 201

        resp = client.get("/followed/books", params={"title": "dune"}, headers={"X-User-Id": me.id})

        assert resp.json() == [{
            "user_id": alice.id,
            "username": "alice",
            "display_name": None,
            "avatar_url": None,
            "status": "completed",
            "book_title": "Dune",
            "book_author": "Frank Herbert",
        }]


class TestLibraryRoutes:
    def test_add_book_and_duplicate(self, client: TestClient) -> None:
        body = {"title": "Dune", "author": "Frank Herbert"}
        first = client.post("/books", json=body, headers={"X-User-Id": "me"})
        assert first.status_code == 201
        assert first.json()["status"] == "in_progress"
        again = client.post("/books", json=body, headers={"X-User-Id": "me"})
        assert again.status_code == 409

    def test_move_tbr_entry(self, client: TestClient) -> None:
        created = client.post("/tbr", json={"title": "Emma", "author": "Jane Austen"},
                              headers={"X-User-Id": "me"}).json()
        resp = client.post(f"/tbr/{created['id']}/move", json={"status": "completed"},
                           headers={"X-User-Id": "me"})
        assert resp.status_code == 200
        assert resp.json()["status"] == "completed"

    def test_move_unknown_entry(self, client: TestClient) -> None:
        resp = client.post("/tbr/nope/move", json={}, headers={"X-User-Id": "me"})
        assert resp.status_code == 404

    def test_mark_dnf_bad_type(self, client: TestClient) -> None:
        book = client.post("/books", json={"title": "Ulysses"}, headers={"X-User-Id": "me"}).json()
        resp = client.post(f"/books/{book['id']}/dnf", json={"dnf_type": "later"},
                           headers={"X-User-Id": "me"})
        assert resp.status_code == 422

    def test_self_follow_rejected(self, client: TestClient) -> None:
        assert client.post("/follows/me", headers={"X-User-Id": "me"}).status_code == 422

    def test_unfollow(self, client: TestClient) -> None:
        client.post("/follows/alice", headers={"X-User-Id": "me"})
        resp = client.delete("/follows/alice", headers={"X-User-Id": "me"})
        assert resp.json() == {"removed": True}


class TestBookUpdates:
    @pytest.fixture
    def book_id(self, client: TestClient) -> str:
        body = {"title": "Dune", "author": "Frank Herbert", "total_pages": 412}
        return client.post("/books", json=body, headers={"X-User-Id": "me"}).json()["id"]

    def test_progress(self, client: TestClient, book_id: str) -> None:
        resp = client.patch(f"/books/{book_id}/progress", json={"current_page": 200},
                            headers={"X-User-Id": "me"})
        assert resp.status_code == 200
        assert resp.json()["current_page"] == 200

        past_end = client.patch(f"/books/{book_id}/progress", json={"current_page": 999},
                                headers={"X-User-Id": "me"})
        assert past_end.status_code == 422

    def test_status_change(self, client: TestClient, book_id: str) -> None:
        resp = client.patch(f"/books/{book_id}/status", json={"status": "completed"},
                            headers={"X-User-Id": "me"})
        assert resp.status_code == 200
        assert resp.json()["current_page"] == 412
        assert resp.json()["finished_at"] is not None

    def test_dates(self, client: TestClient, book_id: str) -> None:
        resp = client.patch(f"/books/{book_id}/dates",
                            json={"started_at": "2023-01-01", "finished_at": "2023-02-01"},
                            headers={"X-User-Id": "me"})
        assert resp.status_code == 200
        assert resp.json()["finished_at"] == "2023-02-01"

        backwards = client.patch(f"/books/{book_id}/dates",
                                 json={"started_at": "2023-02-01", "finished_at": "2023-01-01"},
                                 headers={"X-User-Id": "me"})
        assert backwards.status_code == 422

    def test_review_shows_in_export(self, client: TestClient, book_id: str) -> None:
        resp = client.put(f"/books/{book_id}/review", json={"rating": 4, "review": "Spice."},
                          headers={"X-User-Id": "me"})
        assert resp.status_code == 200
        assert resp.json()["rating"] == 4

        exported = client.get("/export/goodreads", headers={"X-User-Id": "me"}).text
        assert ",4," in exported
        assert "Spice." in exported

    def test_other_users_book_is_not_found(self, client: TestClient, book_id: str) -> None:
        resp = client.patch(f"/books/{book_id}/progress", json={"current_page": 1},
                            headers={"X-User-Id": "you"})
        assert resp.status_code == 404
        resp = client.put(f"/books/{book_id}/review", json={"rating": 4},
                          headers={"X-User-Id": "you"})
        assert resp.status_code == 404
