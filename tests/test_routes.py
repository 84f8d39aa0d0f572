# tests/test_routes.py
import io
from urllib.parse import quote

import pytest
from sqlalchemy.pool import StaticPool

from conftest import ALICE, BOB, CAROL, seed_directory
from messaging_api.config.settings import settings
from messaging_api.infrastructure.database.base_model import BaseModel
from messaging_api.infrastructure.database.session import db_session, init_engine
from messaging_api.infrastructure.security.jwt_provider import JwtProvider
from messaging_api.infrastructure.storage.local_file_storage import LocalFileStorage, LocalFileStorageConfig
from messaging_api.main import create_app


@pytest.fixture
def api_engine():
    engine = init_engine("sqlite://", poolclass=StaticPool)
    BaseModel.metadata.create_all(engine)
    with db_session() as session:
        seed_directory(session)
    yield engine
    engine.dispose()


@pytest.fixture
def client(api_engine, tmp_path, clock):
    storage = LocalFileStorage(config=LocalFileStorageConfig(base_path=str(tmp_path), public_base_url="/uploads"))
    app = create_app(attachment_store=storage, clock=clock)
    app.config["TESTING"] = True

    with app.test_client() as c:
        yield c


def auth(user_id: int) -> dict:
    token = JwtProvider().issue_access_token(subject=str(user_id))
    return {"Authorization": f"Bearer {token}"}


def start(client, *, initiator=ALICE, participant=BOB, text="hello") -> dict:
    res = client.post(
        "/api/conversations",
        json={"participant_id": participant, "initial_message": text},
        headers=auth(initiator),
    )
    assert res.status_code == 200, res.get_json()
    return res.get_json()


def test_health(client):
    assert client.get("/api/health").get_json() == {"status": "ok"}
    assert client.get("/api/health/db").get_json() == {"db": "ok"}


def test_requires_bearer_token(client):
    assert client.get("/api/conversations").status_code == 401
    res = client.get("/api/conversations", headers={"Authorization": "Bearer not-a-jwt"})
    assert res.status_code == 401
    assert "error" in res.get_json()


def test_start_and_list_conversations(client):
    conv = start(client)
    again = start(client, initiator=BOB, participant=ALICE, text="ignored")

    assert again["id"] == conv["id"]
    assert conv["last_message"]["content"] == "hello"
    assert conv["created_at"].endswith("+00:00")
    assert conv["last_message_at"] == conv["created_at"]
    fetched = client.get(f"/api/conversations/{conv['id']}", headers=auth(ALICE)).get_json()
    assert fetched["last_message_at"] == conv["last_message_at"]

    listing = client.get("/api/conversations", headers=auth(BOB)).get_json()
    assert [c["id"] for c in listing] == [conv["id"]]
    assert listing[0]["unread_count"] == 1

    assert client.get(f"/api/conversations/{conv['id']}", headers=auth(CAROL)).status_code == 404


def test_start_validation_errors(client):
    res = client.post(
        "/api/conversations",
        json={"participant_id": ALICE, "initial_message": "me"},
        headers=auth(ALICE),
    )
    assert res.status_code == 400

    res = client.post("/api/conversations", json={"initial_message": "hi"}, headers=auth(ALICE))
    assert res.status_code == 400
    assert res.get_json()["details"]


def test_padded_message_is_trimmed_before_length_check(client):
    res = client.post(
        "/api/conversations",
        json={"participant_id": BOB, "initial_message": "  " + "x" * 5000 + "\n"},
        headers=auth(ALICE),
    )
    assert res.status_code == 200, res.get_json()
    assert len(res.get_json()["last_message"]["content"]) == 5000

    res = client.post(
        "/api/messages",
        json={"conversation_id": res.get_json()["id"], "content": "x" * 5001},
        headers=auth(ALICE),
    )
    assert res.status_code == 400


def test_message_flow(client):
    conv = start(client)
    cid = conv["id"]

    res = client.post("/api/messages", json={"conversation_id": cid, "content": "hi there"}, headers=auth(BOB))
    assert res.status_code == 201
    msg = res.get_json()
    assert msg["status"] == "sent"
    assert msg["message_type"] == "text"

    res = client.put(f"/api/messages/{msg['id']}", json={"content": "hi there!"}, headers=auth(BOB))
    assert res.status_code == 200
    assert res.get_json()["is_edited"] is True

    res = client.put(f"/api/messages/{msg['id']}", json={"content": "nope"}, headers=auth(ALICE))
    assert res.status_code == 404

    page = client.get(f"/api/conversations/{cid}/messages?page=1&page_size=1", headers=auth(ALICE)).get_json()
    assert [m["content"] for m in page["messages"]] == ["hi there!"]
    assert page["has_previous_page"] is True

    assert client.get(f"/api/conversations/{cid}/messages", headers=auth(CAROL)).status_code == 403
    assert client.get("/api/conversations/999/messages", headers=auth(ALICE)).status_code == 404

    assert client.delete(f"/api/messages/{msg['id']}", headers=auth(ALICE)).status_code == 404
    assert client.delete(f"/api/messages/{msg['id']}", headers=auth(BOB)).status_code == 204


def test_send_to_foreign_conversation_is_forbidden(client):
    conv = start(client)
    res = client.post("/api/messages", json={"conversation_id": conv["id"], "content": "x"}, headers=auth(CAROL))
    assert res.status_code == 403


def test_edit_window_expired_is_422(client, clock):
    conv = start(client)
    clock.advance(minutes=16)

    res = client.put(
        f"/api/messages/{conv['last_message']['id']}",
        json={"content": "late"},
        headers=auth(ALICE),
    )
    assert res.status_code == 422


def test_mark_read_and_settings(client):
    conv = start(client)
    cid = conv["id"]

    assert client.post(f"/api/conversations/{cid}/mark-read", headers=auth(BOB)).status_code == 204
    assert client.post(f"/api/conversations/{cid}/mark-read", headers=auth(CAROL)).status_code == 404

    res = client.put(
        f"/api/conversations/{cid}/settings",
        json={"is_muted": True, "is_archived": True, "is_pinned": False},
        headers=auth(BOB),
    )
    assert res.status_code == 204
    assert client.get("/api/conversations", headers=auth(BOB)).get_json() == []
    archived = client.get("/api/conversations?include_archived=true", headers=auth(BOB)).get_json()
    assert archived[0]["is_muted"] is True
    assert archived[0]["unread_count"] == 0

    res = client.put(f"/api/conversations/{cid}/settings", json={}, headers=auth(CAROL))
    assert res.status_code == 404


def test_search_and_stats(client):
    conv = start(client, text="Quote for the LOGO")
    client.post("/api/messages", json={"conversation_id": conv["id"], "content": "logo v2"}, headers=auth(BOB))

    found = client.get("/api/messages/search?query=logo", headers=auth(ALICE)).get_json()
    assert sorted(m["content"] for m in found) == ["Quote for the LOGO", "logo v2"]

    assert client.get("/api/messages/search?page_size=500", headers=auth(ALICE)).status_code == 400

    stats = client.get("/api/messages/stats", headers=auth(ALICE)).get_json()
    assert stats["total_conversations"] == 1
    assert stats["total_messages"] == 2
    assert stats["unread_messages"] == 1


def test_reaction_routes(client):
    conv = start(client)
    mid = conv["last_message"]["id"]

    res = client.post(f"/api/messages/{mid}/reactions", json={"emoji": "👍"}, headers=auth(BOB))
    assert res.status_code == 200
    assert res.get_json()["reactions"][0]["emoji"] == "👍"

    res = client.post(f"/api/messages/{mid}/reactions", json={"emoji": "👍"}, headers=auth(BOB))
    assert res.status_code == 409

    groups = client.get(f"/api/messages/{mid}/reactions", headers=auth(ALICE)).get_json()
    assert groups[0]["count"] == 1
    assert groups[0]["has_current_user_reacted"] is False

    assert client.get(f"/api/messages/{mid}/reactions", headers=auth(CAROL)).status_code == 403

    res = client.delete(f"/api/messages/{mid}/reactions/{quote('👍')}", headers=auth(BOB))
    assert res.status_code == 200
    assert res.get_json()["reactions"] == []

    res = client.delete(f"/api/messages/{mid}/reactions/{quote('👍')}", headers=auth(BOB))
    assert res.status_code == 422


def test_attachment_upload_and_download(client):
    conv = start(client)

    res = client.post(
        "/api/messages",
        data={
            "conversation_id": str(conv["id"]),
            "attachment": (io.BytesIO(b"\x89PNG-bytes"), "logo.png", "image/png"),
        },
        content_type="multipart/form-data",
        headers=auth(ALICE),
    )
    assert res.status_code == 201, res.get_json()
    msg = res.get_json()
    assert msg["message_type"] == "image"
    url = msg["attachment"]["url"]
    assert url.startswith(f"/uploads/messages/{conv['id']}/")

    download = client.get(url, headers=auth(BOB))
    assert download.status_code == 200
    assert download.data == b"\x89PNG-bytes"
    download.close()

    assert client.get(url, headers=auth(CAROL)).status_code == 403
    assert client.get(url).status_code == 401


def test_disallowed_upload_is_400(client):
    conv = start(client)

    res = client.post(
        "/api/messages",
        data={
            "conversation_id": str(conv["id"]),
            "attachment": (io.BytesIO(b"MZ"), "tool.exe", "application/x-msdownload"),
        },
        content_type="multipart/form-data",
        headers=auth(ALICE),
    )
    assert res.status_code == 400


def _upload_png(client, conversation_id: int):
    res = client.post(
        "/api/messages",
        data={
            "conversation_id": str(conversation_id),
            "attachment": (io.BytesIO(b"\x89PNG-bytes"), "logo.png", "image/png"),
        },
        content_type="multipart/form-data",
        headers=auth(ALICE),
    )
    assert res.status_code == 201, res.get_json()
    return res.get_json()["attachment"]["url"]


@pytest.mark.parametrize(
    "public_base_url, url_prefix, route_prefix",
    [
        ("", "/uploads/messages/", "/uploads"),
        ("/files/", "/files/messages/", "/files"),
        ("https://cdn.example.com/media", "https://cdn.example.com/media/messages/", "/media"),
        ("https://cdn.example.com", "https://cdn.example.com/messages/", "/uploads"),
    ],
)
def test_download_follows_configured_public_url(
    api_engine, tmp_path, clock, monkeypatch, public_base_url, url_prefix, route_prefix
):
    monkeypatch.setattr(settings, "files_public_base_url", public_base_url)
    monkeypatch.setattr(settings, "files_base_path", str(tmp_path))
    app = create_app(clock=clock)

    with app.test_client() as client:
        conv = start(client)
        url = _upload_png(client, conv["id"])
        assert url.startswith(url_prefix)

        stored_name = url[len(url_prefix) - len("messages/"):]
        download = client.get(f"{route_prefix}/{stored_name}", headers=auth(BOB))
        assert download.status_code == 200
        assert download.data == b"\x89PNG-bytes"
        download.close()
