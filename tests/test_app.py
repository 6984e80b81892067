import pytest
from fastapi.testclient import TestClient

from signed_store.app import create_app
from signed_store.errors import StorageError
from signed_store.message import sign_message
from signed_store.storage import key_to_identity

REJECTED = "request body must signed by registered key\n"


@pytest.fixture
def client(gate, store):
    with TestClient(create_app(gate, store)) as c:
        yield c


@pytest.fixture
def signed(signer):
    priv, _ = signer
    return sign_message(b"hello, world\n", priv)


def test_index_shows_usage_with_host(client):
    res = client.get("/", headers={"host": "files.example.org"})
    assert res.status_code == 200
    assert "curl http://files.example.org/file-name" in res.text
    assert "-XDELETE" in res.text


def test_upload_then_download_returns_signed_bytes(client, signed, store):
    res = client.post("/report.txt", content=signed)
    assert res.status_code == 204

    res = client.get("/report.txt")
    assert res.status_code == 200
    assert res.content == signed
    assert res.headers["content-length"] == str(len(signed))
    assert store.path_for("report.txt").exists()


def test_nested_keys(client, signed, store):
    assert client.post("/a/b/c", content=signed).status_code == 204
    assert client.get("/a/b/c").content == signed
    assert client.get("/a/b").status_code == 404
    assert store.identities() == [key_to_identity("a/b/c")]


def test_upload_overwrites(client, signer):
    priv, _ = signer
    first, second = sign_message(b"v1", priv), sign_message(b"v2", priv)
    client.post("/k", content=first)
    client.post("/k", content=second)
    assert client.get("/k").content == second


@pytest.mark.parametrize("body", [b"", b"plain text, not signed", b"{\"type\": \"literal\"}"])
def test_unsigned_upload_rejected(client, store, body):
    res = client.post("/k", content=body)
    assert res.status_code == 401
    assert res.text == REJECTED
    assert store.identities() == []


def test_upload_by_unknown_key_rejected(client, store, stranger):
    priv, _ = stranger
    res = client.post("/k", content=sign_message(b"x", priv))
    assert res.status_code == 401
    assert store.identities() == []


def test_tampered_upload_rejected(client, signed):
    tampered = signed.replace(b"aGVsbG8", b"aGVsbG9")
    assert tampered != signed
    assert client.post("/k", content=tampered).status_code == 401


def test_store_failure_is_500(client, signed, store, monkeypatch):
    def broken(key, data):
        raise StorageError("disk full")

    monkeypatch.setattr(store, "save", broken)
    res = client.post("/k", content=signed)
    assert res.status_code == 500
    assert res.text == "failed to store file\n"


def test_download_missing(client):
    res = client.get("/never-uploaded")
    assert res.status_code == 404
    assert res.text == "no such file\n"


def test_delete(client, signed):
    client.post("/k", content=signed)
    assert client.delete("/k").status_code == 204
    assert client.get("/k").status_code == 404

    res = client.delete("/k")
    assert res.status_code == 404
    assert res.text == "no such file\n"


def test_download_after_idle_ttl_is_gone(client, signed, store, clock):
    client.post("/k", content=signed)
    clock.advance(store.ttl / 2)
    assert client.get("/k").status_code == 200

    # refreshed by the read above
    clock.advance(store.ttl / 2 + 1)
    assert client.get("/k").status_code == 200

    clock.advance(store.ttl + 1)
    assert client.get("/k").status_code == 404
    assert not store.path_for("k").exists()


def test_lifespan_runs_reaper(gate, store):
    app = create_app(gate, store, sweep_interval=60)
    reaper = app.state.reaper
    assert not reaper.running
    with TestClient(app):
        assert reaper.running
    assert not reaper.running


def test_no_reaper_without_interval(gate, store):
    assert create_app(gate, store).state.reaper is None
