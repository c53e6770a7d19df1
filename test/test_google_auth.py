import requests
from cryptography.fernet import Fernet

from storage.google_auth import AuthSession


class _FakeResponse:
    def __init__(self, status_code: int):
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code}")


def test_token_cache_is_encrypted_and_restored(tmp_path):
    key = Fernet.generate_key().decode()
    cache = tmp_path / "token.json"

    session = AuthSession(cache_path=str(cache), key=key)
    session.set_token("ya29.secret", email="lifter@example.com")

    assert "ya29.secret" not in cache.read_text()

    restored = AuthSession(cache_path=str(cache), key=key)
    assert restored.access_token == "ya29.secret"
    assert restored.email == "lifter@example.com"


def test_cache_with_other_key_is_ignored(tmp_path):
    cache = tmp_path / "token.json"
    AuthSession(cache_path=str(cache), key=Fernet.generate_key().decode()).set_token("ya29.secret")

    other = AuthSession(cache_path=str(cache), key=Fernet.generate_key().decode())
    assert other.access_token is None


def test_without_cache_path_nothing_is_written(tmp_path):
    session = AuthSession(cache_path="")
    session.set_token("token")
    assert session.is_authenticated
    assert list(tmp_path.iterdir()) == []


def test_revoke_clears_token(monkeypatch, tmp_path):
    calls = []

    def fake_post(url, params=None, headers=None, timeout=None):
        calls.append((url, params))
        return _FakeResponse(200)

    monkeypatch.setattr(requests, "post", fake_post)
    cache = tmp_path / "token.json"
    session = AuthSession(cache_path=str(cache), key=Fernet.generate_key().decode())
    session.set_token("ya29.secret")

    assert session.revoke() is True
    assert calls == [("https://oauth2.googleapis.com/revoke", {"token": "ya29.secret"})]
    assert session.access_token is None
    assert not cache.exists()


def test_revoke_failure_still_logs_out(monkeypatch):
    monkeypatch.setattr(requests, "post", lambda *a, **kw: _FakeResponse(400))
    session = AuthSession(cache_path="")
    session.set_token("ya29.secret")

    assert session.revoke() is False
    assert session.access_token is None
