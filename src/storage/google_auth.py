import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import requests
from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)

GOOGLE_REVOKE_URL = "https://oauth2.googleapis.com/revoke"
TOKEN_CACHE_PATH = os.getenv("TOKEN_CACHE_PATH", "").strip()


class AuthSession:
    """
    Holds the Google access token for the current session.

    The token is opaque to the planner: any non-null token is used until a
    Sheets call rejects it. When a cache path is configured the token is kept
    on disk encrypted with Fernet so a restart does not force a new login.
    """

    def __init__(self, cache_path: Optional[str] = None, key: Optional[str] = None):
        self.access_token: Optional[str] = None
        self.email: Optional[str] = None
        self.obtained_at: Optional[datetime] = None

        path = cache_path if cache_path is not None else TOKEN_CACHE_PATH
        self.cache_path = Path(path) if path else None

        key = key or os.getenv("GOOGLE_TOKEN_ENCRYPTION_KEY")
        if not key:
            if self.cache_path is not None:
                logger.warning(
                    "GOOGLE_TOKEN_ENCRYPTION_KEY not set. Cached tokens will not survive a restart."
                )
            key = Fernet.generate_key().decode()

        try:
            self.fernet = Fernet(key.encode() if isinstance(key, str) else key)
        except Exception as e:
            logger.error(f"Invalid encryption key: {e}")
            self.fernet = Fernet(Fernet.generate_key())

        self._load_cache()

    @property
    def is_authenticated(self) -> bool:
        return self.access_token is not None

    def _encrypt(self, data: str) -> str:
        return self.fernet.encrypt(data.encode()).decode()

    def _decrypt(self, token: str) -> Optional[str]:
        try:
            return self.fernet.decrypt(token.encode()).decode()
        except InvalidToken:
            logger.error("Failed to decrypt cached access token")
            return None

    def _load_cache(self) -> None:
        if self.cache_path is None or not self.cache_path.exists():
            return
        try:
            data = json.loads(self.cache_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable token cache {self.cache_path}: {e}")
            return

        token = self._decrypt(data.get("access_token", ""))
        if token:
            self.access_token = token
            self.email = data.get("email")
            obtained = data.get("obtained_at")
            self.obtained_at = datetime.fromisoformat(obtained) if obtained else None
            logger.info("Restored cached Google access token")

    def _write_cache(self) -> None:
        if self.cache_path is None:
            return
        self.cache_path.parent.mkdir(parents=True, exist_ok=True)
        if self.access_token is None:
            if self.cache_path.exists():
                self.cache_path.unlink()
            return
        data = {
            "access_token": self._encrypt(self.access_token),
            "email": self.email,
            "obtained_at": self.obtained_at.isoformat() if self.obtained_at else None,
        }
        self.cache_path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def set_token(self, access_token: str, email: Optional[str] = None) -> None:
        self.access_token = access_token
        self.email = email
        self.obtained_at = datetime.now(timezone.utc)
        self._write_cache()
        logger.info("Google access token updated")

    def clear(self) -> None:
        self.access_token = None
        self.email = None
        self.obtained_at = None
        self._write_cache()
        logger.info("Google access token cleared")

    def revoke(self, timeout_s: float = 5.0) -> bool:
        """Revoke the token at Google and clear it locally.

        The local token is cleared even when the revoke call fails.
        """
        token = self.access_token
        self.clear()
        if not token:
            return False
        try:
            resp = requests.post(
                GOOGLE_REVOKE_URL,
                params={"token": token},
                headers={"content-type": "application/x-www-form-urlencoded"},
                timeout=timeout_s,
            )
            resp.raise_for_status()
            return True
        except requests.RequestException as e:
            logger.warning(f"Token revoke failed: {e}")
            return False
