# signed_store/client.py
from typing import Optional
from urllib.parse import quote
import requests
from signed_store.errors import ObjectNotFoundError, SignedStoreError, VerificationError
from signed_store.logger import get_logger
from signed_store.message import sign_message

log = get_logger("signed_store.client")


class SignedStoreClient:
    """
    HTTP client for a signed-store service.

    upload() sends bytes that are already signed; put() signs a raw payload
    with a private key first.
    """

    def __init__(self, base_url: str, session: Optional[requests.Session] = None, timeout: float = 30):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _url(self, key: str) -> str:
        return f"{self.base_url}/{quote(key.lstrip('/'), safe='/')}"

    def _raise_for(self, key: str, res) -> None:
        if res.status_code == 404:
            raise ObjectNotFoundError(key)
        if res.status_code == 401:
            raise VerificationError(res.text.strip())
        raise SignedStoreError(f"{res.status_code}: {res.text.strip()}")

    def upload(self, key: str, signed: bytes) -> None:
        url = self._url(key)
        log.debug(f"[HTTP POST] → {url} | bytes={len(signed)}")
        res = self.session.post(url, data=signed, timeout=self.timeout)
        if res.status_code != 204:
            self._raise_for(key, res)

    def put(self, key: str, payload: bytes, priv_raw: bytes, expires_at: Optional[str] = None) -> None:
        self.upload(key, sign_message(payload, priv_raw, expires_at=expires_at))

    def download(self, key: str) -> bytes:
        url = self._url(key)
        log.debug(f"[HTTP GET] → {url}")
        res = self.session.get(url, timeout=self.timeout)
        if res.status_code != 200:
            self._raise_for(key, res)
        return res.content

    def delete(self, key: str) -> None:
        url = self._url(key)
        log.debug(f"[HTTP DELETE] → {url}")
        res = self.session.delete(url, timeout=self.timeout)
        if res.status_code != 204:
            self._raise_for(key, res)

    def close(self) -> None:
        self.session.close()
