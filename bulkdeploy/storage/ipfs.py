"""IPFS client over the kubo RPC API and a public gateway (small, dependency-free).

Targets:
  - upload:    POST {api_url}/api/v0/add  (multipart/form-data, field "file")
  - read-back: GET  {gateway_url}/ipfs/{cid}
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..errors import StorageError

logger = logging.getLogger(__name__)


def _retryable_status(code: int) -> bool:
    return code in (408, 429) or code >= 500


@dataclass(frozen=True)
class IpfsHttpConfig:
    api_url: str
    gateway_url: str
    timeout_s: float = 30.0
    pin: bool = True


class IpfsHttpStorage:
    """Publishes bytes through a kubo RPC endpoint and fetches them back through the gateway."""

    def __init__(self, cfg: IpfsHttpConfig) -> None:
        self._cfg = cfg
        self._api = cfg.api_url.rstrip("/")
        self._gateway = cfg.gateway_url.rstrip("/")

    def public_url(self, cid: str) -> str:
        return f"{self._gateway}/ipfs/{cid}"

    def multiaddr(self, cid: str) -> str:
        return f"/ipfs/{cid}"

    def add(self, data: bytes) -> str:
        boundary = f"----bulkdeploy{uuid.uuid4().hex}"
        body = b"".join(
            [
                f"--{boundary}\r\n".encode("ascii"),
                b'Content-Disposition: form-data; name="file"; filename="dataset"\r\n',
                b"Content-Type: application/octet-stream\r\n\r\n",
                data,
                f"\r\n--{boundary}--\r\n".encode("ascii"),
            ]
        )
        pin = "true" if self._cfg.pin else "false"
        req = Request(
            f"{self._api}/api/v0/add?pin={pin}",
            data=body,
            method="POST",
            headers={
                "Content-Type": f"multipart/form-data; boundary={boundary}",
                "Accept": "application/json",
            },
        )
        logger.debug("IPFS add %d bytes via %s", len(data), self._api)
        raw = self._send(req, what="IPFS add")

        # kubo streams one JSON object per line; the last one describes the root.
        lines = [ln for ln in raw.decode("utf-8", errors="replace").splitlines() if ln.strip()]
        if not lines:
            raise StorageError("IPFS add returned an empty response")
        try:
            payload = json.loads(lines[-1])
        except json.JSONDecodeError as e:
            raise StorageError(f"IPFS add returned invalid JSON: {e}") from e
        cid = str(payload.get("Hash") or "").strip()
        if not cid:
            raise StorageError(f"IPFS add response has no Hash: {lines[-1][:200]}")
        return cid

    def fetch(self, url: str) -> bytes:
        logger.debug("GET %s", url)
        return self._send(Request(url, method="GET"), what="Content fetch")

    def _send(self, req: Request, *, what: str) -> bytes:
        try:
            with urlopen(req, timeout=self._cfg.timeout_s) as resp:
                status = getattr(resp, "status", 200)
                if status is not None and not (200 <= status < 300):
                    raise StorageError(f"{what} failed: HTTP {status}", retryable=_retryable_status(status))
                return resp.read()
        except HTTPError as e:
            raise StorageError(f"{what} failed: HTTP {e.code}", retryable=_retryable_status(e.code)) from e
        except URLError as e:
            raise StorageError(f"{what} connection error: {e.reason}", retryable=True) from e
        except TimeoutError as e:
            raise StorageError(f"{what} timed out after {self._cfg.timeout_s}s", retryable=True) from e
