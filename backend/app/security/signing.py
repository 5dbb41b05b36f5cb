"""Kalshi request signing and auth header assembly."""

from __future__ import annotations

import base64
import time
from dataclasses import dataclass

from cryptography.exceptions import UnsupportedAlgorithm

from app.core.config import Credentials
from app.errors import SigningError

from .keys import SigningKey, cached_signing_key


SIGNABLE_METHODS = frozenset({"GET", "POST", "PUT", "DELETE"})

ACCESS_KEY_HEADER = "KALSHI-ACCESS-KEY"
ACCESS_TIMESTAMP_HEADER = "KALSHI-ACCESS-TIMESTAMP"
ACCESS_SIGNATURE_HEADER = "KALSHI-ACCESS-SIGNATURE"


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True, slots=True)
class SignedRequest:
    """The (timestamp, method, path) triple whose concatenation gets signed."""

    timestamp: int
    method: str
    canonical_path: str

    @classmethod
    def build(cls, method: str, path: str, *, timestamp: int | None = None) -> "SignedRequest":
        normalized_method = method.upper()
        if normalized_method not in SIGNABLE_METHODS:
            raise SigningError(f"Cannot sign HTTP method {method!r}")
        canonical_path = path.split("?", 1)[0]
        return cls(
            timestamp=now_ms() if timestamp is None else int(timestamp),
            method=normalized_method,
            canonical_path=canonical_path,
        )

    @property
    def message(self) -> bytes:
        return f"{self.timestamp}{self.method}{self.canonical_path}".encode("utf-8")


def sign_request(key: SigningKey, request: SignedRequest) -> str:
    """Return the base64 RSA-PSS signature of ``request.message``."""

    if not isinstance(key, SigningKey):
        raise SigningError(f"Invalid signing key handle: {type(key).__name__}")
    try:
        signature = key.sign(request.message)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise SigningError(f"RSA-PSS signing failed: {exc}") from exc
    return base64.b64encode(signature).decode("ascii")


def build_auth_headers(key_id: str, timestamp: int | str, signature: str) -> dict[str, str]:
    return {
        ACCESS_KEY_HEADER: key_id,
        ACCESS_TIMESTAMP_HEADER: str(timestamp),
        ACCESS_SIGNATURE_HEADER: signature,
    }


def get_auth_headers(
    credentials: Credentials,
    method: str,
    path: str,
    *,
    timestamp: int | None = None,
) -> dict[str, str]:
    """Sign ``method path`` with the configured key and return the three auth headers.

    The timestamp is captured once and used for both the signed message and the
    ``KALSHI-ACCESS-TIMESTAMP`` header; Kalshi rejects the call if they differ.
    """

    request = SignedRequest.build(method, path, timestamp=timestamp)
    key = cached_signing_key(credentials.private_key_pem)
    signature = sign_request(key, request)
    return build_auth_headers(credentials.key_id, request.timestamp, signature)
