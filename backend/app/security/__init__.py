"""RSA-PSS request signing for the Kalshi trade API."""

from .keys import SigningKey, cached_signing_key, load_signing_key, wrap_pkcs1
from .signing import SignedRequest, build_auth_headers, get_auth_headers, sign_request

__all__ = [
    "SignedRequest",
    "SigningKey",
    "build_auth_headers",
    "cached_signing_key",
    "get_auth_headers",
    "load_signing_key",
    "sign_request",
    "wrap_pkcs1",
]
