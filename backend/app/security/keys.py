"""Import PEM encoded RSA private keys into RSA-PSS signing handles.

Kalshi hands out keys as PKCS#1 (``RSA PRIVATE KEY``) while most tooling
re-exports them as PKCS#8 (``PRIVATE KEY``). Both are accepted: the DER body
is decoded as a PKCS#8 ``PrivateKeyInfo`` first and, when the ASN.1 structure
does not match, as a PKCS#1 ``RSAPrivateKey`` that is then wrapped into
PKCS#8 before import.
"""

from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass
from functools import lru_cache

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from loguru import logger
from pyasn1.codec.der import decoder as der_decoder
from pyasn1.codec.der import encoder as der_encoder
from pyasn1.error import PyAsn1Error
from pyasn1.type import univ
from pyasn1_modules import rfc3447, rfc5208

from app.errors import KeyImportError


RSA_ENCRYPTION_OID = univ.ObjectIdentifier("1.2.840.113549.1.1.1")
PSS_SALT_LENGTH = 32  # SHA-256 digest size

PKCS8 = "pkcs8"
PKCS1 = "pkcs1"

_PEM_ARMOUR = re.compile(r"-----(?:BEGIN|END)[A-Z0-9 ]*-----")
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True, slots=True, repr=False)
class SigningKey:
    """Opaque RSA-PSS/SHA-256 signing handle; the private half cannot be exported."""

    _private_key: rsa.RSAPrivateKey
    source_format: str

    @property
    def key_size(self) -> int:
        return self._private_key.key_size

    def public_key(self) -> rsa.RSAPublicKey:
        return self._private_key.public_key()

    def sign(self, message: bytes) -> bytes:
        return self._private_key.sign(
            message,
            padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=PSS_SALT_LENGTH),
            hashes.SHA256(),
        )

    def __repr__(self) -> str:
        return f"SigningKey(format={self.source_format}, bits={self.key_size})"


def pem_to_der(pem: str) -> bytes:
    """Strip PEM armour and whitespace, then base64-decode the body."""

    if not isinstance(pem, str):
        raise KeyImportError("Private key must be provided as PEM text")
    body = _WHITESPACE.sub("", _PEM_ARMOUR.sub("", pem))
    if not body:
        raise KeyImportError("Private key is empty")
    try:
        return base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise KeyImportError(f"Private key is not valid base64: {exc}") from exc


def _decode_exact(der: bytes, asn1_spec: univ.Sequence) -> univ.Sequence:
    decoded, remainder = der_decoder.decode(der, asn1Spec=asn1_spec)
    if remainder:
        raise PyAsn1Error(f"{len(remainder)} trailing bytes after {type(asn1_spec).__name__}")
    return decoded


def wrap_pkcs1(pkcs1_der: bytes) -> bytes:
    """Wrap a PKCS#1 ``RSAPrivateKey`` in a PKCS#8 ``PrivateKeyInfo``."""

    info = rfc5208.PrivateKeyInfo()
    info["version"] = 0
    info["privateKeyAlgorithm"]["algorithm"] = RSA_ENCRYPTION_OID
    info["privateKeyAlgorithm"]["parameters"] = univ.Any(der_encoder.encode(univ.Null("")))
    info["privateKey"] = pkcs1_der
    return der_encoder.encode(info)


def _as_pkcs8(der: bytes) -> tuple[bytes, str]:
    try:
        info = _decode_exact(der, rfc5208.PrivateKeyInfo())
    except PyAsn1Error as pkcs8_error:
        try:
            _decode_exact(der, rfc3447.RSAPrivateKey())
        except PyAsn1Error as pkcs1_error:
            raise KeyImportError(
                f"Private key is neither PKCS#8 ({pkcs8_error}) nor PKCS#1 ({pkcs1_error})"
            ) from pkcs1_error
        return wrap_pkcs1(der), PKCS1

    algorithm = info["privateKeyAlgorithm"]["algorithm"]
    if algorithm != RSA_ENCRYPTION_OID:
        raise KeyImportError(f"Unsupported private key algorithm {algorithm.prettyPrint()}")
    return der, PKCS8


def load_signing_key(pem: str) -> SigningKey:
    """Decode a PKCS#1 or PKCS#8 PEM into a :class:`SigningKey`.

    Raises:
        KeyImportError: The material is malformed or not an RSA private key.
    """

    pkcs8_der, source_format = _as_pkcs8(pem_to_der(pem))
    try:
        private_key = serialization.load_der_private_key(pkcs8_der, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise KeyImportError(f"Failed to import RSA private key: {exc}") from exc
    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise KeyImportError(f"Expected RSA private key, got {type(private_key).__name__}")

    if source_format == PKCS1:
        logger.debug("Imported PKCS#1 private key via PKCS#8 wrapping")
    return SigningKey(private_key, source_format)


@lru_cache(maxsize=8)
def cached_signing_key(pem: str) -> SigningKey:
    """Memoized :func:`load_signing_key`; failures are not cached."""

    return load_signing_key(pem)
