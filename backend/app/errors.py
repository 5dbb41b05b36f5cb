"""Failure types raised by the signing and proxy layers."""

from __future__ import annotations


class ProxyError(Exception):
    """Base class for failures the proxy converts into JSON error responses."""


class KeyImportError(ProxyError):
    """The configured private key is malformed or not a supported RSA key."""


class SigningError(ProxyError):
    """The request could not be signed with the given key handle."""


class CredentialsMissingError(ProxyError):
    """An authenticated call was attempted without an API key id and private key."""


class UpstreamNetworkError(ProxyError):
    """Transport-level failure (DNS, connect, timeout) talking to Kalshi."""
