"""Hash algorithm and digest encoding options for Tree Integrity."""

from __future__ import annotations

import base64
import hashlib
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

from .errors import UnsupportedAlgorithmError, UnsupportedEncodingError

Encoding = Literal["hex", "base64", "latin1"]

ENCODINGS: tuple[str, ...] = ("hex", "base64", "latin1")
DEFAULT_ALGORITHM = "sha1"
DEFAULT_ENCODING: Encoding = "base64"


def _constructible_algorithms() -> tuple[str, ...]:
    """List the digest algorithms hashlib can build on this interpreter."""
    names = []
    for name in sorted(hashlib.algorithms_available):
        # Variable-length digests need an explicit output size
        if name.startswith("shake"):
            continue
        try:
            hashlib.new(name)
        except ValueError:
            continue
        names.append(name)
    return tuple(names)


SUPPORTED_ALGORITHMS: tuple[str, ...] = _constructible_algorithms()


class CryptoOptions(BaseModel):
    """Resolved hash algorithm and output encoding."""

    model_config = ConfigDict(frozen=True)

    algorithm: str = DEFAULT_ALGORITHM
    encoding: Encoding = DEFAULT_ENCODING


def is_supported_algorithm(algorithm: str) -> bool:
    return algorithm in SUPPORTED_ALGORITHMS


def resolve(options: CryptoOptions | Mapping[str, Any] | None = None) -> CryptoOptions:
    """
    Validate explicit crypto options and fill in the defaults.

    Args:
        options: CryptoOptions, a mapping with optional "algorithm" and
            "encoding" keys, or None for the defaults

    Returns:
        Resolved CryptoOptions

    Raises:
        UnsupportedAlgorithmError: algorithm is not available in hashlib
        UnsupportedEncodingError: encoding is not hex, base64 or latin1
    """
    if options is None:
        return CryptoOptions()

    data = options.model_dump() if isinstance(options, CryptoOptions) else dict(options)
    algorithm = data.get("algorithm")
    encoding = data.get("encoding")

    if algorithm and not is_supported_algorithm(algorithm):
        raise UnsupportedAlgorithmError(f"Hash algorithm not supported: '{algorithm}'")
    if encoding and encoding.lower() not in ENCODINGS:
        raise UnsupportedEncodingError(f"Hash encoding not supported: '{encoding}'")

    return CryptoOptions(
        algorithm=algorithm or DEFAULT_ALGORITHM,
        encoding=encoding.lower() if encoding else DEFAULT_ENCODING,
    )


def new_hash(algorithm: str) -> Any:
    """Create a fresh hash state for the algorithm."""
    return hashlib.new(algorithm)


def encode_digest(raw: bytes, encoding: Encoding) -> str:
    if encoding == "hex":
        return raw.hex()
    if encoding == "base64":
        return base64.b64encode(raw).decode("ascii")
    return raw.decode("latin-1")


def format_digest(algorithm: str, raw: bytes, encoding: Encoding) -> str:
    """Render a digest as "<algorithm>-<encoded digest>"."""
    return f"{algorithm}-{encode_digest(raw, encoding)}"
