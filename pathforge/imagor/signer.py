# pathforge - imagor URL signing
"""
URL generation for encoded imagor paths.

Imagor accepts either ``unsafe/<path>`` (development) or
``<signature>/<path>`` where the signature is the url-safe base64 HMAC of the
path with a shared secret. The ``UrlGenerator`` protocol is the collaborator
the editor calls to turn an encoded path into a full URL; ``ImagorUrlSigner``
implements it locally.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
from typing import Optional, Protocol, runtime_checkable

from pathforge.config import Settings, settings as default_settings
from pathforge.exceptions import SignerError

logger = logging.getLogger(__name__)

HASH_ALGORITHMS = {
    "sha1": hashlib.sha1,
    "sha256": hashlib.sha256,
    "sha512": hashlib.sha512,
}


@runtime_checkable
class UrlGenerator(Protocol):
    """Protocol for turning an encoded imagor path into a URL.

    Implementations may perform network I/O; the editor awaits them inside a
    cancellable task.
    """

    async def generate_url(self, image_path: str, imagor_path: str) -> str:
        """Return the URL for ``imagor_path``.

        :param image_path: Source image path of the root node
        :param imagor_path: Encoded path (see pathforge.imagor.path)
        :returns: Full URL
        """
        ...


class HMACSigner:
    """Imagor-compatible HMAC path signer."""

    def __init__(self, secret: str, algorithm: str = "sha1", truncate: int = 0):
        if not secret:
            raise SignerError("imagor secret is required for signed URLs")
        digest = HASH_ALGORITHMS.get(algorithm.lower())
        if digest is None:
            raise SignerError(f"Unknown signer algorithm: {algorithm}")
        self._secret = secret.encode("utf-8")
        self._digest = digest
        self._truncate = truncate

    def sign(self, path: str) -> str:
        """Return the signature for ``path`` (url-safe base64, padded)."""
        mac = hmac.new(self._secret, path.encode("utf-8"), self._digest)
        signature = base64.urlsafe_b64encode(mac.digest()).decode("ascii")
        if self._truncate > 0 and len(signature) > self._truncate:
            signature = signature[:self._truncate]
        return signature


class ImagorUrlSigner:
    """Local UrlGenerator: prefixes paths with ``unsafe/`` or a signature."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        secret: Optional[str] = None,
        unsafe: Optional[bool] = None,
        algorithm: Optional[str] = None,
        truncate: Optional[int] = None,
        settings: Optional[Settings] = None,
    ):
        cfg = settings or default_settings
        self.base_url = (cfg.IMAGOR_BASE_URL if base_url is None else base_url).rstrip("/")
        secret = cfg.IMAGOR_SECRET if secret is None else secret
        if unsafe is None:
            # Without a configured secret only unsafe URLs can be built
            unsafe = cfg.IMAGOR_UNSAFE or not secret
            if not cfg.IMAGOR_UNSAFE and not secret:
                logger.warning("No imagor secret configured, generating unsafe URLs")
        self.unsafe = unsafe
        self._signer: Optional[HMACSigner] = None
        if not self.unsafe:
            self._signer = HMACSigner(
                secret,
                cfg.IMAGOR_SIGNER_TYPE if algorithm is None else algorithm,
                cfg.IMAGOR_SIGNER_TRUNCATE if truncate is None else truncate,
            )

    def sign_path(self, imagor_path: str) -> str:
        """Return ``unsafe/<path>`` or ``<signature>/<path>``."""
        if self._signer is None:
            return f"unsafe/{imagor_path}"
        return f"{self._signer.sign(imagor_path)}/{imagor_path}"

    def url_for(self, imagor_path: str) -> str:
        """Return the absolute (or base-relative) URL for a path."""
        return f"{self.base_url}/{self.sign_path(imagor_path)}"

    async def generate_url(self, image_path: str, imagor_path: str) -> str:
        """UrlGenerator implementation."""
        url = self.url_for(imagor_path)
        logger.debug("Generated imagor URL for %s", image_path)
        return url
