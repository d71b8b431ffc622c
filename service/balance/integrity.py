"""
Integrity digest over stored blobs (SHA-256, hex).
"""
import hmac
import logging
from typing import Callable, Optional

from cryptography.hazmat.primitives import hashes

from .store import KeyValueStore

logger = logging.getLogger(__name__)


def sha256_digest(data: bytes) -> bytes:
    """SHA-256 of ``data`` via cryptography"""
    digest = hashes.Hash(hashes.SHA256())
    digest.update(data)
    return digest.finalize()


class IntegrityVerifier:
    """Computes and checks the digest stored next to the blob"""

    def __init__(
        self,
        store: KeyValueStore,
        balance_key: str,
        hash_key: str,
        digest: Optional[Callable[[bytes], bytes]] = None,
    ):
        self.store = store
        self.balance_key = balance_key
        self.hash_key = hash_key
        self.digest = digest or sha256_digest

    def digest_of(self, blob: str) -> str:
        """Hex digest of the UTF-8 bytes of a blob"""
        return self.digest(blob.encode("utf-8")).hex()

    async def verify(self) -> bool:
        """
        Check stored blob against stored digest.

        Never raises: missing halves, read errors and hash errors all count
        as a failed verification.

        Returns:
            True if both halves exist and the digest matches
        """
        try:
            blob = await self.store.get(self.balance_key)
            stored_digest = await self.store.get(self.hash_key)
            if not blob or not stored_digest:
                return False
            return hmac.compare_digest(self.digest_of(blob), stored_digest)
        except Exception as e:
            logger.warning(f"Integrity check failed with error: {e!r}")
            return False
