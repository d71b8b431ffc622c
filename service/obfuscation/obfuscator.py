"""
Obfuscator: wraps a base64-encoded balance in random base64 noise.
- Payload is base64 of the decimal digits
- Prefix and suffix are independent noise of a fixed raw length
- Output shape is fixed, content is not
"""
import base64
import secrets
from typing import Callable, Optional

DEFAULT_NOISE_BYTES = 128


def noise_length(noise_bytes: int) -> int:
    """Length of base64 text produced for ``noise_bytes`` raw bytes (with padding)"""
    return 4 * ((noise_bytes + 2) // 3)


class Obfuscator:
    """
    Builds obfuscated blobs: ``noise ++ base64(str(amount)) ++ noise``.
    """

    def __init__(
        self,
        noise_bytes: int = DEFAULT_NOISE_BYTES,
        random_bytes: Optional[Callable[[int], bytes]] = None,
    ):
        """
        Initialize obfuscator

        Args:
            noise_bytes: Raw length of each noise segment
            random_bytes: Secure random source, defaults to secrets.token_bytes
        """
        if noise_bytes <= 0:
            raise ValueError("noise_bytes must be a positive integer")
        self.noise_bytes = noise_bytes
        self.random_bytes = random_bytes or secrets.token_bytes

    @staticmethod
    def encode_number(amount: int) -> str:
        """Encode integer to base64 text of its decimal string"""
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise ValueError("amount must be a non-negative integer")
        return base64.b64encode(str(amount).encode("ascii")).decode("ascii")

    def _noise(self) -> str:
        raw = self.random_bytes(self.noise_bytes)
        if len(raw) != self.noise_bytes:
            raise ValueError(
                f"random source returned {len(raw)} bytes, expected {self.noise_bytes}"
            )
        return base64.b64encode(raw).decode("ascii")

    def build(self, amount: int) -> str:
        """
        Build obfuscated blob for an amount.

        Args:
            amount: Balance to encode

        Returns:
            Blob string; never stored by this method
        """
        encoded = self.encode_number(amount)
        prefix = self._noise()
        suffix = self._noise()
        return prefix + encoded + suffix
