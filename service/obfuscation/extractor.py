"""
Extractor: recovers the balance from an obfuscated blob.

Two strategies:
- framed: noise segments have a known length, so the payload sits between them
- scan: brute-force over every substring of length 4..56, last all-digit decode wins

``extract`` uses the framed strategy when the blob has the expected shape and
falls back to ``scan`` otherwise.
"""
import base64
import binascii
import re
from typing import Optional

from .obfuscator import DEFAULT_NOISE_BYTES, noise_length

MIN_WINDOW = 4
MAX_WINDOW = 60

_B64_BODY = re.compile(r"[A-Za-z0-9+/]*")
_STRIP_WHITESPACE = str.maketrans("", "", "\t\n\f\r ")


def forgiving_b64decode(text: str) -> Optional[bytes]:
    """
    Decode base64 the way browsers' atob() does.

    Whitespace is ignored, padding is optional, leftover bits are discarded.

    Returns:
        Decoded bytes, or None if the text is not valid base64
    """
    compact = text.translate(_STRIP_WHITESPACE)
    if len(compact) % 4 == 0:
        if compact.endswith("=="):
            compact = compact[:-2]
        elif compact.endswith("="):
            compact = compact[:-1]
    if len(compact) % 4 == 1 or not _B64_BODY.fullmatch(compact):
        return None
    try:
        return base64.b64decode(compact + "=" * (-len(compact) % 4))
    except (binascii.Error, ValueError):
        return None


def decode_digits(text: str) -> Optional[int]:
    """Decode base64 text into an integer if it decodes to ASCII digits only"""
    decoded = forgiving_b64decode(text)
    if decoded and decoded.isdigit():
        return int(decoded)
    return None


class Extractor:
    """Recovers integers from blobs built by Obfuscator"""

    def __init__(self, noise_bytes: int = DEFAULT_NOISE_BYTES):
        self.noise_bytes = noise_bytes

    @staticmethod
    def scan(blob: str) -> Optional[int]:
        """
        Brute-force scan for the payload.

        Tries blob[i:j] for i ascending and j from i+4 up to min(len, i+60),
        keeping the last substring that decodes to digits only. The winner is
        the match with the highest start offset, then the highest end offset.

        Args:
            blob: Obfuscated string

        Returns:
            Decoded integer or None
        """
        last = None
        size = len(blob)
        for i in range(size):
            for j in range(i + MIN_WINDOW, min(size, i + MAX_WINDOW) + 1):
                value = decode_digits(blob[i:j])
                if value is not None:
                    last = value
        return last

    def framed(self, blob: str) -> Optional[int]:
        """Decode payload by the fixed noise offsets; None if blob has another shape"""
        edge = noise_length(self.noise_bytes)
        if len(blob) <= 2 * edge:
            return None
        return decode_digits(blob[edge:-edge])

    def extract(self, blob: Optional[str]) -> Optional[int]:
        """
        Recover the balance from a blob.

        Args:
            blob: Obfuscated string (may be None or empty)

        Returns:
            Integer balance or None if nothing decodes to digits
        """
        if not blob:
            return None
        value = self.framed(blob)
        if value is not None:
            return value
        return self.scan(blob)
