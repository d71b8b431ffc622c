from .extractor import Extractor, decode_digits, forgiving_b64decode
from .obfuscator import DEFAULT_NOISE_BYTES, Obfuscator, noise_length

__all__ = [
    "DEFAULT_NOISE_BYTES",
    "Extractor",
    "Obfuscator",
    "decode_digits",
    "forgiving_b64decode",
    "noise_length",
]
