"""
Balance settings.

Read from ``settings.BALANCE_GUARD`` (a dict), falling back to defaults for
missing keys.
"""
from dataclasses import dataclass, fields
from typing import Any, Optional

from django.core.exceptions import ImproperlyConfigured


@dataclass(frozen=True)
class BalanceConfig:
    cache_alias: str = "default"
    balance_key: str = "balanceData_v1"
    hash_key: str = "balanceHash_v1"
    noise_bytes: int = 128
    default_balance: int = 100
    auto_regen: bool = True
    regen_threshold: int = 100
    regen_interval_ms: int = 10000
    roller_interval_ms: int = 5

    def __post_init__(self):
        for name in ("noise_bytes", "regen_interval_ms", "roller_interval_ms"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise ImproperlyConfigured(f"BALANCE_GUARD {name.upper()} must be a positive integer")
        for name in ("default_balance", "regen_threshold"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ImproperlyConfigured(f"BALANCE_GUARD {name.upper()} must be a non-negative integer")
        if self.balance_key == self.hash_key:
            raise ImproperlyConfigured("BALANCE_GUARD BALANCE_KEY and HASH_KEY must differ")

    @classmethod
    def from_dict(cls, options: Optional[dict[str, Any]]) -> "BalanceConfig":
        """Build config from an upper-case settings dict"""
        options = options or {}
        known = {f.name.upper(): f.name for f in fields(cls)}
        unknown = sorted(set(options) - set(known))
        if unknown:
            raise ImproperlyConfigured(f"Unknown BALANCE_GUARD options: {', '.join(unknown)}")
        return cls(**{known[key]: value for key, value in options.items()})

    @classmethod
    def from_settings(cls) -> "BalanceConfig":
        """Build config from Django settings"""
        from django.conf import settings

        return cls.from_dict(getattr(settings, "BALANCE_GUARD", None))

