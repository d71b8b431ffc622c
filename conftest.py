import django
from django.conf import settings


def pytest_configure():
    if settings.configured:
        return
    settings.configure(
        INSTALLED_APPS=["apps.balance"],
        CACHES={
            "default": {
                "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
                "LOCATION": "balance-tests",
            }
        },
        BALANCE_GUARD={"NOISE_BYTES": 32},
        USE_TZ=True,
    )
    django.setup()
