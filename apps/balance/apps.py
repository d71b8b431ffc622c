from django.apps import AppConfig


class BalanceAppConfig(AppConfig):
    name = "apps.balance"
    label = "balance"

    def ready(self):
        """Validate BALANCE_GUARD settings at startup"""
        from service.balance import BalanceConfig

        BalanceConfig.from_settings()
