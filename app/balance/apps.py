"""
Balance app configuration.

This app provides the user balance engine:
- Spendable balances and reserved (held) funds per user
- Peer-to-peer transfers
- Reserve -> confirm / cancel hold workflow for paid services
- Audit history and monthly service revenue reports
"""

from django.apps import AppConfig


class BalanceConfig(AppConfig):
    """Configuration for the balance application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "balance"
    verbose_name = "User Balance"
