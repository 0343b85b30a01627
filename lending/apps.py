from django.apps import AppConfig


class LendingConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'lending'
    verbose_name = 'Loan Ledger & Chit Funds'
