from django.apps import AppConfig


class AuthenticationConfig(AppConfig):
    """Email-based users and JWT issuance for payment API callers."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "authentication"
    verbose_name = "Filers & Access"
