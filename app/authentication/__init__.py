"""
Authentication application.

Provides the email-based User that owns payments and the JWT token
endpoints API callers use to authenticate.

Usage:
    from authentication.models import User
"""
