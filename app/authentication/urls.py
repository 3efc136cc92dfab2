"""
URL configuration for the authentication app.

Routes:
    - POST /token/         - Obtain access + refresh JWT (email/password)
    - POST /token/refresh/ - Exchange a refresh token for a new access token

All routes are prefixed with /api/v1/auth/ when included in the main URLconf.
Payment endpoints expect the access token as "Authorization: Bearer <token>".
"""

from django.urls import path
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

app_name = "authentication"

urlpatterns = [
    path("token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
]
