from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView

from modules.accounts.views import MeView, SignInView, SignUpView

urlpatterns = [
    path("auth/signup/", SignUpView.as_view(), name="auth-signup"),
    path("auth/login/", SignInView.as_view(), name="auth-login"),
    path("auth/token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("auth/me/", MeView.as_view(), name="auth-me"),
]
