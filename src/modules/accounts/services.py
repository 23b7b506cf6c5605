"""Identity service: local accounts and signed JWTs.

Passwords are hashed with Django's configured hashers and tokens are
issued and checked by ``djangorestframework-simplejwt``.  The e-mail
address doubles as the username.

Authentication failures (unknown e-mail, wrong password, bad or expired
token) all surface as DRF's ``AuthenticationFailed`` (401).
"""

from __future__ import annotations

from typing import Any, Dict, Tuple

import structlog
from django.contrib.auth import authenticate, get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings as jwt_settings
from rest_framework_simplejwt.tokens import AccessToken, RefreshToken

from modules.accounts.dtos import SignInDTO, SignUpDTO
from modules.accounts.exceptions import EmailAlreadyRegistered
from modules.core.exceptions import ValidationError
from modules.core.permissions import is_admin

logger = structlog.get_logger(__name__)


def profile_of(user) -> Dict[str, Any]:
    return {
        "id": str(user.pk),
        "email": user.email,
        "name": user.get_full_name() or user.first_name,
        "is_admin": is_admin(user),
    }


class IdentityService:
    def __init__(self, user_model=None) -> None:
        self._users = user_model or get_user_model()

    def sign_up(self, dto: SignUpDTO) -> str:
        """Create an account and return its id.

        Raises:
            EmailAlreadyRegistered: the e-mail is taken.
            ValidationError: the password fails the configured validators.
        """
        if self._users.objects.filter(email__iexact=dto.email).exists():
            raise EmailAlreadyRegistered()

        candidate = self._users(username=dto.email, email=dto.email, first_name=dto.name)
        try:
            validate_password(dto.password, user=candidate)
        except DjangoValidationError as exc:
            raise ValidationError(
                "Password is too weak.",
                details=[{"attr": "password", "detail": message} for message in exc.messages],
            ) from exc

        try:
            with transaction.atomic():
                user = self._users.objects.create_user(
                    username=dto.email,
                    email=dto.email,
                    password=dto.password,
                    first_name=dto.name,
                )
        except IntegrityError as exc:
            raise EmailAlreadyRegistered() from exc

        logger.info("account.created", user_id=str(user.pk))
        return str(user.pk)

    def sign_in(self, dto: SignInDTO) -> Tuple[Dict[str, str], Dict[str, Any]]:
        """Check credentials and issue an access/refresh token pair."""
        user = authenticate(username=dto.email, password=dto.password)
        if user is None:
            logger.warning("account.sign_in_failed")
            raise AuthenticationFailed("Incorrect email or password.")

        refresh = RefreshToken.for_user(user)
        logger.info("account.signed_in", user_id=str(user.pk))
        tokens = {"access": str(refresh.access_token), "refresh": str(refresh)}
        return tokens, profile_of(user)

    def verify_token(self, token: str) -> Dict[str, Any]:
        """Resolve an access token to the profile of an active user."""
        try:
            access = AccessToken(token)
        except TokenError as exc:
            raise AuthenticationFailed("Token is invalid or expired.") from exc

        user = (
            self._users.objects.filter(
                **{jwt_settings.USER_ID_FIELD: access.get(jwt_settings.USER_ID_CLAIM)}
            )
            .filter(is_active=True)
            .first()
        )
        if user is None:
            raise AuthenticationFailed("User not found or inactive.")
        return profile_of(user)

    def get_profile(self, user_id) -> Dict[str, Any]:
        return profile_of(self._users.objects.get(pk=user_id))
