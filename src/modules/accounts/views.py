"""Identity API views."""

from __future__ import annotations

from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from modules.accounts.dtos import SignInDTO, SignUpDTO
from modules.accounts.services import IdentityService, profile_of
from modules.core.responses import envelope
from modules.core.validation import parse_dto


class PublicAuthView(APIView):
    """Credential endpoints: stale bearer tokens are ignored, failures stay 401."""

    permission_classes = [AllowAny]
    authentication_classes: list = []
    throttle_scope = "auth"

    def get_authenticate_header(self, request: Request) -> str:
        return 'Bearer realm="api"'


class SignUpView(PublicAuthView):
    """POST /api/v1/auth/signup/"""

    def post(self, request: Request) -> Response:
        service = IdentityService()
        user_id = service.sign_up(parse_dto(SignUpDTO, request.data))
        return envelope(
            {"user": service.get_profile(user_id)},
            message="Account created.",
            status=status.HTTP_201_CREATED,
        )


class SignInView(PublicAuthView):
    """POST /api/v1/auth/login/"""

    def post(self, request: Request) -> Response:
        tokens, profile = IdentityService().sign_in(parse_dto(SignInDTO, request.data))
        return envelope({"tokens": tokens, "user": profile}, message="Signed in.")


class MeView(APIView):
    """GET /api/v1/auth/me/"""

    permission_classes = [IsAuthenticated]

    def get(self, request: Request) -> Response:
        return envelope({"user": profile_of(request.user)})
