import jwt
from rest_framework import exceptions
from rest_framework.authentication import BaseAuthentication

from quota_core.adapters.security.jwt_service import JWTService


class SimpleUser:
    """
    Minimal DRF-compatible user built from token claims only:
    id, role, clinic_id and is_authenticated.
    """
    def __init__(self, id: str, role: str | None = None, clinic_id: str | None = None):
        self.id = id
        self.role = role
        self.clinic_id = clinic_id
        self.is_authenticated = True

    def __str__(self):
        return f"<SimpleUser id={self.id} role={self.role} clinic_id={self.clinic_id}>"

class JWTAuthentication(BaseAuthentication):
    """Reads `Authorization: Bearer <token>` and returns (SimpleUser, token)."""

    keyword = "Bearer"

    def authenticate(self, request):
        header = request.headers.get("Authorization", "")
        parts = header.split()

        if not parts or parts[0].lower() != "bearer":
            return None
        if len(parts) != 2:
            raise exceptions.AuthenticationFailed("Malformed Authorization header.")

        token = parts[1]
        try:
            payload = JWTService.decode_token(token)
        except jwt.PyJWTError as e:
            raise exceptions.AuthenticationFailed(f"Invalid token: {e}") from e

        user_id = payload.get("sub")
        if not user_id:
            raise exceptions.AuthenticationFailed("Token has no 'sub' claim.")

        user = SimpleUser(
            id=user_id,
            role=payload.get("role"),
            clinic_id=payload.get("clinic_id"),
        )
        return (user, token)

    def authenticate_header(self, request):
        return self.keyword
