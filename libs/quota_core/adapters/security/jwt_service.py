from datetime import datetime, timedelta, timezone

import jwt
from django.conf import settings


class JWTService:
    """
    Issues and validates the bearer tokens used by the API.
    Claims: sub, role ("clinic" | "admin") and, for clinic staff, clinic_id.
    """

    @staticmethod
    def create_token(
        subject: str,
        role: str,
        clinic_id: str | None = None,
        expires_in: int | None = None,
    ) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(subject),
            "role": role,
            "iat": now,
            "exp": now + timedelta(seconds=int(expires_in or settings.JWT_EXPIRES_IN)),
        }
        if clinic_id is not None:
            payload["clinic_id"] = str(clinic_id)

        return jwt.encode(
            payload,
            settings.JWT_SECRET,
            algorithm=settings.JWT_ALGORITHM,
        )

    @staticmethod
    def decode_token(token: str) -> dict:
        """Raises jwt.PyJWTError when the token is invalid or expired."""
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
