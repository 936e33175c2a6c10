from datetime import timedelta

from django.conf import settings
from django.contrib.auth import get_user_model
from django.utils import timezone
from jose import ExpiredSignatureError, JWTError, jwt


class InvalidToken(Exception):
    pass


def create_access_token(user) -> str:
    claims = {
        "userId": user.pk,
        "role": user.role_name,
        "username": user.username,
        "exp": timezone.now() + timedelta(hours=settings.JWT_EXPIRE_HOURS),
    }
    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise InvalidToken("Session expired. Please log in again.")
    except JWTError:
        raise InvalidToken("Unauthorized: Invalid token")


def resolve_token_user(token: str):
    claims = decode_access_token(token)
    user = (
        get_user_model()
        .objects.select_related("role", "district")
        .filter(pk=claims.get("userId"), is_active=True)
        .first()
    )
    if user is None:
        raise InvalidToken("Unauthorized: Unknown user")
    return user
