from fastapi import Request

from foliovault.app.core.security import hash_api_token
from foliovault.app.db.crud import lookup_user_by_token_hash
from foliovault.app.db.dependencies import SessionDep
from foliovault.app.db.models import User
from foliovault.app.exceptions import AuthenticationError, ValidationFailedError

MAX_TOKEN_LENGTH = 512


def get_bearer_token(request: Request) -> str | None:
    """Extract Bearer token from Authorization header.

    Args:
        request: The incoming request

    Returns:
        The token string if present, None otherwise
    """
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        return None
    return auth.replace("Bearer ", "", 1).strip()


async def require_user(
    request: Request,
    session: SessionDep,
) -> User:
    """Validate the bearer token and return the associated user.

    Raises:
        AuthenticationError: 401 if the token is missing or unknown
        ValidationFailedError: 400 if the token is too long
    """
    token = get_bearer_token(request)
    if not token:
        raise AuthenticationError("Missing bearer token")

    # Checked before hashing so huge inputs never reach sha256
    if len(token) > MAX_TOKEN_LENGTH:
        raise ValidationFailedError(f"Bearer token too long (max {MAX_TOKEN_LENGTH} characters)")

    user = await lookup_user_by_token_hash(session, hash_api_token(token))
    if user is None:
        raise AuthenticationError("Invalid bearer token")

    request.state.user_id = user.id
    return user
