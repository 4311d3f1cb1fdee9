# backend/services/identity.py

from typing import Any, Dict, Optional

from jose import jwt, JWTError

from backend.core.errors import Unauthorized
from backend.core.logging import get_logger
from backend.models.models import User

logger = get_logger(__name__)


class IdentityGate:
    """
    Turns a bearer credential into an authenticated User.

    Tokens are issued elsewhere (the account service); this backend only
    verifies them. A valid token is a JWT signed with the shared secret whose
    claims carry the user's stable id and display name:

        {"userId": "6650f0...", "username": "alice", "exp": 1735689600}
    """

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self.secret = secret
        self.algorithm = algorithm

    def verify(self, token: Optional[str]) -> User:
        """
        Verify a token and extract the identity.

        Raises:
            Unauthorized: token missing, badly signed, expired or lacking claims
        """
        if not token:
            raise Unauthorized("Access denied")
        try:
            claims: Dict[str, Any] = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as e:
            logger.info(f"Rejected token: {e}")
            raise Unauthorized("Invalid token") from e

        user_id = claims.get("userId")
        username = claims.get("username")
        if not user_id or not username:
            raise Unauthorized("Invalid token")
        return User(id=str(user_id), display_name=str(username))
