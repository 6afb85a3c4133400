"""
Auth - session tokens and user accounts

Resolves a request to the owning user's id:
1. Passwords are stored as salted PBKDF2-SHA256 hashes
2. Session tokens are Fernet tokens carrying the user id
3. Token age is checked on every request (AUTH_TOKEN_TTL_SECONDS)

The job routes only ever see the resolved owner id.
"""

import os
import base64
import hmac
import logging
from typing import Optional, Tuple
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from sqlalchemy import select
from sqlalchemy.orm import Session

from jobtrack.core.config import get_settings
from jobtrack.core.database import User
from jobtrack.core.errors import AuthError, ConflictError, ValidationError
from jobtrack.core.schemas import UserRegister, UserLogin

logger = logging.getLogger(__name__)


# ============================================================================
# Password Hashing
# ============================================================================

class PasswordHasher:
    """Salted PBKDF2-SHA256 password hashes stored as ``salt$hash``."""

    def __init__(self, iterations: Optional[int] = None):
        self.iterations = iterations or get_settings().auth.password_iterations

    def _derive(self, password: str, salt: bytes) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=self.iterations,
        )
        return kdf.derive(password.encode())

    def hash(self, password: str) -> str:
        salt = os.urandom(16)
        digest = self._derive(password, salt)
        return "{}${}".format(
            base64.urlsafe_b64encode(salt).decode(),
            base64.urlsafe_b64encode(digest).decode(),
        )

    def verify(self, password: str, stored: str) -> bool:
        try:
            salt_b64, digest_b64 = stored.split("$", 1)
            salt = base64.urlsafe_b64decode(salt_b64.encode())
            expected = base64.urlsafe_b64decode(digest_b64.encode())
        except (ValueError, AttributeError):
            logger.error("Malformed password hash")
            return False
        return hmac.compare_digest(self._derive(password, salt), expected)


# ============================================================================
# Session Tokens
# ============================================================================

class TokenManager:
    """
    Issues and resolves session tokens.

    Tokens are Fernet tokens (AES-128-CBC with HMAC) whose payload is the
    user id. Fernet embeds the issue time, so expiry needs no server state.
    """

    def __init__(self, secret_key: Optional[str] = None, ttl_seconds: Optional[int] = None):
        """
        Initialize with the signing secret.

        Args:
            secret_key: Secret for token signing. If not provided,
                       reads AUTH_SECRET_KEY from settings.
            ttl_seconds: Token lifetime. Defaults to AUTH_TOKEN_TTL_SECONDS.
        """
        auth_settings = get_settings().auth
        self.secret_key = secret_key or auth_settings.secret_key
        self.ttl_seconds = ttl_seconds or auth_settings.token_ttl_seconds

        if not self.secret_key:
            logger.warning("No AUTH_SECRET_KEY set. Using random key (sessions won't survive restart).")
            self.secret_key = Fernet.generate_key().decode()

        self._fernet = self._derive_key(self.secret_key)

    def _derive_key(self, secret: str) -> Fernet:
        """Derive the Fernet key from the secret using PBKDF2."""
        derived = PasswordHasher(iterations=100000)._derive(secret, b'jobtrack_session_v1')
        return Fernet(base64.urlsafe_b64encode(derived))

    def issue(self, user_id: str) -> str:
        """Issue a token for a user."""
        return self._fernet.encrypt(user_id.encode()).decode()

    def resolve(self, token: Optional[str]) -> str:
        """
        Resolve a token to its user id.

        Raises:
            AuthError: if the token is missing, tampered with or expired
        """
        if not token:
            raise AuthError("Missing session token")
        try:
            return self._fernet.decrypt(token.encode(), ttl=self.ttl_seconds).decode()
        except InvalidToken:
            raise AuthError("Invalid or expired session token")


# ============================================================================
# User Accounts
# ============================================================================

class UserService:
    """Registration and login against the users table."""

    def __init__(self, session: Session, tokens: TokenManager,
                 hasher: Optional[PasswordHasher] = None):
        self.session = session
        self.tokens = tokens
        self.hasher = hasher or PasswordHasher()

    def _find_by_email(self, email: str) -> Optional[User]:
        return self.session.execute(
            select(User).where(User.email == email)
        ).scalar_one_or_none()

    def register(self, request: UserRegister) -> Tuple[User, str]:
        """
        Create an account and issue its first token.

        Raises:
            ValidationError: if email or password is empty
            ConflictError: if the email is already registered
        """
        email = request.email.strip().lower()
        errors = {}
        if not email:
            errors['email'] = "Email is required"
        if not request.password:
            errors['password'] = "Password is required"
        if errors:
            raise ValidationError(errors)

        if self._find_by_email(email) is not None:
            raise ConflictError(f"Email already registered: {email}")

        user = User(
            email=email,
            name=request.name.strip(),
            password_hash=self.hasher.hash(request.password),
        )
        self.session.add(user)
        self.session.commit()

        logger.info(f"Registered user {user.id}")
        return user, self.tokens.issue(user.id)

    def login(self, request: UserLogin) -> Tuple[User, str]:
        """
        Check credentials and issue a token.

        Raises:
            AuthError: on unknown email or wrong password
        """
        user = self._find_by_email(request.email.strip().lower())
        if user is None or not self.hasher.verify(request.password, user.password_hash):
            logger.warning("Rejected login attempt")
            raise AuthError("Invalid email or password")

        logger.info(f"User {user.id} logged in")
        return user, self.tokens.issue(user.id)

    def get(self, user_id: str) -> User:
        """
        Load the user a token resolved to.

        Raises:
            AuthError: if the account no longer exists
        """
        user = self.session.get(User, user_id)
        if user is None:
            raise AuthError("Unknown user")
        return user
