# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every action must be attributable. Uses bcrypt for secure password
hashing and validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Self-registration always grants the baseline "user" role; elevated roles
  come from vendor approval or the CLI
- Tokens are managed separately (see token_service.py)
"""

from __future__ import annotations

import re

import bcrypt
from sqlalchemy.exc import IntegrityError

from ..models import User
from ..time_utils import utcnow
from ..validation import clean_string
from .errors import DuplicateEmailError, ValidationError
from .role_service import ROLE_SUPERADMIN, ROLE_USER, RoleService


EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str):
        raise PasswordValidationError("Password must be a string")

    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. A malformed stored hash counts as a
    mismatch rather than an error.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def normalize_email(email: str | None) -> str:
    return clean_string(email, field="email").lower()


def register_user(session, *, name: str | None, email: str, password: str) -> User:
    """
    Create a new user with the baseline "user" role.

    Raises:
        ValidationError: malformed email
        PasswordValidationError: weak password
        DuplicateEmailError: email already registered
        RoleNotFoundError: roles not seeded (run `flask roles seed`)
    """
    email = normalize_email(email)
    if not EMAIL_RE.match(email):
        raise ValidationError("A valid email is required")

    existing = session.query(User).filter_by(email=email).first()
    if existing is not None:
        raise DuplicateEmailError("User with this email already exists")

    user = User(
        name=clean_string(name, field="name") or None,
        email=email,
        password_hash=hash_password(password),
        is_active=True,
    )
    session.add(user)

    try:
        RoleService(session).grant_role(user, ROLE_USER)
        session.commit()
    except IntegrityError:
        # concurrent registration with the same email
        session.rollback()
        raise DuplicateEmailError("User with this email already exists")
    except Exception:
        session.rollback()
        raise
    return user


def authenticate(session, email: str, password: str) -> User | None:
    """
    Authenticate user with email and password.

    Returns User if credentials valid and the account is active, None otherwise.
    Updates last_login_at timestamp on successful authentication.
    """
    if not isinstance(password, str):
        raise ValidationError("password must be a string")

    user = session.query(User).filter(
        User.email == normalize_email(email),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        session.commit()
        return user

    return None


def ensure_super_admin(session, *, email: str, password: str, name: str = "Super Admin") -> tuple[User, bool]:
    """
    Create the super admin account, or repair its roles if it already exists.

    Returns (user, created).
    """
    email = normalize_email(email)
    roles = RoleService(session)

    user = session.query(User).filter_by(email=email).first()
    created = user is None
    if created:
        user = User(name=name, email=email, password_hash=hash_password(password), is_active=True)
        session.add(user)

    try:
        roles.grant_role(user, ROLE_SUPERADMIN)
        roles.grant_role(user, ROLE_USER)
        session.commit()
    except Exception:
        session.rollback()
        raise
    return user, created
