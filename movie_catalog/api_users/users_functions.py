import re
from datetime import datetime, timezone

from pymongo.collection import Collection
from werkzeug.security import check_password_hash, generate_password_hash

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
ROLES = {"user", "admin"}
DEFAULT_ROLE = "user"
MIN_PASSWORD_LENGTH = 6


def read_credentials(payload: dict | None):
    """
    Pull the email and password out of a JSON body or submitted form.

    Args:
        payload (dict | None): Request body.

    Returns:
        tuple[str, str]: Normalized email and raw password.
    """
    if not isinstance(payload, dict):
        payload = {}
    email = str(payload.get("email") or "").strip().lower()
    password = str(payload.get("password") or "")
    return email, password


def validate_registration(email: str, password: str):
    """
    Validate registration fields.

    Args:
        email (str): Normalized email.
        password (str): Raw password.

    Returns:
        str | None: Error message, or None when the input is acceptable.
    """
    if not email or not password:
        return "Email and password are required"
    if not EMAIL_PATTERN.match(email):
        return "Email is not valid"
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
    return None


def build_user(email: str, password: str, role: str = DEFAULT_ROLE):
    """
    Build a user document with a hashed password.

    Args:
        email (str): Normalized email.
        password (str): Raw password.
        role (str): User role.

    Returns:
        dict: User document ready for insertion.
    """
    if role not in ROLES:
        role = DEFAULT_ROLE
    return {
        "email": email,
        "password": generate_password_hash(password),
        "role": role,
        "created_at": datetime.now(timezone.utc),
    }


def find_user_by_email(email: str, users_collection: Collection):
    """Locate a user by normalized email."""
    if not email:
        return None
    return users_collection.find_one({"email": email})


def verify_password(user: dict | None, password: str):
    """Check a raw password against the stored hash."""
    if not user or not password:
        return False
    stored = user.get("password")
    if not isinstance(stored, str) or not stored:
        return False
    return check_password_hash(stored, password)


def serialize_user(user: dict):
    """
    Build the identity summary returned at login.

    Args:
        user (dict): User document.

    Returns:
        dict: ``id``, ``email`` and ``role`` without the password hash.
    """
    return {
        "id": str(user["_id"]),
        "email": user.get("email"),
        "role": user.get("role") or DEFAULT_ROLE,
    }


def upsert_admin(email: str, password: str, users_collection: Collection):
    """
    Create an admin account, or promote and re-key an existing one.

    Args:
        email (str): Normalized email.
        password (str): Raw password.
        users_collection (Collection): MongoDB collection handle.

    Returns:
        bool: True when a new account was created.
    """
    existing = find_user_by_email(email, users_collection)
    if existing:
        users_collection.update_one(
            {"_id": existing["_id"]},
            {"$set": {"role": "admin", "password": generate_password_hash(password)}},
        )
        return False
    users_collection.insert_one(build_user(email, password, role="admin"))
    return True
