"""
auth/validators.py -- Field validation for auth service inputs.

Each validate_* function takes the request (and the store, where a rule
needs a uniqueness lookup) and returns a list of human-readable violations.
An empty list means the input is valid. The service calls these before any
mutating operation and returns the list as Result.errors.

Uniqueness checks here are for the friendly message only; the store's
unique indexes are the actual guarantee.
"""

from __future__ import annotations

import re

from auth.models import VALID_ROLES, ChangePasswordRequest, LoginRequest, RegisterRequest
from auth.store import UserStore

_USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]+$")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_PERSON_NAME_RE = re.compile(r"^[a-zA-ZğüşıöçĞÜŞİÖÇ ]+$")

PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 72  # bcrypt truncates past 72 bytes


def password_violations(password: str, label: str = "Password") -> list[str]:
    """Complexity rules shared by registration and password change."""
    if not password:
        return [f"{label} is required."]
    errors: list[str] = []
    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(f"{label} must be at least {PASSWORD_MIN_LENGTH} characters.")
    if len(password.encode("utf-8")) > PASSWORD_MAX_LENGTH:
        errors.append(f"{label} must be at most {PASSWORD_MAX_LENGTH} bytes.")
    if not (
        re.search(r"[a-z]", password) and re.search(r"[A-Z]", password) and re.search(r"\d", password)
    ):
        errors.append(f"{label} must contain at least one lowercase letter, one uppercase letter and one digit.")
    return errors


def _person_name_violations(value: str, label: str) -> list[str]:
    if not value or not value.strip():
        return [f"{label} is required."]
    if not 2 <= len(value) <= 100:
        return [f"{label} must be between 2 and 100 characters."]
    if not _PERSON_NAME_RE.match(value):
        return [f"{label} may only contain letters and spaces."]
    return []


def validate_registration(request: RegisterRequest, store: UserStore) -> list[str]:
    errors: list[str] = []

    username = request.username or ""
    if not username:
        errors.append("Username is required.")
    elif not 3 <= len(username) <= 50:
        errors.append("Username must be between 3 and 50 characters.")
    elif not _USERNAME_RE.match(username):
        errors.append("Username may only contain letters, digits and underscores.")
    elif not store.is_username_unique(username):
        errors.append("This username is already taken.")

    email = request.email or ""
    if not email:
        errors.append("Email is required.")
    elif len(email) > 100:
        errors.append("Email must be at most 100 characters.")
    elif not _EMAIL_RE.match(email):
        errors.append("Enter a valid email address.")
    elif not store.is_email_unique(email):
        errors.append("This email address is already registered.")

    errors.extend(password_violations(request.password))

    if not request.confirm_password:
        errors.append("Password confirmation is required.")
    elif request.confirm_password != request.password:
        errors.append("Passwords do not match.")

    errors.extend(_person_name_violations(request.first_name, "First name"))
    errors.extend(_person_name_violations(request.last_name, "Last name"))

    if request.role not in VALID_ROLES:
        errors.append(f"Invalid role. Valid roles: {', '.join(VALID_ROLES)}.")

    return errors


def validate_login(request: LoginRequest) -> list[str]:
    """Shape checks only. Never reveals whether the username exists."""
    errors: list[str] = []
    if not request.username:
        errors.append("Username is required.")
    elif not 3 <= len(request.username) <= 50:
        errors.append("Enter a valid username.")
    if not request.password:
        errors.append("Password is required.")
    elif len(request.password) < PASSWORD_MIN_LENGTH:
        errors.append("Enter a valid password.")
    return errors


def validate_password_change(request: ChangePasswordRequest) -> list[str]:
    errors: list[str] = []
    if not request.current_password:
        errors.append("Current password is required.")
    errors.extend(password_violations(request.new_password, label="New password"))
    if request.new_password and request.new_password == request.current_password:
        errors.append("New password must differ from the current password.")
    if not request.confirm_new_password:
        errors.append("New password confirmation is required.")
    elif request.confirm_new_password != request.new_password:
        errors.append("New passwords do not match.")
    return errors
