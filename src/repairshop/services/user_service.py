from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass, replace

from ..domain import USER_ROLES, User, UserRole
from ..errors import Forbidden, ValidationError

log = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


@dataclass
class CreateUserInput:
    name: str
    email: str
    role: str = "TECHNICIAN"


def parse_role(raw: str | None) -> UserRole:
    role = (raw or "").strip().upper()
    if role not in USER_ROLES:
        raise ValidationError(f"Role must be one of {', '.join(USER_ROLES)}.", field="role")
    return role


def validate_user_input(data: CreateUserInput) -> dict:
    errors: dict[str, str] = {}
    if not (data.name or "").strip():
        errors["name"] = "Name is required."

    email = (data.email or "").strip()
    if not email:
        errors["email"] = "Email is required."
    elif not EMAIL_RE.match(email):
        errors["email"] = "Enter a valid email address."

    role: UserRole | None = None
    try:
        role = parse_role(data.role)
    except ValidationError as e:
        errors.update(e.errors)

    if errors:
        raise ValidationError(errors)
    return {"name": data.name.strip(), "email": email.lower(), "role": role}


def create_user(data: CreateUserInput, actor: User, *, user_id: str | None = None) -> User:
    """Register a staff member. Only an administrator may add users."""
    if not actor.is_admin:
        log.warning("User %s (%s) tried to create a user", actor.id, actor.role)
        raise Forbidden("Only an administrator can create users.")
    user = User(id=user_id or uuid.uuid4().hex, **validate_user_input(data))
    log.info("User %s created as %s by %s", user.id, user.role, actor.id)
    return user


def change_role(user: User, role: str, actor: User) -> User:
    if not actor.is_admin:
        log.warning("User %s (%s) tried to change the role of %s", actor.id, actor.role, user.id)
        raise Forbidden("Only an administrator can change roles.")
    new_role = parse_role(role)
    if new_role == user.role:
        return user
    log.info("User %s role %s -> %s by %s", user.id, user.role, new_role, actor.id)
    return replace(user, role=new_role)


def acting_user(user_id: str | None, role: str | None) -> User:
    """Build the console's acting user from what the operator typed."""
    errors: dict[str, str] = {}
    if not (user_id or "").strip():
        errors["user_id"] = "User id is required."
    try:
        parsed = parse_role(role)
    except ValidationError as e:
        errors.update(e.errors)
    if errors:
        raise ValidationError(errors)
    return User(id=user_id.strip(), role=parsed)
