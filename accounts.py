import logging
from typing import Any, Dict, Optional

from bson import ObjectId
from pydantic import EmailStr, TypeAdapter, ValidationError
from pymongo.errors import DuplicateKeyError

from auth import hash_password, verify_password
from errors import NotFound, ValidationFailed, from_pydantic
from repositories import UserRepository
from schemas import User

logger = logging.getLogger(__name__)

ACCOUNT_UPDATED = "Successfully updated your account."
EMAIL_TAKEN = "A user with the given email is already registered"

_email_adapter = TypeAdapter(EmailStr)

# field -> message shown instead of pydantic's default
FIELD_MESSAGES = {"email": "Invalid Email Address"}


def validate_registration(name: Optional[str], email: Optional[str], password: Optional[str], password_confirm: Optional[str]) -> Dict[str, str]:
    """Collect every registration form error at once; return the cleaned name and email."""
    errors = []
    name = (name or "").strip()
    email = (email or "").strip().lower()
    if not name:
        errors.append("You must supply a name!")
    try:
        _email_adapter.validate_python(email)
    except ValidationError:
        errors.append("The email is not valid!")
    if not password:
        errors.append("Password cannot be blank!")
    if not password_confirm:
        errors.append("Confirmed password cannot be blank!")
    elif password_confirm != password:
        errors.append("Oops! Your passwords do not match.")
    if errors:
        raise ValidationFailed(errors, body={"name": name, "email": email})
    return {"name": name, "email": email}


class AccountService:
    def __init__(self, users: UserRepository):
        self.users = users

    def register(self, name: str, email: str, password: str, password_confirm: str, photo: Optional[str] = None) -> Dict[str, Any]:
        cleaned = validate_registration(name, email, password, password_confirm)
        if self.users.find_by_email(cleaned["email"]):
            raise ValidationFailed([EMAIL_TAKEN], body=cleaned)
        try:
            user = User(password_hash=hash_password(password), photo=photo, **cleaned)
        except ValidationError as exc:
            raise from_pydantic(exc, body=cleaned, overrides=FIELD_MESSAGES)
        doc = user.model_dump()
        try:
            doc["_id"] = self.users.insert(doc)
        except DuplicateKeyError:
            raise ValidationFailed([EMAIL_TAKEN], body=cleaned)
        logger.info("Registered user %s", doc["_id"])
        return doc

    def authenticate(self, email: str, password: str) -> Optional[Dict[str, Any]]:
        user = self.users.find_by_email(email)
        if not user or not verify_password(password, user.get("password_hash", "")):
            return None
        return user

    def update(self, user_id: ObjectId, name: str, email: str, photo: Optional[str] = None) -> Dict[str, Any]:
        """Set name and email, and photo only when a new one was uploaded."""
        updates: Dict[str, Any] = {"name": name, "email": email}
        if photo:
            updates["photo"] = photo

        current = self.users.get(user_id)
        if current is None:
            raise NotFound("User not found")
        try:
            merged = User.model_validate({**current, **updates})
        except ValidationError as exc:
            raise from_pydantic(exc, body={"name": name, "email": email}, overrides=FIELD_MESSAGES)
        clean = {field: getattr(merged, field) for field in updates}

        other = self.users.find_by_email(clean["email"])
        if other is not None and other["_id"] != user_id:
            raise ValidationFailed([EMAIL_TAKEN], body={"name": name, "email": email})

        try:
            updated = self.users.update_fields(user_id, clean)
        except DuplicateKeyError:
            raise ValidationFailed([EMAIL_TAKEN], body={"name": name, "email": email})
        if updated is None:
            raise NotFound("User not found")
        logger.info("Updated account %s (%s)", user_id, ", ".join(sorted(clean)))
        return updated
