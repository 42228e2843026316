from collections.abc import Mapping
from typing import Annotated, Any, TypeVar

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, ValidationError
from pydantic_core import PydanticCustomError

MIN_PASSWORD_LENGTH = 8

INVALID_EMAIL_MESSAGE = "Please enter a valid email address"
SHORT_PASSWORD_MESSAGE = "Password must be at least 8 characters long"


class SessionPayload(BaseModel):
    user_id: str  # Subject (sub) from the identity provider
    email: str
    name: str | None = None
    exp: int | float | None = None  # Expiration timestamp, absent before issuing

    def to_claims(self) -> dict[str, Any]:
        claims: dict[str, Any] = {"userId": self.user_id, "email": self.email}
        if self.name is not None:
            claims["name"] = self.name
        return claims


class ActionResult(BaseModel):
    success: bool
    message: str
    errors: dict[str, list[str]] | None = None

    @classmethod
    def invalid(cls, errors: dict[str, list[str]]) -> "ActionResult":
        return cls(success=False, message="Validation failed", errors=errors)


def _email(value: str) -> str:
    if not value or "@" not in value:
        raise PydanticCustomError("invalid_email", INVALID_EMAIL_MESSAGE)
    return value


def _new_password(value: str) -> str:
    if len(value) < MIN_PASSWORD_LENGTH:
        raise PydanticCustomError("password_too_short", SHORT_PASSWORD_MESSAGE)
    return value


def _required(message: str):
    def check(value: str) -> str:
        if not value:
            raise PydanticCustomError("required", message)
        return value

    return check


EmailField = Annotated[str, AfterValidator(_email)]
NewPasswordField = Annotated[str, AfterValidator(_new_password)]


class FormModel(BaseModel):
    # Missing inputs arrive as "" and must still be checked.
    model_config = ConfigDict(validate_default=True, populate_by_name=True, extra="ignore")


class SignUpForm(FormModel):
    email: EmailField = ""
    password: NewPasswordField = ""
    name: str = ""


class SignInForm(FormModel):
    email: EmailField = ""
    password: Annotated[str, AfterValidator(_required("Password is required"))] = ""
    redirect: str = ""


class ForgotPasswordForm(FormModel):
    email: EmailField = ""


class ConfirmPasswordForm(FormModel):
    email: EmailField = ""
    code: Annotated[str, AfterValidator(_required("Verification code is required"))] = ""
    new_password: NewPasswordField = Field(default="", alias="newPassword")


FormT = TypeVar("FormT", bound=FormModel)


def validate_form(
    form_class: type[FormT], data: Mapping[str, Any]
) -> tuple[FormT | None, dict[str, list[str]]]:
    """
    Validate submitted form data.

    Returns the parsed form, or None together with the error messages
    collected per field.
    """
    try:
        return form_class.model_validate(dict(data)), {}
    except ValidationError as exc:
        errors: dict[str, list[str]] = {}
        for error in exc.errors():
            field = ".".join(str(loc) for loc in error["loc"]) or "form"
            errors.setdefault(field, []).append(error["msg"])
        return None, errors
