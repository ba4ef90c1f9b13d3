"""Form models and validation.

Forms are parsed from the request body and validated with pydantic. On
failure each message is flashed under `errors` and the handler redirects
back to the form.
"""

from __future__ import annotations

import re
from typing import TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from starlette.requests import Request

from hackathon_starter.middleware.flash import flash

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 4

FormT = TypeVar("FormT", bound=BaseModel)


def _email(value: str) -> str:
    value = (value or "").strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Please enter a valid email address.")
    return value


def _password(value: str) -> str:
    if len(value or "") < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.")
    return value


def _required(value: str, message: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValueError(message)
    return value


class Form(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", validate_default=True)


class LoginForm(Form):
    email: str = ""
    password: str = ""

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: str) -> str:
        return _email(v)

    @field_validator("password")
    @classmethod
    def password_not_blank(cls, v: str) -> str:
        if not v:
            raise ValueError("Password cannot be blank.")
        return v


class PasswordPair(Form):
    password: str = ""
    confirm_password: str = Field(default="", alias="confirmPassword")

    @field_validator("password")
    @classmethod
    def password_length(cls, v: str) -> str:
        return _password(v)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match.")
        return self


class SignupForm(PasswordPair):
    email: str = ""

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: str) -> str:
        return _email(v)


class ForgotForm(Form):
    email: str = ""

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: str) -> str:
        return _email(v)


class ProfileForm(Form):
    email: str = ""
    name: str | None = None
    gender: str | None = None
    location: str | None = None
    website: str | None = None

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: str) -> str:
        return _email(v)

    @field_validator("name", "gender", "location", "website")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        v = (v or "").strip()
        return v or None


class ContactForm(Form):
    name: str = ""
    email: str = ""
    message: str = ""

    @field_validator("name")
    @classmethod
    def name_required(cls, v: str) -> str:
        return _required(v, "Name cannot be blank.")

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: str) -> str:
        return _email(v)

    @field_validator("message")
    @classmethod
    def message_required(cls, v: str) -> str:
        return _required(v, "Message cannot be blank.")


class TweetForm(Form):
    tweet: str = ""

    @field_validator("tweet")
    @classmethod
    def tweet_required(cls, v: str) -> str:
        return _required(v, "Tweet cannot be empty.")


class PinForm(Form):
    board: str = ""
    note: str = ""
    image_url: str = ""

    @field_validator("board")
    @classmethod
    def board_required(cls, v: str) -> str:
        return _required(v, "Board is required.")

    @field_validator("note")
    @classmethod
    def note_required(cls, v: str) -> str:
        return _required(v, "Note cannot be blank.")

    @field_validator("image_url")
    @classmethod
    def image_required(cls, v: str) -> str:
        return _required(v, "Image URL cannot be blank.")


class StripeForm(Form):
    stripe_token: str = Field(default="", alias="stripeToken")
    stripe_email: str = Field(default="", alias="stripeEmail")

    @field_validator("stripe_token")
    @classmethod
    def token_required(cls, v: str) -> str:
        return _required(v, "Card token is required.")

    @field_validator("stripe_email")
    @classmethod
    def email_valid(cls, v: str) -> str:
        return _email(v)


class SmsForm(Form):
    number: str = Field(default="", alias="telephone")
    message: str = "Hello from the Hackathon Starter"

    @field_validator("number")
    @classmethod
    def number_required(cls, v: str) -> str:
        return _required(v, "Phone number is required.")


def validation_messages(error: ValidationError) -> list[str]:
    """Human-readable messages for a pydantic validation error."""
    messages = []
    for item in error.errors():
        ctx_error = item.get("ctx", {}).get("error")
        messages.append(str(ctx_error) if ctx_error else item["msg"])
    return messages


async def read_form(request: Request, form_cls: type[FormT]) -> FormT | None:
    """Parse and validate the request body, flashing errors on failure."""
    form = await request.form()
    data = {key: value for key, value in form.items() if isinstance(value, str)}
    try:
        return form_cls.model_validate(data)
    except ValidationError as e:
        for message in validation_messages(e):
            flash(request, "errors", message)
        return None
