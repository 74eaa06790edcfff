# validators + схемы записи/чтения пользователя (Pydantic v2)
from typing import Optional
from datetime import datetime
import re

from pydantic import ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError

from staffdir.models.user_model import Address, CamelModel, Identity, UserCategory, UserModel

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")
# Французские номера: 0X, +33 X или 0033 X, затем четыре пары цифр
PHONE_PATTERN = re.compile(r"^(?:(?:\+|00)33|0)\s*[1-9](?:[\s.-]*\d{2}){4}$")
PHONE_SEPARATORS = re.compile(r"[\s.-]")
PHONE_COUNTRY_PREFIX = re.compile(r"^(?:\+|00)33")

PASSWORD_MIN_LENGTH = 8

# Необязательные поля, которые обновление может стереть через null
CLEARABLE_FIELDS = ("phone", "department", "address")


def normalize_email(value: str) -> str:
    return value.strip().lower()


def validate_email(value: str) -> str:
    value = normalize_email(value)
    if not value:
        raise PydanticCustomError("missing", "Email is required")
    if not EMAIL_PATTERN.search(value):
        raise PydanticCustomError("invalid_format", "Invalid email")
    return value


def validate_phone(value: str) -> str:
    value = value.strip()
    if not PHONE_PATTERN.fullmatch(value):
        raise PydanticCustomError("invalid_format", "Invalid phone")
    # Один номер - одна запись, как бы его ни написали: 0612345678
    value = PHONE_SEPARATORS.sub("", value)
    return PHONE_COUNTRY_PREFIX.sub("0", value)


# --- СХЕМЫ ---
class UserCreate(CamelModel):
    """Кандидат на создание записи. Неизвестные поля отбрасываются."""

    identity: Identity
    email: str
    password: str = Field(..., min_length=PASSWORD_MIN_LENGTH)
    user_category: UserCategory
    phone: Optional[str] = None
    department: Optional[str] = None
    address: Optional[Address] = None

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {
                "identity": {"firstName": "Jeanne", "lastName": "Martin", "birthdayAt": "1988-04-12"},
                "email": "jeanne.martin@example.fr",
                "password": "longenough1",
                "userCategory": {"mainCategory": "nurse", "detailCategory": "practicing"},
                "phone": "06 12 34 56 78",
                "department": "Urgences",
                "address": {"city": "Lyon", "zipCode": "69003", "country": "France"},
            }
        },
    )

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v): return validate_email(v)

    @field_validator("phone")
    @classmethod
    def validate_phone_field(cls, v): return validate_phone(v)


class UserUpdate(CamelModel):
    """
    Частичное обновление. Указывайте только поля, которые хотите изменить;
    вложенные объекты заменяются целиком. null в phone, department или
    address стирает поле. Пароль и refreshToken здесь не меняются.
    """

    identity: Optional[Identity] = None
    email: Optional[str] = None
    user_category: Optional[UserCategory] = None
    phone: Optional[str] = None
    department: Optional[str] = None
    address: Optional[Address] = None

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "example": {
                "phone": "+33 6 98 76 54 32",
                "department": "Pédiatrie",
            }
        },
    )

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v): return validate_email(v)

    @field_validator("phone")
    @classmethod
    def validate_phone_field(cls, v): return validate_phone(v)


class UserOut(CamelModel):
    """
    Схема для отображения информации о пользователе (без пароля и токена).
    """
    id: str
    identity: Identity
    email: str
    user_category: UserCategory
    phone: Optional[str] = None
    department: Optional[str] = None
    address: Optional[Address] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, user: UserModel) -> "UserOut":
        return cls.model_validate(user.model_dump(exclude={"password", "refresh_token"}))
