# staffdir/models/user_model.py

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError


class UserCategoryList(str, Enum):
    DOCTOR = "doctor"
    VETERINARIAN = "veterinarian"
    NURSE = "nurse"
    PHARMACIST = "pharmacist"


class UserCategoryDetailList(str, Enum):
    PRACTICING = "practicing"
    IN_STUDY = "in-study"


# Поля, которые не отдаются при обычном чтении
SECRET_FIELDS = ("password", "refreshToken")


class CamelModel(BaseModel):
    """
    База для всех моделей пользователя.

    В MongoDB и в API поля в camelCase (firstName, userCategory...),
    в Python - snake_case. Ключ со значением None считается отсутствующим,
    пустая строка в обязательном поле - тоже.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )

    @model_validator(mode="before")
    @classmethod
    def drop_absent_values(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        required = set()
        for name, field in cls.model_fields.items():
            if field.is_required():
                required.update((name, field.alias or name))
        return {
            key: value for key, value in data.items()
            if value is not None and not (value == "" and key in required)
        }


class Identity(CamelModel):
    first_name: str = Field(..., min_length=2, description="Имя")
    last_name: str = Field(..., min_length=2, description="Фамилия")
    birthday_at: date = Field(..., description="Дата рождения, не позже сегодняшнего дня")

    @field_validator("birthday_at", mode="before")
    @classmethod
    def datetime_to_date(cls, v):
        # MongoDB хранит даты как datetime, JS-клиенты шлют toISOString()
        if isinstance(v, str) and len(v) > 10:
            try:
                v = datetime.fromisoformat(v.replace("Z", "+00:00"))
            except ValueError:
                return v
        if isinstance(v, datetime):
            if v.tzinfo is not None:
                v = v.astimezone(timezone.utc)
            return v.date()
        return v

    @field_validator("birthday_at")
    @classmethod
    def birthday_not_in_future(cls, v: date, info: ValidationInfo) -> date:
        # Граница проверяется только при записи; чтение из базы идёт без "now"
        now = (info.context or {}).get("now")
        if now is None:
            return v
        if v > now.date():
            raise PydanticCustomError("out_of_range", "Date can't be later than today")
        return v


class UserCategory(CamelModel):
    main_category: UserCategoryList
    detail_category: UserCategoryDetailList


class Address(CamelModel):
    first_address_field: Optional[str] = None
    second_address_field: Optional[str] = None
    third_address_field: Optional[str] = None
    city: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None


class UserModel(CamelModel):
    """
    Запись пользователя в том виде, в каком она лежит в коллекции users.
    Служит для преобразований "dict <-> объект".
    """
    # Поле _id из MongoDB
    id: Optional[str] = Field(None, alias="_id")

    identity: Identity
    email: str
    # Хэш пароля; None, если поле не запрашивалось
    password: Optional[str] = None
    user_category: UserCategory
    phone: Optional[str] = None
    department: Optional[str] = None
    address: Optional[Address] = None
    refresh_token: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def object_id_to_str(cls, v):
        if isinstance(v, ObjectId):
            return str(v)
        return v

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "UserModel":
        return cls.model_validate(document)

    def without_secrets(self) -> "UserModel":
        return self.model_copy(update={"password": None, "refresh_token": None})
