"""
Ошибки записей пользователей.

Ошибки валидации собираются пачкой (список FieldError) и не бросаются
по одной: вызывающий код показывает все проблемы сразу. Исключения
используются только на пути записи.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorKind(str, Enum):
    MISSING_REQUIRED_FIELD = "MissingRequiredField"
    INVALID_FORMAT = "InvalidFormat"
    OUT_OF_RANGE = "OutOfRange"
    DUPLICATE_VALUE = "DuplicateValue"
    HASHING_FAILURE = "HashingFailure"


@dataclass(frozen=True)
class FieldError:
    kind: ErrorKind
    field: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"kind": self.kind.value, "field": self.field, "message": self.message}


class UserRecordError(Exception):
    """Базовое исключение для операций с записями пользователей."""


class UserValidationError(UserRecordError):
    """Кандидат не прошёл валидацию; содержит все найденные нарушения."""

    def __init__(self, errors: List[FieldError]):
        self.errors = list(errors)
        fields = ", ".join(e.field for e in self.errors)
        super().__init__(f"User record is invalid: {fields}")


class DuplicateValueError(UserRecordError):
    def __init__(self, field: str, value: Any = None):
        self.field = field
        self.value = value
        self.error = FieldError(
            kind=ErrorKind.DUPLICATE_VALUE,
            field=field,
            message=f"{field} already exists",
        )
        super().__init__(self.error.message)


class HashingFailureError(UserRecordError):
    """Запись прервана: не удалось захешировать пароль."""

    def __init__(self, original: Optional[BaseException] = None):
        self.original = original
        self.error = FieldError(
            kind=ErrorKind.HASHING_FAILURE,
            field="password",
            message="Unable to write user record",
        )
        super().__init__(self.error.message)


class UserNotFoundError(UserRecordError):
    def __init__(self, user_id: Any):
        self.user_id = user_id
        super().__init__(f"User {user_id} not found")
