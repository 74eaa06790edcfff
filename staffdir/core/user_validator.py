"""
Проверка кандидата в записи пользователя.

Ограничения объявлены на схемах (staffdir.schemas.user_schemas); здесь
они применяются, а ошибки pydantic превращаются в пачку FieldError.
Невалидный ввод никогда не бросает исключение - возвращается результат.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional, Type

from pydantic import BaseModel, ValidationError

from staffdir.core.clock import utc_now
from staffdir.core.errors import FieldError
from staffdir.core.validation_translator import forbidden_error, missing_error, translate_errors
from staffdir.logging import get_logger, LogSection, LogSubsection
from staffdir.schemas.user_schemas import CLEARABLE_FIELDS, UserCreate, UserUpdate

logger = get_logger(__name__)


@dataclass
class ValidationResult:
    record: Optional[BaseModel] = None
    errors: List[FieldError] = field(default_factory=list)
    # Ключи хранилища, которые обновление стирает ($unset)
    cleared: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def _validate(schema: Type[BaseModel], candidate: Any, now: Optional[datetime]) -> ValidationResult:
    context = {"now": now or utc_now()}
    try:
        record = schema.model_validate(candidate, context=context)
    except ValidationError as exc:
        errors = translate_errors(exc.errors(include_url=False))
        logger.debug(
            section=LogSection.USER,
            subsection=LogSubsection.USER.VALIDATION,
            message=f"{schema.__name__}: найдено нарушений - {len(errors)}",
            extra_data={"fields": [e.field for e in errors]}
        )
        return ValidationResult(errors=errors)
    return ValidationResult(record=record)


def validate_user(candidate: Any, now: Optional[datetime] = None) -> ValidationResult:
    """Полная проверка новой записи; now - показание часов для даты рождения."""
    return _validate(UserCreate, candidate, now)


def _storage_key(key: str) -> Optional[str]:
    for name, info in UserUpdate.model_fields.items():
        if key in (name, info.alias):
            return info.alias or name
    return None


def validate_user_update(changes: Any, now: Optional[datetime] = None) -> ValidationResult:
    """
    Проверка частичного обновления.

    null в phone, department или address означает "стереть поле" и попадает
    в result.cleared; null в identity, email или userCategory - нарушение,
    эти поля у записи обязательны.
    """
    result = _validate(UserUpdate, changes, now)
    if not isinstance(changes, dict):
        return result

    cleared, errors = [], []
    for key, value in changes.items():
        if value is not None:
            continue
        storage_key = _storage_key(key)
        if storage_key is None:
            errors.append(forbidden_error(key))
        elif storage_key in CLEARABLE_FIELDS:
            cleared.append(storage_key)
        else:
            errors.append(missing_error(storage_key))

    if errors or not result.ok:
        return ValidationResult(errors=result.errors + errors)
    result.cleared = cleared
    return result
