from typing import Any, Dict, Iterable, List, Sequence

from staffdir.core.errors import ErrorKind, FieldError

FIELD_LABELS = {
    "identity": "identity",
    "firstName": "firstName",
    "lastName": "lastName",
    "birthdayAt": "birthday",
    "email": "Email",
    "password": "Password",
    "userCategory": "Category",
    "mainCategory": "main Category",
    "detailCategory": "Category second",
}

# Тип ошибки pydantic -> вид нарушения
ERROR_KINDS = {
    "missing": ErrorKind.MISSING_REQUIRED_FIELD,
    "string_too_short": ErrorKind.OUT_OF_RANGE,
    "string_too_long": ErrorKind.OUT_OF_RANGE,
    "out_of_range": ErrorKind.OUT_OF_RANGE,
}


def field_path(loc: Sequence[Any]) -> str:
    parts = [str(part) for part in loc if not isinstance(part, int)]
    return ".".join(parts) or "user"


def _label(loc: Sequence[Any]) -> str:
    key = str(loc[-1]) if loc else "user"
    return FIELD_LABELS.get(key, key)


def _message(err_type: str, loc: Sequence[Any], err: Dict[str, Any]) -> str:
    label = _label(loc)
    if err_type == "missing":
        return f"{label} is required"
    if err_type == "string_too_short":
        return f"{label} is too small"
    if err_type == "extra_forbidden":
        return f"{label} cannot be set here"
    return err.get("msg", "Invalid value")


def missing_error(field: str) -> FieldError:
    return FieldError(
        kind=ErrorKind.MISSING_REQUIRED_FIELD,
        field=field,
        message=_message("missing", (field,), {}),
    )


def forbidden_error(field: str) -> FieldError:
    return FieldError(
        kind=ErrorKind.INVALID_FORMAT,
        field=field,
        message=_message("extra_forbidden", (field,), {}),
    )


def translate_errors(errors: Iterable[Dict[str, Any]]) -> List[FieldError]:
    """
    Переводит ошибки pydantic в список FieldError.
    Порядок сохраняется, каждое нарушение - отдельная запись.
    """
    translated = []
    for err in errors:
        err_type = err.get("type", "")
        loc = err.get("loc", ())
        translated.append(FieldError(
            kind=ERROR_KINDS.get(err_type, ErrorKind.INVALID_FORMAT),
            field=field_path(loc),
            message=_message(err_type, loc, err),
        ))
    return translated
