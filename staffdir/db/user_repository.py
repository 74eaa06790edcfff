# staffdir/db/user_repository.py

from datetime import date, datetime, time
from typing import Any, Awaitable, Callable, Dict, List, Optional

from bson import ObjectId
from pydantic import BaseModel
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from staffdir.core.clock import Clock, utc_now
from staffdir.core.errors import (
    DuplicateValueError,
    HashingFailureError,
    UserNotFoundError,
    UserValidationError,
)
from staffdir.core.security import hash_password, verify_password
from staffdir.core.user_validator import ValidationResult, validate_user, validate_user_update
from staffdir.db.indexes import UNIQUE_INDEX_FIELDS, create_user_indexes
from staffdir.logging import get_logger, LogSection, LogSubsection
from staffdir.models.user_model import SECRET_FIELDS, UserModel
from staffdir.schemas.user_schemas import normalize_email

logger = get_logger("users.repository")

# Обычное чтение никогда не возвращает пароль и refreshToken
DEFAULT_PROJECTION = {field: 0 for field in SECRET_FIELDS}

Hasher = Callable[[str, int], Awaitable[str]]
Verifier = Callable[[str, str], Awaitable[bool]]


def to_storage(record: BaseModel, partial: bool = False) -> Dict[str, Any]:
    """Модель -> документ MongoDB (camelCase, даты как datetime)."""
    document = record.model_dump(by_alias=True, exclude_none=True, exclude_unset=partial)
    identity = document.get("identity")
    if identity and isinstance(identity.get("birthdayAt"), date):
        identity["birthdayAt"] = datetime.combine(identity["birthdayAt"], time.min)
    return document


def duplicate_field(exc: DuplicateKeyError) -> str:
    details = exc.details or {}
    key_pattern = details.get("keyPattern") or {}
    if key_pattern:
        return next(iter(key_pattern))
    # Старые серверы не присылают keyPattern - ищем имя индекса в сообщении
    text = str(exc)
    for index_name, field in UNIQUE_INDEX_FIELDS.items():
        if index_name in text:
            return field
    return "user"


class UserRepository:
    """
    Путь записи пользователей поверх коллекции motor.

    Создание: Draft -> валидация -> хеширование пароля -> вставка.
    Уникальность email/phone гарантируют индексы MongoDB.
    """

    def __init__(
        self,
        collection,
        hash_cost: int,
        hasher: Hasher = hash_password,
        verifier: Verifier = verify_password,
        clock: Clock = utc_now,
    ):
        self._collection = collection
        self._hash_cost = hash_cost
        self._hasher = hasher
        self._verifier = verifier
        self._clock = clock

    async def ensure_indexes(self):
        await create_user_indexes(self._collection)

    # -------------------------
    # ЗАПИСЬ
    # -------------------------
    async def create(self, candidate: Any) -> UserModel:
        now = self._clock()
        result = validate_user(candidate, now=now)
        self._raise_if_invalid(result)

        document = to_storage(result.record)
        document = await self._hash_new_password(document, is_new=True)
        document["createdAt"] = now
        document["updatedAt"] = now

        try:
            inserted = await self._collection.insert_one(document)
        except DuplicateKeyError as exc:
            raise self._duplicate(exc, document) from exc

        document["_id"] = inserted.inserted_id
        logger.info(
            section=LogSection.USER,
            subsection=LogSubsection.USER.CREATE_SUCCESS,
            message=f"Пользователь {document['email']} создан",
            user_id=str(inserted.inserted_id)
        )
        return UserModel.from_document(document).without_secrets()

    async def _hash_new_password(self, document: Dict[str, Any], is_new: bool) -> Dict[str, Any]:
        """
        Хеширует пароль только для новой записи и только если он передан.
        При ошибке запись не выполняется.
        """
        plain = document.get("password")
        if not is_new or plain is None:
            return document

        try:
            hashed = await self._hasher(plain, self._hash_cost)
        except Exception as exc:
            logger.error(
                section=LogSection.SECURITY,
                subsection=LogSubsection.SECURITY.PASSWORD_HASH_FAILED,
                message=f"Не удалось захешировать пароль: {exc}",
                extra_data={"hash_cost": self._hash_cost}
            )
            raise HashingFailureError(exc) from exc

        return {**document, "password": hashed}

    async def update(self, user_id: Any, changes: Any) -> UserModel:
        object_id = self._object_id(user_id)
        now = self._clock()
        result = validate_user_update(changes, now=now)
        self._raise_if_invalid(result)

        document = to_storage(result.record, partial=True)
        document["updatedAt"] = now
        update = {"$set": document}
        if result.cleared:
            update["$unset"] = {key: "" for key in result.cleared}

        try:
            updated = await self._collection.find_one_and_update(
                {"_id": object_id},
                update,
                projection=DEFAULT_PROJECTION,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError as exc:
            raise self._duplicate(exc, document) from exc

        if updated is None:
            raise self._not_found(user_id)

        logger.info(
            section=LogSection.USER,
            subsection=LogSubsection.USER.UPDATE_SUCCESS,
            message=f"Пользователь обновлён, поля: {', '.join(sorted([*document, *result.cleared]))}",
            user_id=str(object_id)
        )
        return UserModel.from_document(updated)

    async def set_refresh_token(self, user_id: Any, token: Optional[str]):
        object_id = self._object_id(user_id)
        result = await self._collection.update_one(
            {"_id": object_id},
            {"$set": {"refreshToken": token, "updatedAt": self._clock()}}
        )
        if result.matched_count == 0:
            raise self._not_found(user_id)

        logger.info(
            section=LogSection.USER,
            subsection=LogSubsection.USER.REFRESH_TOKEN,
            message="Refresh token сброшен" if token is None else "Refresh token сохранён",
            user_id=str(object_id)
        )

    # -------------------------
    # ЧТЕНИЕ
    # -------------------------
    async def get_by_id(self, user_id: Any, include_secrets: bool = False) -> UserModel:
        object_id = self._object_id(user_id)
        projection = None if include_secrets else DEFAULT_PROJECTION
        document = await self._collection.find_one({"_id": object_id}, projection)
        if document is None:
            raise self._not_found(user_id)
        return UserModel.from_document(document)

    async def get_by_email(self, email: str, include_secrets: bool = False) -> Optional[UserModel]:
        projection = None if include_secrets else DEFAULT_PROJECTION
        document = await self._collection.find_one({"email": normalize_email(email)}, projection)
        if document is None:
            return None
        return UserModel.from_document(document)

    async def list_users(self, skip: int = 0, limit: int = 50) -> List[UserModel]:
        cursor = self._collection.find({}, DEFAULT_PROJECTION).sort("createdAt", 1).skip(skip).limit(limit)
        documents = await cursor.to_list(length=limit)
        return [UserModel.from_document(doc) for doc in documents]

    async def authenticate(self, email: str, password: str) -> Optional[UserModel]:
        user = await self.get_by_email(email, include_secrets=True)
        if user is None or not user.password:
            logger.warning(
                section=LogSection.SECURITY,
                subsection=LogSubsection.SECURITY.AUTH_FAILED,
                message="Попытка входа с неизвестным email"
            )
            return None

        if not await self._verifier(password, user.password):
            logger.warning(
                section=LogSection.SECURITY,
                subsection=LogSubsection.SECURITY.AUTH_FAILED,
                message="Неверный пароль",
                user_id=user.id
            )
            return None

        logger.info(
            section=LogSection.SECURITY,
            subsection=LogSubsection.SECURITY.AUTH_SUCCESS,
            message="Пароль подтверждён",
            user_id=user.id
        )
        return user.without_secrets()

    # -------------------------
    # ВСПОМОГАТЕЛЬНОЕ
    # -------------------------
    def _raise_if_invalid(self, result: ValidationResult):
        if result.ok:
            return
        logger.warning(
            section=LogSection.USER,
            subsection=LogSubsection.USER.VALIDATION,
            message=f"Запись пользователя отклонена, нарушений: {len(result.errors)}",
            extra_data={"errors": [e.to_dict() for e in result.errors]}
        )
        raise UserValidationError(result.errors)

    def _duplicate(self, exc: DuplicateKeyError, document: Dict[str, Any]) -> DuplicateValueError:
        field = duplicate_field(exc)
        logger.warning(
            section=LogSection.USER,
            subsection=LogSubsection.USER.DUPLICATE,
            message=f"Значение поля {field} уже занято"
        )
        return DuplicateValueError(field, document.get(field))

    def _not_found(self, user_id: Any) -> UserNotFoundError:
        logger.warning(
            section=LogSection.USER,
            subsection=LogSubsection.USER.NOT_FOUND,
            message=f"Пользователь {user_id} не найден"
        )
        return UserNotFoundError(user_id)

    def _object_id(self, user_id: Any) -> ObjectId:
        if isinstance(user_id, ObjectId):
            return user_id
        if not ObjectId.is_valid(user_id):
            raise self._not_found(user_id)
        return ObjectId(user_id)
