"""
Индексы MongoDB для коллекции пользователей (только уникальность)
"""
from pymongo import IndexModel

from staffdir.core.config import get_settings
from staffdir.logging import get_logger, LogSection, LogSubsection

logger = get_logger("database_indexes")

USER_INDEXES = [
    IndexModel([("email", 1)], name="email_uniq", unique=True),

    # phone: уникальный только для заполненных значений
    IndexModel(
        [("phone", 1)],
        name="phone_uniq",
        unique=True,
        partialFilterExpression={"phone": {"$type": "string"}}
    ),
]

# имя индекса -> поле, по которому он уникален
UNIQUE_INDEX_FIELDS = {"email_uniq": "email", "phone_uniq": "phone"}


async def create_user_indexes(collection):
    await collection.create_indexes(USER_INDEXES)
    logger.info(section=LogSection.DATABASE,
                subsection=LogSubsection.DATABASE.INDEXES_SUCCESS,
                message=f"Индексы для коллекции {collection.name} созданы")


async def create_database_indexes(db):
    logger.info(
        section=LogSection.DATABASE,
        subsection=LogSubsection.DATABASE.INDEXES_CREATE,
        message="Начинаем создание индексов базы данных"
    )

    try:
        await create_user_indexes(db[get_settings().USERS_COLLECTION])
    except Exception as e:
        logger.error(
            section=LogSection.DATABASE,
            subsection=LogSubsection.DATABASE.INDEXES_ERROR,
            message=f"Ошибка при создании индексов: {str(e)}"
        )
        raise
