import asyncio

from passlib.context import CryptContext

from staffdir.logging import get_logger, LogSection, LogSubsection

# Настройка логгера
logger = get_logger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Допустимые значения cost для bcrypt
MIN_HASH_COST = 4
MAX_HASH_COST = 31


def _hash_sync(plain_password: str, cost: int) -> str:
    return pwd_context.handler("bcrypt").using(rounds=cost).hash(plain_password)


async def hash_password(plain_password: str, cost: int) -> str:
    """
    Хеширует пароль bcrypt с заданной стоимостью.

    Вычисление тяжёлое, поэтому выполняется в отдельном потоке.
    Ошибки (в т.ч. недопустимый cost) пробрасываются вызывающему.
    """
    if isinstance(cost, bool) or not isinstance(cost, int):
        raise ValueError(f"Hash cost must be an integer, got {cost!r}")
    if not MIN_HASH_COST <= cost <= MAX_HASH_COST:
        raise ValueError(f"Hash cost must be between {MIN_HASH_COST} and {MAX_HASH_COST}, got {cost}")

    hashed = await asyncio.to_thread(_hash_sync, plain_password, cost)
    logger.debug(
        section=LogSection.SECURITY,
        subsection=LogSubsection.SECURITY.PASSWORD_HASH,
        message=f"Пароль захеширован (cost={cost})"
    )
    return hashed


async def verify_password(plain_password: str, hashed_password: str) -> bool:
    return await asyncio.to_thread(pwd_context.verify, plain_password, hashed_password)
