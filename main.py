# main.py

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.status import (
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_422_UNPROCESSABLE_ENTITY,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from staffdir.core.config import get_settings
from staffdir.core.errors import (
    DuplicateValueError,
    HashingFailureError,
    UserNotFoundError,
    UserValidationError,
)
from staffdir.core.response import error
from staffdir.db.database import close_client, get_database
from staffdir.db.indexes import create_database_indexes
from staffdir.logging import setup_application_logging, get_logger, LogSection, LogSubsection
from staffdir.routers import user_router

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        section=LogSection.SYSTEM,
        subsection=LogSubsection.SYSTEM.STARTUP,
        message="Запуск приложения: создание индексов"
    )
    await create_database_indexes(await get_database())
    yield
    close_client()
    logger.info(
        section=LogSection.SYSTEM,
        subsection=LogSubsection.SYSTEM.SHUTDOWN,
        message="Приложение остановлено"
    )


async def user_validation_handler(request: Request, exc: UserValidationError):
    logger.warning(
        section=LogSection.API,
        subsection=LogSubsection.API.VALIDATION,
        message=f"Ошибка валидации записи для пути {request.url.path} (метод: {request.method})"
    )
    return error(
        code=HTTP_422_UNPROCESSABLE_ENTITY,
        message="; ".join(e.message for e in exc.errors),
        details=[e.to_dict() for e in exc.errors]
    )


async def duplicate_value_handler(request: Request, exc: DuplicateValueError):
    return error(code=HTTP_409_CONFLICT, message=exc.error.message, details=[exc.error.to_dict()])


async def hashing_failure_handler(request: Request, exc: HashingFailureError):
    logger.error(
        section=LogSection.API,
        subsection=LogSubsection.API.ERROR,
        message=f"Запись прервана для пути {request.url.path}: {exc.original!r}"
    )
    return error(code=HTTP_500_INTERNAL_SERVER_ERROR, message=exc.error.message)


async def user_not_found_handler(request: Request, exc: UserNotFoundError):
    return error(code=HTTP_404_NOT_FOUND, message="User not found", details={"path": request.url.path})


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    path = request.url.path
    logger.warning(
        section=LogSection.API,
        subsection=LogSubsection.API.ERROR,
        message=f"HTTP исключение {exc.status_code} для пути {path} (метод: {request.method}) - {exc.detail}"
    )
    if isinstance(exc.detail, str):
        return error(code=exc.status_code, message=exc.detail, details={"path": path})
    return error(code=exc.status_code, message="Request error", details={"path": path})


async def request_validation_handler(request: Request, exc: RequestValidationError):
    error_list = []
    for err in exc.errors():
        field = err.get("loc", ["unknown"])[-1]
        message = err.get("msg", "Invalid value")
        # Удаляем префикс "Value error, " если он присутствует
        prefix = "Value error, "
        if message.startswith(prefix):
            message = message[len(prefix):]
        error_list.append({"field": str(field), "message": message})

    logger.warning(
        section=LogSection.API,
        subsection=LogSubsection.API.VALIDATION,
        message=f"Ошибка валидации запроса для пути {request.url.path} (метод: {request.method})"
    )
    return error(
        code=HTTP_422_UNPROCESSABLE_ENTITY,
        message="; ".join(f"{item['field']}: {item['message']}" for item in error_list),
        details=error_list
    )


def create_application(with_lifespan: bool = True) -> FastAPI:
    setup_application_logging()
    settings = get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        lifespan=lifespan if with_lifespan else None,
    )

    # Подключаем роутеры
    app.include_router(user_router.router, prefix="/users", tags=["Users"])

    app.add_exception_handler(UserValidationError, user_validation_handler)
    app.add_exception_handler(DuplicateValueError, duplicate_value_handler)
    app.add_exception_handler(HashingFailureError, hashing_failure_handler)
    app.add_exception_handler(UserNotFoundError, user_not_found_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    @app.get("/health", tags=["health"])
    async def health_check():
        return {"status": "healthy", "app": settings.APP_NAME, "version": settings.APP_VERSION}

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:create_application", factory=True, host="0.0.0.0", port=8000)
