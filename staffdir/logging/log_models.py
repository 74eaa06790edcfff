from enum import Enum
from typing import Dict, Any, Optional
from datetime import datetime
import json
import uuid
import pytz


class LogLevel(Enum):
    """Уровни серьезности логов"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogSection(Enum):
    """Основные разделы системы"""
    USER = "user"
    SECURITY = "security"
    DATABASE = "database"
    SYSTEM = "system"
    API = "api"


class LogSubsection:
    """Подразделы для каждого раздела"""

    # USER подразделы
    class USER:
        VALIDATION = "validation"
        CREATE_SUCCESS = "create_success"
        UPDATE_SUCCESS = "update_success"
        DUPLICATE = "duplicate"
        NOT_FOUND = "not_found"
        REFRESH_TOKEN = "refresh_token"

    # SECURITY подразделы
    class SECURITY:
        PASSWORD_HASH = "password_hash"
        PASSWORD_HASH_FAILED = "password_hash_failed"
        AUTH_SUCCESS = "auth_success"
        AUTH_FAILED = "auth_failed"

    # DATABASE подразделы
    class DATABASE:
        CONNECTION = "connection"
        DISCONNECTION = "disconnection"
        INDEXES_CREATE = "indexes_create"
        INDEXES_SUCCESS = "indexes_success"
        INDEXES_ERROR = "indexes_error"

    # SYSTEM подразделы
    class SYSTEM:
        STARTUP = "startup"
        SHUTDOWN = "shutdown"

    # API подразделы
    class API:
        VALIDATION = "validation"
        ERROR = "error"


class StructuredLogEntry:
    """Модель структурированного лог-сообщения"""

    def __init__(
        self,
        level: LogLevel,
        section: LogSection,
        subsection: str,
        message: str,
        extra_data: Optional[Dict[str, Any]] = None,
        user_id: Optional[str] = None,
    ):
        # Справочник ведётся во Франции, поэтому время по Парижу
        paris_timezone = pytz.timezone('Europe/Paris')

        self.timestamp = datetime.now(paris_timezone).strftime('%Y-%m-%d %H:%M:%S %Z')
        self.log_id = str(uuid.uuid4())[:8]  # Короткий уникальный ID
        self.level = level.value
        self.section = section.value
        self.subsection = subsection
        self.message = message
        self.extra_data = extra_data or {}
        self.user_id = user_id

    def to_dict(self) -> Dict[str, Any]:
        """Преобразование в словарь для логирования"""
        log_dict = {
            "timestamp": self.timestamp,
            "log_id": self.log_id,
            "level": self.level,
            "section": self.section,
            "subsection": self.subsection,
            "message": self.message
        }

        # Добавляем опциональные поля если они есть
        if self.user_id:
            log_dict["user_id"] = self.user_id
        if self.extra_data:
            log_dict["extra_data"] = self.extra_data

        return log_dict

    def to_json_string(self) -> str:
        """Преобразование в JSON строку"""
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)
