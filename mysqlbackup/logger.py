"""
Logging del sistema de backup: archivo diario por componente y consola
"""
import logging
import re
import sys
from datetime import datetime
from .config import Config


class CredentialFilter(logging.Filter):
    """Oculta passwords que lleguen a un mensaje de log"""

    _PATTERN = re.compile(r"(--password=|password=)(\S+)", re.IGNORECASE)

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = self._PATTERN.sub(r"\1***", message)
        if masked != message:
            record.msg = masked
            record.args = ()
        return True


class LoggerService:
    """Crea y cachea los loggers de cada componente"""

    _loggers = {}
    _level = Config.LOG_LEVEL

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """
        Obtiene o crea el logger del componente indicado

        Args:
            name: Nombre del componente (BackupRunner, MailService, ...)

        Returns:
            Logger bajo el espacio de nombres "mysqlbackup"
        """
        if name not in cls._loggers:
            cls._loggers[name] = cls._build_logger(name)
        return cls._loggers[name]

    @classmethod
    def set_level(cls, level: int):
        """
        Cambia el nivel de todos los loggers, existentes y futuros

        Args:
            level: Nivel de logging (logging.DEBUG, logging.INFO, ...)
        """
        cls._level = level
        for logger in cls._loggers.values():
            logger.setLevel(level)
            for handler in logger.handlers:
                handler.setLevel(level)

    @classmethod
    def _build_logger(cls, name: str) -> logging.Logger:
        logger = logging.getLogger(f"mysqlbackup.{name}")
        logger.setLevel(cls._level)

        # Un logger ya configurado (p. ej. recargado en tests) conserva sus handlers
        if logger.handlers:
            return logger

        Config.LOG_DIR.mkdir(parents=True, exist_ok=True)
        log_file = Config.LOG_DIR / f"{name}_{datetime.now().strftime('%Y%m%d')}.log"
        formatter = logging.Formatter(Config.LOG_FORMAT)
        credential_filter = CredentialFilter()

        for handler in (logging.FileHandler(log_file, encoding='utf-8'),
                        logging.StreamHandler(sys.stdout)):
            handler.setLevel(cls._level)
            handler.setFormatter(formatter)
            handler.addFilter(credential_filter)
            logger.addHandler(handler)

        return logger
