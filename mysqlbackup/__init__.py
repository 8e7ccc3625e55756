"""
Backup de bases de datos MySQL con envío por correo
"""
__version__ = "1.0.0"

from .config import Config
from .logger import LoggerService
from .services.backup_runner import BackupRunner

__all__ = ['Config', 'LoggerService', 'BackupRunner']
