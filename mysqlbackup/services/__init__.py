"""
Servicios de la aplicación
"""
from .backup_runner import BackupRunner
from .cleanup_service import CleanupService
from .mail_service import MailService
from .scheduler_service import SchedulerService

__all__ = [
    'BackupRunner',
    'CleanupService',
    'MailService',
    'SchedulerService'
]
