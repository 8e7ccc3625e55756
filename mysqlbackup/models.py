"""
Modelos de datos del sistema
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional
from .config import Config


class MailerKind(Enum):
    """Mecanismo de envío del correo con los backups"""
    NONE = "none"
    DIRECT = "direct"
    SMTP = "smtp"

    @classmethod
    def parse(cls, value: Optional[str]) -> "MailerKind":
        """
        Convierte el nombre de un mailer en MailerKind

        "mail" se acepta como alias de "direct". Cualquier valor desconocido
        equivale a NONE (sin envío), nunca a un error.
        """
        if not value:
            return cls.NONE
        name = value.strip().lower()
        if name == "mail":
            return cls.DIRECT
        for kind in cls:
            if kind.value == name:
                return kind
        return cls.NONE


@dataclass(frozen=True)
class JobDescriptor:
    """Base de datos a respaldar"""
    schema: str
    username: str
    password: str = field(default="", repr=False)
    host: str = ""

    def __post_init__(self):
        """Validación después de inicialización"""
        if not self.schema:
            raise ValueError("El schema de la base de datos es obligatorio")
        if not self.username:
            raise ValueError("El usuario de la base de datos es obligatorio")


@dataclass
class SmtpConfig:
    """Parámetros de conexión SMTP"""
    host: str
    username: str = ""
    password: str = field(default="", repr=False)
    port: int = Config.DEFAULT_SMTP_PORT
    encryption: str = "none"
    timeout: float = Config.DEFAULT_SMTP_TIMEOUT

    def __post_init__(self):
        """Validación después de inicialización"""
        if not self.host:
            raise ValueError("El host SMTP es obligatorio")
        if self.encryption not in Config.SMTP_ENCRYPTIONS:
            raise ValueError(
                f"Cifrado SMTP no soportado: {self.encryption} "
                f"(valores: {', '.join(Config.SMTP_ENCRYPTIONS)})"
            )


@dataclass
class RunnerConfig:
    """Opciones del runner para toda la ejecución"""
    output_dir: str = ""
    date_format: str = Config.DEFAULT_DATE_FORMAT
    extension: str = Config.DEFAULT_EXTENSION
    dump_path: str = ""
    dump_executable: str = Config.DEFAULT_DUMP_EXECUTABLE
    compressor_path: str = ""
    compressor: str = Config.DEFAULT_COMPRESSOR
    dump_options: str = Config.DEFAULT_DUMP_OPTIONS
    delete_after_backup: bool = False
    mailer: MailerKind = MailerKind.NONE
    smtp: Optional[SmtpConfig] = None
    sender: str = Config.DEFAULT_SENDER
    recipients: List[str] = field(default_factory=list)
    subject: str = Config.DEFAULT_SUBJECT
    timeout: Optional[float] = None
    sendmail_path: str = Config.DEFAULT_SENDMAIL_PATH

    @property
    def mail_enabled(self) -> bool:
        """True si hay mailer seleccionado y destinatarios"""
        return self.mailer is not MailerKind.NONE and len(self.recipients) > 0


@dataclass
class BackupResult:
    """Resultado de una operación de backup"""
    database_name: str
    success: bool
    output_file: Optional[str] = None
    exit_status: Optional[int] = None
    dump_exit_code: Optional[int] = None
    compress_exit_code: Optional[int] = None
    error: Optional[str] = None
    duration_seconds: float = 0.0

    def __str__(self):
        if self.success:
            return f"✓ {self.database_name}: {self.output_file} ({self.duration_seconds:.2f}s)"
        else:
            return f"✗ {self.database_name}: {self.error} (exit={self.exit_status})"


@dataclass(frozen=True)
class TransportResult:
    """Resultado del envío de un correo"""
    transport: str
    recipients_accepted: List[str] = field(default_factory=list)
    recipients_rejected: List[str] = field(default_factory=list)
    message_id: Optional[str] = None

    @property
    def success(self) -> bool:
        return len(self.recipients_accepted) > 0
