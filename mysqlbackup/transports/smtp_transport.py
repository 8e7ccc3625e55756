"""
Transporte SMTP usando aiosmtplib
"""
import asyncio
import ssl
from email.mime.multipart import MIMEMultipart
from typing import List, Optional
import aiosmtplib
from .base_transport import MailTransport
from ..exceptions import ConfigurationError, MailTransportError
from ..models import RunnerConfig, SmtpConfig, TransportResult


class SmtpTransport(MailTransport):
    """
    Envía el mensaje a un servidor SMTP

    Cifrado soportado:
    - none: texto plano (puerto 25)
    - ssl: TLS implícito (puerto 465)
    - tls: STARTTLS (puerto 587)
    """

    name = "smtp"

    def __init__(self, smtp_config: SmtpConfig):
        """
        Inicializa el transporte SMTP

        Args:
            smtp_config: Parámetros de conexión
        """
        super().__init__()
        self.smtp_config = smtp_config

    @classmethod
    def from_config(cls, config: RunnerConfig) -> "SmtpTransport":
        """
        Crea el transporte SMTP

        Raises:
            ConfigurationError: si no se configuró el servidor SMTP
        """
        if config.smtp is None:
            raise ConfigurationError("Mailer smtp seleccionado sin configuración SMTP (set_smtp_config)")
        return cls(config.smtp)

    def _create_ssl_context(self) -> Optional[ssl.SSLContext]:
        if self.smtp_config.encryption == "none":
            return None
        return ssl.create_default_context()

    def _deliver(self, message: MIMEMultipart, sender: str, recipients: List[str]) -> TransportResult:
        try:
            errors = asyncio.run(self._send_async(message, sender, recipients))
        except aiosmtplib.SMTPException as e:
            raise MailTransportError(
                f"Error SMTP ({self.smtp_config.host}:{self.smtp_config.port}): {e}",
                transport=self.name
            ) from e
        except OSError as e:
            raise MailTransportError(
                f"Conexión SMTP fallida ({self.smtp_config.host}:{self.smtp_config.port}): {e}",
                transport=self.name
            ) from e

        rejected = list(errors.keys()) if errors else []
        if rejected:
            self.logger.warning(f"Destinatarios rechazados por SMTP: {', '.join(rejected)}")

        return TransportResult(
            transport=self.name,
            recipients_accepted=[r for r in recipients if r not in rejected],
            recipients_rejected=rejected,
            message_id=message["Message-ID"]
        )

    async def _send_async(self, message: MIMEMultipart, sender: str, recipients: List[str]) -> dict:
        smtp = aiosmtplib.SMTP(
            hostname=self.smtp_config.host,
            port=self.smtp_config.port,
            use_tls=self.smtp_config.encryption == "ssl",
            start_tls=self.smtp_config.encryption == "tls",
            tls_context=self._create_ssl_context(),
            timeout=self.smtp_config.timeout,
        )
        async with smtp:
            if self.smtp_config.username:
                await smtp.login(self.smtp_config.username, self.smtp_config.password)
            errors, _response = await smtp.send_message(
                message, sender=sender, recipients=recipients
            )
        return errors
