"""
Servicio de envío de los backups por correo
"""
from pathlib import Path
from typing import Callable, List, Optional
from ..logger import LoggerService
from ..models import RunnerConfig, TransportResult
from ..factories.transport_factory import TransportFactory


class MailService:
    """Envía un único correo con todos los backups adjuntos"""

    def __init__(self, config: RunnerConfig, abort: Callable[[str], None]):
        """
        Inicializa el servicio de correo

        Args:
            config: Opciones del runner
            abort: Función que termina el proceso ante una condición fatal

        Raises:
            ConfigurationError: si el mailer seleccionado no puede construirse
        """
        self.config = config
        self.abort = abort
        self.logger = LoggerService.get_logger("MailService")
        # Se crea al inicio: un mailer mal configurado falla antes de los volcados
        self.transport = TransportFactory.create(config) if config.mail_enabled else None

    def send_backups(self, paths: List[str]) -> Optional[TransportResult]:
        """
        Envía los archivos indicados como adjuntos

        Si falta cualquiera de los archivos se aborta antes de contactar al
        transporte: no hay envíos parciales.

        Args:
            paths: Rutas de los backups generados

        Returns:
            Resultado del transporte, o None si no hay paso de correo

        Raises:
            MailTransportError: si el transporte falla
        """
        if self.transport is None:
            self.logger.info("Envío de correo deshabilitado o sin destinatarios")
            return None

        for path in paths:
            if not Path(path).exists():
                self.abort(f"Path of backup file not found: {path}")

        result = self.transport.send(
            subject=self.config.subject,
            sender=self.config.sender,
            recipients=list(self.config.recipients),
            body="",
            attachments=list(paths)
        )
        self.logger.info(
            f"Correo aceptado para {len(result.recipients_accepted)} de "
            f"{len(self.config.recipients)} destinatario(s) ({result.transport})"
        )
        return result
