"""
Transporte base para el envío de correos con adjuntos
"""
import uuid
from abc import ABC, abstractmethod
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formatdate
from pathlib import Path
from typing import List
from ..logger import LoggerService
from ..models import RunnerConfig, TransportResult


class MailTransport(ABC):
    """Interfaz abstracta para transportes de correo"""

    name = "base"

    def __init__(self):
        """Inicializa el transporte"""
        self.logger = LoggerService.get_logger(self.__class__.__name__)

    @classmethod
    @abstractmethod
    def from_config(cls, config: RunnerConfig) -> "MailTransport":
        """Crea el transporte a partir de las opciones del runner"""
        pass

    def send(
        self,
        subject: str,
        sender: str,
        recipients: List[str],
        body: str,
        attachments: List[str]
    ) -> TransportResult:
        """
        Construye el mensaje MIME y lo entrega

        Args:
            subject: Asunto del correo
            sender: Dirección del remitente
            recipients: Destinatarios
            body: Cuerpo en texto plano
            attachments: Rutas de archivos a adjuntar

        Returns:
            Resultado del envío

        Raises:
            MailTransportError: si el transporte no pudo entregar el mensaje
        """
        message = self.build_message(subject, sender, recipients, body, attachments)
        self.logger.info(
            f"Enviando '{subject}' a {len(recipients)} destinatario(s) "
            f"con {len(attachments)} adjunto(s) vía {self.name}"
        )
        return self._deliver(message, sender, recipients)

    @abstractmethod
    def _deliver(self, message: MIMEMultipart, sender: str, recipients: List[str]) -> TransportResult:
        """Entrega un mensaje ya construido"""
        pass

    def build_message(
        self,
        subject: str,
        sender: str,
        recipients: List[str],
        body: str,
        attachments: List[str]
    ) -> MIMEMultipart:
        """
        Construye el mensaje multipart con los adjuntos

        Returns:
            MIMEMultipart listo para enviar
        """
        message = MIMEMultipart("mixed")
        message["From"] = sender
        message["To"] = ", ".join(recipients)
        message["Subject"] = subject
        message["Date"] = formatdate(localtime=True)
        message["Message-ID"] = f"<{uuid.uuid4()}@{sender.rpartition('@')[2] or 'localhost'}>"

        message.attach(MIMEText(body, "plain", "utf-8"))

        for path in attachments:
            file_path = Path(path)
            with open(file_path, "rb") as f:
                part = MIMEApplication(f.read(), Name=file_path.name)
            part["Content-Disposition"] = f'attachment; filename="{file_path.name}"'
            message.attach(part)

        return message
