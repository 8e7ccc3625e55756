"""
Transporte directo: entrega local mediante el binario sendmail
"""
import subprocess
from email.mime.multipart import MIMEMultipart
from typing import List
from .base_transport import MailTransport
from ..exceptions import MailTransportError
from ..models import RunnerConfig, TransportResult


class DirectTransport(MailTransport):
    """Envía el mensaje a través del sendmail local (equivalente a mail() de PHP)"""

    name = "direct"

    def __init__(self, sendmail_path: str = "/usr/sbin/sendmail", timeout: float = 60.0):
        """
        Inicializa el transporte directo

        Args:
            sendmail_path: Ruta al ejecutable sendmail
            timeout: Segundos máximos de espera
        """
        super().__init__()
        self.sendmail_path = sendmail_path
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: RunnerConfig) -> "DirectTransport":
        return cls(config.sendmail_path)

    def _deliver(self, message: MIMEMultipart, sender: str, recipients: List[str]) -> TransportResult:
        # -t: destinatarios desde cabeceras, -i: no cortar en líneas con "."
        cmd = [self.sendmail_path, "-t", "-i", "-f", sender]
        try:
            result = subprocess.run(
                cmd,
                input=message.as_bytes(),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=self.timeout
            )
        except subprocess.TimeoutExpired as e:
            raise MailTransportError(
                f"Timeout: sendmail tardó más de {self.timeout}s", transport=self.name
            ) from e
        except OSError as e:
            raise MailTransportError(
                f"No se pudo ejecutar {self.sendmail_path}: {e}", transport=self.name
            ) from e

        if result.returncode != 0:
            stderr = result.stderr.decode('utf-8', errors='replace').strip()
            raise MailTransportError(
                f"sendmail terminó con código {result.returncode}: {stderr}",
                transport=self.name
            )

        return TransportResult(
            transport=self.name,
            recipients_accepted=list(recipients),
            message_id=message["Message-ID"]
        )
