"""
Factory para crear transportes de correo
"""
from typing import Optional
from ..models import MailerKind, RunnerConfig
from ..transports.base_transport import MailTransport
from ..transports.direct_transport import DirectTransport
from ..transports.smtp_transport import SmtpTransport


class TransportFactory:
    """Factory para crear transportes de correo (Factory Pattern)"""

    # Mapeo de mailers a transportes
    _transports = {
        MailerKind.DIRECT: DirectTransport,
        MailerKind.SMTP: SmtpTransport,
    }

    @classmethod
    def create(cls, config: RunnerConfig) -> Optional[MailTransport]:
        """
        Crea el transporte correspondiente al mailer configurado

        Args:
            config: Opciones del runner

        Returns:
            Instancia de MailTransport o None si no hay paso de correo

        Raises:
            ConfigurationError: si el mailer no tiene los parámetros que necesita
        """
        transport_class = cls._transports.get(config.mailer)
        if transport_class is None:
            return None
        return transport_class.from_config(config)

    @classmethod
    def get_supported_mailers(cls) -> list:
        """
        Obtiene los nombres de mailer con transporte

        Returns:
            Lista de nombres soportados
        """
        return [kind.value for kind in cls._transports]
