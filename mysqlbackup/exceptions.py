"""
Excepciones del sistema de backup
"""


class BackupError(Exception):
    """Excepción base del sistema de backup"""
    pass


class ConfigurationError(BackupError):
    """Archivo o valores de configuración inválidos"""
    pass


class MailTransportError(BackupError):
    """El transporte de correo no pudo entregar el mensaje"""
    def __init__(self, message: str, transport: str = "", results=None):
        self.message = message
        self.transport = transport
        self.results = results if results is not None else []
        super().__init__(self.message)


class FatalBackupError(SystemExit):
    """
    Condición fatal que termina el proceso

    Hereda de SystemExit: si nadie la captura, el intérprete termina con
    el mensaje en stderr y código de salida 1.
    """
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)
