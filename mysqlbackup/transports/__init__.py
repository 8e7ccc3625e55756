"""
Transportes de correo para el envío de backups
"""
from .base_transport import MailTransport
from .direct_transport import DirectTransport
from .smtp_transport import SmtpTransport

__all__ = [
    'MailTransport',
    'DirectTransport',
    'SmtpTransport'
]
