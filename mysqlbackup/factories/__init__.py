"""
Factories del sistema de backup
"""
from .transport_factory import TransportFactory

__all__ = [
    'TransportFactory'
]
