"""
Estrategias de volcado de bases de datos
"""
from .base_strategy import DumpStrategy
from .mysql_strategy import MySQLDumpStrategy

__all__ = [
    'DumpStrategy',
    'MySQLDumpStrategy'
]
