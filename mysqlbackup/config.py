"""
Configuración centralizada del sistema de backup MySQL
"""
import logging
import os
from pathlib import Path
from dotenv import load_dotenv, find_dotenv

class Config:
    """Configuración centralizada del sistema"""

    ENV_FILE = find_dotenv()

    # Cargar variables de entorno desde la raíz real del proyecto
    load_dotenv(ENV_FILE)

    # BASE_DIR debe ser la raíz donde está main.py
    BASE_DIR = Path(ENV_FILE).parent if ENV_FILE else Path(__file__).resolve().parents[1]

    BACKUP_DIR = Path(os.getenv("BACKUP_DIR")) if os.getenv("BACKUP_DIR") else (BASE_DIR / "Backups")
    LOG_DIR = Path(os.getenv("BACKUP_LOG_DIR")) if os.getenv("BACKUP_LOG_DIR") else (BASE_DIR / "Logs")
    CONFIG_FILE = BASE_DIR / "config.json"

    # Valores por defecto del runner (equivalentes a la clase original)
    DEFAULT_DATE_FORMAT = "%Y-%m-%d"
    DEFAULT_EXTENSION = ".gz"
    DEFAULT_DUMP_EXECUTABLE = "mysqldump"
    DEFAULT_COMPRESSOR = "gzip"
    DEFAULT_DUMP_OPTIONS = "--quick --lock-tables --add-drop-table"
    DEFAULT_SENDER = "backup@localhost"
    DEFAULT_SUBJECT = "Backup"
    DEFAULT_SENDMAIL_PATH = "/usr/sbin/sendmail"
    DEFAULT_SMTP_PORT = 25
    DEFAULT_SMTP_TIMEOUT = 30.0
    BACKUP_HOUR = "02:00"  # Hora de ejecución del backup diario

    LOG_LEVEL = logging.INFO
    LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    SUPPORTED_MAILERS = ['none', 'direct', 'mail', 'smtp']
    SMTP_ENCRYPTIONS = ['none', 'ssl', 'tls']

    DEFAULT_CONFIG = {
        "databases": [
            {
                "schema": "mi_base",
                "user": "${DB_USER}",
                "password": "${DB_PASSWORD}",
                "host": ""
            }
        ],
        "backup_settings": {
            "output_dir": "Backups/",
            "date_format": "%Y-%m-%d",
            "extension": ".gz",
            "dump_path": "",
            "compressor_path": "",
            "compressor": "gzip",
            "dump_options": "--quick --lock-tables --add-drop-table",
            "delete_after_backup": False,
            "timeout": None,
            "schedule": ["02:00"]
        },
        "mail": {
            "mailer": "none",
            "sender": "backup@localhost",
            "recipients": [],
            "subject": "Backup",
            "sendmail_path": "/usr/sbin/sendmail",
            "smtp": {
                "host": "smtp.example.com",
                "username": "${SMTP_USER}",
                "password": "${SMTP_PASSWORD}",
                "port": 25,
                "encryption": "none"
            }
        }
    }

    @classmethod
    def ensure_directories(cls):
        """Crea los directorios necesarios si no existen"""
        cls.BACKUP_DIR.mkdir(parents=True, exist_ok=True)
        cls.LOG_DIR.mkdir(parents=True, exist_ok=True)
