"""
Repositorio para manejar configuración (Dependency Inversion)
"""
import copy
import json
import os
from pathlib import Path
from typing import Dict, List, Optional
from ..config import Config
from ..exceptions import ConfigurationError
from ..logger import LoggerService
from ..models import JobDescriptor
from ..services.backup_runner import BackupRunner


class ConfigRepository:
    """Repositorio para manejar configuración"""

    def __init__(self, config_file: Optional[Path] = None):
        """
        Inicializa el repositorio de configuración

        Args:
            config_file: Ruta al archivo de configuración (opcional)
        """
        self.config_file = Path(config_file) if config_file else Config.CONFIG_FILE
        self.logger = LoggerService.get_logger("ConfigRepository")
        self._raw_config = None

    def load(self) -> Dict:
        """
        Carga configuración desde archivo JSON

        Returns:
            Diccionario con la configuración

        Raises:
            ConfigurationError: si el archivo no es JSON válido
        """
        if not self.config_file.exists():
            self.logger.warning(f"El archivo de configuración no existe: {self.config_file}")
            self._raw_config = copy.deepcopy(Config.DEFAULT_CONFIG)
            return self._raw_config

        try:
            with open(self.config_file, "r", encoding='utf-8') as f:
                raw = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Error al parsear JSON de {self.config_file}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Error al leer {self.config_file}: {e}") from e

        if not isinstance(raw, dict):
            raise ConfigurationError(f"La configuración debe ser un objeto JSON: {self.config_file}")

        self._raw_config = raw
        self.logger.info(f"Configuración cargada exitosamente: {self.config_file}")
        return self._raw_config

    def save(self, config: Dict) -> bool:
        """
        Guarda configuración en archivo JSON

        Args:
            config: Diccionario con la configuración

        Returns:
            True si se guardó exitosamente
        """
        try:
            self.config_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, "w", encoding='utf-8') as f:
                json.dump(config, f, indent=4, ensure_ascii=False)
            self.logger.info(f"Configuración guardada exitosamente: {self.config_file}")
            return True
        except OSError as e:
            self.logger.error(f"Error al guardar la configuración: {str(e)}")
            return False

    def _section(self, name: str) -> Dict:
        if self._raw_config is None:
            self.load()
        section = self._raw_config.get(name, {}) or {}
        if not isinstance(section, dict):
            raise ConfigurationError(f"La sección '{name}' debe ser un objeto")
        return section

    def get_databases(self) -> List[JobDescriptor]:
        """
        Obtiene la lista de bases de datos a respaldar

        Returns:
            Lista de JobDescriptor con credenciales resueltas

        Raises:
            ConfigurationError: si una entrada no tiene schema o usuario
        """
        if self._raw_config is None:
            self.load()

        databases = []
        for index, db_dict in enumerate(self._raw_config.get('databases', [])):
            try:
                databases.append(JobDescriptor(
                    schema=db_dict.get('schema', ''),
                    username=self._resolve_credential(db_dict.get('user', '')),
                    password=self._resolve_credential(db_dict.get('password', '')),
                    host=db_dict.get('host', '') or ''
                ))
            except (ValueError, AttributeError) as e:
                raise ConfigurationError(f"Base de datos #{index + 1} inválida: {e}") from e
        return databases

    def get_schedules(self) -> List[str]:
        """
        Obtiene las horas diarias de ejecución

        Returns:
            Lista de horas HH:MM
        """
        schedules = self._section('backup_settings').get('schedule', [Config.BACKUP_HOUR])
        if isinstance(schedules, str):
            schedules = [schedules]
        for schedule_time in schedules:
            if not self._validate_time_format(schedule_time):
                raise ConfigurationError(f"El formato de schedule debe ser HH:MM: {schedule_time}")
        return schedules

    def get_output_dir(self) -> str:
        """Directorio de backups configurado, o Config.BACKUP_DIR"""
        output_dir = self._section('backup_settings').get('output_dir') or str(Config.BACKUP_DIR)
        path = Path(output_dir)
        if not path.is_absolute():
            path = Config.BASE_DIR / path
        return str(path)

    def build_runner(self, only_schema: Optional[str] = None, **runner_kwargs) -> BackupRunner:
        """
        Crea un BackupRunner configurado a partir del archivo

        Args:
            only_schema: Si se indica, solo se agrega esa base de datos
            **runner_kwargs: Argumentos para el constructor de BackupRunner

        Returns:
            BackupRunner listo para ejecutar

        Raises:
            ConfigurationError: si la configuración es inválida o la base no existe
        """
        settings = self._section('backup_settings')
        mail = self._section('mail')

        databases = self.get_databases()
        if only_schema is not None:
            databases = [db for db in databases if db.schema == only_schema]
            if not databases:
                raise ConfigurationError(f"Base de datos no encontrada en configuración: {only_schema}")

        output_dir = self.get_output_dir()
        Path(output_dir).mkdir(parents=True, exist_ok=True)

        runner = BackupRunner.init(**runner_kwargs)
        for db in databases:
            runner.add_database(db.schema, db.username, db.password, db.host)

        runner.set_output_directory(output_dir) \
            .set_date_format(settings.get('date_format', '')) \
            .set_file_extension(settings.get('extension', Config.DEFAULT_EXTENSION)) \
            .set_dump_executable_path(settings.get('dump_path', '')) \
            .set_compressor_path(settings.get('compressor_path', '')) \
            .set_compressor(settings.get('compressor', '')) \
            .set_dump_options(settings.get('dump_options', Config.DEFAULT_DUMP_OPTIONS)) \
            .set_timeout(settings.get('timeout'))

        if settings.get('delete_after_backup', False):
            runner.set_delete_after_backup()

        runner.set_mailer(mail.get('mailer', '')) \
            .set_sender(mail.get('sender', '')) \
            .set_recipients(mail.get('recipients', [])) \
            .set_subject(mail.get('subject', '')) \
            .set_sendmail_path(mail.get('sendmail_path', ''))

        smtp = mail.get('smtp') or {}
        if smtp.get('host'):
            try:
                runner.set_smtp_config(
                    host=smtp['host'],
                    username=self._resolve_credential(smtp.get('username', '')),
                    password=self._resolve_credential(smtp.get('password', '')),
                    port=smtp.get('port', Config.DEFAULT_SMTP_PORT),
                    encryption=smtp.get('encryption', 'none')
                )
            except ValueError as e:
                raise ConfigurationError(f"Configuración SMTP inválida: {e}") from e

        return runner

    def _resolve_credential(self, value: str) -> str:
        """
        Resuelve credencial desde variable de entorno si es necesario

        Args:
            value: Valor que puede contener referencia a variable de entorno

        Returns:
            Valor resuelto
        """
        if value.startswith("${") and value.endswith("}"):
            env_var = value[2:-1]
            resolved = os.getenv(env_var, "")
            if not resolved:
                self.logger.warning(f"Variable de entorno no encontrada: {env_var}")
            return resolved
        return value

    @staticmethod
    def _validate_time_format(time_str: str) -> bool:
        """Valida formato de hora HH:MM"""
        try:
            parts = time_str.split(":")
            if len(parts) != 2:
                return False
            hours, minutes = int(parts[0]), int(parts[1])
            return 0 <= hours < 24 and 0 <= minutes < 60
        except (ValueError, AttributeError):
            return False

    def create_example_config(self) -> bool:
        """
        Crea un archivo de configuración de ejemplo

        Returns:
            True si se creó exitosamente
        """
        return self.save(Config.DEFAULT_CONFIG)
