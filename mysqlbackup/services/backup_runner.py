"""
Servicio principal que orquesta los backups
"""
import os
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional
from ..exceptions import FatalBackupError, MailTransportError
from ..logger import LoggerService
from ..models import (
    BackupResult,
    JobDescriptor,
    MailerKind,
    RunnerConfig,
    SmtpConfig,
)
from ..strategies.base_strategy import DumpStrategy
from ..strategies.mysql_strategy import MySQLDumpStrategy
from .cleanup_service import CleanupService
from .mail_service import MailService


def _raise_fatal(message: str):
    raise FatalBackupError(message)


class BackupRunner:
    """
    Ejecuta mysqldump | gzip para cada base configurada, envía los archivos
    por correo y opcionalmente los elimina

    Uso:
        results = (BackupRunner.init()
                   .add_database("orders", "user", "secret")
                   .set_output_directory("/srv/backups/")
                   .set_mailer("smtp")
                   .set_smtp_config("smtp.example.com", "user", "pass", 587, "tls")
                   .set_recipients(["admin@example.com"])
                   .run())
    """

    def __init__(
        self,
        clock: Optional[Callable[[], datetime]] = None,
        strategy: Optional[DumpStrategy] = None,
        abort_handler: Optional[Callable[[str], None]] = None
    ):
        """
        Inicializa el runner

        Args:
            clock: Fuente de la fecha usada en los nombres de archivo
            strategy: Estrategia de volcado (por defecto mysqldump)
            abort_handler: Recibe el mensaje de una condición fatal
        """
        self.logger = LoggerService.get_logger("BackupRunner")
        self.config = RunnerConfig()
        self.jobs: List[JobDescriptor] = []
        self.clock = clock or datetime.now
        self.strategy = strategy
        self.abort_handler = abort_handler or _raise_fatal
        self.cleanup_service = CleanupService()

    @classmethod
    def init(cls, **kwargs) -> "BackupRunner":
        """Inicializador estático para encadenar la configuración"""
        return cls(**kwargs)

    # ------------------------------------------------------------------
    # Configuración
    # ------------------------------------------------------------------

    def add_database(self, schema: str, username: str, password: str, host: str = "") -> "BackupRunner":
        """
        Agrega una base de datos a respaldar

        Args:
            schema: Schema de la base de datos
            username: Usuario
            password: Password (puede estar vacío)
            host: Host; vacío usa el socket local

        Raises:
            ValueError: si schema o username están vacíos
        """
        self.jobs.append(JobDescriptor(schema=schema, username=username, password=password, host=host or ""))
        return self

    def set_output_directory(self, path: str) -> "BackupRunner":
        """
        Define el directorio de los backups, agregando el separador final si falta

        Un path vacío es una condición fatal.
        """
        if not path:
            self._abort("No path for backup files given! (set_output_directory(path))")

        path = str(path)
        if not path.endswith((os.sep, "/")):
            self.logger.debug(f"Agregando separador final al directorio de backups: {path}")
            path += os.sep
        self.config.output_dir = path
        return self

    def set_date_format(self, fmt: str) -> "BackupRunner":
        """Formato strftime de la fecha en el nombre del archivo"""
        if fmt:
            self.config.date_format = fmt
        return self

    def set_file_extension(self, extension: str) -> "BackupRunner":
        self.config.extension = extension
        return self

    def set_dump_executable_path(self, prefix: str) -> "BackupRunner":
        """Ruta a mysqldump con separador final; vacío usa PATH"""
        self.config.dump_path = prefix or ""
        return self

    def set_compressor_path(self, prefix: str) -> "BackupRunner":
        """Ruta al compresor con separador final; vacío usa PATH"""
        self.config.compressor_path = prefix or ""
        return self

    def set_compressor(self, name: str) -> "BackupRunner":
        if name:
            self.config.compressor = name
        return self

    def set_dump_options(self, options: str) -> "BackupRunner":
        self.config.dump_options = options or ""
        return self

    def set_delete_after_backup(self) -> "BackupRunner":
        """Elimina los archivos al terminar (útil solo si se envían por correo)"""
        self.config.delete_after_backup = True
        return self

    def set_mailer(self, mailer: str) -> "BackupRunner":
        """
        Selecciona el mailer: none, direct (alias mail) o smtp

        Un valor vacío se ignora; uno desconocido deshabilita el correo.
        """
        if not mailer:
            return self
        kind = MailerKind.parse(mailer)
        if kind is MailerKind.NONE and mailer.strip().lower() != MailerKind.NONE.value:
            self.logger.warning(f"Mailer desconocido '{mailer}': no se enviará correo")
        self.config.mailer = kind
        return self

    def set_smtp_config(
        self,
        host: str,
        username: str,
        password: str,
        port: int = 25,
        encryption: str = "none"
    ) -> "BackupRunner":
        self.config.smtp = SmtpConfig(
            host=host,
            username=username,
            password=password,
            port=int(port),
            encryption=encryption or "none"
        )
        return self

    def set_sender(self, email: str) -> "BackupRunner":
        """Remitente del correo (no se valida)"""
        if email:
            self.config.sender = email
        return self

    def set_recipients(self, recipients: List[str]) -> "BackupRunner":
        self.config.recipients = list(recipients or [])
        return self

    def set_subject(self, subject: str) -> "BackupRunner":
        if subject:
            self.config.subject = subject
        return self

    def set_timeout(self, seconds: Optional[float]) -> "BackupRunner":
        """Tiempo máximo de la tubería de volcado; None espera indefinidamente"""
        self.config.timeout = seconds
        return self

    def set_sendmail_path(self, path: str) -> "BackupRunner":
        if path:
            self.config.sendmail_path = path
        return self

    # ------------------------------------------------------------------
    # Ejecución
    # ------------------------------------------------------------------

    def build_output_path(self, job: JobDescriptor) -> str:
        """
        Ruta del archivo de backup: {dir}{schema}_{fecha}.sql{extension}

        La fecha se lee del reloj en cada llamada.
        """
        return (
            f"{self.config.output_dir}{job.schema}_"
            f"{self.clock().strftime(self.config.date_format)}.sql{self.config.extension}"
        )

    def run(self) -> List[BackupResult]:
        """
        Ejecuta el backup de todas las bases configuradas en orden

        Returns:
            Lista de resultados, uno por base y en el orden en que se agregaron

        Raises:
            FatalBackupError: si falta un archivo al momento de adjuntarlo
            ConfigurationError: si el mailer no puede construirse (antes de
                ejecutar cualquier volcado)
            MailTransportError: si el transporte falla (con los resultados
                en el atributo results, después de la eliminación)
        """
        self.logger.info("=" * 70)
        self.logger.info(f"INICIANDO PROCESO DE BACKUP ({len(self.jobs)} base(s))")
        self.logger.info("=" * 70)

        mail_service = MailService(self.config, self._abort)
        strategy = self.strategy or MySQLDumpStrategy()
        results = []

        for job in self.jobs:
            self.logger.info("-" * 70)
            output_file = self.build_output_path(job)
            result = strategy.execute_backup(job, Path(output_file), self.config)
            # La ruta se registra aunque el volcado haya fallado
            result.output_file = output_file
            results.append(result)

        paths = [r.output_file for r in results]

        transport_error = None
        try:
            mail_service.send_backups(paths)
        except MailTransportError as e:
            self.logger.error(f"Error enviando correo: {e.message}")
            transport_error = e

        if self.config.delete_after_backup:
            self.logger.info("-" * 70)
            self.cleanup_service.delete_files(paths)

        self._print_summary(results)

        if transport_error is not None:
            transport_error.results = results
            raise transport_error

        return results

    def _abort(self, message: str):
        """Condición fatal: notifica al handler y nunca retorna"""
        self.logger.critical(message)
        self.abort_handler(message)
        raise FatalBackupError(message)

    def _print_summary(self, results: List[BackupResult]):
        """
        Imprime resumen de la operación de backup

        Args:
            results: Lista de resultados
        """
        success_count = sum(1 for r in results if r.success)
        failed_count = len(results) - success_count
        total_time = sum(r.duration_seconds for r in results)

        self.logger.info("=" * 70)
        self.logger.info("RESUMEN DEL PROCESO DE BACKUP")
        self.logger.info("=" * 70)

        for result in results:
            self.logger.info(str(result))

        self.logger.info("-" * 70)
        self.logger.info(f"Total de bases de datos procesadas: {len(results)}")
        self.logger.info(f"Backups exitosos: {success_count}")
        self.logger.info(f"Backups fallidos: {failed_count}")
        self.logger.info(f"Tiempo total: {total_time:.2f}s")
        self.logger.info("=" * 70)

        if failed_count > 0:
            self.logger.warning(
                f"ATENCIÓN: {failed_count} backup(s) fallaron. "
                "Revisa los errores arriba."
            )
