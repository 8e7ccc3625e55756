"""
Estrategia base para volcados (Strategy Pattern)
"""
from abc import ABC, abstractmethod
from pathlib import Path
from ..logger import LoggerService
from ..models import JobDescriptor, RunnerConfig, BackupResult
import time


class DumpStrategy(ABC):
    """Interfaz abstracta para estrategias de volcado (Open/Closed Principle)"""

    def __init__(self):
        """Inicializa la estrategia"""
        self.logger = LoggerService.get_logger(self.__class__.__name__)

    @abstractmethod
    def backup(self, job: JobDescriptor, output_file: Path, config: RunnerConfig) -> BackupResult:
        """
        Ejecuta el volcado de la base de datos

        Args:
            job: Base de datos a respaldar
            output_file: Archivo de salida para el backup
            config: Opciones del runner

        Returns:
            Resultado del backup
        """
        pass

    def execute_backup(self, job: JobDescriptor, output_file: Path, config: RunnerConfig) -> BackupResult:
        """
        Template method para ejecutar backup con medición de tiempo

        Nunca lanza excepciones: cualquier fallo queda registrado en el
        resultado para que el lote continúe.

        Args:
            job: Base de datos a respaldar
            output_file: Archivo de salida para el backup
            config: Opciones del runner

        Returns:
            Resultado del backup
        """
        self.logger.info(f"Iniciando backup de {job.schema}...")
        start_time = time.time()

        try:
            result = self.backup(job, output_file, config)
            result.duration_seconds = time.time() - start_time

            if result.success:
                file_size = output_file.stat().st_size / (1024 * 1024)  # MB
                self.logger.info(
                    f"Backup exitoso: {output_file.name} "
                    f"({file_size:.2f} MB, {result.duration_seconds:.2f}s)"
                )
            else:
                self.logger.error(
                    f"Backup fallido: {job.schema} (exit={result.exit_status}): {result.error}"
                )

            return result

        except Exception as e:
            duration = time.time() - start_time
            self.logger.error(f"Error al ejecutar backup de {job.schema}: {str(e)}")
            return BackupResult(
                database_name=job.schema,
                success=False,
                output_file=str(output_file),
                error=str(e),
                duration_seconds=duration
            )
