"""
Estrategia de volcado para MySQL/MariaDB: mysqldump | gzip > archivo
"""
import shlex
import subprocess
import tempfile
import time
from pathlib import Path
from typing import List, Optional
from .base_strategy import DumpStrategy
from ..models import JobDescriptor, RunnerConfig, BackupResult


class MySQLDumpStrategy(DumpStrategy):
    """Estrategia de volcado para MySQL/MariaDB"""

    def build_dump_command(self, job: JobDescriptor, config: RunnerConfig) -> List[str]:
        """
        Construye el comando de mysqldump como lista de argumentos

        Args:
            job: Base de datos a respaldar
            config: Opciones del runner

        Returns:
            Lista de argumentos (sin pasar por shell)
        """
        cmd = [
            f"{config.dump_path}{config.dump_executable}",
            f"--user={job.username}",
            f"--password={job.password}",
        ]
        if job.host:
            cmd.append(f"--host={job.host}")
        cmd.append(job.schema)
        cmd.extend(shlex.split(config.dump_options))
        return cmd

    def build_compress_command(self, config: RunnerConfig) -> List[str]:
        """Comando del compresor: lee de stdin y escribe en stdout"""
        return [f"{config.compressor_path}{config.compressor}"]

    @staticmethod
    def mask_command(cmd: List[str]) -> str:
        """Representación del comando apta para logs (sin password)"""
        return " ".join(
            "--password=***" if arg.startswith("--password=") else arg
            for arg in cmd
        )

    def backup(self, job: JobDescriptor, output_file: Path, config: RunnerConfig) -> BackupResult:
        """
        Ejecuta mysqldump y comprime su salida en output_file

        El archivo de salida se crea antes de lanzar los procesos, igual que
        una redirección de shell, así que existe aunque el volcado falle.

        Args:
            job: Base de datos a respaldar
            output_file: Archivo de salida para el backup
            config: Opciones del runner

        Returns:
            Resultado del backup con los códigos de salida de ambos procesos
        """
        dump_cmd = self.build_dump_command(job, config)
        compress_cmd = self.build_compress_command(config)
        self.logger.debug(
            f"Ejecutando: {self.mask_command(dump_cmd)} | "
            f"{' '.join(compress_cmd)} > {output_file}"
        )

        try:
            with open(output_file, 'wb') as out, \
                    tempfile.TemporaryFile() as dump_err, \
                    tempfile.TemporaryFile() as compress_err:
                deadline = None if config.timeout is None else time.monotonic() + config.timeout
                dump = subprocess.Popen(dump_cmd, stdout=subprocess.PIPE, stderr=dump_err)
                try:
                    compress = subprocess.Popen(
                        compress_cmd,
                        stdin=dump.stdout,
                        stdout=out,
                        stderr=compress_err
                    )
                except OSError:
                    dump.kill()
                    dump.wait()
                    raise
                finally:
                    # Solo el compresor debe leer del pipe
                    dump.stdout.close()

                try:
                    compress_code = compress.wait(timeout=self._remaining(deadline))
                    dump_code = dump.wait(timeout=self._remaining(deadline))
                except subprocess.TimeoutExpired:
                    for proc in (dump, compress):
                        proc.kill()
                        proc.wait()
                    return BackupResult(
                        database_name=job.schema,
                        success=False,
                        output_file=str(output_file),
                        error=f"Timeout: el backup tardó más de {config.timeout}s"
                    )

                errors = [
                    text for text in (self._read_stderr(dump_err), self._read_stderr(compress_err))
                    if text
                ]
        finally:
            # No mantener credenciales en memoria más de lo necesario
            dump_cmd.clear()

        exit_status = dump_code if dump_code != 0 else compress_code
        return BackupResult(
            database_name=job.schema,
            success=exit_status == 0,
            output_file=str(output_file),
            exit_status=exit_status,
            dump_exit_code=dump_code,
            compress_exit_code=compress_code,
            error="\n".join(errors) if errors else None
        )

    @staticmethod
    def _remaining(deadline: Optional[float]) -> Optional[float]:
        """Segundos restantes hasta deadline (None = sin límite)"""
        if deadline is None:
            return None
        return max(deadline - time.monotonic(), 0)

    @staticmethod
    def _read_stderr(stream) -> str:
        stream.seek(0)
        return stream.read().decode('utf-8', errors='replace').strip()
