"""
Servicio de programación de tareas de backup
"""
import schedule
import time
import signal
import sys
from typing import Callable, List
from ..exceptions import ConfigurationError, MailTransportError
from ..logger import LoggerService
from .backup_runner import BackupRunner


class SchedulerService:
    """Servicio para programar y ejecutar backups automáticos"""

    def __init__(self, runner_factory: Callable[[], BackupRunner], schedules: List[str]):
        """
        Inicializa el servicio de programación

        Args:
            runner_factory: Crea un BackupRunner configurado para cada ejecución
            schedules: Horas diarias de ejecución (HH:MM)
        """
        self.runner_factory = runner_factory
        self.schedules = schedules
        self.logger = LoggerService.get_logger("SchedulerService")
        self.running = False

        # Registrar manejadores de señales para shutdown graceful
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

    def start(self, run_immediately: bool = False):
        """
        Inicia el programador de tareas

        Args:
            run_immediately: Si es True, ejecuta un backup inmediatamente al iniciar
        """
        for schedule_time in self.schedules:
            schedule.every().day.at(schedule_time).do(self._run_backup_job)

        self.logger.info("=" * 70)
        self.logger.info("SERVICIO DE BACKUP AUTOMÁTICO INICIADO")
        self.logger.info("=" * 70)
        self.logger.info(f"Backups diarios programados: {len(self.schedules)}")
        for schedule_time in self.schedules:
            self.logger.info(f"  - A las {schedule_time}")
        self.logger.info(f"Próxima ejecución: {self.get_next_run()}")
        self.logger.info("Presiona Ctrl+C para detener el servicio")
        self.logger.info("=" * 70)

        if run_immediately:
            self.logger.info("Ejecutando backup inicial...")
            self._run_backup_job()

        self.running = True
        try:
            while self.running:
                schedule.run_pending()
                time.sleep(60)  # Revisar cada minuto
        except KeyboardInterrupt:
            self._shutdown()

    def _run_backup_job(self):
        """Ejecuta el trabajo de backup programado"""
        self.logger.info(f"Ejecutando backup programado a las {time.strftime('%Y-%m-%d %H:%M:%S')}")
        try:
            results = self.runner_factory().run()
        except ConfigurationError as e:
            self.logger.error(f"Configuración inválida, backup omitido: {e}")
            return
        except MailTransportError as e:
            self.logger.error(f"Backup completado pero el correo falló: {e.message}")
            return

        failed = [r for r in results if not r.success]
        if failed:
            self.logger.warning(
                f"Backup completado con {len(failed)} error(es). "
                "Revisa los logs para más detalles."
            )
        else:
            self.logger.info("Backup completado exitosamente")

    def _signal_handler(self, signum, frame):
        """
        Manejador de señales para shutdown graceful

        Args:
            signum: Número de señal
            frame: Frame actual
        """
        try:
            signal_name = signal.Signals(signum).name
        except ValueError:
            signal_name = str(signum)

        self.logger.info(f"Señal recibida: {signal_name}")
        self._shutdown()

    def _shutdown(self):
        """Detiene el servicio de forma ordenada"""
        self.logger.info("Deteniendo servicio de backup...")
        self.running = False
        schedule.clear()
        self.logger.info("Servicio detenido correctamente")
        sys.exit(0)

    def get_next_run(self) -> str:
        """
        Obtiene el momento de la próxima ejecución

        Returns:
            String con la fecha de la próxima ejecución
        """
        next_run = schedule.next_run()
        if next_run:
            return next_run.strftime('%Y-%m-%d %H:%M:%S')
        return "No hay ejecuciones programadas"
