#!/usr/bin/env python3
"""
Backup de bases de datos MySQL con envío por correo
Punto de entrada principal

Uso:
    python main.py                  # Ejecutar backup una vez
    python main.py scheduler        # Modo scheduler (automático)
    python main.py --db schema      # Backup de una BD específica
    python main.py --help           # Ayuda
"""
import sys
import argparse
import logging
from pathlib import Path

from mysqlbackup.config import Config
from mysqlbackup.exceptions import ConfigurationError, MailTransportError
from mysqlbackup.logger import LoggerService
from mysqlbackup.repositories.config_repository import ConfigRepository
from mysqlbackup.services.cleanup_service import CleanupService
from mysqlbackup.services.scheduler_service import SchedulerService


def parse_arguments(argv=None):
    """
    Parsea argumentos de línea de comandos

    Returns:
        Namespace con los argumentos parseados
    """
    parser = argparse.ArgumentParser(
        description='Backup de bases de datos MySQL con envío por correo',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Ejemplos:
  python main.py                    # Ejecutar backup una sola vez
  python main.py scheduler --now    # Iniciar servicio automático
  python main.py --db orders        # Backup de una base específica
  python main.py --stats            # Ver estadísticas de backups
  python main.py --init             # Crear archivos de configuración
        """
    )

    parser.add_argument(
        'mode',
        nargs='?',
        choices=['once', 'scheduler'],
        default='once',
        help='Modo de ejecución (default: once)'
    )

    parser.add_argument(
        '--config',
        type=Path,
        default=Config.CONFIG_FILE,
        metavar='ARCHIVO',
        help=f'Archivo de configuración (default: {Config.CONFIG_FILE})'
    )

    parser.add_argument(
        '--db',
        type=str,
        metavar='SCHEMA',
        help='Realizar backup de una base de datos específica'
    )

    parser.add_argument(
        '--stats',
        action='store_true',
        help='Mostrar estadísticas de backups'
    )

    parser.add_argument(
        '--init',
        action='store_true',
        help='Crear archivos de configuración de ejemplo'
    )

    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Mostrar mensajes de depuración (comandos ejecutados, sin passwords)'
    )

    parser.add_argument(
        '--now',
        action='store_true',
        help='Ejecutar backup inmediatamente al iniciar scheduler'
    )

    return parser.parse_args(argv)


def initialize_config(config_repo: ConfigRepository):
    """
    Inicializa archivos de configuración si no existen

    Returns:
        True si se creó algún archivo
    """
    logger = LoggerService.get_logger("Init")
    created_files = []

    if not config_repo.config_file.exists():
        if config_repo.create_example_config():
            created_files.append(str(config_repo.config_file))

    env_example = Config.BASE_DIR / ".env.example"
    if not env_example.exists():
        env_content = """# Variables de entorno para credenciales
# Copia este archivo como .env y completa con tus credenciales

DB_USER=backup_user
DB_PASSWORD=tu_password_seguro

SMTP_USER=smtp_user
SMTP_PASSWORD=smtp_password

# BACKUP_DIR=/srv/backups
# BACKUP_LOG_DIR=/var/log/mysqlbackup
"""
        try:
            with open(env_example, 'w', encoding='utf-8') as f:
                f.write(env_content)
            created_files.append(str(env_example))
        except OSError as e:
            logger.error(f"Error creando .env.example: {e}")

    if created_files:
        logger.info("=" * 70)
        logger.info("ARCHIVOS DE CONFIGURACIÓN CREADOS")
        logger.info("=" * 70)
        for file in created_files:
            logger.info(f"  - {file}")
        logger.info("")
        logger.info("IMPORTANTE:")
        logger.info("1. Copia .env.example como .env")
        logger.info("2. Edita .env con tus credenciales")
        logger.info("3. Edita config.json con tus bases de datos y correo")
        logger.info("4. Ejecuta nuevamente este script")
        logger.info("=" * 70)
        return True

    return False


def show_statistics(config_repo: ConfigRepository):
    """Muestra estadísticas del directorio de backups"""
    logger = LoggerService.get_logger("Stats")
    backup_dir = Path(config_repo.get_output_dir())
    stats = CleanupService().get_backup_stats(backup_dir)

    logger.info("=" * 70)
    logger.info("ESTADÍSTICAS DE BACKUPS")
    logger.info("=" * 70)
    logger.info(f"Directorio: {backup_dir}")
    logger.info(f"Total de archivos: {stats['total_files']}")
    logger.info(f"Espacio utilizado: {stats['total_size_mb']:.2f} MB")

    if stats['oldest_backup']:
        logger.info(f"Backup más antiguo: {stats['oldest_backup']}")
    if stats['newest_backup']:
        logger.info(f"Backup más reciente: {stats['newest_backup']}")
    logger.info("=" * 70)


def run_once(config_repo: ConfigRepository, only_schema=None) -> int:
    """
    Ejecuta un backup y devuelve el código de salida

    Returns:
        0 si todo fue exitoso, 1 si falló algún backup o el correo
    """
    logger = LoggerService.get_logger("Main")
    runner = config_repo.build_runner(only_schema=only_schema)

    try:
        results = runner.run()
    except MailTransportError as e:
        logger.error(f"✗ Envío de correo fallido: {e.message}")
        return 1

    failed = sum(1 for r in results if not r.success)
    return 1 if failed > 0 else 0


def main(argv=None) -> int:
    """Función principal"""
    args = parse_arguments(argv)
    if args.verbose:
        LoggerService.set_level(logging.DEBUG)

    config_repo = ConfigRepository(args.config)

    if args.init:
        initialize_config(config_repo)
        return 0

    if not config_repo.config_file.exists():
        print(f"Error: No se encontró {config_repo.config_file}")
        print("Ejecuta: python main.py --init")
        return 1

    try:
        config_repo.load()

        if args.stats:
            show_statistics(config_repo)
            return 0

        if args.db:
            LoggerService.get_logger("Main").info(f"Realizando backup de: {args.db}")
            return run_once(config_repo, only_schema=args.db)

        if args.mode == 'once':
            return run_once(config_repo)

        scheduler = SchedulerService(config_repo.build_runner, config_repo.get_schedules())
        scheduler.start(run_immediately=args.now)
        return 0

    except ConfigurationError as e:
        print(f"Error de configuración: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nPrograma interrumpido por el usuario")
        sys.exit(0)
