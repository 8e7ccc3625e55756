"""
Servicio para eliminar y medir archivos de backup (Single Responsibility)
"""
from datetime import datetime
from pathlib import Path
from typing import List
from ..logger import LoggerService


class CleanupService:
    """Servicio para eliminar backups enviados y obtener estadísticas"""

    def __init__(self):
        """Inicializa el servicio de limpieza"""
        self.logger = LoggerService.get_logger("CleanupService")

    def delete_files(self, paths: List[str]) -> int:
        """
        Elimina los archivos de backup indicados

        Un archivo inexistente o no eliminable se registra en el log y no
        interrumpe el borrado del resto.

        Args:
            paths: Rutas de los archivos a eliminar

        Returns:
            Cantidad de archivos eliminados
        """
        deleted_count = 0

        for path in paths:
            backup_file = Path(path)
            try:
                backup_file.unlink()
                deleted_count += 1
                self.logger.info(f"Eliminado backup: {backup_file.name}")
            except FileNotFoundError:
                self.logger.warning(f"No existe el backup a eliminar: {backup_file}")
            except OSError as e:
                self.logger.error(f"Error al eliminar {backup_file.name}: {e}")

        self.logger.info(f"Limpieza completada: {deleted_count} archivo(s) eliminado(s)")
        return deleted_count

    def get_backup_stats(self, backup_dir: Path, pattern: str = '*.sql*') -> dict:
        """
        Obtiene estadísticas de los backups

        Args:
            backup_dir: Directorio de backups
            pattern: Patrón glob de los archivos de backup

        Returns:
            Diccionario con estadísticas
        """
        stats = {
            'total_files': 0,
            'total_size_mb': 0,
            'oldest_backup': None,
            'newest_backup': None
        }

        if not backup_dir.exists():
            return stats

        files = [f for f in backup_dir.glob(pattern) if f.is_file()]
        if not files:
            return stats

        total_size = sum(f.stat().st_size for f in files)
        oldest = min(files, key=lambda f: f.stat().st_mtime)
        newest = max(files, key=lambda f: f.stat().st_mtime)

        stats.update({
            'total_files': len(files),
            'total_size_mb': total_size / (1024 * 1024),
            'oldest_backup': datetime.fromtimestamp(oldest.stat().st_mtime),
            'newest_backup': datetime.fromtimestamp(newest.stat().st_mtime)
        })
        return stats
