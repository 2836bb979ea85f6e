"""
롤백 모듈
백업 파일을 대상 경로에 원자적으로 복원
"""

from pathlib import Path
from typing import Optional, Union

from .backup import BackupManager
from .errors import CopyFailed, NoBackupFound
from .logger import get_logger
from .writer import FileWriter, select_writer, temp_path_for


class RollbackOperator:
    """백업으로 복원 (백업은 삭제하지 않음)"""

    def __init__(self, writer: Optional[FileWriter] = None, privilege: str = "auto"):
        self.writer = writer
        self.privilege = privilege
        self.logger = get_logger()

    def rollback(self, target: Union[str, Path]) -> Path:
        """가장 최근 백업으로 복원하고 사용한 백업 경로 반환"""
        target = Path(target).expanduser().absolute()
        writer = self.writer or select_writer(target, self.privilege)

        latest = BackupManager(writer).latest_backup(target)
        if latest is None:
            self.logger.error(f"No backup found for {target}")
            raise NoBackupFound(target)

        return self.restore(target, latest.path)

    def restore(self, target: Union[str, Path], backup: Union[str, Path]) -> Path:
        """지정한 백업 파일을 임시 파일을 거쳐 대상 경로로 교체"""
        target = Path(target).expanduser().absolute()
        backup = Path(backup)
        writer = self.writer or select_writer(target, self.privilege)

        self.logger.info(f"Rolling back {target} from {backup}")

        temp_file = temp_path_for(target)
        try:
            writer.copy(backup, temp_file)
            writer.replace(temp_file, target)
        except OSError as e:
            try:
                writer.remove(temp_file)
            except OSError as cleanup_error:
                self.logger.warning(f"Could not remove temporary file {temp_file}: {cleanup_error}")
            raise CopyFailed(target, f"could not restore from {backup}: {e}")

        self.logger.info(f"Rollback of {target} completed")
        return backup
