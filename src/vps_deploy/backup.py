"""
백업 보존 관리 모듈
<대상>.backup.<YYYYMMDD-HHMMSS> 형식 백업의 생성, 조회, 정리
"""

import os
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

from .errors import BackupFailed, BackupListFailed, PruneFailed
from .logger import get_logger
from .writer import DirectFileWriter, FileWriter

BACKUP_MARKER = ".backup."
BACKUP_TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"
DEFAULT_KEEP = 5

# 고정 폭, 0 패딩 형식이어야 문자열 순서와 시간 순서가 일치한다
_TIMESTAMP_PATTERN = re.compile(r'^\d{8}-\d{6}$')


def format_timestamp(moment: datetime) -> str:
    return moment.strftime(BACKUP_TIMESTAMP_FORMAT)


def parse_backup_timestamp(name: str, target_name: str) -> Optional[datetime]:
    """백업 파일 이름에서 타임스탬프 추출 (형식이 다르면 None)"""
    prefix = target_name + BACKUP_MARKER
    if not name.startswith(prefix):
        return None

    stamp = name[len(prefix):]
    if not _TIMESTAMP_PATTERN.match(stamp):
        return None
    try:
        return datetime.strptime(stamp, BACKUP_TIMESTAMP_FORMAT)
    except ValueError:
        return None


def backup_path_for(target: Path, moment: datetime) -> Path:
    return target.with_name(f"{target.name}{BACKUP_MARKER}{format_timestamp(moment)}")


@dataclass(frozen=True)
class BackupFile:
    """대상 파일의 백업 하나"""
    path: Path
    timestamp: datetime


class BackupManager:
    """백업 생성 및 보존 정책 관리"""

    def __init__(self, writer: Optional[FileWriter] = None, keep: int = DEFAULT_KEEP,
                 clock: Optional[Callable[[], datetime]] = None):
        if keep < 1:
            raise ValueError(f"keep must be at least 1, got {keep}")
        self.writer = writer or DirectFileWriter()
        self.keep = keep
        self.clock = clock or datetime.now
        self.logger = get_logger()

    def list_backups(self, target: Path) -> List[BackupFile]:
        """대상의 백업 목록 (오래된 것부터)"""
        target = Path(target)
        directory = target.parent

        backups = []
        try:
            if not directory.is_dir():
                return []
            for entry in directory.iterdir():
                timestamp = parse_backup_timestamp(entry.name, target.name)
                if timestamp is not None and entry.is_file():
                    backups.append(BackupFile(entry, timestamp))
        except OSError as e:
            raise BackupListFailed(directory, f"could not read backups of {target.name}: {e}")

        backups.sort(key=lambda b: b.timestamp)
        return backups

    def latest_backup(self, target: Path) -> Optional[BackupFile]:
        backups = self.list_backups(target)
        return backups[-1] if backups else None

    def create_backup(self, target: Path) -> Path:
        """현재 대상 파일을 타임스탬프 백업으로 복사

        같은 이름의 백업이 이미 있으면 덮어쓰지 않고 BackupFailed.
        """
        target = Path(target)
        backup = backup_path_for(target, self.clock())
        if os.path.lexists(backup):
            raise BackupFailed(target, f"backup {backup} already exists")

        self.logger.info(f"Backing up existing {target} to {backup}")
        try:
            self.writer.copy(target, backup)
        except OSError as e:
            raise BackupFailed(target, f"could not copy to {backup}: {e}")

        self.logger.debug(f"Backup created: {backup}")
        return backup

    def prune(self, target: Path, keep: Optional[int] = None) -> List[Path]:
        """최근 keep 개만 남기고 오래된 백업 삭제

        개별 삭제 실패는 경고로 기록하고 계속 진행한다.
        """
        keep = self.keep if keep is None else keep
        if keep < 1:
            raise ValueError(f"keep must be at least 1, got {keep}")

        backups = self.list_backups(target)
        excess = len(backups) - keep
        if excess <= 0:
            return []

        self.logger.info(f"Cleaning up old backups of {target} (keeping {keep} most recent)")
        removed = []
        for backup in backups[:excess]:
            try:
                self.writer.remove(backup.path)
            except OSError as e:
                self.logger.warning(str(PruneFailed(backup.path, str(e))))
                continue
            removed.append(backup.path)
            self.logger.info(f"Removed old backup: {backup.path}")

        return removed
