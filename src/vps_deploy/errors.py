"""
배포 엔진 예외 정의
모든 오류는 실패한 작업과 관련 경로를 메시지에 포함한다
"""

from pathlib import Path
from typing import Iterable, Optional, Union

PathLike = Union[str, Path]


class DeployError(Exception):
    """배포 엔진 기본 예외"""

    operation = "deploy"

    def __init__(self, path: Optional[PathLike] = None, reason: str = ""):
        self.path = Path(path) if path is not None else None
        self.reason = reason
        super().__init__(self._format())

    def _format(self) -> str:
        message = f"{self.operation} failed"
        if self.path is not None:
            message += f": {self.path}"
        if self.reason:
            message += f" ({self.reason})"
        return message


class TemplateNotFound(DeployError):
    """템플릿 파일 없음"""

    operation = "template lookup"


class BackupFailed(DeployError):
    """백업 생성 실패 - 렌더링 전에 중단"""

    operation = "backup"


class BackupListFailed(DeployError):
    """백업 디렉토리를 읽지 못함"""

    operation = "backup listing"


class RenderFailed(DeployError):
    """치환 또는 임시 파일 쓰기 실패"""

    operation = "render"


class AtomicMoveFailed(DeployError):
    """임시 파일을 대상 경로로 교체하지 못함"""

    operation = "atomic move"


class NoBackupFound(DeployError):
    """롤백할 백업 없음"""

    operation = "rollback"

    def __init__(self, path: PathLike):
        super().__init__(path, "no backup found")


class CopyFailed(DeployError):
    """백업 복원 실패"""

    operation = "rollback copy"


class PruneFailed(DeployError):
    """오래된 백업 삭제 실패 (치명적이지 않음)"""

    operation = "prune"


class EnvFileError(DeployError):
    """.env 파일 로드 실패"""

    operation = "environment load"

    def __init__(self, path: PathLike, reason: str, line_no: Optional[int] = None):
        self.line_no = line_no
        if line_no is not None:
            reason = f"line {line_no}: {reason}"
        super().__init__(path, reason)


class MissingVariablesError(DeployError):
    """필수 환경 변수 누락"""

    operation = "environment validation"

    def __init__(self, missing: Iterable[str], path: Optional[PathLike] = None):
        self.missing = list(missing)
        super().__init__(path, "missing required variables: " + ", ".join(self.missing))


class ManifestError(DeployError):
    """배포 매니페스트 오류"""

    operation = "manifest load"
