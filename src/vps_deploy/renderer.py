"""
템플릿 렌더러
백업 -> 정리 -> 치환 -> 임시 파일 -> 원자적 교체 순서로 구성 파일 배포

프로세스 간 잠금은 하지 않는다. 같은 대상(호스트)에 대한 실행은 호출자가 한 번에 하나씩 직렬화해야 한다.
"""

import stat
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Union

from .backup import DEFAULT_KEEP, BackupManager
from .environment import Environment
from .errors import AtomicMoveFailed, DeployError, RenderFailed
from .logger import get_logger
from .template import find_placeholders, load_template, resolve_template, substitute
from .validators import validate_rendered
from .writer import FileWriter, select_writer, temp_path_for

DEFAULT_FILE_MODE = 0o644


@dataclass
class RenderResult:
    """렌더링 결과"""
    template: Path
    target: Path
    backup: Optional[Path] = None
    variables: List[str] = field(default_factory=list)
    unset: List[str] = field(default_factory=list)
    pruned: List[Path] = field(default_factory=list)


class TemplateRenderer:
    """템플릿 렌더러

    Args:
        env: 치환에 사용할 변수 (로드 후 불변)
        templates_dir: 상대 템플릿 이름의 기준 디렉토리
        writer: 쓰기 권한 객체. 없으면 대상마다 privilege 모드로 선택
        privilege: auto | direct | sudo
        backup_keep: 보존할 백업 개수
        clock: 백업 타임스탬프용 시계
    """

    def __init__(self, env: Environment,
                 templates_dir: Optional[Union[str, Path]] = None,
                 writer: Optional[FileWriter] = None,
                 privilege: str = "auto",
                 backup_keep: int = DEFAULT_KEEP,
                 clock: Optional[Callable[[], datetime]] = None):
        self.env = env
        self.templates_dir = Path(templates_dir) if templates_dir else None
        self.writer = writer
        self.privilege = privilege
        self.backup_keep = backup_keep
        self.clock = clock or datetime.now
        self.logger = get_logger()

    def writer_for(self, target: Path) -> FileWriter:
        return self.writer or select_writer(target, self.privilege)

    def render(self, template: Union[str, Path], target: Union[str, Path],
               backup: bool = True, validate: str = "none",
               mode: Optional[int] = None) -> RenderResult:
        """템플릿을 대상 경로에 배포

        실패하면 대상 파일은 호출 전 상태 그대로 남는다.
        이미 만들어진 백업은 실패 시에도 보존된다.
        """
        template_path = resolve_template(template, self.templates_dir)
        text = load_template(template_path)

        target = Path(target).expanduser().absolute()
        writer = self.writer_for(target)
        self.logger.debug(f"Using {writer.name} writer for {target}")

        try:
            writer.makedirs(target.parent)
        except OSError as e:
            raise RenderFailed(target, f"could not create directory {target.parent}: {e}")

        result = RenderResult(template=template_path, target=target)

        if backup and target.exists():
            backups = BackupManager(writer, self.backup_keep, self.clock)
            result.backup = backups.create_backup(target)
            try:
                result.pruned = backups.prune(target)
            except DeployError as e:
                self.logger.warning(str(e))

        self.logger.info(f"Rendering {template_path} -> {target}")

        content, result.unset = substitute(text, self.env)
        result.variables = find_placeholders(text)
        for name in result.unset:
            self.logger.warning(f"Variable {name} is not set, substituted with empty string ({template_path.name})")

        validate_rendered(content, target, validate)

        if mode is None:
            mode = stat.S_IMODE(target.stat().st_mode) if target.exists() else DEFAULT_FILE_MODE

        temp_file = temp_path_for(target)
        try:
            writer.write(temp_file, content, mode)
        except OSError as e:
            self._discard(writer, temp_file)
            raise RenderFailed(target, f"could not write {temp_file}: {e}")

        try:
            writer.replace(temp_file, target)
        except OSError as e:
            self._discard(writer, temp_file)
            raise AtomicMoveFailed(target, f"could not move {temp_file} into place: {e}")

        self.logger.info(f"Successfully deployed {target}")
        if result.variables:
            self.logger.debug(f"Variables substituted: {' '.join(result.variables)}")
        return result

    def _discard(self, writer: FileWriter, temp_file: Path):
        try:
            writer.remove(temp_file)
        except OSError as e:
            self.logger.warning(f"Could not remove temporary file {temp_file}: {e}")
