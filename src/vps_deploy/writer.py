"""
파일 쓰기 권한 모듈
대상 경로에 쓰기 위한 권한(직접 또는 sudo)을 명시적인 객체로 주입
"""

import os
import secrets
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional

from .logger import get_logger

PRIVILEGE_MODES = ("auto", "direct", "sudo")


def temp_path_for(target: Path) -> Path:
    """대상과 같은 디렉토리의 임시 파일 경로 (같은 파일시스템에서 rename 보장)"""
    return target.with_name(f".{target.name}.tmp.{os.getpid()}.{secrets.token_hex(4)}")


class FileWriter:
    """대상 파일시스템 조작 인터페이스"""

    name = "abstract"

    def makedirs(self, path: Path):
        raise NotImplementedError

    def copy(self, src: Path, dst: Path):
        raise NotImplementedError

    def write(self, path: Path, content: str, mode: int = 0o644):
        """새 파일 생성 후 내용 기록 (이미 존재하면 실패)"""
        raise NotImplementedError

    def replace(self, src: Path, dst: Path):
        raise NotImplementedError

    def remove(self, path: Path):
        """파일 삭제 (없으면 무시)"""
        raise NotImplementedError

    def chmod(self, path: Path, mode: int):
        raise NotImplementedError


class DirectFileWriter(FileWriter):
    """현재 프로세스 권한으로 직접 쓰기"""

    name = "direct"

    def makedirs(self, path: Path):
        os.makedirs(path, exist_ok=True)

    def copy(self, src: Path, dst: Path):
        shutil.copy2(src, dst)

    def write(self, path: Path, content: str, mode: int = 0o644):
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, mode)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        # umask 영향 제거
        os.chmod(path, mode)

    def replace(self, src: Path, dst: Path):
        os.replace(src, dst)

    def remove(self, path: Path):
        try:
            os.remove(path)
        except FileNotFoundError:
            pass

    def chmod(self, path: Path, mode: int):
        os.chmod(path, mode)


class SudoFileWriter(FileWriter):
    """sudo 를 통한 쓰기 (시스템 경로용)"""

    name = "sudo"

    def __init__(self, sudo: str = "sudo"):
        self.sudo = sudo
        self.logger = get_logger()

    def _run(self, args: List[str], input_text: Optional[str] = None):
        cmd = [self.sudo] + args
        self.logger.debug(f"Running: {' '.join(cmd)}")
        result = subprocess.run(
            cmd,
            input=input_text,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True
        )
        if result.returncode != 0:
            raise OSError(f"{' '.join(cmd)} exited with {result.returncode}: {result.stderr.strip()}")

    def makedirs(self, path: Path):
        self._run(["mkdir", "-p", str(path)])

    def copy(self, src: Path, dst: Path):
        self._run(["cp", "-p", str(src), str(dst)])

    def write(self, path: Path, content: str, mode: int = 0o644):
        if os.path.lexists(path):
            raise FileExistsError(f"Temporary file already exists: {path}")
        self._run(["tee", str(path)], input_text=content)
        self.chmod(path, mode)

    def replace(self, src: Path, dst: Path):
        self._run(["mv", "-f", str(src), str(dst)])

    def remove(self, path: Path):
        self._run(["rm", "-f", str(path)])

    def chmod(self, path: Path, mode: int):
        self._run(["chmod", format(mode, "o"), str(path)])


def _nearest_existing_dir(path: Path) -> Path:
    current = path
    while not current.exists() and current != current.parent:
        current = current.parent
    return current


def needs_privilege(target: Path) -> bool:
    """대상 디렉토리 또는 기존 대상 파일에 쓰기 권한이 없는지 확인"""
    if hasattr(os, "geteuid") and os.geteuid() == 0:
        return False
    directory = _nearest_existing_dir(target.parent)
    if not os.access(directory, os.W_OK):
        return True
    return target.exists() and not os.access(target, os.W_OK)


def select_writer(target: Path, privilege: str = "auto") -> FileWriter:
    """권한 모드에 맞는 FileWriter 선택"""
    if privilege not in PRIVILEGE_MODES:
        raise ValueError(f"Unknown privilege mode: {privilege} (expected one of {', '.join(PRIVILEGE_MODES)})")

    if privilege == "sudo" or (privilege == "auto" and needs_privilege(Path(target))):
        return SudoFileWriter()
    return DirectFileWriter()
