"""
설정 관리 모듈
YAML 기반 배포 매니페스트 관리 및 기본값 제공
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field, asdict

from .backup import DEFAULT_KEEP
from .errors import ManifestError
from .validators import VALIDATION_MODES
from .writer import PRIVILEGE_MODES


@dataclass
class DeployerSettings:
    """배포기 동작 설정"""
    log_dir: str = ""
    log_level: str = "INFO"
    backup_keep: int = DEFAULT_KEEP
    privilege: str = "auto"
    rollback_on_failure: bool = True


@dataclass
class ModuleSettings:
    """배포 모듈 설정 (.env, 템플릿 위치)"""
    name: str = "default"
    env_file: str = ".env"
    templates_dir: str = "templates"
    required_vars: list = field(default_factory=list)


@dataclass
class TemplateEntry:
    """배포할 템플릿 하나"""
    template: str
    target: str
    backup: bool = True
    mode: Optional[int] = None
    validate: str = "auto"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['mode'] = format(self.mode, "04o") if self.mode is not None else None
        return data


def parse_mode(value) -> Optional[int]:
    """8진수 문자열(예: "0755") 또는 정수를 파일 권한 값으로 변환"""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError(f"invalid file mode: {value!r}")
    if isinstance(value, int):
        return value
    return int(str(value), 8)


class DeployConfig:
    """전체 배포 설정 관리 클래스"""

    DEFAULT_CONFIG_PATHS = [
        "/etc/vps-deploy/deploy.yaml",
        "~/.vps-deploy/deploy.yaml",
        "./deploy.yaml",
    ]

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path
        self.deployer = DeployerSettings()
        self.module = ModuleSettings()
        self.templates: List[TemplateEntry] = []

        if config_path:
            self.load(config_path)
        else:
            self._load_from_default_paths()

    def _load_from_default_paths(self):
        """기본 경로에서 설정 파일 로드"""
        for path in self.DEFAULT_CONFIG_PATHS:
            expanded_path = os.path.expanduser(path)
            if os.path.exists(expanded_path):
                self.load(expanded_path)
                return

    def load(self, path: str):
        """설정 파일 로드"""
        path = os.path.expanduser(path)
        if not os.path.exists(path):
            raise ManifestError(path, "manifest not found")

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ManifestError(path, f"invalid YAML: {e}")

        if not isinstance(data, dict):
            raise ManifestError(path, "top level must be a mapping")

        self.config_path = path
        self._update_from_dict(data)

    def _update_from_dict(self, data: Dict[str, Any]):
        """딕셔너리에서 설정 업데이트"""
        if 'deployer' in data:
            for key, value in (data['deployer'] or {}).items():
                if hasattr(self.deployer, key):
                    setattr(self.deployer, key, value)

        if 'module' in data:
            for key, value in (data['module'] or {}).items():
                if hasattr(self.module, key):
                    setattr(self.module, key, value)

        if 'templates' in data:
            self.templates = [self._parse_entry(i, item) for i, item in enumerate(data['templates'] or [])]

        self._check()

    def _parse_entry(self, index: int, item: Any) -> TemplateEntry:
        if not isinstance(item, dict) or not item.get('template') or not item.get('target'):
            raise ManifestError(self.config_path, f"templates[{index}] needs 'template' and 'target'")
        try:
            mode = parse_mode(item.get('mode'))
        except ValueError:
            raise ManifestError(self.config_path, f"templates[{index}] has invalid mode {item.get('mode')!r}")

        validate = item.get('validate', 'auto')
        if validate not in VALIDATION_MODES:
            raise ManifestError(self.config_path, f"templates[{index}] has invalid validate {validate!r}")

        return TemplateEntry(
            template=str(item['template']),
            target=str(item['target']),
            backup=bool(item.get('backup', True)),
            mode=mode,
            validate=validate,
        )

    def _check(self):
        if self.deployer.privilege not in PRIVILEGE_MODES:
            raise ManifestError(self.config_path, f"invalid privilege {self.deployer.privilege!r}")
        if not isinstance(self.deployer.backup_keep, int) or self.deployer.backup_keep < 1:
            raise ManifestError(self.config_path, "backup_keep must be a positive integer")
        if not isinstance(self.module.required_vars, list):
            raise ManifestError(self.config_path, "required_vars must be a list")

    @property
    def base_dir(self) -> Path:
        """상대 경로 기준 디렉토리 (매니페스트 위치)"""
        if self.config_path:
            return Path(self.config_path).resolve().parent
        return Path.cwd()

    def env_file_path(self) -> Path:
        return self.base_dir / Path(self.module.env_file).expanduser()

    def templates_path(self) -> Path:
        return self.base_dir / Path(self.module.templates_dir).expanduser()

    def save(self, path: Optional[str] = None):
        """설정 파일 저장"""
        save_path = path or self.config_path or self.DEFAULT_CONFIG_PATHS[0]
        save_path = os.path.expanduser(save_path)

        os.makedirs(os.path.dirname(os.path.abspath(save_path)), exist_ok=True)

        with open(save_path, 'w', encoding='utf-8') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, allow_unicode=True, sort_keys=False)

    def to_dict(self) -> Dict[str, Any]:
        """딕셔너리로 변환"""
        return {
            'deployer': asdict(self.deployer),
            'module': asdict(self.module),
            'templates': [entry.to_dict() for entry in self.templates],
        }

    @staticmethod
    def create_sample(output_path: str):
        """샘플 매니페스트 생성"""
        template = """# VPS Deploy manifest
# 이 파일을 복사하여 deploy.yaml로 사용하세요

# 배포기 설정
deployer:
  log_dir: ""  # 비워두면 콘솔에만 로그 출력 (예: /var/log/vps-deploy)
  log_level: "INFO"  # DEBUG, INFO, WARNING, ERROR
  backup_keep: 5  # 대상 파일별 보존할 백업 수
  privilege: "auto"  # auto, direct, sudo
  rollback_on_failure: true

# 모듈 설정 (상대 경로는 이 파일 기준)
module:
  name: "system-hardening"
  env_file: ".env"
  templates_dir: "templates"
  required_vars:
    - "SSH_PORT"
    - "EMAIL"

# 배포할 템플릿
templates:
  - template: "nftables.conf"
    target: "/etc/nftables.conf"
  - template: "sshd_config"
    target: "/etc/ssh/sshd_config"
  - template: "fail2ban-jail.local"
    target: "/etc/fail2ban/jail.local"
  - template: "99-system-overview"
    target: "/etc/update-motd.d/99-system-overview"
    mode: "0755"
  - template: "config.yaml"
    target: "/etc/rancher/k3s/config.yaml"
    validate: "auto"  # .yaml/.yml 대상은 YAML 문법 검사
"""

        os.makedirs(os.path.dirname(os.path.abspath(output_path)), exist_ok=True)
        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(template)
