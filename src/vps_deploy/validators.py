"""
렌더링 결과 검증
대상 파일에 쓰기 전에 YAML 문법 확인
"""

from pathlib import Path

import yaml

from .errors import RenderFailed

VALIDATION_MODES = ("auto", "yaml", "none")
YAML_SUFFIXES = (".yaml", ".yml")


def detect_validation(target: Path, validate: str = "auto") -> str:
    """검증 방식 결정 (auto 는 확장자로 판단)"""
    if validate not in VALIDATION_MODES:
        raise ValueError(f"Unknown validation mode: {validate}")
    if validate == "auto":
        return "yaml" if Path(target).suffix.lower() in YAML_SUFFIXES else "none"
    return validate


def validate_rendered(content: str, target: Path, validate: str = "auto"):
    """렌더링된 내용 검증, 실패 시 RenderFailed"""
    if detect_validation(target, validate) != "yaml":
        return

    try:
        list(yaml.safe_load_all(content))
    except yaml.YAMLError as e:
        raise RenderFailed(target, f"rendered content is not valid YAML: {e}")
