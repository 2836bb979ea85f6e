"""
템플릿 치환 모듈
${VAR} 형식 플레이스홀더의 단일 패스 리터럴 치환
"""

import re
from pathlib import Path
from typing import List, Mapping, Optional, Tuple, Union

from .errors import TemplateNotFound

PLACEHOLDER_PATTERN = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)\}')


def find_placeholders(text: str) -> List[str]:
    """템플릿에 등장하는 변수 이름 (정렬, 중복 제거)"""
    return sorted(set(PLACEHOLDER_PATTERN.findall(text)))


def substitute(text: str, env: Mapping[str, str]) -> Tuple[str, List[str]]:
    """플레이스홀더 치환

    치환 결과는 다시 해석하지 않는다. 정의되지 않은 변수는 빈 문자열로 치환된다.

    Returns:
        (치환된 텍스트, 정의되지 않은 변수 목록)
    """
    unset = set()

    def replace(match):
        name = match.group(1)
        if name not in env:
            unset.add(name)
            return ""
        return env[name]

    return PLACEHOLDER_PATTERN.sub(replace, text), sorted(unset)


def resolve_template(template: Union[str, Path], templates_dir: Optional[Union[str, Path]] = None) -> Path:
    """템플릿 경로 확인

    절대 경로는 그대로, 상대 이름은 templates_dir 기준으로 찾는다.
    """
    path = Path(template).expanduser()
    if not path.is_absolute() and templates_dir is not None:
        path = Path(templates_dir).expanduser() / path

    if not path.is_file():
        raise TemplateNotFound(path, "template not found")
    return path


def load_template(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise TemplateNotFound(path, "template not found")
    except (OSError, UnicodeDecodeError) as e:
        raise TemplateNotFound(path, f"template unreadable: {e}")
