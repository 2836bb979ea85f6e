"""
치환 환경 변수 모듈
KEY=VALUE 형식의 .env 파일을 한 번 읽어 불변 매핑으로 제공
"""

import re
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, Mapping, Optional, Union

from .errors import EnvFileError, MissingVariablesError
from .logger import get_logger

KEY_PATTERN = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')


class Environment(Mapping):
    """치환에 사용하는 불변 변수 집합

    로드 이후에는 수정할 수 없으며 렌더러에 명시적으로 전달된다.
    """

    def __init__(self, values: Optional[Mapping[str, str]] = None, source: Optional[Path] = None):
        self._values = MappingProxyType(dict(values or {}))
        self.source = source

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Environment({len(self)} vars, source={self.source})"

    def require(self, names: Iterable[str]) -> None:
        """필수 변수 확인 (누락되거나 빈 값이면 예외)"""
        missing = [name for name in names if not self._values.get(name)]
        if missing:
            raise MissingVariablesError(missing, self.source)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "Environment":
        """.env 파일 로드"""
        path = Path(path).expanduser()
        logger = get_logger()

        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise EnvFileError(path, ".env file not found")
        except (OSError, UnicodeDecodeError) as e:
            raise EnvFileError(path, str(e))

        values = parse_env(text, path)
        logger.info(f"Environment variables loaded from {path} ({len(values)} vars)")
        return cls(values, source=path)


def parse_env(text: str, path: Union[str, Path] = "<string>") -> Dict[str, str]:
    """KEY=VALUE 라인 파싱

    잘못된 라인이 하나라도 있으면 전체 로드를 실패시킨다.
    """
    result: Dict[str, str] = {}

    for line_no, line in enumerate(text.splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue

        if stripped.startswith("export "):
            stripped = stripped[len("export "):].lstrip()

        if "=" not in stripped:
            raise EnvFileError(path, f"expected KEY=VALUE, got {stripped!r}", line_no)

        key, _, raw_value = stripped.partition("=")
        key = key.strip()
        if not KEY_PATTERN.match(key):
            raise EnvFileError(path, f"invalid variable name {key!r}", line_no)

        result[key] = _parse_value(raw_value.strip(), path, line_no)

    return result


def _parse_value(raw: str, path, line_no: int) -> str:
    if raw[:1] in ("'", '"'):
        quote = raw[0]
        end = raw.find(quote, 1)
        if end == -1:
            raise EnvFileError(path, "unterminated quoted value", line_no)
        rest = raw[end + 1:].strip()
        if rest and not rest.startswith("#"):
            raise EnvFileError(path, f"unexpected text after quoted value: {rest!r}", line_no)
        return raw[1:end]

    # 따옴표 없는 값의 인라인 주석 제거
    comment = re.search(r'\s#', raw)
    if comment:
        raw = raw[:comment.start()].rstrip()
    return raw
