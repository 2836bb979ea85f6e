"""
공통 테스트 픽스처
"""

from datetime import datetime, timedelta

import pytest

from vps_deploy.environment import Environment
from vps_deploy.logger import init_logger


class FakeClock:
    """호출할 때마다 1초씩 증가하는 시계"""

    def __init__(self, start=datetime(2024, 1, 1, 12, 0, 0)):
        self.current = start

    def __call__(self):
        value = self.current
        self.current += timedelta(seconds=1)
        return value


@pytest.fixture(autouse=True)
def console_logger():
    """파일 로그 없이 콘솔 로거 사용"""
    return init_logger(None, "DEBUG")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def env():
    return Environment({"PORT": "8443", "HOST": "example.com"})


@pytest.fixture
def templates_dir(tmp_path):
    directory = tmp_path / "templates"
    directory.mkdir()
    (directory / "app.conf").write_text("port=${PORT}\n", encoding="utf-8")
    return directory
