"""
파일 쓰기 권한 모듈 테스트
"""

import subprocess

import pytest

from vps_deploy.writer import (
    DirectFileWriter,
    SudoFileWriter,
    select_writer,
    temp_path_for,
)


def test_temp_path_is_colocated_and_unique(tmp_path):
    target = tmp_path / "app.conf"
    first, second = temp_path_for(target), temp_path_for(target)

    assert first.parent == tmp_path
    assert first.name.startswith(".app.conf.tmp.")
    assert first != second


def test_direct_write_refuses_existing(tmp_path):
    path = tmp_path / "file"
    writer = DirectFileWriter()
    writer.write(path, "one", 0o600)

    with pytest.raises(FileExistsError):
        writer.write(path, "two")
    assert path.read_text() == "one"


def test_direct_remove_missing_is_noop(tmp_path):
    DirectFileWriter().remove(tmp_path / "missing")


def test_select_writer_modes(tmp_path):
    target = tmp_path / "app.conf"

    assert isinstance(select_writer(target, "direct"), DirectFileWriter)
    assert isinstance(select_writer(target, "sudo"), SudoFileWriter)
    assert isinstance(select_writer(target, "auto"), DirectFileWriter)
    with pytest.raises(ValueError):
        select_writer(target, "root")


def test_select_writer_auto_unwritable(tmp_path, monkeypatch):
    monkeypatch.setattr("vps_deploy.writer.os.geteuid", lambda: 1000)
    monkeypatch.setattr("vps_deploy.writer.os.access", lambda path, mode: False)

    assert isinstance(select_writer(tmp_path / "new" / "app.conf", "auto"), SudoFileWriter)


class Recorder:
    def __init__(self, returncode=0):
        self.calls = []
        self.returncode = returncode

    def __call__(self, cmd, input=None, **kwargs):
        self.calls.append((cmd, input))
        return subprocess.CompletedProcess(cmd, self.returncode, stdout=None, stderr="permission denied")


def test_sudo_writer_commands(tmp_path, monkeypatch):
    recorder = Recorder()
    monkeypatch.setattr("vps_deploy.writer.subprocess.run", recorder)
    writer = SudoFileWriter()
    temp = tmp_path / ".app.conf.tmp.1"

    writer.write(temp, "port=8443\n", 0o644)
    writer.replace(temp, tmp_path / "app.conf")

    assert recorder.calls == [
        (["sudo", "tee", str(temp)], "port=8443\n"),
        (["sudo", "chmod", "644", str(temp)], None),
        (["sudo", "mv", "-f", str(temp), str(tmp_path / "app.conf")], None),
    ]


def test_sudo_writer_failure_raises_oserror(tmp_path, monkeypatch):
    monkeypatch.setattr("vps_deploy.writer.subprocess.run", Recorder(returncode=1))

    with pytest.raises(OSError) as exc_info:
        SudoFileWriter().copy(tmp_path / "a", tmp_path / "b")
    assert "permission denied" in str(exc_info.value)
