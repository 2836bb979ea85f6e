"""
템플릿 렌더러 테스트
"""

import os
import stat
from datetime import datetime
from pathlib import Path

import pytest

from vps_deploy.backup import BackupManager
from vps_deploy.environment import Environment
from vps_deploy.errors import AtomicMoveFailed, BackupFailed, RenderFailed, TemplateNotFound
from vps_deploy.renderer import TemplateRenderer
from vps_deploy.writer import DirectFileWriter


def leftover_temp_files(directory):
    return [p for p in directory.iterdir() if ".tmp." in p.name]


def test_render_with_backup(tmp_path, env, templates_dir, clock):
    """port=${PORT} 예제: 새 내용 배포 + 이전 내용 백업"""
    target = tmp_path / "app.conf"
    target.write_text("port=80\n", encoding="utf-8")

    result = TemplateRenderer(env, templates_dir, clock=clock).render("app.conf", target)

    assert target.read_text() == "port=8443\n"
    assert result.backup == tmp_path / "app.conf.backup.20240101-120000"
    assert result.backup.read_text() == "port=80\n"
    assert result.variables == ["PORT"]
    assert result.unset == []
    assert leftover_temp_files(tmp_path) == []


def test_render_new_target_creates_directories(tmp_path, env, templates_dir):
    target = tmp_path / "etc" / "app" / "app.conf"

    result = TemplateRenderer(env, templates_dir).render("app.conf", target)

    assert target.read_text() == "port=8443\n"
    assert result.backup is None
    assert stat.S_IMODE(target.stat().st_mode) == 0o644


def test_render_without_backup(tmp_path, env, templates_dir):
    target = tmp_path / "app.conf"
    target.write_text("port=80\n")

    result = TemplateRenderer(env, templates_dir).render("app.conf", target, backup=False)

    assert result.backup is None
    assert BackupManager().list_backups(target) == []
    assert target.read_text() == "port=8443\n"


def test_render_keeps_five_most_recent_backups(tmp_path, env, templates_dir, clock):
    """7번 렌더링하면 t3..t7 백업만 남는다"""
    target = tmp_path / "app.conf"
    target.write_text("initial\n")
    renderer = TemplateRenderer(env, templates_dir, clock=clock)

    created = [renderer.render("app.conf", target).backup for _ in range(7)]

    remaining = [b.path for b in BackupManager().list_backups(target)]
    assert remaining == created[2:]
    assert not created[0].exists()
    assert not created[1].exists()


def test_render_reports_unset_variables(tmp_path, templates_dir):
    target = tmp_path / "app.conf"

    result = TemplateRenderer(Environment(), templates_dir).render("app.conf", target)

    assert target.read_text() == "port=\n"
    assert result.unset == ["PORT"]


def test_render_template_not_found(tmp_path, env, templates_dir):
    target = tmp_path / "app.conf"
    target.write_text("port=80\n")

    with pytest.raises(TemplateNotFound):
        TemplateRenderer(env, templates_dir).render("missing.conf", target)

    assert target.read_text() == "port=80\n"
    assert BackupManager().list_backups(target) == []


def test_render_preserves_existing_mode(tmp_path, env, templates_dir):
    target = tmp_path / "motd"
    target.write_text("old\n")
    os.chmod(target, 0o755)

    TemplateRenderer(env, templates_dir).render("app.conf", target)

    assert stat.S_IMODE(target.stat().st_mode) == 0o755


def test_render_explicit_mode(tmp_path, env, templates_dir):
    target = tmp_path / "motd"

    TemplateRenderer(env, templates_dir).render("app.conf", target, mode=0o750)

    assert stat.S_IMODE(target.stat().st_mode) == 0o750


def test_render_invalid_yaml_leaves_target(tmp_path, templates_dir):
    (templates_dir / "config.yaml").write_text("token: ${TOKEN}\n")
    target = tmp_path / "config.yaml"
    target.write_text("token: old\n")
    env = Environment({"TOKEN": "[unclosed"})

    with pytest.raises(RenderFailed):
        TemplateRenderer(env, templates_dir).render("config.yaml", target, validate="auto")

    assert target.read_text() == "token: old\n"
    assert leftover_temp_files(tmp_path) == []


def test_render_valid_yaml(tmp_path, templates_dir):
    (templates_dir / "config.yaml").write_text("token: ${TOKEN}\n---\nother: 1\n")
    target = tmp_path / "config.yaml"

    TemplateRenderer(Environment({"TOKEN": "abc"}), templates_dir).render("config.yaml", target, validate="auto")

    assert target.read_text() == "token: abc\n---\nother: 1\n"


class FailingCopyWriter(DirectFileWriter):
    def copy(self, src, dst):
        raise OSError("disk full")


class FailingWriteWriter(DirectFileWriter):
    def write(self, path, content, mode=0o644):
        # 일부만 기록한 뒤 실패
        with open(path, "w") as f:
            f.write(content[:3])
        raise OSError("disk full")


class FailingReplaceWriter(DirectFileWriter):
    def replace(self, src, dst):
        raise OSError("cross-device link")


def test_backup_failure_aborts(tmp_path, env, templates_dir):
    target = tmp_path / "app.conf"
    target.write_text("port=80\n")

    with pytest.raises(BackupFailed) as exc_info:
        TemplateRenderer(env, templates_dir, writer=FailingCopyWriter()).render("app.conf", target)

    assert str(target) in str(exc_info.value)
    assert target.read_text() == "port=80\n"
    assert leftover_temp_files(tmp_path) == []


def test_write_failure_preserves_target(tmp_path, env, templates_dir, clock):
    target = tmp_path / "app.conf"
    target.write_text("port=80\n")

    with pytest.raises(RenderFailed):
        TemplateRenderer(env, templates_dir, writer=FailingWriteWriter(), clock=clock).render("app.conf", target)

    assert target.read_text() == "port=80\n"
    assert leftover_temp_files(tmp_path) == []
    # 실패 이전에 만들어진 백업은 남는다
    assert len(BackupManager().list_backups(target)) == 1


def test_replace_failure_preserves_target(tmp_path, env, templates_dir):
    target = tmp_path / "app.conf"
    target.write_text("port=80\n")

    with pytest.raises(AtomicMoveFailed):
        TemplateRenderer(env, templates_dir, writer=FailingReplaceWriter()).render("app.conf", target, backup=False)

    assert target.read_text() == "port=80\n"
    assert leftover_temp_files(tmp_path) == []


class ObservingWriter(DirectFileWriter):
    """교체 직전 대상과 임시 파일 상태 기록"""

    def __init__(self, target):
        self.target = target
        self.written = []
        self.observed = []

    def write(self, path, content, mode=0o644):
        self.written.append(path)
        super().write(path, content, mode)

    def replace(self, src, dst):
        self.observed.append((self.target.read_text(), src.read_text(), src.parent))
        super().replace(src, dst)


def test_target_only_changes_by_rename(tmp_path, env, templates_dir):
    """대상 파일은 부분 기록 없이 rename 으로만 바뀐다"""
    target = tmp_path / "app.conf"
    target.write_text("port=80\n")
    writer = ObservingWriter(target)

    TemplateRenderer(env, templates_dir, writer=writer).render("app.conf", target, backup=False)

    assert target not in writer.written
    assert writer.observed == [("port=80\n", "port=8443\n", tmp_path)]
    assert target.read_text() == "port=8443\n"


def test_render_same_second_keeps_earlier_backup(tmp_path, templates_dir):
    """같은 초에 두 번 배포하면 두 번째는 중단되고 첫 백업은 유지된다"""
    target = tmp_path / "app.conf"
    target.write_text("port=80\n")
    fixed = lambda: datetime(2024, 1, 1, 12, 0, 0)

    first = TemplateRenderer(Environment({"PORT": "1"}), templates_dir, clock=fixed).render("app.conf", target)
    with pytest.raises(BackupFailed):
        TemplateRenderer(Environment({"PORT": "2"}), templates_dir, clock=fixed).render("app.conf", target)

    assert target.read_text() == "port=1\n"
    assert first.backup.read_text() == "port=80\n"
    assert [b.path for b in BackupManager().list_backups(target)] == [first.backup]
    assert leftover_temp_files(tmp_path) == []


def test_render_continues_when_backups_cannot_be_listed(tmp_path, env, templates_dir, clock, monkeypatch):
    target = tmp_path / "app.conf"
    target.write_text("port=80\n")

    def denied(self):
        raise PermissionError(13, "Permission denied", str(self))

    monkeypatch.setattr(Path, "iterdir", denied)
    result = TemplateRenderer(env, templates_dir, clock=clock).render("app.conf", target)
    monkeypatch.undo()

    assert target.read_text() == "port=8443\n"
    assert result.backup.read_text() == "port=80\n"
    assert result.pruned == []
