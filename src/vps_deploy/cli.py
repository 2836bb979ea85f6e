"""
CLI 메인 인터페이스
Click 및 Rich 기반 사용자 친화적 CLI
"""

import sys
import click
from pathlib import Path
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .backup import DEFAULT_KEEP, BackupManager
from .config import DeployConfig
from .deployer import DeployOrchestrator
from .environment import Environment
from .errors import DeployError
from .logger import init_logger
from .renderer import TemplateRenderer
from .rollback import RollbackOperator
from .template import resolve_template
from .writer import PRIVILEGE_MODES, select_writer

console = Console()

privilege_option = click.option(
    '--privilege', type=click.Choice(PRIVILEGE_MODES), default='auto', show_default=True,
    help='쓰기 권한 방식 (auto: 쓰기 불가 경로는 sudo 사용)'
)


def fail(error: Exception):
    console.print(f"[red]✗ {escape(str(error))}[/red]")
    sys.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option('--debug', is_flag=True, help='디버그 모드')
@click.option('--log-dir', type=click.Path(file_okay=False), default=None, help='로그 파일 디렉토리')
@click.pass_context
def cli(ctx, debug, log_dir):
    """VPS Config Deployer

    ${VAR} 템플릿을 백업/원자적 교체/롤백과 함께 VPS 구성 파일로 배포합니다.
    """
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug
    ctx.obj['log_dir'] = log_dir
    init_logger(log_dir, "INFO", debug)


@cli.command()
@click.argument('template', type=click.Path(dir_okay=False))
@click.argument('target', type=click.Path(dir_okay=False))
@click.option('--env-file', '-e', type=click.Path(exists=True, dir_okay=False), required=True,
              help='KEY=VALUE 형식 환경 파일')
@click.option('--templates-dir', '-t', type=click.Path(file_okay=False), default=None,
              help='템플릿 디렉토리 (상대 템플릿 이름 기준)')
@click.option('--no-backup', is_flag=True, help='기존 파일 백업 생략')
@click.option('--keep', type=click.IntRange(min=1), default=DEFAULT_KEEP, show_default=True,
              help='보존할 백업 수')
@click.option('--require', 'required', multiple=True, help='필수 변수 (여러 번 지정 가능)')
@click.option('--validate', type=click.Choice(["auto", "yaml", "none"]), default='auto', show_default=True,
              help='렌더링 결과 검증 방식')
@privilege_option
def render(template, target, env_file, templates_dir, no_backup, keep, required, validate, privilege):
    """템플릿 하나를 대상 경로에 배포"""
    try:
        env = Environment.from_file(env_file)
        env.require(required)
        renderer = TemplateRenderer(env, templates_dir=templates_dir, privilege=privilege, backup_keep=keep)
        result = renderer.render(template, target, backup=not no_backup, validate=validate)
    except DeployError as e:
        fail(e)

    console.print(f"[green]✓ 배포 완료: {result.target}[/green]")
    if result.backup:
        console.print(f"  백업: {result.backup}")
    for path in result.pruned:
        console.print(f"  [dim]정리된 백업: {path}[/dim]")
    if result.unset:
        console.print(f"[yellow]⚠ 정의되지 않은 변수: {', '.join(result.unset)}[/yellow]")


@cli.command()
@click.option('--config', '-c', 'config_path', type=click.Path(exists=True, dir_okay=False),
              help='배포 매니페스트 경로')
@click.option('--report', type=click.Path(dir_okay=False), default=None, help='Markdown 리포트 저장 경로')
@click.pass_context
def deploy(ctx, config_path, report):
    """매니페스트의 모든 템플릿 배포"""
    try:
        cfg = DeployConfig(config_path)
    except DeployError as e:
        fail(e)

    if not cfg.config_path:
        console.print("[red]오류: 배포 매니페스트를 찾을 수 없습니다.[/red]")
        console.print("[yellow]--config 옵션을 사용하거나 'vps-deploy init' 으로 샘플을 생성하세요.[/yellow]")
        sys.exit(1)

    if cfg.deployer.log_dir and not ctx.obj.get('log_dir'):
        init_logger(cfg.deployer.log_dir, cfg.deployer.log_level, ctx.obj.get('debug', False))

    orchestrator = DeployOrchestrator(cfg)
    success = orchestrator.deploy()
    orchestrator.show_summary()

    if report:
        orchestrator.write_report(report)
        console.print(f"[green]✓ 리포트 저장: {report}[/green]")

    if success:
        console.print("\n[bold green]✓ 배포 완료![/bold green]")
    sys.exit(0 if success else 1)


@cli.command()
@click.argument('target', type=click.Path(dir_okay=False))
@privilege_option
def rollback(target, privilege):
    """가장 최근 백업으로 대상 파일 복원"""
    try:
        backup = RollbackOperator(privilege=privilege).rollback(target)
    except DeployError as e:
        fail(e)

    console.print(f"[green]✓ 롤백 완료: {target} ← {backup}[/green]")


@cli.command()
@click.argument('target', type=click.Path(dir_okay=False))
@click.option('--keep', type=click.IntRange(min=1), default=DEFAULT_KEEP, show_default=True,
              help='보존할 백업 수')
@privilege_option
def prune(target, keep, privilege):
    """오래된 백업 정리"""
    target_path = Path(target).expanduser().absolute()
    manager = BackupManager(select_writer(target_path, privilege), keep=keep)
    try:
        removed = manager.prune(target_path)
    except DeployError as e:
        fail(e)

    if removed:
        for path in removed:
            console.print(f"[green]✓ 삭제: {path}[/green]")
    else:
        console.print("[cyan]정리할 백업이 없습니다.[/cyan]")


@cli.command()
@click.argument('target', type=click.Path(dir_okay=False))
def backups(target):
    """대상 파일의 백업 목록"""
    target_path = Path(target).expanduser().absolute()
    try:
        found = BackupManager().list_backups(target_path)
    except DeployError as e:
        fail(e)

    if not found:
        console.print(f"[yellow]백업이 없습니다: {target_path}[/yellow]")
        return

    table = Table(title=f"{target_path} 백업", show_header=True, header_style="bold magenta")
    table.add_column("#", style="cyan")
    table.add_column("시간")
    table.add_column("파일")

    for index, backup in enumerate(found, start=1):
        table.add_row(str(index), backup.timestamp.strftime("%Y-%m-%d %H:%M:%S"), str(backup.path))

    console.print(table)


@cli.command()
@click.argument('output', type=click.Path(dir_okay=False), default='./deploy.yaml')
def init(output):
    """샘플 매니페스트 생성"""
    DeployConfig.create_sample(output)
    console.print(f"[green]✓ 샘플 매니페스트 생성: {output}[/green]")
    console.print("[cyan]매니페스트를 편집한 후 다음 명령어로 실행하세요:[/cyan]")
    console.print(f"[cyan]  vps-deploy deploy --config {output}[/cyan]")


@cli.command()
@click.option('--config', '-c', 'config_path', type=click.Path(exists=True, dir_okay=False),
              required=True, help='배포 매니페스트 경로')
def validate(config_path):
    """매니페스트, 환경 파일, 템플릿 유효성 검사"""
    problems = []

    try:
        cfg = DeployConfig(config_path)
    except DeployError as e:
        fail(e)

    try:
        env = Environment.from_file(cfg.env_file_path())
        env.require(cfg.module.required_vars)
    except DeployError as e:
        problems.append(str(e))

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("템플릿", style="cyan")
    table.add_column("대상")
    table.add_column("상태")

    for entry in cfg.templates:
        try:
            resolve_template(entry.template, cfg.templates_path())
            status = "[green]✓[/green]"
        except DeployError as e:
            problems.append(str(e))
            status = "[red]✗ 없음[/red]"
        table.add_row(entry.template, entry.target, status)

    console.print(table)

    if problems:
        for problem in problems:
            console.print(f"[red]✗ {escape(problem)}[/red]")
        sys.exit(1)

    console.print("[green]✓ 매니페스트가 유효합니다.[/green]")


def main():
    """메인 엔트리 포인트"""
    cli(obj={})


if __name__ == '__main__':
    main()
