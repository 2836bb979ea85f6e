"""
배포 오케스트레이터
매니페스트의 템플릿을 순서대로 배포하고, 실패 시 이번 실행에서 바뀐 파일을 롤백
"""

from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional

from jinja2 import Template
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import DeployConfig
from .environment import Environment
from .errors import DeployError
from .logger import get_logger
from .renderer import RenderResult, TemplateRenderer
from .rollback import RollbackOperator

console = Console()

REPORT_TEMPLATE = """# VPS Deploy 배포 리포트

**생성 시간**: {{ generation_time }}
**매니페스트**: {{ manifest }}
**모듈**: {{ module }}
**결과**: {{ "성공" if success else "실패" }}

---

## 배포 단계

| 템플릿 | 대상 | 상태 | 백업 | 메시지 |
|--------|------|------|------|--------|
{% for step in steps -%}
| {{ step.template }} | {{ step.target }} | {{ step.status }} | {{ step.backup or "-" }} | {{ step.message }} |
{% endfor %}
{% if unset %}
## 정의되지 않은 변수

다음 변수는 빈 문자열로 치환되었습니다:
{% for name in unset %}
- `{{ name }}`
{%- endfor %}
{% endif %}
{% if rolled_back %}
## 롤백된 파일
{% for path in rolled_back %}
- {{ path }}
{%- endfor %}
{% endif %}
"""


class DeployOrchestrator:
    """매니페스트 배포 오케스트레이터"""

    def __init__(self, config: DeployConfig, env: Optional[Environment] = None,
                 renderer: Optional[TemplateRenderer] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.config = config
        self.env = env
        self.renderer = renderer
        self.clock = clock
        self.logger = get_logger()
        self.execution_log: List[Dict] = []
        self.deployed: List[RenderResult] = []
        self.rolled_back: List[Path] = []
        self.success = False

    def log_step(self, template: str, target: str, status: str, message: str = "",
                 result: Optional[RenderResult] = None):
        """실행 단계 기록"""
        self.execution_log.append({
            "template": template,
            "target": target,
            "status": status,
            "message": message,
            "backup": str(result.backup) if result and result.backup else None,
            "unset": list(result.unset) if result else [],
        })

    def prepare(self):
        """환경 로드 및 필수 변수 확인"""
        if self.env is None:
            self.env = Environment.from_file(self.config.env_file_path())
        self.env.require(self.config.module.required_vars)

        if self.renderer is None:
            self.renderer = TemplateRenderer(
                self.env,
                templates_dir=self.config.templates_path(),
                privilege=self.config.deployer.privilege,
                backup_keep=self.config.deployer.backup_keep,
                clock=self.clock,
            )

    def deploy(self) -> bool:
        """모든 템플릿 배포"""
        self.logger.info(f"=== Deploying module {self.config.module.name} ===")

        try:
            self.prepare()
        except DeployError as e:
            self.logger.error(str(e))
            self.log_step("-", "-", "failed", str(e))
            return False

        for entry in self.config.templates:
            console.print(f"[cyan]→ {escape(entry.template)} → {escape(entry.target)}[/cyan]")
            try:
                result = self.renderer.render(
                    entry.template,
                    entry.target,
                    backup=entry.backup,
                    validate=entry.validate,
                    mode=entry.mode,
                )
            except DeployError as e:
                self.logger.error(str(e))
                self.log_step(entry.template, entry.target, "failed", str(e))
                if self.config.deployer.rollback_on_failure:
                    self.rollback_all()
                return False

            self.deployed.append(result)
            message = "배포 완료"
            if result.unset:
                message += f" (미정의: {', '.join(result.unset)})"
            self.log_step(entry.template, entry.target, "success", message, result)

        self.success = True
        self.logger.info(f"=== Module {self.config.module.name} deployed ({len(self.deployed)} files) ===")
        return True

    def rollback_all(self):
        """이번 실행에서 백업을 만든 대상을 역순으로 복원

        각 단계가 만든 백업 자체를 복원하므로 같은 대상이 여러 번 배포되어도
        첫 단계 이전 내용으로 돌아간다.
        """
        console.print("\n[bold yellow]오류 발생! 롤백을 시작합니다...[/bold yellow]\n")
        self.logger.error("Deployment failed, rolling back files deployed in this run...")

        for result in reversed(self.deployed):
            if result.backup is None:
                self.logger.warning(f"No backup was taken for {result.target}, leaving it in place")
                continue

            writer = self.renderer.writer_for(result.target)
            try:
                RollbackOperator(writer).restore(result.target, result.backup)
            except DeployError as e:
                self.logger.error(f"Rollback failed: {e}")
                continue
            if result.target not in self.rolled_back:
                self.rolled_back.append(result.target)

        console.print("\n[yellow]롤백 완료[/yellow]")
        self.logger.info("Rollback completed")

    def show_summary(self):
        """실행 결과 요약 표시"""
        table = Table(show_header=True, header_style="bold magenta", title="배포 결과 요약")
        table.add_column("템플릿", style="cyan")
        table.add_column("대상")
        table.add_column("상태", width=6)
        table.add_column("백업")
        table.add_column("메시지")

        for step in self.execution_log:
            status_icon = "✓" if step["status"] == "success" else "✗"
            status_color = "green" if step["status"] == "success" else "red"
            table.add_row(
                step["template"],
                step["target"],
                f"[{status_color}]{status_icon}[/{status_color}]",
                step["backup"] or "-",
                escape(step["message"])
            )

        console.print(table)

        log_files = self.logger.get_log_files()
        if log_files["main_log"]:
            console.print("\n[bold]로그 파일:[/bold]")
            console.print(f"  Main: {log_files['main_log']}")
            console.print(f"  Error: {log_files['error_log']}")

    def write_report(self, output_path: str) -> Path:
        """Markdown 배포 리포트 생성"""
        unset = sorted({name for step in self.execution_log for name in step["unset"]})

        content = Template(REPORT_TEMPLATE).render(
            generation_time=datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            manifest=self.config.config_path or "-",
            module=self.config.module.name,
            success=self.success,
            steps=self.execution_log,
            unset=unset,
            rolled_back=[str(path) for path in self.rolled_back],
        )

        output_file = Path(output_path)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        with open(output_file, "w", encoding="utf-8") as f:
            f.write(content)

        self.logger.info(f"Deployment report written: {output_file}")
        return output_file
