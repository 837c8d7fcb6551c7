"""
CLI エントリポイント — Typer ベースのコマンドラインインターフェース

sjr コマンドとして以下のサブコマンドを提供する:
  - run: シナリオ実行
  - validate: スキーマ・参照の検証
  - list-steps: 全ステップ一覧
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import typer

from .settings import apply_overrides, load_settings_from_env

if TYPE_CHECKING:
    from .core.outcome import ScenarioResult
    from .dsl.schema import Scenario, SuiteConfig
    from .settings import RunSettings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Typer アプリ定義
# ---------------------------------------------------------------------------

app = typer.Typer(
    help=(
        "sjr — ストアフロント巡回シナリオ実行ツール\n\n"
        "基本の流れ:\n"
        "  1. sjr validate flows/xxx.yaml  シナリオと設定を検証\n"
        "  2. sjr run flows/xxx.yaml       ブラウザでシナリオを実行\n\n"
        "詳しくは各コマンドに --help を付けてください。"
    ),
    no_args_is_help=True,
)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="ログレベル (DEBUG / INFO / WARNING / ERROR)",
    ),
) -> None:
    """ログ出力を設定する。"""
    level_name = (log_level or load_settings_from_env().log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(name)s - %(message)s",
    )


# ---------------------------------------------------------------------------
# run コマンド
# ---------------------------------------------------------------------------

@app.command()
def run(
    scenario_file: Path = typer.Argument(..., help="実行するシナリオ YAML ファイル"),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="設定 YAML ファイル（省略時はシナリオの config キー）",
    ),
    headed: Optional[bool] = typer.Option(
        None, "--headed/--headless", help="ブラウザ表示モード（デフォルト: 表示）",
    ),
    slow_mo: Optional[int] = typer.Option(
        None, "--slow-mo", help="各操作間の遅延（ミリ秒）",
    ),
    channel: Optional[str] = typer.Option(
        None, "--channel", help="ブラウザチャンネル (chrome / msedge 等)",
    ),
    keep_open: Optional[bool] = typer.Option(
        None, "--keep-open/--no-keep-open", help="終了後、Enter が押されるまでブラウザを閉じない",
    ),
    report_dir: Optional[Path] = typer.Option(
        None, "--report-dir", help="report.json の出力先ディレクトリ",
    ),
) -> None:
    """シナリオを実行する。最初の失敗で中断し、終了コード 1 を返す。"""
    from .core.reporting import Reporter
    from .dsl.parser import DslParser

    try:
        scenario, suite_config = DslParser().load_suite(scenario_file, config)
    except (FileNotFoundError, ValueError) as exc:
        typer.echo(f"エラー: {exc}", err=True)
        raise typer.Exit(code=1)

    settings = apply_overrides(
        load_settings_from_env(),
        headed=headed,
        slow_mo=slow_mo,
        channel=channel,
        keep_open=keep_open,
    )

    try:
        result = asyncio.run(_execute(scenario, suite_config, settings))
    except Exception as exc:
        typer.echo(f"エラー: {exc}", err=True)
        raise typer.Exit(code=1)

    reporter = Reporter()
    for line in reporter.render(result):
        typer.echo(line)

    if report_dir is not None:
        report_path = reporter.generate_json(result, report_dir)
        typer.echo(f"レポート: {report_path}")

    if not result.passed:
        raise typer.Exit(code=1)


async def _execute(
    scenario: Scenario, suite_config: SuiteConfig, settings: RunSettings
) -> ScenarioResult:
    """ブラウザを起動してシナリオを1回実行する。"""
    from .browser.session import open_page
    from .core.runner import Runner

    hold = _wait_for_enter if settings.keep_open else None
    async with open_page(settings, hold=hold) as page:
        return await Runner().run(scenario, page, suite_config)


async def _wait_for_enter() -> None:
    await asyncio.to_thread(typer.pause, "Enter キーを押すとブラウザを閉じます...")


# ---------------------------------------------------------------------------
# validate コマンド
# ---------------------------------------------------------------------------

@app.command()
def validate(
    scenario_file: Path = typer.Argument(..., help="検証するシナリオ YAML ファイル"),
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="設定 YAML ファイル（省略時はシナリオの config キー）",
    ),
) -> None:
    """シナリオのスキーマと、設定ファイルへの名前参照を検証する。"""
    from .dsl.parser import DslParser

    errors = DslParser().validate(scenario_file, config)

    if not errors:
        typer.echo(f"✓ {scenario_file}: 検証 OK")
    else:
        for err in errors:
            line_info = f" (行 {err.line})" if err.line else ""
            typer.echo(f"✗ {err.location}{line_info}: {err.message}", err=True)
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# list-steps コマンド
# ---------------------------------------------------------------------------

@app.command("list-steps")
def list_steps() -> None:
    """登録済み全ステップの一覧を表示する。"""
    from .steps import create_default_registry

    registry = create_default_registry()
    all_steps = registry.list_all()

    categories: dict[str, list] = {}
    for info in all_steps:
        categories.setdefault(info.category, []).append(info)

    for category, steps in sorted(categories.items()):
        typer.echo(f"\n[{category}]")
        for step in steps:
            typer.echo(f"  {step.name:24s} {step.description}")

    typer.echo(f"\n合計: {len(all_steps)} ステップ")
