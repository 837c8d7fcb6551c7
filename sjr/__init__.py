"""
sjr — ストアフロント巡回シナリオ実行エンジン

名前で参照する URL・ロケーター・タイムアウトの設定と、宣言的なステップ列
（遷移・クリック・入力送信・各種検証）からなるシナリオを、非同期に描画される
ページに対して記述順に実行し、最初の失敗で中断する。

主要エクスポート:
  - build_scenario / Scenario / SuiteConfig: シナリオと設定のモデル
  - Runner / run_scenario: シナリオ実行
  - Reporter / render: 実行結果の表示
  - Page / ElementState: 実行対象ページのインターフェース
"""

from .core.outcome import (
    AbortedAt,
    Completed,
    DriverError,
    Mismatch,
    ScenarioResult,
    StepResult,
    Success,
    Timeout,
)
from .core.page import ElementState, Page
from .core.reporting import Reporter, render
from .core.runner import Runner, run_scenario
from .dsl.schema import Scenario, SuiteConfig, build_scenario

__all__ = [
    "AbortedAt",
    "Completed",
    "DriverError",
    "ElementState",
    "Mismatch",
    "Page",
    "Reporter",
    "Runner",
    "Scenario",
    "ScenarioResult",
    "StepResult",
    "Success",
    "SuiteConfig",
    "Timeout",
    "build_scenario",
    "render",
    "run_scenario",
]
