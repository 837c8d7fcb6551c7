"""
Reporter — 実行結果の表示用テキスト・JSON レポートの生成

ScenarioResult を受け取り、人が読む進捗メッセージを生成する。

主な機能:
  - render(): ステップごとに1行 + 終了行のテキストを生成（副作用なし）
  - generate_json(): JSON レポート（report.json）の生成

成功行はステップで何が行われたかを過去形で述べ、
失敗行は期待値と実際の値を示す。
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable

from .outcome import (
    DriverError,
    Mismatch,
    Outcome,
    ScenarioResult,
    StepResult,
    Success,
    Timeout,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# 成功時の既定メッセージ（description 未指定時）
# ---------------------------------------------------------------------------

_SUCCESS_MESSAGES: dict[str, Callable[[Any], str]] = {
    "navigate": lambda s: f"'{s.navigate}' へ遷移しました",
    "click": lambda s: (
        f"'{s.click}' をクリックし、遷移を待機しました"
        if s.awaitQuiescenceAfter
        else f"'{s.click}' をクリックしました"
    ),
    "fillAndSubmit": lambda s: f"'{s.fillAndSubmit}' に「{s.text}」を入力して検索しました",
    "verifyDropdownValue": lambda s: (
        f"'{s.verifyDropdownValue}' で「{s.label}」（value: {s.expectedValue}）"
        f"が選択されていることを確認しました"
    ),
    "verifyChecked": lambda s: (
        f"'{s.verifyChecked}' の「{s.label}」がチェックされていることを確認しました"
    ),
    "verifyCollectionCount": lambda s: (
        f"'{s.verifyCollectionCount}' が {s.expectedCount} 件あることを確認しました"
    ),
    "verifyOrderedTexts": lambda s: (
        f"'{s.verifyOrderedTexts}' が期待どおりの順序で表示されていることを確認しました"
    ),
    "verifyTextMatches": lambda s: (
        f"'{s.verifyTextMatches}' のテキストが /{s.pattern}/ に一致することを確認しました"
    ),
}


def _step_label(step: Any) -> str:
    return step.description or f"{step.kind} {step.target}"


def _describe_outcome(outcome: Outcome) -> str:
    """失敗した結果の詳細を1行の文字列にする。"""
    if isinstance(outcome, Mismatch):
        text = f"期待値: {outcome.expected!r}, 実際: {outcome.actual!r}"
        if outcome.details:
            text += " [" + "; ".join(outcome.details) + "]"
        return text
    if isinstance(outcome, (Timeout, DriverError)):
        return outcome.message
    return ""


# ---------------------------------------------------------------------------
# Reporter 本体
# ---------------------------------------------------------------------------

class Reporter:
    """実行結果のテキスト・JSON 出力を生成するクラス。"""

    # -------------------------------------------------------------------
    # テキスト表示
    # -------------------------------------------------------------------

    def render(self, result: ScenarioResult) -> list[str]:
        """ScenarioResult を表示用の行リストに変換する。

        実行された各ステップにつき1行、最後に完了行または中断行を1行出力する。
        ステップ番号は1始まりで表示する。

        Args:
            result: シナリオ実行結果

        Returns:
            表示用の行リスト
        """
        lines = [self.render_step(step) for step in result.steps]

        failed = result.failed_step
        if failed is None:
            lines.append(
                f"シナリオ「{result.scenario_name}」が完了しました"
                f"（{len(result.steps)} ステップ成功, {result.duration_ms:.0f}ms）"
            )
        else:
            lines.append(
                f"ステップ {failed.index + 1} で中断しました: "
                f"{_step_label(failed.step)}（{_describe_outcome(failed.outcome)}）"
            )
        return lines

    def render_step(self, step_result: StepResult) -> str:
        """単一ステップの結果を1行の文字列にする。"""
        number = step_result.index + 1
        step = step_result.step
        outcome = step_result.outcome

        if isinstance(outcome, Success):
            message = step.description or _SUCCESS_MESSAGES[step.kind](step)
            return f"{number}. {message}"

        kind_label = {
            "mismatch": "検証失敗",
            "timeout": "タイムアウト",
            "driver_error": "ドライバーエラー",
        }[outcome.label]
        return f"{number}. [{kind_label}] {_step_label(step)}: {_describe_outcome(outcome)}"

    # -------------------------------------------------------------------
    # JSON レポート
    # -------------------------------------------------------------------

    def generate_json(self, result: ScenarioResult, output_dir: Path) -> Path:
        """JSON レポートを生成する。

        Args:
            result: シナリオ実行結果
            output_dir: 出力先ディレクトリ

        Returns:
            生成された report.json のパス
        """
        output_dir.mkdir(parents=True, exist_ok=True)

        report_data = self._build_report_dict(result)

        output_path = output_dir / "report.json"
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(report_data, f, ensure_ascii=False, indent=2, default=str)

        logger.info("JSON レポートを生成しました: %s", output_path)
        return output_path

    # -------------------------------------------------------------------
    # 内部ヘルパー
    # -------------------------------------------------------------------

    def _build_report_dict(self, result: ScenarioResult) -> dict[str, Any]:
        """ScenarioResult をレポート用辞書に変換する。"""
        steps_data = []
        for step_result in result.steps:
            outcome = step_result.outcome
            step_dict: dict[str, Any] = {
                "index": step_result.index,
                "kind": step_result.step.kind,
                "target": step_result.step.target,
                "description": step_result.step.description,
                "outcome": outcome.label,
                "elapsed_ms": step_result.elapsed_ms,
                "message": self.render_step(step_result),
            }
            if isinstance(outcome, Mismatch):
                step_dict["expected"] = _jsonable(outcome.expected)
                step_dict["actual"] = _jsonable(outcome.actual)
                step_dict["details"] = list(outcome.details)
                step_dict["mismatch_index"] = outcome.index
            steps_data.append(step_dict)

        return {
            "title": result.scenario_name,
            "status": "completed" if result.passed else "aborted",
            "aborted_at": result.aborted_at,
            "duration_ms": result.duration_ms,
            "started_at": (
                result.started_at.isoformat() if result.started_at else None
            ),
            "finished_at": (
                result.finished_at.isoformat() if result.finished_at else None
            ),
            "steps": steps_data,
            "summary": self._compute_summary(result),
        }

    def _compute_summary(self, result: ScenarioResult) -> dict[str, int]:
        """実行済みステップの成否を集計する。"""
        executed = len(result.steps)
        passed = sum(1 for s in result.steps if s.ok)
        return {
            "executed": executed,
            "passed": passed,
            "failed": executed - passed,
        }


def _jsonable(value: Any) -> Any:
    if isinstance(value, tuple):
        return list(value)
    return value


def render(result: ScenarioResult) -> list[str]:
    """ScenarioResult を表示用の行リストに変換する。"""
    return Reporter().render(result)
