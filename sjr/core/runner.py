"""
Runner — シナリオ実行エンジン

Scenario のステップを Page に対して記述順に1つずつ実行し、
ステップごとの結果と全体の終了状態を ScenarioResult として返す。

主な機能:
  - ステップ種別に応じた StepRegistry へのディスパッチ
  - 例外の結果値への分類（Mismatch / Timeout / DriverError）
  - 最初の失敗での中断（後続ステップは実行しない）
  - シナリオ全体のタイムアウト予算

run() はステップの失敗で例外を送出しない。常に結果値を返す。
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from .errors import VerificationMismatch
from .outcome import (
    AbortedAt,
    Completed,
    DriverError,
    Mismatch,
    Outcome,
    ScenarioResult,
    ScenarioStatus,
    StepResult,
    Success,
    Timeout,
)

if TYPE_CHECKING:
    from ..dsl.schema import Scenario, StepType, SuiteConfig
    from ..steps.registry import StepContext, StepRegistry
    from .page import Page

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Runner 本体
# ---------------------------------------------------------------------------

class Runner:
    """シナリオ実行エンジン。

    使用例::

        runner = Runner()
        result = await runner.run(scenario, page, config)
    """

    def __init__(self, registry: Optional[StepRegistry] = None) -> None:
        """Runner を初期化する。

        Args:
            registry: ステップハンドラのレジストリ。None の場合は標準ステップを使用
        """
        if registry is None:
            from ..steps.builtin import create_default_registry

            registry = create_default_registry()
        self._registry = registry

    # -------------------------------------------------------------------
    # パブリック API
    # -------------------------------------------------------------------

    async def run(
        self, scenario: Scenario, page: Page, config: SuiteConfig
    ) -> ScenarioResult:
        """シナリオを実行し、結果を返す。

        Page のライフサイクルは呼び出し側が管理する。Runner は実行中のみ借用する。

        Args:
            scenario: 実行対象のシナリオ
            page: 操作対象の Page
            config: ステップが参照する設定

        Returns:
            シナリオ全体の実行結果

        Raises:
            ScenarioBuildError: シナリオが未定義の名前を参照している場合
                （Page を操作する前に送出する）
        """
        from ..steps.registry import StepContext

        scenario.check_references(config)
        context = StepContext(config=config)

        started_at = datetime.now()
        start_time = time.perf_counter()
        deadline: Optional[float] = None
        if scenario.timeout is not None:
            deadline = start_time + scenario.timeout / 1000.0

        logger.info(
            "シナリオ開始: %s（%d ステップ）", scenario.name, len(scenario.steps)
        )

        results: list[StepResult] = []
        status: ScenarioStatus = Completed()

        for index, step in enumerate(scenario.steps):
            step_result = await self._execute_single_step(
                page, step, index, context, deadline, scenario.timeout,
            )
            results.append(step_result)

            # 失敗時は後続ステップを実行しない
            if not step_result.ok:
                status = AbortedAt(index)
                logger.error(
                    "ステップ %d '%s' で中断しました: %s",
                    index, step.description or step.kind, step_result.outcome,
                )
                break

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info("シナリオ終了: %s（%s, %.0fms）", scenario.name, status, duration_ms)

        return ScenarioResult(
            scenario_name=scenario.name,
            steps=tuple(results),
            status=status,
            duration_ms=duration_ms,
            started_at=started_at,
            finished_at=datetime.now(),
        )

    # -------------------------------------------------------------------
    # ステップ実行
    # -------------------------------------------------------------------

    async def _execute_single_step(
        self,
        page: Page,
        step: StepType,
        index: int,
        context: StepContext,
        deadline: Optional[float],
        budget_ms: Optional[int],
    ) -> StepResult:
        """単一ステップを実行し、結果を分類する。

        deadline が指定されている場合は残り時間を上限に asyncio.wait_for で実行する。

        Args:
            page: 操作対象の Page
            step: 実行するステップ
            index: ステップインデックス
            context: ステップ実行コンテキスト
            deadline: シナリオ全体の期限（perf_counter 基準の秒）。None で無制限
            budget_ms: シナリオ全体のタイムアウト（メッセージ用）

        Returns:
            ステップの実行結果
        """
        logger.info("ステップ %d 開始: %s %s", index, step.kind, step.target)
        start_time = time.perf_counter()

        outcome: Outcome
        try:
            if deadline is None:
                await self._dispatch_step(page, step, context)
            else:
                await self._dispatch_within_budget(
                    page, step, context, deadline, budget_ms,
                )
            outcome = Success()
        except VerificationMismatch as exc:
            outcome = Mismatch(
                expected=exc.expected,
                actual=exc.actual,
                details=exc.details,
                index=exc.index,
            )
        except (TimeoutError, asyncio.TimeoutError) as exc:
            outcome = Timeout(str(exc) or f"{type(exc).__name__}")
        except Exception as exc:
            outcome = DriverError(f"{type(exc).__name__}: {exc}")

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        if isinstance(outcome, Success):
            logger.info("ステップ %d 成功（%.0fms）", index, elapsed_ms)
        else:
            logger.error("ステップ %d 失敗（%.0fms）: %s", index, elapsed_ms, outcome)

        return StepResult(
            index=index, step=step, outcome=outcome, elapsed_ms=elapsed_ms,
        )

    async def _dispatch_within_budget(
        self,
        page: Page,
        step: StepType,
        context: StepContext,
        deadline: float,
        budget_ms: Optional[int],
    ) -> None:
        """シナリオ全体の残り時間を上限にステップを実行する。

        Raises:
            TimeoutError: 残り時間内にステップが完了しなかった場合
        """
        exceeded = f"シナリオ全体のタイムアウト（{budget_ms}ms）を超過しました"
        remaining = deadline - time.perf_counter()
        if remaining <= 0:
            raise TimeoutError(exceeded)
        try:
            await asyncio.wait_for(
                self._dispatch_step(page, step, context), timeout=remaining,
            )
        except asyncio.TimeoutError as exc:
            # wait_for 自身の時間切れはメッセージを持たない
            if str(exc):
                raise
            raise TimeoutError(exceeded) from exc

    async def _dispatch_step(
        self, page: Page, step: StepType, context: StepContext
    ) -> None:
        """ステップ種別に応じたハンドラへディスパッチする。

        Raises:
            KeyError: 未登録のステップ種別の場合
        """
        handler = self._registry.get(step.kind)
        await handler.execute(page, step, context)


# ---------------------------------------------------------------------------
# 関数 API
# ---------------------------------------------------------------------------

async def run_scenario(
    scenario: Scenario,
    page: Page,
    config: SuiteConfig,
    registry: Optional[StepRegistry] = None,
) -> ScenarioResult:
    """Runner を生成してシナリオを1回実行する。"""
    return await Runner(registry).run(scenario, page, config)
