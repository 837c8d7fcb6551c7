"""
標準ステップハンドラ — 遷移・クリック・入力送信

ステップモデルを Page プリミティブの呼び出し列に変換する。
各ハンドラは StepHandler Protocol を満たし、StepRegistry に登録される。

カテゴリ:
  - ナビゲーション: navigate
  - 操作: click, fillAndSubmit
  - 検証: verify.py を参照
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel

from ..dsl.schema import ClickStep, FillAndSubmitStep, NavigateStep
from .registry import StepContext, StepHandler, StepRegistry
from .verify import VERIFY_STEPS

if TYPE_CHECKING:
    from ..core.page import Page

logger = logging.getLogger(__name__)


# ===========================================================================
# ナビゲーションハンドラ
# ===========================================================================

class NavigateHandler:
    """navigate ステップ — URL へ遷移し、安定化待機を行う。"""

    async def execute(self, page: Page, step: NavigateStep, context: StepContext) -> None:
        url = context.url(step.navigate)
        logger.info("navigate: %s", url)
        await page.open(url, context.timeout("navigation"))
        await page.await_quiescence(context.timeout(step.stabilizationWait))

    def get_schema(self) -> type[BaseModel]:
        return NavigateStep


# ===========================================================================
# 操作ハンドラ
# ===========================================================================

class ClickHandler:
    """click ステップ — 要素の出現を待ってクリック。"""

    async def execute(self, page: Page, step: ClickStep, context: StepContext) -> None:
        locator = context.locator(step.click)
        await page.wait_for(locator, context.timeout("selector"))
        logger.info("click: %s", step.click)
        await page.click(locator)
        if step.awaitQuiescenceAfter:
            await page.await_quiescence(context.timeout("navigation"))

    def get_schema(self) -> type[BaseModel]:
        return ClickStep


class FillAndSubmitHandler:
    """fillAndSubmit ステップ — 入力欄に入力し、Enter で送信。"""

    async def execute(
        self, page: Page, step: FillAndSubmitStep, context: StepContext
    ) -> None:
        locator = context.locator(step.fillAndSubmit)
        await page.wait_for(locator, context.timeout("selector"))
        logger.info("fillAndSubmit: %s → %s", step.fillAndSubmit, step.text)
        await page.fill(locator, step.text)
        await page.submit(locator)
        await page.await_quiescence(context.timeout("navigation"))

    def get_schema(self) -> type[BaseModel]:
        return FillAndSubmitStep


# ===========================================================================
# レジストリ登録
# ===========================================================================

_BUILTIN_STEPS: list[tuple[StepHandler, str, str]] = [
    # ナビゲーション
    (NavigateHandler(), "URL へ遷移し、安定化を待機", "navigation"),
    # 操作
    (ClickHandler(), "要素をクリック（遷移待機は任意）", "action"),
    (FillAndSubmitHandler(), "入力欄に入力して Enter で送信", "action"),
    # 検証
    *VERIFY_STEPS,
]


def register_builtin_steps(registry: StepRegistry) -> None:
    """全標準ステップハンドラをレジストリに登録する。"""
    for handler, description, category in _BUILTIN_STEPS:
        registry.register(handler, description, category)
    logger.debug("標準ステップ %d 種を登録しました", len(_BUILTIN_STEPS))


def create_default_registry() -> StepRegistry:
    """標準ステップが登録済みの StepRegistry を生成する。"""
    registry = StepRegistry()
    register_builtin_steps(registry)
    return registry
