"""
検証ステップハンドラ — サイドバー・閲覧履歴の状態検証

要素の出現を selector タイムアウトで待機してから状態を読み取り、
期待値と比較する。不一致は VerificationMismatch として送出し、
待機の時間切れ（PageTimeoutError）とは区別する。

  - verifyDropdownValue: select の value 一致
  - verifyChecked: チェックボックスの checked
  - verifyCollectionCount: 一致要素数の完全一致
  - verifyOrderedTexts: 位置ごとの部分一致（件数一致が前提）
  - verifyTextMatches: 先頭要素テキストの正規表現一致
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Optional, Sequence

from pydantic import BaseModel

from ..core.errors import VerificationMismatch
from ..dsl.schema import (
    VerifyCheckedStep,
    VerifyCollectionCountStep,
    VerifyDropdownValueStep,
    VerifyOrderedTextsStep,
    VerifyTextMatchesStep,
)
from .registry import StepContext, StepHandler

if TYPE_CHECKING:
    from ..core.page import ElementState, Page

logger = logging.getLogger(__name__)


# ===========================================================================
# 比較関数
# ===========================================================================

def compare_ordered_texts(
    expected: Sequence[str], actual: Sequence[str]
) -> tuple[list[str], Optional[int]]:
    """テキスト列が期待する部分文字列を位置どおりに含むかを比較する。

    件数が異なる場合も、共通する長さの範囲は最後まで比較して
    全ての問題を収集する。

    Args:
        expected: 位置ごとに期待する部分文字列
        actual: 実際のテキスト列（DOM 順）

    Returns:
        (問題の説明リスト, 最初に不一致となった位置)。一致時は ([], None)
    """
    problems: list[str] = []
    first_index: Optional[int] = None

    if len(expected) != len(actual):
        problems.append(
            f"件数が異なります（期待: {len(expected)} 件, 実際: {len(actual)} 件）"
        )

    for i, (want, got) in enumerate(zip(expected, actual)):
        if want not in got:
            problems.append(f"[{i}] '{want}' を含むはずが '{got}' でした")
            if first_index is None:
                first_index = i

    if problems and first_index is None:
        # 共通部分は一致しており、件数だけが異なる
        first_index = min(len(expected), len(actual))

    return problems, first_index


async def _wait_and_read(page: Page, locator_name: str, context: StepContext) -> ElementState:
    locator = context.locator(locator_name)
    await page.wait_for(locator, context.timeout("selector"))
    return await page.read(locator)


# ===========================================================================
# 検証ハンドラ
# ===========================================================================

class VerifyDropdownValueHandler:
    """verifyDropdownValue ステップ — select の選択値を検証。"""

    async def execute(
        self, page: Page, step: VerifyDropdownValueStep, context: StepContext
    ) -> None:
        state = await _wait_and_read(page, step.verifyDropdownValue, context)
        logger.info(
            "verifyDropdownValue: %s = %r（期待: %r「%s」）",
            step.verifyDropdownValue, state.value, step.expectedValue, step.label,
        )
        if state.value != step.expectedValue:
            raise VerificationMismatch(step.expectedValue, state.value)

    def get_schema(self) -> type[BaseModel]:
        return VerifyDropdownValueStep


class VerifyCheckedHandler:
    """verifyChecked ステップ — チェックボックスのチェック状態を検証。"""

    async def execute(
        self, page: Page, step: VerifyCheckedStep, context: StepContext
    ) -> None:
        state = await _wait_and_read(page, step.verifyChecked, context)
        logger.info(
            "verifyChecked: %s checked=%s「%s」",
            step.verifyChecked, state.checked, step.label,
        )
        if state.checked is not True:
            raise VerificationMismatch(True, state.checked)

    def get_schema(self) -> type[BaseModel]:
        return VerifyCheckedStep


class VerifyCollectionCountHandler:
    """verifyCollectionCount ステップ — 一致要素数を検証。

    期待件数が 0 の場合は存在しない要素を待機できないため、待機せずに読み取る。
    """

    async def execute(
        self, page: Page, step: VerifyCollectionCountStep, context: StepContext
    ) -> None:
        locator = context.locator(step.verifyCollectionCount)
        if step.expectedCount > 0:
            await page.wait_for(locator, context.timeout("selector"))
        state = await page.read(locator)
        logger.info(
            "verifyCollectionCount: %s = %d 件（期待: %d 件）",
            step.verifyCollectionCount, state.count, step.expectedCount,
        )
        if state.count != step.expectedCount:
            raise VerificationMismatch(step.expectedCount, state.count)

    def get_schema(self) -> type[BaseModel]:
        return VerifyCollectionCountStep


class VerifyOrderedTextsHandler:
    """verifyOrderedTexts ステップ — テキスト列の順序付き部分一致を検証。"""

    async def execute(
        self, page: Page, step: VerifyOrderedTextsStep, context: StepContext
    ) -> None:
        state = await _wait_and_read(page, step.verifyOrderedTexts, context)
        actual = tuple(text.strip() for text in state.texts)
        problems, first_index = compare_ordered_texts(step.expectedSubstrings, actual)
        logger.info(
            "verifyOrderedTexts: %s = %s（不一致 %d 件）",
            step.verifyOrderedTexts, list(actual), len(problems),
        )
        if problems:
            raise VerificationMismatch(
                step.expectedSubstrings, actual, details=problems, index=first_index,
            )

    def get_schema(self) -> type[BaseModel]:
        return VerifyOrderedTextsStep


class VerifyTextMatchesHandler:
    """verifyTextMatches ステップ — 先頭要素のテキストを正規表現で検証。"""

    async def execute(
        self, page: Page, step: VerifyTextMatchesStep, context: StepContext
    ) -> None:
        state = await _wait_and_read(page, step.verifyTextMatches, context)
        text = (state.text or "").strip()
        logger.info("verifyTextMatches: %s = %r（パターン: %s）", step.verifyTextMatches, text, step.pattern)
        if re.search(step.pattern, text) is None:
            raise VerificationMismatch(step.pattern, text)

    def get_schema(self) -> type[BaseModel]:
        return VerifyTextMatchesStep


# ---------------------------------------------------------------------------
# レジストリ登録用情報
# ---------------------------------------------------------------------------

VERIFY_STEPS: list[tuple[StepHandler, str, str]] = [
    (VerifyDropdownValueHandler(), "select の選択値（value）を検証", "validation"),
    (VerifyCheckedHandler(), "チェックボックスがチェックされていることを検証", "validation"),
    (VerifyCollectionCountHandler(), "一致する要素数を検証", "validation"),
    (VerifyOrderedTextsHandler(), "要素テキストが期待順に部分一致することを検証", "validation"),
    (VerifyTextMatchesHandler(), "先頭要素のテキストが正規表現に一致することを検証", "validation"),
]
