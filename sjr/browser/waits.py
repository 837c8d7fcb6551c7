"""
待機戦略 — 遷移完了・ロード状態の待機

Playwright の待機 API を呼び出し、時間切れを PageTimeoutError に変換する。

主な機能:
  - wait_for_settle: 現在のページが指定のロード状態になるまで待機
  - NavigationWatcher: 操作の前に監視を開始し、メインフレームの遷移を待機
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..core.errors import PageTimeoutError

if TYPE_CHECKING:
    from playwright.async_api import Frame, Page

logger = logging.getLogger(__name__)


async def wait_for_settle(page: Page, state: str = "load", timeout: int = 5000) -> None:
    """ページが指定のロード状態になるまで待機する。

    Args:
        page: Playwright の Page オブジェクト
        state: ロード状態（load / domcontentloaded / networkidle）
        timeout: タイムアウト（ミリ秒）

    Raises:
        PageTimeoutError: タイムアウト時間内に指定状態にならなかった場合
    """
    try:
        await page.wait_for_load_state(state, timeout=timeout)
        logger.debug("ページが %s 状態になりました", state)
    except PlaywrightTimeoutError as exc:
        raise PageTimeoutError(
            f"ページが {timeout}ms 以内に {state} 状態になりませんでした"
        ) from exc


class NavigationWatcher:
    """メインフレームの framenavigated イベントを監視する。

    クリックや送信の時点で遷移が終わっている場合もあるため、操作の前に
    生成しておく。同じ URL への再読み込みも遷移として扱う。
    """

    def __init__(self, page: Page) -> None:
        self._page = page
        self._navigated = asyncio.Event()
        self._listening = True
        self._handler = self._on_frame_navigated
        page.on("framenavigated", self._handler)

    def _on_frame_navigated(self, frame: Frame) -> None:
        if frame.parent_frame is None:
            logger.debug("遷移を検知しました: %s", frame.url)
            self._navigated.set()

    @property
    def navigated(self) -> bool:
        return self._navigated.is_set()

    def stop(self) -> None:
        """イベントの監視を終了する。2回目以降の呼び出しは何もしない。"""
        if self._listening:
            self._listening = False
            self._page.remove_listener("framenavigated", self._handler)

    async def wait(self, state: str = "load", timeout: int = 60000) -> None:
        """遷移が発生し、遷移先が指定のロード状態になるまで待機する。

        Args:
            state: 遷移完了とみなすロード状態
            timeout: タイムアウト（ミリ秒）

        Raises:
            PageTimeoutError: タイムアウト時間内に遷移が完了しなかった場合
        """
        try:
            await asyncio.wait_for(self._navigated.wait(), timeout / 1000)
        except asyncio.TimeoutError as exc:
            raise PageTimeoutError(
                f"{timeout}ms 以内にページ遷移が完了しませんでした（遷移元: {self._page.url}）"
            ) from exc
        finally:
            self.stop()
        await wait_for_settle(self._page, state, timeout)
