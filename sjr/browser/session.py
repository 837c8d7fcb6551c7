"""
Session — ブラウザセッション管理

Playwright ブラウザの起動・終了・状態管理を担当する。
1回のシナリオ実行につき1つのブラウザを起動し、終了時に必ず解放する。

主な機能:
  - ブラウザの起動（headed/headless・チャンネル・slow_mo の切り替え）
  - Context / Page の生成と管理
  - セッション状態の追跡
  - open_page(): PlaywrightPage を貸し出し、終了時に一度だけ解放するコンテキストマネージャ
"""

from __future__ import annotations

import enum
import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator, Awaitable, Callable, Optional

from .page import PlaywrightPage

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page, Playwright

    from ..settings import RunSettings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# セッション状態
# ---------------------------------------------------------------------------

class SessionState(enum.Enum):
    """ブラウザセッションの状態。"""

    IDLE = "idle"
    LAUNCHING = "launching"
    ACTIVE = "active"
    CLOSING = "closing"
    CLOSED = "closed"


# ---------------------------------------------------------------------------
# BrowserSession 本体
# ---------------------------------------------------------------------------

class BrowserSession:
    """Playwright ブラウザセッションの管理クラス。

    ブラウザの起動から終了までのライフサイクルを管理し、
    Page オブジェクトへのアクセスを提供する。
    """

    def __init__(self) -> None:
        """BrowserSession を初期化する。"""
        self._state: SessionState = SessionState.IDLE
        self._pw_instance: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    @property
    def state(self) -> SessionState:
        """現在のセッション状態を返す。"""
        return self._state

    @property
    def is_active(self) -> bool:
        """セッションがアクティブかどうかを返す。"""
        return self._state == SessionState.ACTIVE

    @property
    def page(self) -> Optional[Page]:
        """現在の Page オブジェクトを返す。非アクティブ時は None。"""
        if not self.is_active:
            return None
        return self._page

    async def launch(
        self,
        headed: bool = True,
        slow_mo: int = 0,
        channel: Optional[str] = None,
        viewport_width: int = 1280,
        viewport_height: int = 720,
    ) -> None:
        """ブラウザを起動し、Page を生成する。

        Args:
            headed: True でブラウザウィンドウを表示
            slow_mo: 各操作間の遅延（ミリ秒）
            channel: ブラウザチャンネル（None で同梱 Chromium）
            viewport_width: ビューポート幅
            viewport_height: ビューポート高さ

        Raises:
            RuntimeError: 既にアクティブなセッションがある場合
        """
        if self._state == SessionState.ACTIVE:
            raise RuntimeError(
                "既にアクティブなセッションがあります。"
                "先に close() を呼んでください。"
            )

        self._state = SessionState.LAUNCHING
        logger.info(
            "ブラウザを起動しています... (headed=%s, channel=%s)", headed, channel,
        )

        try:
            from playwright.async_api import async_playwright

            pw = await async_playwright().start()
            self._pw_instance = pw

            launch_options: dict = {"headless": not headed, "slow_mo": slow_mo}
            if channel:
                launch_options["channel"] = channel
            self._browser = await pw.chromium.launch(**launch_options)

            self._context = await self._browser.new_context(
                viewport={"width": viewport_width, "height": viewport_height},
            )
            self._page = await self._context.new_page()
            self._state = SessionState.ACTIVE
            logger.info("ブラウザを起動しました")

        except Exception:
            logger.exception("ブラウザの起動に失敗しました")
            await self._release()
            self._state = SessionState.IDLE
            raise

    async def close(self) -> None:
        """ブラウザを終了し、リソースをクリーンアップする。2回目以降の呼び出しは何もしない。"""
        if self._state in (SessionState.CLOSED, SessionState.CLOSING):
            return

        self._state = SessionState.CLOSING
        logger.info("ブラウザを終了しています...")
        await self._release()
        self._state = SessionState.CLOSED
        logger.info("ブラウザを終了しました")

    async def _release(self) -> None:
        """保持しているブラウザ・Playwright インスタンスを解放する。"""
        try:
            if self._browser is not None:
                await self._browser.close()
            if self._pw_instance is not None:
                await self._pw_instance.stop()
        except Exception:
            logger.exception("ブラウザの終了中にエラーが発生しました")
        finally:
            self._browser = None
            self._context = None
            self._page = None
            self._pw_instance = None


# ---------------------------------------------------------------------------
# Page の貸し出し
# ---------------------------------------------------------------------------

@asynccontextmanager
async def open_page(
    settings: RunSettings,
    hold: Optional[Callable[[], Awaitable[None]]] = None,
) -> AsyncIterator[PlaywrightPage]:
    """ブラウザを起動して PlaywrightPage を貸し出す。

    ブロックを抜ける際（例外時を含む）にブラウザを一度だけ閉じる。
    hold が指定された場合は、閉じる前にその完了を待つ。

    Args:
        settings: 実行設定
        hold: ブラウザを閉じる前に待機するコルーチン関数

    Yields:
        PlaywrightPage インスタンス
    """
    session = BrowserSession()
    await session.launch(
        headed=settings.headed,
        slow_mo=settings.slow_mo,
        channel=settings.channel,
        viewport_width=settings.viewport_width,
        viewport_height=settings.viewport_height,
    )
    page = PlaywrightPage(
        session.page,
        wait_state=settings.wait_state,
        settle_state=settings.settle_state,
    )
    try:
        yield page
    finally:
        try:
            if hold is not None:
                await hold()
        finally:
            await session.close()
