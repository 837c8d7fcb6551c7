"""
PlaywrightPage — Page インターフェースの Playwright 実装

Runner から見た Page 操作（open / wait_for / click / fill / submit / read /
await_quiescence）を Playwright の async API に対応付ける。

Playwright の例外は次のように変換する:
  - 待機系（open / wait_for / await_quiescence）の時間切れ → PageTimeoutError
  - それ以外の Playwright エラー → PageDriverError
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..core.errors import PageDriverError, PageTimeoutError
from ..core.page import ElementState
from .waits import NavigationWatcher, wait_for_settle

if TYPE_CHECKING:
    from playwright.async_api import Page as PlaywrightNativePage

logger = logging.getLogger(__name__)

# 先頭要素の value / checked を読み取る。該当プロパティを持たない要素は null
_READ_PROPERTIES_JS = """el => ({
    value: 'value' in el && el.value !== undefined ? String(el.value) : null,
    checked: 'checked' in el ? Boolean(el.checked) : null,
})"""


@contextmanager
def _translate_errors(action: str, timeout_message: Optional[str] = None) -> Iterator[None]:
    """Playwright の例外を Page インターフェースの例外に変換する。

    timeout_message が指定された場合のみ、時間切れを PageTimeoutError にする。
    """
    try:
        yield
    except PlaywrightTimeoutError as exc:
        if timeout_message is not None:
            raise PageTimeoutError(timeout_message) from exc
        raise PageDriverError(f"{action} に失敗しました: {exc}") from exc
    except PlaywrightError as exc:
        raise PageDriverError(f"{action} に失敗しました: {exc}") from exc


class PlaywrightPage:
    """Playwright の Page をラップした Page 実装。

    click / submit の直前にメインフレームの遷移監視を始め、続く
    await_quiescence でその遷移と遷移先のロード完了を待つ。
    """

    def __init__(
        self,
        page: PlaywrightNativePage,
        wait_state: str = "visible",
        settle_state: str = "load",
    ) -> None:
        """PlaywrightPage を初期化する。

        Args:
            page: Playwright の Page オブジェクト
            wait_state: wait_for で要求する要素状態（attached / visible）
            settle_state: 遷移完了とみなすロード状態
        """
        self._page = page
        self._wait_state = wait_state
        self._settle_state = settle_state
        self._watcher: Optional[NavigationWatcher] = None

    @property
    def raw(self) -> PlaywrightNativePage:
        """ラップしている Playwright の Page を返す。"""
        return self._page

    def _watch_navigation(self) -> None:
        self._stop_watching()
        self._watcher = NavigationWatcher(self._page)

    def _stop_watching(self) -> None:
        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None

    async def open(self, url: str, timeout: int) -> None:
        self._stop_watching()
        logger.debug("open: %s", url)
        with _translate_errors(
            f"'{url}' への遷移",
            timeout_message=f"'{url}' が {timeout}ms 以内に読み込まれませんでした",
        ):
            await self._page.goto(url, wait_until="load", timeout=timeout)

    async def wait_for(self, locator: str, timeout: int) -> None:
        with _translate_errors(
            f"要素 '{locator}' の待機",
            timeout_message=f"要素 '{locator}' が {timeout}ms 以内に表示されませんでした",
        ):
            await self._page.locator(locator).first.wait_for(
                state=self._wait_state, timeout=timeout,
            )

    async def click(self, locator: str) -> None:
        self._watch_navigation()
        logger.debug("click: %s", locator)
        with _translate_errors(f"要素 '{locator}' のクリック"):
            await self._page.locator(locator).first.click()

    async def fill(self, locator: str, text: str) -> None:
        logger.debug("fill: %s <- %r", locator, text)
        with _translate_errors(f"要素 '{locator}' への入力"):
            await self._page.locator(locator).first.fill(text)

    async def submit(self, locator: str) -> None:
        self._watch_navigation()
        logger.debug("submit: %s", locator)
        with _translate_errors(f"要素 '{locator}' からの送信"):
            await self._page.locator(locator).first.press("Enter")

    async def read(self, locator: str) -> ElementState:
        with _translate_errors(f"要素 '{locator}' の読み取り"):
            elements = self._page.locator(locator)
            count = await elements.count()
            if count == 0:
                return ElementState(count=0)

            texts = tuple(t.strip() for t in await elements.all_text_contents())
            props = await elements.first.evaluate(_READ_PROPERTIES_JS)

        return ElementState(
            value=props.get("value"),
            checked=props.get("checked"),
            text=texts[0] if texts else None,
            count=count,
            texts=texts,
        )

    async def await_quiescence(self, timeout: int) -> None:
        watcher, self._watcher = self._watcher, None
        if watcher is None:
            await wait_for_settle(self._page, self._settle_state, timeout)
        else:
            await watcher.wait(self._settle_state, timeout)
