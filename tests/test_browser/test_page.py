"""
PlaywrightPage のユニットテスト

Playwright の Page / Locator はモック（unittest.mock）を使用する。
実際のブラウザは起動しない。

テスト対象:
  - 各 Page 操作から Playwright API への対応付け
  - click / submit 後の遷移イベント待機（同じ URL への再読み込みを含む）
  - Playwright 例外の PageTimeoutError / PageDriverError への変換
  - read による状態の読み取り
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from sjr.browser.page import PlaywrightPage
from sjr.core.errors import PageDriverError, PageTimeoutError
from sjr.core.page import ElementState, Page


# ---------------------------------------------------------------------------
# ヘルパー: モックオブジェクト生成
# ---------------------------------------------------------------------------

def _make_mock_locator(
    *, count: int = 1, texts: list[str] | None = None, props: dict | None = None,
) -> MagicMock:
    """モック Locator を生成する。first は自分自身を返す。"""
    locator = MagicMock()
    locator.first = locator
    locator.wait_for = AsyncMock()
    locator.click = AsyncMock()
    locator.fill = AsyncMock()
    locator.press = AsyncMock()
    locator.count = AsyncMock(return_value=count)
    locator.all_text_contents = AsyncMock(return_value=texts or [])
    locator.evaluate = AsyncMock(return_value=props or {"value": None, "checked": None})
    return locator


def _make_mock_page(locator: MagicMock | None = None, url: str = "https://shop.example/") -> MagicMock:
    """モック Page を生成する。"""
    page = MagicMock()
    page.url = url
    page.goto = AsyncMock()
    page.wait_for_load_state = AsyncMock()
    page.wait_for_url = AsyncMock()
    page.locator = MagicMock(return_value=locator or _make_mock_locator())
    return page


def _navigate(page: MagicMock, url: str | None = None, *, subframe: bool = False) -> None:
    """最後に登録された framenavigated ハンドラを呼び出し、遷移を模擬する。"""
    handler = next(
        c.args[1] for c in reversed(page.on.call_args_list) if c.args[0] == "framenavigated"
    )
    frame = MagicMock()
    frame.url = url or page.url
    frame.parent_frame = MagicMock() if subframe else None
    handler(frame)


# ===========================================================================
# テスト: 操作の対応付け
# ===========================================================================

class TestPlaywrightPageActions:
    """各 Page 操作の Playwright API 呼び出しのテスト。"""

    def test_satisfies_page_protocol(self) -> None:
        assert isinstance(PlaywrightPage(_make_mock_page()), Page)

    @pytest.mark.asyncio
    async def test_open(self) -> None:
        page = _make_mock_page()
        await PlaywrightPage(page).open("https://shop.example/", 60000)
        page.goto.assert_awaited_once_with(
            "https://shop.example/", wait_until="load", timeout=60000,
        )

    @pytest.mark.asyncio
    async def test_wait_for_uses_first_and_state(self) -> None:
        locator = _make_mock_locator()
        page = _make_mock_page(locator)

        await PlaywrightPage(page, wait_state="attached").wait_for("#search", 30000)

        page.locator.assert_called_with("#search")
        locator.wait_for.assert_awaited_once_with(state="attached", timeout=30000)

    @pytest.mark.asyncio
    async def test_click_fill_submit(self) -> None:
        locator = _make_mock_locator()
        page = _make_mock_page(locator)
        wrapper = PlaywrightPage(page)

        await wrapper.click("#search")
        await wrapper.fill("#search", "javascript")
        await wrapper.submit("#search")

        locator.click.assert_awaited_once()
        locator.fill.assert_awaited_once_with("javascript")
        locator.press.assert_awaited_once_with("Enter")

    def test_raw(self) -> None:
        page = _make_mock_page()
        assert PlaywrightPage(page).raw is page


# ===========================================================================
# テスト: 遷移待機
# ===========================================================================

class TestAwaitQuiescence:
    """await_quiescence のテスト。"""

    @pytest.mark.asyncio
    async def test_after_click_waits_for_navigation_and_load(self) -> None:
        locator = _make_mock_locator()
        page = _make_mock_page(locator, url="https://shop.example/search")
        locator.click = AsyncMock(
            side_effect=lambda: _navigate(page, "https://shop.example/search?category_id=5"),
        )
        wrapper = PlaywrightPage(page, settle_state="domcontentloaded")

        await wrapper.click("#suggest a")
        await wrapper.await_quiescence(60000)

        page.wait_for_load_state.assert_awaited_once_with("domcontentloaded", timeout=60000)
        page.remove_listener.assert_called_once()
        assert page.remove_listener.call_args.args[0] == "framenavigated"

    @pytest.mark.asyncio
    async def test_same_url_reload_counts_as_navigation(self) -> None:
        """同じ URL への再読み込みも遷移として完了すること。"""
        url = "https://jp.mercari.com/search?category_id=674"
        locator = _make_mock_locator()
        page = _make_mock_page(locator, url=url)
        locator.click = AsyncMock(side_effect=lambda: _navigate(page, url))
        wrapper = PlaywrightPage(page)

        await wrapper.click("#history a >> nth=0")
        await wrapper.await_quiescence(60000)

        page.wait_for_load_state.assert_awaited_once_with("load", timeout=60000)

    @pytest.mark.asyncio
    async def test_navigation_after_submit_returns(self) -> None:
        page = _make_mock_page()
        wrapper = PlaywrightPage(page)

        await wrapper.submit("#search")
        _navigate(page, "https://shop.example/search?keyword=javascript")
        await wrapper.await_quiescence(60000)

        page.wait_for_load_state.assert_awaited_once_with("load", timeout=60000)

    @pytest.mark.asyncio
    async def test_after_open_waits_for_load_state(self) -> None:
        page = _make_mock_page()
        wrapper = PlaywrightPage(page)

        await wrapper.open("https://shop.example/", 60000)
        await wrapper.await_quiescence(5000)

        page.wait_for_load_state.assert_awaited_once_with("load", timeout=5000)
        page.on.assert_not_called()

    @pytest.mark.asyncio
    async def test_watch_used_once(self) -> None:
        page = _make_mock_page()
        wrapper = PlaywrightPage(page)

        await wrapper.submit("#search")
        _navigate(page)
        await wrapper.await_quiescence(60000)
        await wrapper.await_quiescence(5000)

        assert page.on.call_count == 1
        assert page.wait_for_load_state.await_count == 2

    @pytest.mark.asyncio
    async def test_no_navigation_times_out(self) -> None:
        page = _make_mock_page()
        wrapper = PlaywrightPage(page)

        await wrapper.click("#tier1 a")
        with pytest.raises(PageTimeoutError, match="ページ遷移"):
            await wrapper.await_quiescence(50)

        page.remove_listener.assert_called_once()
        page.wait_for_load_state.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_subframe_navigation_ignored(self) -> None:
        page = _make_mock_page()
        wrapper = PlaywrightPage(page)

        await wrapper.click("#tier1 a")
        _navigate(page, "https://ads.example/frame", subframe=True)
        with pytest.raises(PageTimeoutError):
            await wrapper.await_quiescence(50)

    @pytest.mark.asyncio
    async def test_open_stops_pending_watch(self) -> None:
        page = _make_mock_page()
        wrapper = PlaywrightPage(page)

        await wrapper.click("#search")
        await wrapper.open("https://shop.example/", 60000)

        page.remove_listener.assert_called_once()
        await wrapper.await_quiescence(5000)
        page.wait_for_load_state.assert_awaited_once_with("load", timeout=5000)


# ===========================================================================
# テスト: 例外変換
# ===========================================================================

class TestErrorTranslation:
    """Playwright 例外の変換テスト。"""

    @pytest.mark.asyncio
    async def test_wait_for_timeout(self) -> None:
        locator = _make_mock_locator()
        locator.wait_for = AsyncMock(side_effect=PlaywrightTimeoutError("Timeout 30000ms exceeded."))
        wrapper = PlaywrightPage(_make_mock_page(locator))

        with pytest.raises(PageTimeoutError, match="#cat1"):
            await wrapper.wait_for("#cat1", 30000)

    @pytest.mark.asyncio
    async def test_open_timeout(self) -> None:
        page = _make_mock_page()
        page.goto = AsyncMock(side_effect=PlaywrightTimeoutError("Timeout"))

        with pytest.raises(PageTimeoutError):
            await PlaywrightPage(page).open("https://shop.example/", 60000)

    @pytest.mark.asyncio
    async def test_open_driver_error(self) -> None:
        page = _make_mock_page()
        page.goto = AsyncMock(side_effect=PlaywrightError("net::ERR_NAME_NOT_RESOLVED"))

        with pytest.raises(PageDriverError, match="ERR_NAME_NOT_RESOLVED"):
            await PlaywrightPage(page).open("https://shop.example/", 60000)

    @pytest.mark.asyncio
    async def test_click_timeout_is_driver_error(self) -> None:
        """操作系の時間切れは要素操作の失敗として扱うこと。"""
        locator = _make_mock_locator()
        locator.click = AsyncMock(side_effect=PlaywrightTimeoutError("Timeout"))

        with pytest.raises(PageDriverError):
            await PlaywrightPage(_make_mock_page(locator)).click("#search")

    @pytest.mark.asyncio
    async def test_non_playwright_error_propagates(self) -> None:
        locator = _make_mock_locator()
        locator.fill = AsyncMock(side_effect=ValueError("bad"))

        with pytest.raises(ValueError):
            await PlaywrightPage(_make_mock_page(locator)).fill("#search", "x")


# ===========================================================================
# テスト: read
# ===========================================================================

class TestRead:
    """read のテスト。"""

    @pytest.mark.asyncio
    async def test_no_match(self) -> None:
        locator = _make_mock_locator(count=0)
        state = await PlaywrightPage(_make_mock_page(locator)).read("#history a")

        assert state == ElementState(count=0)
        locator.evaluate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_collection_texts_trimmed(self) -> None:
        locator = _make_mock_locator(
            count=2,
            texts=["  javascript, コンピュータ・IT\n", " ビジネス・経済 "],
        )
        state = await PlaywrightPage(_make_mock_page(locator)).read("#history a")

        assert state.count == 2
        assert state.texts == ("javascript, コンピュータ・IT", "ビジネス・経済")
        assert state.text == "javascript, コンピュータ・IT"

    @pytest.mark.asyncio
    async def test_select_value_and_checkbox(self) -> None:
        locator = _make_mock_locator(props={"value": "72", "checked": None})
        state = await PlaywrightPage(_make_mock_page(locator)).read("#cat2")
        assert state.value == "72"
        assert state.checked is None

        locator = _make_mock_locator(props={"value": "on", "checked": True})
        state = await PlaywrightPage(_make_mock_page(locator)).read("#cat3")
        assert state.checked is True
