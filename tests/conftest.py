"""
テスト共通フィクスチャ定義

全テストモジュールで共有するフィクスチャを提供する。
Page はブラウザを起動しない記録用スタブ（StubPage）で代替する。
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import pytest

from sjr.core.page import ElementState
from sjr.dsl.schema import SuiteConfig


# ---------------------------------------------------------------------------
# StubPage: 呼び出しを記録する Page 実装
# ---------------------------------------------------------------------------

class StubPage:
    """Page インターフェースのテスト用実装。

    全呼び出しを calls に (メソッド名, 引数...) として記録する。

    Args:
        states: ロケータ → read() が返す ElementState
        failures: (メソッド名, 第1引数) またはメソッド名 → 送出する例外
        delays: (メソッド名, 第1引数) → 呼び出し時に待機する秒数
    """

    def __init__(
        self,
        states: Optional[dict[str, ElementState]] = None,
        failures: Optional[dict[Any, BaseException]] = None,
        delays: Optional[dict[Any, float]] = None,
    ) -> None:
        self.states = dict(states or {})
        self.failures = dict(failures or {})
        self.delays = dict(delays or {})
        self.calls: list[tuple] = []

    async def _record(self, method: str, *args: Any) -> None:
        self.calls.append((method, *args))
        key = (method, args[0] if args else None)
        if key in self.delays:
            await asyncio.sleep(self.delays[key])
        exc = self.failures.get(key) or self.failures.get(method)
        if exc is not None:
            raise exc

    async def open(self, url: str, timeout: int) -> None:
        await self._record("open", url, timeout)

    async def wait_for(self, locator: str, timeout: int) -> None:
        await self._record("wait_for", locator, timeout)

    async def click(self, locator: str) -> None:
        await self._record("click", locator)

    async def fill(self, locator: str, text: str) -> None:
        await self._record("fill", locator, text)

    async def submit(self, locator: str) -> None:
        await self._record("submit", locator)

    async def read(self, locator: str) -> ElementState:
        await self._record("read", locator)
        return self.states.get(locator, ElementState())

    async def await_quiescence(self, timeout: int) -> None:
        await self._record("await_quiescence", timeout)

    @property
    def methods(self) -> list[str]:
        """記録された呼び出しのメソッド名のみを返す。"""
        return [call[0] for call in self.calls]


# ---------------------------------------------------------------------------
# pytest フィクスチャ
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def make_page():
    """StubPage を生成するファクトリ。状態を持たないためセッション単位で共有する。"""
    return StubPage


@pytest.fixture(scope="session")
def suite_config() -> SuiteConfig:
    """ストアフロント巡回用のサンプル設定。

    ロケータ名はカテゴリ検索・閲覧履歴シナリオで使う名前に揃えている。
    """
    return SuiteConfig(
        urls={"home": "https://shop.example/"},
        locators={
            "searchInput": "#search",
            "autocomplete": "#suggest a",
            "firstBooksOption": "#tier1 a",
            "secondBooksOption": "#tier2 a",
            "categoryBooks": "#tier3 a",
            "dropdownFirstSelection": "#cat1",
            "dropdownSecondSelection": "#cat2",
            "checkboxThirdSelection": "#cat3",
            "browsingHistoryItem": "#history a",
            "latestBrowsingHistory": "#history a >> nth=0",
        },
        timeouts={"navigation": 60000, "selector": 30000, "stabilization": 5000},
    )


@pytest.fixture
def category_search_steps() -> list[dict]:
    """カテゴリ検索シナリオ（9ステップ）の YAML 形式ステップ列。"""
    return [
        {"navigate": "home"},
        {"click": "searchInput"},
        {"click": "autocomplete", "awaitQuiescenceAfter": True},
        {"click": "firstBooksOption", "awaitQuiescenceAfter": True},
        {"click": "secondBooksOption", "awaitQuiescenceAfter": True},
        {"click": "categoryBooks", "awaitQuiescenceAfter": True},
        {"verifyDropdownValue": "dropdownFirstSelection", "expectedValue": "5", "label": "本・雑誌・漫画"},
        {"verifyDropdownValue": "dropdownSecondSelection", "expectedValue": "72", "label": "本"},
        {"verifyChecked": "checkboxThirdSelection", "label": "コンピュータ・IT"},
    ]


@pytest.fixture
def sidebar_states() -> dict[str, ElementState]:
    """カテゴリ検索後のサイドバーが正しく設定された状態。"""
    return {
        "#cat1": ElementState(value="5", count=1),
        "#cat2": ElementState(value="72", count=1),
        "#cat3": ElementState(checked=True, count=1),
    }
