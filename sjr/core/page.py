"""
Page — エンジンが要求するブラウザ操作の抽象インターフェース

Runner は具体的な自動操作ライブラリに依存せず、この Protocol を満たす
オブジェクトだけを操作する。Playwright 実装は sjr.browser.page を参照。

タイムアウトはすべてミリ秒で指定する。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class ElementState:
    """read() で取得した要素の状態。

    Attributes:
        value: 先頭要素の value（select / input）。value を持たない要素は None
        checked: 先頭要素の checked。チェックボックス以外は None
        text: 先頭要素のテキスト（前後の空白を除去済み）
        count: ロケータに一致した要素数
        texts: 一致した全要素のテキスト（DOM 順、空白除去済み）
    """

    value: Optional[str] = None
    checked: Optional[bool] = None
    text: Optional[str] = None
    count: int = 0
    texts: tuple[str, ...] = ()


@runtime_checkable
class Page(Protocol):
    """シナリオ実行に必要なページ操作プリミティブ。

    待機系の操作は時間切れ時に PageTimeoutError を、
    下位ドライバの失敗時は PageDriverError を送出すること。
    """

    async def open(self, url: str, timeout: int) -> None:
        """URL へ遷移する。"""
        ...

    async def wait_for(self, locator: str, timeout: int) -> None:
        """ロケータに一致する要素が現れるまで待機する。"""
        ...

    async def click(self, locator: str) -> None:
        """要素をクリックする。"""
        ...

    async def fill(self, locator: str, text: str) -> None:
        """入力欄にテキストを設定する。"""
        ...

    async def submit(self, locator: str) -> None:
        """入力欄でフォームを送信する（Enter キー相当）。"""
        ...

    async def read(self, locator: str) -> ElementState:
        """要素の状態を読み取る。"""
        ...

    async def await_quiescence(self, timeout: int) -> None:
        """直前の操作による遷移・描画が落ち着くまで待機する。"""
        ...
