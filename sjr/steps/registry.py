"""
ステップレジストリ — ステップハンドラの登録・検索・一覧

ステップ種別（navigate, click, verifyDropdownValue 等）ごとのハンドラを管理し、
Runner はステップの kind をキーにハンドラへディスパッチする。

主な構成:
  - StepHandler Protocol: ステップハンドラの共通インターフェース
  - StepContext: ステップ実行時のコンテキスト情報（設定の名前解決）
  - StepInfo: ステップのメタ情報（種別名、説明、カテゴリ、モデル）
  - StepRegistry: ステップモデルの種別名によるハンドラの登録・検索・一覧
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from pydantic import BaseModel

if TYPE_CHECKING:
    from ..core.page import Page
    from ..dsl.schema import SuiteConfig

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# ステップ実行コンテキスト
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StepContext:
    """ステップ実行時のコンテキスト情報。

    各ステップハンドラの execute() に渡され、
    ステップが参照する名前を設定値へ解決する手段を提供する。

    Attributes:
        config: URL・ロケータ・タイムアウトの設定
    """

    config: SuiteConfig

    def url(self, name: str) -> str:
        return self.config.url(name)

    def locator(self, name: str) -> str:
        return self.config.locator(name)

    def timeout(self, name: str) -> int:
        return self.config.timeout(name)


# ---------------------------------------------------------------------------
# ステップハンドラ Protocol
# ---------------------------------------------------------------------------

@runtime_checkable
class StepHandler(Protocol):
    """ステップハンドラの共通インターフェース。

    execute() は成功時に何も返さず、失敗時は sjr.core.errors の例外
    （または Page が送出した例外）をそのまま送出する。結果値への変換は Runner が行う。
    """

    async def execute(self, page: Page, step: BaseModel, context: StepContext) -> None:
        """ステップを実行する。

        Args:
            page: 操作対象の Page
            step: 実行するステップモデル
            context: ステップ実行コンテキスト
        """
        ...

    def get_schema(self) -> type[BaseModel]:
        """対応するステップの Pydantic モデルクラスを返す。"""
        ...


# ---------------------------------------------------------------------------
# ステップメタ情報
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StepInfo:
    """登録済みステップのメタ情報（list-steps の表示に使用）。"""

    name: str
    description: str
    category: str
    schema: type[BaseModel]


# ---------------------------------------------------------------------------
# StepRegistry 本体
# ---------------------------------------------------------------------------

class StepRegistry:
    """ステップ種別 → ハンドラの対応表。

    種別名はハンドラの get_schema() が返すステップモデルの kind から決まるため、
    YAML の種別キーとディスパッチ先が食い違うことはない。

    使用例::

        registry = StepRegistry()
        registry.register(ClickHandler(), "要素をクリック", "action")
        handler = registry.get("click")
    """

    def __init__(self) -> None:
        self._entries: dict[str, tuple[StepHandler, StepInfo]] = {}

    def register(self, handler: StepHandler, description: str, category: str) -> StepInfo:
        """ハンドラを、そのステップモデルの種別名で登録する。

        同じ種別が登録済みの場合は警告を出して置き換える。

        Raises:
            TypeError: handler が StepHandler Protocol を満たさない場合
            ValueError: ステップモデルに種別名（kind）がない場合
        """
        if not isinstance(handler, StepHandler):
            raise TypeError(
                f"handler は StepHandler Protocol を満たす必要があります: "
                f"{type(handler).__name__}"
            )

        schema = handler.get_schema()
        kind = getattr(schema, "kind", "")
        if not kind:
            raise ValueError(
                f"{type(handler).__name__} のステップモデル {schema.__name__} に種別名がありません"
            )

        previous = self._entries.get(kind)
        if previous is not None:
            logger.warning(
                "ステップ '%s' のハンドラを置き換えます（%s → %s）",
                kind, type(previous[0]).__name__, type(handler).__name__,
            )

        info = StepInfo(name=kind, description=description, category=category, schema=schema)
        self._entries[kind] = (handler, info)
        logger.debug("ステップ '%s' を登録しました: %s", kind, type(handler).__name__)
        return info

    def get(self, kind: str) -> StepHandler:
        """種別名でハンドラを取得する。

        Raises:
            KeyError: 未登録の種別の場合（登録済み一覧を含む）
        """
        try:
            return self._entries[kind][0]
        except KeyError:
            raise KeyError(
                f"ステップ '{kind}' は登録されていません。登録済みステップ: [{', '.join(self.names)}]"
            ) from None

    def __contains__(self, kind: object) -> bool:
        return kind in self._entries

    def list_all(self) -> list[StepInfo]:
        return sorted((info for _, info in self._entries.values()), key=lambda i: i.name)

    @property
    def names(self) -> list[str]:
        return sorted(self._entries)
