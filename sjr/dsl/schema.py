"""
DSL スキーマ定義 — 設定・ステップ・シナリオの Pydantic v2 モデル

YAML DSL およびプログラムから構築する実行データのモデルを定義する。
全モデルは frozen（構築後に変更不可）で、未知のキーはエラーとする。

ステップは「種別キー: 対象名」の形式で記述する::

    - click: searchInput
      awaitQuiescenceAfter: true
      description: 検索バーをクリックしました

種別キーの値は SuiteConfig の urls / locators に登録された名前を指す。
ロケータ文字列そのものをステップに書くことはない。
"""

from __future__ import annotations

import re
from types import MappingProxyType
from typing import Annotated, Any, ClassVar, Mapping, Optional, Sequence, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    field_serializer,
    field_validator,
)

from ..core.errors import ScenarioBuildError

# Runner が常に使用するタイムアウト種別
REQUIRED_TIMEOUTS = ("navigation", "selector")


# ---------------------------------------------------------------------------
# 設定モデル
# ---------------------------------------------------------------------------

class SuiteConfig(BaseModel):
    """URL・ロケータ・タイムアウトの名前付きマッピング。

    navigation / selector の2種別のタイムアウトは必須。
    値はすべてミリ秒で指定する。各マッピングは読み取り専用（MappingProxyType）。
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    urls: Mapping[str, str] = Field(default_factory=dict, validate_default=True, description="名前 → URL")
    locators: Mapping[str, str] = Field(
        default_factory=dict, validate_default=True, description="名前 → ロケータ",
    )
    timeouts: Mapping[str, int] = Field(..., description="名前 → タイムアウト（ミリ秒）")

    @field_validator("timeouts")
    @classmethod
    def validate_timeouts(cls, v: Mapping[str, int]) -> Mapping[str, int]:
        """必須のタイムアウト種別が揃っており、値が負でないことを検証する。"""
        missing = [name for name in REQUIRED_TIMEOUTS if name not in v]
        if missing:
            raise ValueError(
                f"timeouts に必須の種別がありません: {', '.join(missing)}"
            )
        negative = [name for name, ms in v.items() if ms < 0]
        if negative:
            raise ValueError(
                f"timeouts に負の値が指定されています: {', '.join(negative)}"
            )
        return v

    @field_validator("urls", "locators", "timeouts")
    @classmethod
    def freeze_mapping(cls, v: Mapping[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType(dict(v))

    @field_serializer("urls", "locators", "timeouts")
    def serialize_mapping(self, v: Mapping[str, Any]) -> dict[str, Any]:
        return dict(v)

    def url(self, name: str) -> str:
        return _lookup(self.urls, "urls", name)

    def locator(self, name: str) -> str:
        return _lookup(self.locators, "locators", name)

    def timeout(self, name: str) -> int:
        return _lookup(self.timeouts, "timeouts", name)

    def has(self, group: str, name: str) -> bool:
        """指定グループに名前が登録されているかを返す。"""
        return name in getattr(self, group)


def _lookup(mapping: Mapping[str, Any], group: str, name: str):
    if name not in mapping:
        known = ", ".join(sorted(mapping))
        raise KeyError(f"{group} に '{name}' は定義されていません。定義済み: [{known}]")
    return mapping[name]


# ===========================================================================
# ステップモデル定義
# ===========================================================================

class _StepBase(BaseModel):
    """全ステップ共通の基底モデル。

    kind は YAML 上の種別キーであり、同名フィールドがステップの主対象名を保持する。
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: ClassVar[str] = ""

    description: Optional[str] = Field(
        default=None, description="レポート表示用の説明（制御には影響しない）"
    )

    @property
    def target(self) -> str:
        """種別キーに対応する対象名（URL 名またはロケータ名）。"""
        return getattr(self, self.kind)

    def references(self) -> list[tuple[str, str]]:
        """このステップが参照する (グループ名, 名前) のリストを返す。"""
        return [("locators", self.target)]


# ---------------------------------------------------------------------------
# ナビゲーション・操作ステップ
# ---------------------------------------------------------------------------

class NavigateStep(_StepBase):
    """URL へ遷移し、安定化待機を行うステップ。"""

    kind: ClassVar[str] = "navigate"

    navigate: str = Field(..., description="遷移先の URL 名")
    stabilizationWait: str = Field(
        default="stabilization", description="遷移後の安定化待機に使うタイムアウト名"
    )

    def references(self) -> list[tuple[str, str]]:
        return [("urls", self.navigate), ("timeouts", self.stabilizationWait)]


class ClickStep(_StepBase):
    """要素の出現を待ってクリックするステップ。

    awaitQuiescenceAfter はページ遷移を伴うクリック（カテゴリ選択など）で指定する。
    オートコンプリートを開くだけのクリックでは指定しない。
    """

    kind: ClassVar[str] = "click"

    click: str = Field(..., description="クリック対象のロケータ名")
    awaitQuiescenceAfter: bool = Field(
        default=False, description="クリック後に遷移完了を待機するか"
    )


class FillAndSubmitStep(_StepBase):
    """入力欄にテキストを入力して送信（Enter）するステップ。"""

    kind: ClassVar[str] = "fillAndSubmit"

    fillAndSubmit: str = Field(..., description="入力欄のロケータ名")
    text: str = Field(..., description="入力するテキスト")


# ---------------------------------------------------------------------------
# 検証ステップ
# ---------------------------------------------------------------------------

class VerifyDropdownValueStep(_StepBase):
    """ドロップダウンの選択値（value 属性）を検証するステップ。"""

    kind: ClassVar[str] = "verifyDropdownValue"

    verifyDropdownValue: str = Field(..., description="select 要素のロケータ名")
    expectedValue: str = Field(..., description="期待する value")
    label: str = Field(..., description="選択肢の表示名（レポート用）")

    @field_validator("expectedValue", mode="before")
    @classmethod
    def coerce_expected_value(cls, v: Any) -> Any:
        """YAML で数値として書かれた value を文字列に揃える。"""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class VerifyCheckedStep(_StepBase):
    """チェックボックスがチェック状態であることを検証するステップ。"""

    kind: ClassVar[str] = "verifyChecked"

    verifyChecked: str = Field(..., description="チェックボックスのロケータ名")
    label: str = Field(..., description="チェックボックスの表示名（レポート用）")


class VerifyCollectionCountStep(_StepBase):
    """ロケータに一致する要素数を検証するステップ。"""

    kind: ClassVar[str] = "verifyCollectionCount"

    verifyCollectionCount: str = Field(..., description="要素集合のロケータ名")
    expectedCount: int = Field(..., ge=0, description="期待する要素数")


class VerifyOrderedTextsStep(_StepBase):
    """要素集合のテキストが期待する部分文字列を順序どおり含むことを検証するステップ。

    件数の一致と、各位置での部分一致を要求する。
    閲覧履歴が先頭に追加される（末尾ではない）ことの確認に使う。
    """

    kind: ClassVar[str] = "verifyOrderedTexts"

    verifyOrderedTexts: str = Field(..., description="要素集合のロケータ名")
    expectedSubstrings: tuple[str, ...] = Field(
        ..., min_length=1, description="位置ごとに期待する部分文字列"
    )


class VerifyTextMatchesStep(_StepBase):
    """先頭要素のテキストが正規表現に一致することを検証するステップ。"""

    kind: ClassVar[str] = "verifyTextMatches"

    verifyTextMatches: str = Field(..., description="検証対象のロケータ名")
    pattern: str = Field(..., description="re.search で照合する正規表現")

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v: str) -> str:
        try:
            re.compile(v)
        except re.error as exc:
            raise ValueError(f"正規表現が不正です: {v!r} ({exc})") from exc
        return v


# ---------------------------------------------------------------------------
# StepType 判別共用体
# ---------------------------------------------------------------------------

STEP_MODELS: dict[str, type[_StepBase]] = {
    model.kind: model
    for model in (
        NavigateStep,
        ClickStep,
        FillAndSubmitStep,
        VerifyDropdownValueStep,
        VerifyCheckedStep,
        VerifyCollectionCountStep,
        VerifyOrderedTextsStep,
        VerifyTextMatchesStep,
    )
}


def _step_kind(value: Any) -> Optional[str]:
    """辞書またはモデルからステップ種別を判定する。

    辞書の場合は最初に見つかった既知の種別キーを採用する。
    """
    if isinstance(value, dict):
        for key in value:
            if key in STEP_MODELS:
                return key
        return None
    return getattr(value, "kind", None)


StepType = Annotated[
    Union[
        Annotated[NavigateStep, Tag("navigate")],
        Annotated[ClickStep, Tag("click")],
        Annotated[FillAndSubmitStep, Tag("fillAndSubmit")],
        Annotated[VerifyDropdownValueStep, Tag("verifyDropdownValue")],
        Annotated[VerifyCheckedStep, Tag("verifyChecked")],
        Annotated[VerifyCollectionCountStep, Tag("verifyCollectionCount")],
        Annotated[VerifyOrderedTextsStep, Tag("verifyOrderedTexts")],
        Annotated[VerifyTextMatchesStep, Tag("verifyTextMatches")],
    ],
    Discriminator(_step_kind),
]
"""全ステップ型の判別共用体。Scenario.steps で使用する。"""


# ===========================================================================
# Scenario 定義
# ===========================================================================

class Scenario(BaseModel):
    """順序付きステップ列とシナリオ単位のメタ情報。

    ステップは記述順に1つずつ実行され、並べ替えや並列化は行われない。
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="シナリオ名")
    steps: tuple[StepType, ...] = Field(..., min_length=1, description="ステップ列")
    timeout: Optional[int] = Field(
        default=None, gt=0, description="シナリオ全体のタイムアウト（ミリ秒）"
    )

    def references(self) -> list[tuple[str, str]]:
        """全ステップが参照する (グループ名, 名前) を出現順・重複なしで返す。"""
        seen: dict[tuple[str, str], None] = {}
        for step in self.steps:
            for ref in step.references():
                seen.setdefault(ref, None)
        return list(seen)

    def check_references(self, config: SuiteConfig) -> None:
        """全参照が config に存在することを検証する。

        Raises:
            ScenarioBuildError: 未定義の名前を参照している場合
        """
        missing = [
            (group, name)
            for group, name in self.references()
            if not config.has(group, name)
        ]
        if missing:
            raise ScenarioBuildError(self.name, missing)


def build_scenario(
    name: str,
    steps: Sequence[Union[_StepBase, dict]],
    config: SuiteConfig,
    timeout: Optional[int] = None,
) -> Scenario:
    """Scenario を構築し、config に対する参照検証まで行う。

    Args:
        name: シナリオ名
        steps: ステップモデルまたは YAML 形式の辞書の列
        config: 参照先の設定
        timeout: シナリオ全体のタイムアウト（ミリ秒）

    Returns:
        検証済みの Scenario

    Raises:
        pydantic.ValidationError: ステップ定義が不正な場合
        ScenarioBuildError: 未定義の名前を参照している場合
    """
    scenario = Scenario(name=name, steps=tuple(steps), timeout=timeout)
    scenario.check_references(config)
    return scenario
