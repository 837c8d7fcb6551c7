"""
例外定義 — シナリオ実行エンジンのエラー分類

Runner はステップ実行中に送出された例外を以下の分類で結果値に変換する。

  - PageTimeoutError: 待機条件が制限時間内に成立しなかった（描画が遅い）
  - PageDriverError: ブラウザ操作そのものが失敗した（環境・インフラ起因）
  - VerificationMismatch: 値は取得できたが期待値と異なる（テスト対象の不具合）
  - ScenarioBuildError: シナリオが設定に存在しない名前を参照している（構築時エラー）
"""

from __future__ import annotations

from typing import Any, Optional, Sequence


class PageTimeoutError(TimeoutError):
    """Page プリミティブが制限時間内に完了しなかったことを表す例外。"""


class PageDriverError(RuntimeError):
    """ブラウザ自動操作の下位層で発生した失敗を表す例外。

    ナビゲーション拒否、DNS 解決失敗、要素操作の失敗などが該当する。
    """


class VerificationMismatch(Exception):
    """検証ステップで観測値が期待値と一致しなかったことを表す例外。

    Attributes:
        expected: 期待値
        actual: 実際に観測された値
        details: 不一致の詳細（順序付きリスト検証では位置ごとの説明）
        index: 最初に不一致となった位置（リスト検証のみ）
    """

    def __init__(
        self,
        expected: Any,
        actual: Any,
        details: Sequence[str] = (),
        index: Optional[int] = None,
    ) -> None:
        self.expected = expected
        self.actual = actual
        self.details = tuple(details)
        self.index = index
        message = f"期待値: {expected!r}, 実際: {actual!r}"
        if self.details:
            message += " (" + "; ".join(self.details) + ")"
        super().__init__(message)


class ScenarioBuildError(ValueError):
    """シナリオが設定に存在しない URL・ロケータ・タイムアウト名を参照している場合の例外。

    Attributes:
        missing: 未定義の参照 (グループ名, 名前) のリスト
    """

    def __init__(self, scenario_name: str, missing: Sequence[tuple[str, str]]) -> None:
        self.scenario_name = scenario_name
        self.missing = list(missing)
        refs = ", ".join(f"{group}.{name}" for group, name in self.missing)
        super().__init__(
            f"シナリオ '{scenario_name}' が未定義の名前を参照しています: [{refs}]"
        )
