"""
実行結果データクラス — ステップ結果とシナリオ結果

Runner が生成する結果値を定義する。いずれも frozen で、生成後に変更されない。

ステップの結果（Outcome）:
  - Success: 成功
  - Mismatch: 観測値が期待値と異なる（テスト対象の不具合）
  - Timeout: 待機条件が制限時間内に成立しなかった
  - DriverError: ブラウザ操作そのものが失敗した

シナリオの終了状態:
  - Completed: 全ステップ成功
  - AbortedAt: 指定インデックス（0始まり）のステップで中断
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, ClassVar, Optional, Union

if TYPE_CHECKING:
    from ..dsl.schema import StepType


# ---------------------------------------------------------------------------
# ステップ結果（Outcome）
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Success:
    """ステップが成功したことを表す。"""

    label: ClassVar[str] = "passed"


@dataclass(frozen=True)
class Mismatch:
    """値は取得できたが期待値と一致しなかったことを表す。

    Attributes:
        expected: 期待値
        actual: 観測値
        details: 不一致の詳細（位置ごとの説明など）
        index: 最初に不一致となった位置（リスト検証のみ）
    """

    expected: Any
    actual: Any
    details: tuple[str, ...] = ()
    index: Optional[int] = None
    label: ClassVar[str] = "mismatch"


@dataclass(frozen=True)
class Timeout:
    """待機条件が制限時間内に成立しなかったことを表す。"""

    message: str
    label: ClassVar[str] = "timeout"


@dataclass(frozen=True)
class DriverError:
    """ブラウザ操作の下位層が失敗したことを表す。"""

    message: str
    label: ClassVar[str] = "driver_error"


Outcome = Union[Success, Mismatch, Timeout, DriverError]


# ---------------------------------------------------------------------------
# シナリオ終了状態
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Completed:
    """全ステップが成功して終了した。"""


@dataclass(frozen=True)
class AbortedAt:
    """index 番目（0始まり）のステップの失敗で中断した。"""

    index: int


ScenarioStatus = Union[Completed, AbortedAt]


# ---------------------------------------------------------------------------
# 結果コンテナ
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StepResult:
    """単一ステップの実行結果。

    Attributes:
        index: ステップのインデックス（0始まり）
        step: 実行したステップ
        outcome: 実行結果
        elapsed_ms: 実行時間（ミリ秒）
    """

    index: int
    step: StepType
    outcome: Outcome
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return isinstance(self.outcome, Success)


@dataclass(frozen=True)
class ScenarioResult:
    """シナリオ全体の実行結果。

    steps には実行されたステップの結果のみが含まれる。
    中断後のステップは実行されないため結果も存在しない。

    Attributes:
        scenario_name: シナリオ名
        steps: 各ステップの実行結果（実行順）
        status: 終了状態（Completed / AbortedAt）
        duration_ms: 全体実行時間（ミリ秒）
        started_at: 実行開始日時
        finished_at: 実行終了日時
    """

    scenario_name: str
    steps: tuple[StepResult, ...] = ()
    status: ScenarioStatus = Completed()
    duration_ms: float = 0.0
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def passed(self) -> bool:
        return isinstance(self.status, Completed)

    @property
    def aborted_at(self) -> Optional[int]:
        """中断したステップのインデックス。完了時は None。"""
        if isinstance(self.status, AbortedAt):
            return self.status.index
        return None

    @property
    def failed_step(self) -> Optional[StepResult]:
        """中断の原因となったステップ結果。完了時は None。"""
        index = self.aborted_at
        if index is None:
            return None
        return self.steps[index]
