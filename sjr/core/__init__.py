# コアモジュール
# Runner、Page インターフェース、実行結果、レポート生成を提供

from .errors import (
    PageDriverError,
    PageTimeoutError,
    ScenarioBuildError,
    VerificationMismatch,
)
from .outcome import (
    AbortedAt,
    Completed,
    DriverError,
    Mismatch,
    ScenarioResult,
    StepResult,
    Success,
    Timeout,
)
from .page import ElementState, Page

__all__ = [
    "AbortedAt",
    "Completed",
    "DriverError",
    "ElementState",
    "Mismatch",
    "Page",
    "PageDriverError",
    "PageTimeoutError",
    "ScenarioBuildError",
    "ScenarioResult",
    "StepResult",
    "Success",
    "Timeout",
    "VerificationMismatch",
]
