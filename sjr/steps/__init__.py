"""
ステップライブラリモジュール

遷移・操作・検証の標準ステップと、ステップハンドラの登録機構を提供する。

主要エクスポート:
  - StepRegistry: ステップハンドラの登録・検索・一覧
  - StepHandler: ステップハンドラの共通 Protocol
  - StepContext: ステップ実行コンテキスト
  - StepInfo: ステップのメタ情報
  - create_default_registry: 全標準ステップ登録済みレジストリの生成
"""

from .builtin import create_default_registry
from .registry import StepContext, StepHandler, StepInfo, StepRegistry

__all__ = [
    "StepContext",
    "StepHandler",
    "StepInfo",
    "StepRegistry",
    "create_default_registry",
]
