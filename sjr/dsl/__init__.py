# DSL モジュール
# 設定・ステップ・シナリオのスキーマ定義と YAML パーサーを提供

from . import schema  # noqa: F401
from . import parser  # noqa: F401
