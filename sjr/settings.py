"""
実行設定 — 環境変数・CLI オプションからの設定読み込み

ブラウザ起動や待機方法など、シナリオの外側にある実行時設定を管理する。
CLI オプション > 環境変数 > デフォルト値 の優先順位で適用される。

環境変数一覧:
  SJR_HEADED          : ブラウザ表示モード（true/false, デフォルト: true）
  SJR_SLOW_MO         : 各操作間の遅延（ミリ秒, デフォルト: 0）
  SJR_CHANNEL         : ブラウザチャンネル（chrome / msedge 等, デフォルト: 同梱 Chromium）
  SJR_VIEWPORT_WIDTH  : ビューポート幅（デフォルト: 1280）
  SJR_VIEWPORT_HEIGHT : ビューポート高さ（デフォルト: 720）
  SJR_WAIT_STATE      : 要素待機の状態（attached/visible, デフォルト: visible）
  SJR_SETTLE_STATE    : 遷移完了とみなす状態（load/domcontentloaded/networkidle, デフォルト: load）
  SJR_KEEP_OPEN       : 終了後にブラウザを開いたままにするか（true/false, デフォルト: false）
  SJR_LOG_LEVEL       : ログレベル（デフォルト: WARNING）
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from typing import Any, Literal, Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# 環境変数キー定数
# ---------------------------------------------------------------------------

_ENV_HEADED = "SJR_HEADED"
_ENV_SLOW_MO = "SJR_SLOW_MO"
_ENV_CHANNEL = "SJR_CHANNEL"
_ENV_VIEWPORT_WIDTH = "SJR_VIEWPORT_WIDTH"
_ENV_VIEWPORT_HEIGHT = "SJR_VIEWPORT_HEIGHT"
_ENV_WAIT_STATE = "SJR_WAIT_STATE"
_ENV_SETTLE_STATE = "SJR_SETTLE_STATE"
_ENV_KEEP_OPEN = "SJR_KEEP_OPEN"
_ENV_LOG_LEVEL = "SJR_LOG_LEVEL"

_WAIT_STATES = ("attached", "visible")
_SETTLE_STATES = ("load", "domcontentloaded", "networkidle")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


# ---------------------------------------------------------------------------
# 設定データクラス
# ---------------------------------------------------------------------------

@dataclass
class RunSettings:
    """シナリオ実行時のブラウザ・待機設定。

    Attributes:
        headed: ブラウザ表示モード（True=表示, False=ヘッドレス）
        slow_mo: 各 Playwright 操作間の遅延（ミリ秒）
        channel: ブラウザチャンネル。None で同梱 Chromium
        viewport_width: ビューポート幅
        viewport_height: ビューポート高さ
        wait_state: 要素待機で要求する状態
        settle_state: 遷移完了とみなすロード状態
        keep_open: 実行後、Enter が押されるまでブラウザを閉じない
        log_level: ログレベル名
    """

    headed: bool = True
    slow_mo: int = 0
    channel: Optional[str] = None
    viewport_width: int = 1280
    viewport_height: int = 720
    wait_state: Literal["attached", "visible"] = "visible"
    settle_state: Literal["load", "domcontentloaded", "networkidle"] = "load"
    keep_open: bool = False
    log_level: str = "WARNING"


# ---------------------------------------------------------------------------
# 環境変数からの読み込み
# ---------------------------------------------------------------------------

def _parse_bool(value: str) -> bool:
    """"true", "1", "yes" を True、それ以外を False に変換する。"""
    return value.lower() in ("true", "1", "yes")


def _parse_int(name: str) -> Optional[int]:
    try:
        return int(os.environ[name])
    except ValueError:
        logger.warning("%s の値が不正です: %s", name, os.environ[name])
        return None


def load_settings_from_env() -> RunSettings:
    """環境変数から RunSettings を生成する。

    設定されていない、または不正な値の環境変数はデフォルト値を使用する。
    """
    settings = RunSettings()

    if _ENV_HEADED in os.environ:
        settings.headed = _parse_bool(os.environ[_ENV_HEADED])

    if _ENV_SLOW_MO in os.environ:
        value = _parse_int(_ENV_SLOW_MO)
        if value is not None and value >= 0:
            settings.slow_mo = value

    if os.environ.get(_ENV_CHANNEL):
        settings.channel = os.environ[_ENV_CHANNEL]

    if _ENV_VIEWPORT_WIDTH in os.environ:
        value = _parse_int(_ENV_VIEWPORT_WIDTH)
        if value is not None:
            settings.viewport_width = value

    if _ENV_VIEWPORT_HEIGHT in os.environ:
        value = _parse_int(_ENV_VIEWPORT_HEIGHT)
        if value is not None:
            settings.viewport_height = value

    if _ENV_WAIT_STATE in os.environ:
        val = os.environ[_ENV_WAIT_STATE]
        if val in _WAIT_STATES:
            settings.wait_state = val  # type: ignore[assignment]
        else:
            logger.warning("%s の値が不正です: %s", _ENV_WAIT_STATE, val)

    if _ENV_SETTLE_STATE in os.environ:
        val = os.environ[_ENV_SETTLE_STATE]
        if val in _SETTLE_STATES:
            settings.settle_state = val  # type: ignore[assignment]
        else:
            logger.warning("%s の値が不正です: %s", _ENV_SETTLE_STATE, val)

    if _ENV_KEEP_OPEN in os.environ:
        settings.keep_open = _parse_bool(os.environ[_ENV_KEEP_OPEN])

    if _ENV_LOG_LEVEL in os.environ:
        val = os.environ[_ENV_LOG_LEVEL].upper()
        if val in _LOG_LEVELS:
            settings.log_level = val
        else:
            logger.warning("%s の値が不正です: %s", _ENV_LOG_LEVEL, val)

    logger.debug("設定を読み込みました: %s", settings)
    return settings


def apply_overrides(settings: RunSettings, **overrides: Any) -> RunSettings:
    """None でない値だけを上書きした新しい RunSettings を返す。

    CLI オプションの未指定（None）は環境変数・デフォルト値を維持する。
    """
    values = {key: value for key, value in overrides.items() if value is not None}
    return replace(settings, **values)
