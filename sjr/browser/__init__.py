# ブラウザモジュール
# Page インターフェースの Playwright 実装とセッション管理を提供

from .page import PlaywrightPage
from .session import BrowserSession, SessionState, open_page

__all__ = [
    "BrowserSession",
    "PlaywrightPage",
    "SessionState",
    "open_page",
]
