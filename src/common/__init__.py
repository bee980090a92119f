"""
どこで: `common` パッケージ。
何を: 設定・環境変数・ロギングなど、engine 側から使う軽量な共通基盤。
なぜ: 依存の向きを単純化し、engine の各モジュールから再利用するため。
"""

from .logging import setup_default_logging
from .settings import get as get_settings

__all__ = [
    "get_settings",
    "setup_default_logging",
]
