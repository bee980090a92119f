"""
どこで: `common.settings`
何を: プロジェクトの環境変数を型付きで一元管理し、起動時に読み込む。
なぜ: `os.getenv` の散在を解消し、既定値/型の一貫性とテスト容易性を高めるため。
"""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_bool, env_str

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


@dataclass
class _Settings:
    # WKT 出力
    WKT_STRICT_RINGS: bool = True

    # 計測
    TIMER_STATS_ENABLED: bool = True

    # Misc
    LOG_LEVEL: str = "INFO"


_settings = _Settings()


def reload_from_env() -> None:
    """環境変数から設定を再読込。

    - bool は `env_bool`、ログレベルは `env_str`（候補外は INFO）を使用。
    """
    _settings.WKT_STRICT_RINGS = env_bool("PXD_WKT_STRICT_RINGS", True)
    _settings.TIMER_STATS_ENABLED = env_bool("PXD_TIMER_STATS_ENABLED", True)
    _settings.LOG_LEVEL = env_str("PXD_LOG_LEVEL", "INFO", choices=_LOG_LEVELS)


def get() -> _Settings:
    """現在の設定スナップショットを返す。"""
    return _settings


# 初期ロード
reload_from_env()


__all__ = ["get", "reload_from_env", "_Settings"]
