"""
どこで: `engine.monitor` サブパッケージ。
何を: 処理時間の計測ユーティリティ（Timer/ProgressTimer/TimerStats）を提供。
"""
