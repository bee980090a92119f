"""
どこで: `engine.monitor.timer`。
何を: 壁時計時間と CPU 時間を同時に測るストップウォッチと、メトリクス名ごとの累積器。
なぜ: WKT 生成などの処理を呼び出し側で計測できるようにするため（生成器自体は依存しない）。

単位はすべてミリ秒。CPU 時間はプロセスの user + system（`psutil`）。
"""

from __future__ import annotations

import logging
import os
import threading
import time
from dataclasses import dataclass
from types import TracebackType

import psutil

from common import settings

logger = logging.getLogger(__name__)

_proc = psutil.Process(os.getpid())


def _cpu_now() -> float:
    t = _proc.cpu_times()
    return float(t.user + t.system)


@dataclass(frozen=True)
class TimerMetrics:
    cpu_elapsed: float = 0.0
    wall_clock_elapsed: float = 0.0
    count: int = 0


class TimerStats:
    """メトリクス名ごとに経過時間を合算するスレッドセーフな累積器。"""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._stats: dict[str, TimerMetrics] = {}

    def add(self, metric_name: str, cpu_elapsed: float, wall_clock_elapsed: float) -> None:
        with self._lock:
            cur = self._stats.get(metric_name, TimerMetrics())
            self._stats[metric_name] = TimerMetrics(
                cpu_elapsed=cur.cpu_elapsed + float(cpu_elapsed),
                wall_clock_elapsed=cur.wall_clock_elapsed + float(wall_clock_elapsed),
                count=cur.count + 1,
            )

    def get(self, metric_name: str) -> TimerMetrics | None:
        with self._lock:
            return self._stats.get(metric_name)

    def snapshot(self) -> dict[str, TimerMetrics]:
        with self._lock:
            return dict(self._stats)

    def reset(self) -> None:
        with self._lock:
            self._stats.clear()

    def report(self) -> list[str]:
        """`name: wall ms (cpu ms)` 形式の行を名前順で返す。"""
        return [
            f"{name}: {m.wall_clock_elapsed:.3f}ms ({m.cpu_elapsed:.3f}ms cpu)"
            for name, m in sorted(self.snapshot().items())
        ]

    def __contains__(self, metric_name: object) -> bool:
        with self._lock:
            return metric_name in self._stats

    def __len__(self) -> int:
        with self._lock:
            return len(self._stats)


timer_stats = TimerStats()


class Timer:
    """壁時計/CPU 時間を測るタイマー。生成時に開始する。

    経過時間の取得時にまだ動いていれば、その時点で停止する。
    """

    def __init__(self) -> None:
        self.restart()

    def restart(self) -> None:
        self._stopped = False
        self._wall_start = time.perf_counter()
        self._cpu_start = _cpu_now()
        self._wall_end = self._wall_start
        self._cpu_end = self._cpu_start

    def stop(self) -> None:
        self._stopped = True
        self._cpu_end = _cpu_now()
        self._wall_end = time.perf_counter()

    @property
    def stopped(self) -> bool:
        return self._stopped

    def cpu_elapsed(self) -> float:
        """CPU 時間 [ms]。"""
        if not self._stopped:
            self.stop()
        return (self._cpu_end - self._cpu_start) * 1000.0

    def wall_clock_elapsed(self) -> float:
        """壁時計時間 [ms]。"""
        if not self._stopped:
            self.stop()
        return (self._wall_end - self._wall_start) * 1000.0


class ProgressTimer(Timer):
    """停止時に経過時間を `TimerStats` へ 1 度だけ加算するタイマー。

    `with ProgressTimer("wkt.generate"):` のように使う。ブロック内で例外が起きても記録する。
    記録中の失敗はログに残すだけで送出しない。
    """

    def __init__(self, metric_name: str, stats: TimerStats | None = None) -> None:
        self.metric_name = metric_name
        self._stats = timer_stats if stats is None else stats
        super().__init__()

    def stop(self) -> None:
        if self._stopped:
            return
        super().stop()
        if not settings.get().TIMER_STATS_ENABLED:
            return
        try:
            cpu = self.cpu_elapsed()
            wall = self.wall_clock_elapsed()
            self._stats.add(self.metric_name, cpu, wall)
            logger.debug("[timer] %s wall=%.3fms cpu=%.3fms", self.metric_name, wall, cpu)
        except Exception:
            logger.warning("[timer] failed to record %s", self.metric_name, exc_info=True)

    def discard(self) -> None:
        """記録せずに停止扱いにする。"""
        self._stopped = True

    def __enter__(self) -> "ProgressTimer":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if not self._stopped:
            self.stop()


__all__ = ["ProgressTimer", "Timer", "TimerMetrics", "TimerStats", "timer_stats"]
