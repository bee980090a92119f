"""
どこで: `engine.export.wkt`。
何を: `Geometry`（Point/LineString/Polygon）を OGC Well-Known Text へ変換する生成器と書き出しクラス。
なぜ: 頂点タグで暗黙に区切られたリング構造を、区切り記号まで正確な WKT 文字列へ落とすため。

出力形式:
- `Point(x y)`
- `LineString(x y,x y,...)`
- `Polygon((x y,...),(x y,...))` — 先頭が外周、以降が穴。
- 座標は常に小数点以下 6 桁の固定小数（指数表記なし、`+` なし）。

丸め規則:
- 2 進数の厳密値に対する偶数丸め（`format(v, ".6f")` と同じ）。
  例: `0.0078125 -> 0.007812`, `0.0234375 -> 0.023438`。
- 丸め結果が 0 になる負値と `-0.0` は符号なし `0.000000` とする。
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import IO, Iterable

from common import settings
from engine.core.geometry import Command, Geometry, GeometryType

logger = logging.getLogger(__name__)

COORDINATE_PRECISION = 6

_ZERO = format(0.0, f".{COORDINATE_PRECISION}f")


# ── エラー ───────────────────
class WKTGenerationError(ValueError):
    """WKT 生成失敗の基底例外。"""


class EmptyGeometryError(WKTGenerationError):
    """頂点を持たないジオメトリ（種別を問わない）。"""

    def __init__(self, kind: object) -> None:
        name = kind.name if isinstance(kind, GeometryType) else repr(kind)
        super().__init__(f"cannot generate WKT for an empty {name} geometry")
        self.kind = kind


class UnsupportedKindError(WKTGenerationError):
    """Point/LineString/Polygon 以外の種別。"""

    def __init__(self, kind: object) -> None:
        super().__init__(f"unsupported geometry kind: {kind!r}")
        self.kind = kind


class MalformedRingStructureError(WKTGenerationError):
    """Polygon の先頭頂点が `MoveTo` でない（厳格モード）。"""


class NonFiniteCoordinateError(WKTGenerationError):
    """NaN/inf を含む座標。"""

    def __init__(self, value: float, index: int | None = None) -> None:
        where = "" if index is None else f" at vertex {index}"
        super().__init__(f"non-finite coordinate{where}: {value!r}")
        self.value = value
        self.index = index


# ── 座標フォーマット ───────────────────
def format_coordinate(value: float) -> str:
    """座標値を小数点以下 6 桁の固定小数文字列にする。

    Raises
    ------
    NonFiniteCoordinateError
        NaN/inf の場合。
    """
    v = float(value)
    if not math.isfinite(v):
        raise NonFiniteCoordinateError(v)
    text = format(v, f".{COORDINATE_PRECISION}f")
    if text[0] == "-" and text[1:] == _ZERO:
        return _ZERO
    return text


def _format_xy(coords, index: int) -> str:
    x, y = coords[index]
    try:
        return f"{format_coordinate(x)} {format_coordinate(y)}"
    except NonFiniteCoordinateError as e:
        raise NonFiniteCoordinateError(e.value, index) from None


# ── リング境界の追跡 ───────────────────
@dataclass
class _RingTracker:
    """1 回の生成呼び出しに閉じたリングカウンタ。"""

    count: int = 0

    def open(self) -> str:
        self.count += 1
        return "(" if self.count == 1 else "),("


class WKTGenerator:
    """`Geometry` を WKT 文字列へ変換する生成器。

    インスタンスは生成中に状態を変更しない（リングカウンタは呼び出しごとに生成）。
    そのため同一インスタンスを複数スレッドから共有してよい。

    Parameters
    ----------
    strict_rings : bool | None
        True で Polygon 先頭が `MoveTo` でない入力を拒否する。
        False では先頭の `LineTo` を外周の開始として扱う。None は設定値（`PXD_WKT_STRICT_RINGS`）。
    """

    def __init__(self, *, strict_rings: bool | None = None) -> None:
        self._strict_rings = strict_rings

    @property
    def strict_rings(self) -> bool:
        if self._strict_rings is None:
            return settings.get().WKT_STRICT_RINGS
        return self._strict_rings

    def generate(self, geometry: Geometry) -> str:
        """ジオメトリを WKT に変換する。

        失敗時は例外を送出し、部分的な文字列は返さない。
        """
        kind = geometry.kind
        if kind is GeometryType.Point:
            rule = self._point
        elif kind is GeometryType.LineString:
            rule = self._line_string
        elif kind is GeometryType.Polygon:
            rule = self._polygon
        else:
            raise UnsupportedKindError(kind)

        if geometry.is_empty:
            raise EmptyGeometryError(kind)

        text = rule(geometry)
        logger.debug("generated %s WKT (%d vertices)", kind.name, len(geometry))
        return text

    # ── 生成規則 ────────
    def _point(self, geometry: Geometry) -> str:
        return f"Point({_format_xy(geometry.coords, 0)})"

    def _line_string(self, geometry: Geometry) -> str:
        coords = geometry.coords
        body = ",".join(_format_xy(coords, i) for i in range(coords.shape[0]))
        return f"LineString({body})"

    def _polygon(self, geometry: Geometry) -> str:
        coords = geometry.coords
        commands = geometry.commands
        if commands[0] != Command.MoveTo and self.strict_rings:
            raise MalformedRingStructureError(
                "polygon vertex stream must start with MoveTo"
            )

        tracker = _RingTracker()
        parts = ["Polygon("]
        for i in range(coords.shape[0]):
            if i == 0 or commands[i] == Command.MoveTo:
                parts.append(tracker.open())
            else:
                parts.append(",")
            parts.append(_format_xy(coords, i))
        parts.append("))")
        return "".join(parts)


_default_generator = WKTGenerator()


def generate(geometry: Geometry, *, strict_rings: bool | None = None) -> str:
    """モジュールレベルの入口。`WKTGenerator.generate` の薄いラッパ。"""
    if strict_rings is None:
        return _default_generator.generate(geometry)
    return WKTGenerator(strict_rings=strict_rings).generate(geometry)


@dataclass(frozen=True)
class WKTWriter:
    """WKT をテキストストリームへ書き出すクラス。

    文字列を最後まで生成してから書き込むため、失敗時に `fp` へは何も書かれない。
    """

    generator: WKTGenerator = WKTGenerator()

    def write(self, geometry: Geometry, fp: IO[str]) -> int:
        """1 つのジオメトリを書き出し、書き込んだ文字数を返す。"""
        text = self.generator.generate(geometry)
        fp.write(text)
        return len(text)

    def write_many(
        self,
        geometries: Iterable[Geometry],
        fp: IO[str],
        *,
        separator: str = "\n",
    ) -> int:
        """複数のジオメトリを `separator` 区切りで書き出す。

        すべて生成し終えてから書き込む（どれか 1 つでも失敗すれば何も書かない）。
        """
        texts = [self.generator.generate(g) for g in geometries]
        if not texts:
            return 0
        out = separator.join(texts) + separator
        fp.write(out)
        return len(out)


__all__ = [
    "COORDINATE_PRECISION",
    "EmptyGeometryError",
    "MalformedRingStructureError",
    "NonFiniteCoordinateError",
    "UnsupportedKindError",
    "WKTGenerationError",
    "WKTGenerator",
    "WKTWriter",
    "format_coordinate",
    "generate",
]
