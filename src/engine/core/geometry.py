"""
WKT 出力向けの 2D Geometry 型（プロジェクト中核モジュール）

本モジュールは、WKT 生成器が受け取る唯一の幾何表現 `Geometry` を提供する。
輪郭（リング）の境界は配列の区切りではなく、頂点ごとのコマンドタグで暗黙に表す。

データモデル（不変条件）:
- `kind: GeometryType` — Point / LineString / Polygon の判別子（閉じた集合）。
- `coords: float64 ndarray (N, 2)` — 全頂点を 1 本の連続メモリで保持（行は XY）。
- `commands: uint8 ndarray (N,)` — 各頂点のタグ。`MoveTo` は輪郭の先頭、`LineTo` はその続き。
- Polygon では `MoveTo` の個数 == リング数（外周 + 穴）。
- 配列は生成時に読み取り専用へ固定し、以後は変更しない。

直感図（穴あきポリゴンの格納）:

    # 外周 4 点 + 穴 3 点
    #
    #   idx  xy       command
    #   0   [0, 0]   MoveTo   ← 外周の開始
    #   1   [4, 0]   LineTo
    #   2   [4, 4]   LineTo
    #   3   [0, 4]   LineTo
    #   4   [1, 1]   MoveTo   ← 穴の開始
    #   5   [2, 1]   LineTo
    #   6   [2, 2]   LineTo

補足:
- 空ジオメトリは `coords.shape==(0,2)`, `commands.shape==(0,)`。表現は可能だが WKT 化はできない。
- 判別子が既知の種別に解決できない場合は生の値を保持し、判定は生成器側に委ねる。

使用例:
    g = Geometry.polygon([[(0, 0), (4, 0), (4, 4), (0, 4)], [(1, 1), (2, 1), (2, 2)]])
    g.ring_count  # -> 2
"""

from __future__ import annotations

from enum import IntEnum
from typing import Iterable, Iterator, Sequence

import numpy as np

from common.types import Vec2

NumberLike = float | int
PointLike = Sequence[NumberLike] | np.ndarray
LineLike = np.ndarray | Sequence[PointLike]


class GeometryType(IntEnum):
    """ジオメトリ種別（値は WKB の型番号に合わせる）。"""

    Point = 1
    LineString = 2
    Polygon = 3


class Command(IntEnum):
    """頂点タグ。描画命令ではなく輪郭構造の目印。"""

    MoveTo = 1
    LineTo = 2


_VALID_COMMANDS = np.array([int(c) for c in Command], dtype=np.uint8)


def _coerce_kind(kind: object) -> GeometryType | object:
    """判別子を `GeometryType` へ解決する。解決できなければそのまま返す。"""
    if isinstance(kind, GeometryType):
        return kind
    if isinstance(kind, str):
        for member in GeometryType:
            if member.name.lower() == kind.strip().lower():
                return member
        return kind
    if isinstance(kind, (int, np.integer)) and not isinstance(kind, bool):
        try:
            return GeometryType(int(kind))
        except ValueError:
            return kind
    return kind


def _normalize_geometry_input(
    coords: np.ndarray,
    commands: np.ndarray,
) -> tuple[np.ndarray, np.ndarray]:
    """`Geometry` 生成時の内部正規化ヘルパ。"""

    coords_arr = np.array(coords, dtype=np.float64, copy=True)
    if coords_arr.size == 0:
        coords_arr = coords_arr.reshape(0, 2)
    if coords_arr.ndim != 2 or coords_arr.shape[1] != 2:
        raise ValueError(f"coords must have shape (N, 2), got {coords_arr.shape}")
    coords_arr = np.ascontiguousarray(coords_arr)

    commands_arr = np.array(commands, copy=True)
    if commands_arr.size == 0:
        commands_arr = commands_arr.reshape(0)
    if commands_arr.ndim != 1:
        raise ValueError("commands must be a 1-D array")
    if commands_arr.shape[0] != coords_arr.shape[0]:
        raise ValueError(
            f"commands length ({commands_arr.shape[0]}) must match "
            f"the number of vertices ({coords_arr.shape[0]})"
        )
    if commands_arr.size and not np.all(np.isin(commands_arr, _VALID_COMMANDS)):
        raise ValueError("commands may only contain MoveTo (1) or LineTo (2)")
    commands_arr = np.ascontiguousarray(commands_arr, dtype=np.uint8)

    coords_arr.setflags(write=False)
    commands_arr.setflags(write=False)
    return coords_arr, commands_arr


def _as_xy(line: LineLike) -> np.ndarray:
    arr = np.asarray(line, dtype=np.float64)
    if arr.size == 0:
        return np.empty((0, 2), dtype=np.float64)
    if arr.ndim == 1:
        if arr.size % 2 != 0:
            raise ValueError("1-D input length must be a multiple of 2 (x, y pairs)")
        arr = arr.reshape(-1, 2)
    elif arr.ndim != 2 or arr.shape[1] != 2:
        raise ValueError(f"invalid coordinate array shape: {arr.shape}")
    return arr


def _contour_commands(n: int) -> np.ndarray:
    cmds = np.full(n, int(Command.LineTo), dtype=np.uint8)
    if n:
        cmds[0] = int(Command.MoveTo)
    return cmds


class Geometry:
    """WKT 生成器の入力となる不変な幾何データ。

    フィールド:
    - `kind`: `GeometryType`（解決できない判別子は生の値）。
    - `coords (N,2) float64`: 頂点列（順序は意味を持つ）。
    - `commands (N,) uint8`: 頂点ごとの `Command` タグ。
    """

    __slots__ = ("kind", "coords", "commands")

    kind: GeometryType | object
    coords: np.ndarray
    commands: np.ndarray

    def __init__(self, kind: object, coords: np.ndarray, commands: np.ndarray) -> None:
        norm_coords, norm_commands = _normalize_geometry_input(coords, commands)
        object.__setattr__(self, "kind", _coerce_kind(kind))
        object.__setattr__(self, "coords", norm_coords)
        object.__setattr__(self, "commands", norm_commands)

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError("Geometry is immutable")

    # ── ファクトリ ───────────────────
    @classmethod
    def point(cls, x: NumberLike, y: NumberLike) -> "Geometry":
        """単一頂点の Point を生成する。"""
        coords = np.array([[x, y]], dtype=np.float64)
        return cls(GeometryType.Point, coords, _contour_commands(1))

    @classmethod
    def line_string(cls, points: LineLike) -> "Geometry":
        """頂点列から LineString を生成する（先頭のみ `MoveTo`）。

        Parameters
        ----------
        points : LineLike
            `(K, 2)` の座標列、または `(2K,)` の 1 次元ベクトル。空も可。
        """
        xy = _as_xy(points)
        return cls(GeometryType.LineString, xy, _contour_commands(xy.shape[0]))

    @classmethod
    def polygon(cls, rings: Iterable[LineLike]) -> "Geometry":
        """リング集合から Polygon を生成する。

        Parameters
        ----------
        rings : Iterable[LineLike]
            先頭が外周、以降が穴。各リングの先頭頂点に `MoveTo` を付与する。

        Raises
        ------
        ValueError
            頂点を持たないリングが含まれる場合（リング数と `MoveTo` 数が一致しなくなるため）。
        """
        parts: list[np.ndarray] = []
        cmds: list[np.ndarray] = []
        for i, ring in enumerate(rings):
            xy = _as_xy(ring)
            if xy.shape[0] == 0:
                raise ValueError(f"ring {i} has no vertices")
            parts.append(xy)
            cmds.append(_contour_commands(xy.shape[0]))

        if not parts:
            return cls(
                GeometryType.Polygon,
                np.empty((0, 2), dtype=np.float64),
                np.empty((0,), dtype=np.uint8),
            )
        return cls(GeometryType.Polygon, np.concatenate(parts), np.concatenate(cmds))

    # ── 参照系 ────────
    def __len__(self) -> int:
        return int(self.coords.shape[0])

    def __repr__(self) -> str:
        kind = self.kind.name if isinstance(self.kind, GeometryType) else repr(self.kind)
        return f"Geometry(kind={kind}, vertices={len(self)}, rings={self.ring_count})"

    @property
    def is_empty(self) -> bool:
        """頂点が 1 つも無いか。"""
        return self.coords.shape[0] == 0

    @property
    def ring_count(self) -> int:
        """`MoveTo` タグの個数（Polygon ではリング数）。"""
        return int(np.count_nonzero(self.commands == int(Command.MoveTo)))

    def vertex(self, index: int) -> tuple[float, float, Command]:
        """`index` 番目の頂点を `(x, y, command)` で返す。"""
        x, y = self.coords[index]
        return float(x), float(y), Command(int(self.commands[index]))

    def vertices(self) -> Iterator[tuple[float, float, Command]]:
        """頂点をストリーム順に `(x, y, command)` で列挙する。"""
        for (x, y), cmd in zip(self.coords.tolist(), self.commands.tolist()):
            yield x, y, Command(cmd)

    def rings(self) -> list[np.ndarray]:
        """`MoveTo` 位置で座標列を分割した輪郭のリスト（読み取り専用ビュー）。

        先頭頂点が `LineTo` の場合、その頂点から最初の `MoveTo` 直前までを 1 輪郭として扱う。
        """
        if self.is_empty:
            return []
        starts = np.flatnonzero(self.commands == int(Command.MoveTo))
        if starts.size == 0 or starts[0] != 0:
            starts = np.concatenate([[0], starts])
        bounds = list(starts.tolist()) + [len(self)]
        return [self.coords[s:e] for s, e in zip(bounds[:-1], bounds[1:])]

    def as_arrays(self, *, copy: bool = False) -> tuple[np.ndarray, np.ndarray]:
        """内部配列を返す。

        Parameters
        ----------
        copy : bool, default False
            True の場合は書き込み可能なディープコピーを返す。False の場合は読み取り専用配列。

        Returns
        -------
        tuple[np.ndarray, np.ndarray]
            `(coords, commands)` のタプル。
        """
        if copy:
            return self.coords.copy(), self.commands.copy()
        return self.coords, self.commands

    def first(self) -> Vec2:
        """先頭頂点の XY。空ジオメトリでは `IndexError`。"""
        if self.is_empty:
            raise IndexError("geometry has no vertices")
        x, y = self.coords[0]
        return float(x), float(y)


__all__ = ["Command", "Geometry", "GeometryType"]
