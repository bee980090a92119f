"""共通フィクスチャ。

- 小さな Geometry 試料（Point / LineString / 穴あき Polygon / 空）
- 設定のリロード（環境変数を触るテスト用）
"""

from __future__ import annotations

from typing import Iterator

import pytest

from common import settings
from engine.core.geometry import Geometry, GeometryType


@pytest.fixture()
def geom_point() -> Geometry:
    return Geometry.point(1.5, -2.25)


@pytest.fixture()
def geom_line3() -> Geometry:
    return Geometry.line_string([(0.0, 0.0), (1.0, 1.0), (2.0, 0.0)])


@pytest.fixture()
def geom_polygon_hole() -> Geometry:
    exterior = [(0.0, 0.0), (4.0, 0.0), (4.0, 4.0), (0.0, 4.0)]
    hole = [(1.0, 1.0), (2.0, 1.0), (2.0, 2.0)]
    return Geometry.polygon([exterior, hole])


@pytest.fixture(params=list(GeometryType), ids=lambda k: k.name)
def geom_empty(request: pytest.FixtureRequest) -> Geometry:
    return Geometry(request.param, [], [])


@pytest.fixture()
def reload_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[pytest.MonkeyPatch]:
    """env を変更してから `settings.reload_from_env()` を呼べるようにし、終了時に戻す。"""
    yield monkeypatch
    monkeypatch.undo()
    settings.reload_from_env()
