import io
import threading

import numpy as np
import pytest

from common import settings
from engine.core.geometry import Command, Geometry, GeometryType
from engine.export.wkt import (
    EmptyGeometryError,
    MalformedRingStructureError,
    NonFiniteCoordinateError,
    UnsupportedKindError,
    WKTGenerationError,
    WKTGenerator,
    WKTWriter,
    generate,
)

M = int(Command.MoveTo)
L = int(Command.LineTo)

POLYGON_WITH_HOLE = (
    "Polygon((0.000000 0.000000,4.000000 0.000000,4.000000 4.000000,0.000000 4.000000),"
    "(1.000000 1.000000,2.000000 1.000000,2.000000 2.000000))"
)


@pytest.mark.smoke
def test_point(geom_point):
    assert generate(geom_point) == "Point(1.500000 -2.250000)"


@pytest.mark.smoke
def test_line_string(geom_line3):
    assert generate(geom_line3) == (
        "LineString(0.000000 0.000000,1.000000 1.000000,2.000000 0.000000)"
    )


@pytest.mark.smoke
def test_polygon_with_hole(geom_polygon_hole):
    assert generate(geom_polygon_hole) == POLYGON_WITH_HOLE


def test_polygon_single_ring():
    g = Geometry.polygon([[(0, 0), (1, 0), (1, 1), (0, 0)]])
    assert generate(g) == (
        "Polygon((0.000000 0.000000,1.000000 0.000000,1.000000 1.000000,0.000000 0.000000))"
    )


def test_polygon_three_rings_separators():
    g = Geometry.polygon([[(0, 0), (9, 0), (9, 9)], [(1, 1)], [(2, 2), (3, 3)]])
    assert generate(g) == (
        "Polygon((0.000000 0.000000,9.000000 0.000000,9.000000 9.000000),"
        "(1.000000 1.000000),"
        "(2.000000 2.000000,3.000000 3.000000))"
    )


def test_single_vertex_line_string_is_legal():
    assert generate(Geometry.line_string([(3, 4)])) == "LineString(3.000000 4.000000)"


def test_line_string_ignores_commands_after_first():
    g = Geometry(GeometryType.LineString, [[0, 0], [1, 1], [2, 2]], [M, M, L])
    assert generate(g) == "LineString(0.000000 0.000000,1.000000 1.000000,2.000000 2.000000)"


def test_point_uses_first_vertex_only():
    g = Geometry(GeometryType.Point, [[1, 2], [3, 4]], [M, L])
    assert generate(g) == "Point(1.000000 2.000000)"


def test_empty_geometry_raises(geom_empty):
    with pytest.raises(EmptyGeometryError) as ei:
        generate(geom_empty)
    assert ei.value.kind is geom_empty.kind


@pytest.mark.parametrize("kind", [0, 4, 7, "MultiPolygon", "GeometryCollection"])
def test_unsupported_kind_raises(kind):
    g = Geometry(kind, [[0.0, 0.0]], [M])
    with pytest.raises(UnsupportedKindError) as ei:
        generate(g)
    assert ei.value.kind == kind


def test_unsupported_kind_wins_over_empty():
    with pytest.raises(UnsupportedKindError):
        generate(Geometry(5, [], []))


def test_errors_share_base_class():
    for exc in (
        EmptyGeometryError,
        UnsupportedKindError,
        MalformedRingStructureError,
        NonFiniteCoordinateError,
    ):
        assert issubclass(exc, WKTGenerationError)
        assert issubclass(exc, ValueError)


def _polygon_leading_line_to() -> Geometry:
    return Geometry(GeometryType.Polygon, [[0, 0], [1, 0], [1, 1]], [L, L, L])


def test_polygon_leading_line_to_rejected_in_strict_mode():
    with pytest.raises(MalformedRingStructureError):
        WKTGenerator(strict_rings=True).generate(_polygon_leading_line_to())


def test_polygon_leading_line_to_opens_exterior_in_lenient_mode():
    out = WKTGenerator(strict_rings=False).generate(_polygon_leading_line_to())
    assert out == "Polygon((0.000000 0.000000,1.000000 0.000000,1.000000 1.000000))"


def test_lenient_mode_later_move_to_opens_next_ring():
    g = Geometry(GeometryType.Polygon, [[0, 0], [1, 0], [5, 5]], [L, L, M])
    out = generate(g, strict_rings=False)
    assert out == "Polygon((0.000000 0.000000,1.000000 0.000000),(5.000000 5.000000))"


def test_strict_mode_follows_settings(reload_settings):
    reload_settings.setenv("PXD_WKT_STRICT_RINGS", "0")
    settings.reload_from_env()
    assert WKTGenerator().strict_rings is False
    assert generate(_polygon_leading_line_to()).startswith("Polygon((")

    reload_settings.setenv("PXD_WKT_STRICT_RINGS", "1")
    settings.reload_from_env()
    with pytest.raises(MalformedRingStructureError):
        generate(_polygon_leading_line_to())


def test_explicit_strict_flag_overrides_settings(reload_settings):
    reload_settings.setenv("PXD_WKT_STRICT_RINGS", "false")
    settings.reload_from_env()
    with pytest.raises(MalformedRingStructureError):
        generate(_polygon_leading_line_to(), strict_rings=True)


def test_non_finite_coordinate_reports_vertex_index():
    g = Geometry.line_string([(0, 0), (1, np.nan), (2, 2)])
    with pytest.raises(NonFiniteCoordinateError) as ei:
        generate(g)
    assert ei.value.index == 1


def test_generator_reuse_resets_ring_counter(geom_polygon_hole):
    gen = WKTGenerator()
    first = gen.generate(geom_polygon_hole)
    second = gen.generate(geom_polygon_hole)
    assert first == second == POLYGON_WITH_HOLE
    single = Geometry.polygon([[(0, 0), (1, 1)]])
    assert gen.generate(single).startswith("Polygon((0.000000")


def test_generator_shared_across_threads(geom_polygon_hole, geom_line3):
    gen = WKTGenerator()
    expected = {id(geom_polygon_hole): POLYGON_WITH_HOLE, id(geom_line3): generate(geom_line3)}
    failures: list[str] = []

    def run(g: Geometry) -> None:
        for _ in range(200):
            out = gen.generate(g)
            if out != expected[id(g)]:
                failures.append(out)

    threads = [
        threading.Thread(target=run, args=(g,))
        for g in (geom_polygon_hole, geom_line3) * 4
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert failures == []


def test_writer_writes_complete_text(geom_point):
    fp = io.StringIO()
    n = WKTWriter().write(geom_point, fp)
    assert fp.getvalue() == "Point(1.500000 -2.250000)"
    assert n == len(fp.getvalue())


def test_writer_writes_nothing_on_failure():
    fp = io.StringIO()
    with pytest.raises(EmptyGeometryError):
        WKTWriter().write(Geometry.polygon([]), fp)
    assert fp.getvalue() == ""


def test_write_many_is_all_or_nothing(geom_point, geom_line3):
    fp = io.StringIO()
    with pytest.raises(NonFiniteCoordinateError):
        WKTWriter().write_many([geom_point, Geometry.point(np.inf, 0.0), geom_line3], fp)
    assert fp.getvalue() == ""


def test_write_many_separates_lines(geom_point, geom_polygon_hole):
    fp = io.StringIO()
    WKTWriter().write_many([geom_point, geom_polygon_hole], fp)
    assert fp.getvalue().splitlines() == ["Point(1.500000 -2.250000)", POLYGON_WITH_HOLE]


def test_write_many_empty_iterable_writes_nothing():
    fp = io.StringIO()
    assert WKTWriter().write_many([], fp) == 0
    assert fp.getvalue() == ""


def test_writer_uses_given_generator():
    fp = io.StringIO()
    WKTWriter(WKTGenerator(strict_rings=False)).write(_polygon_leading_line_to(), fp)
    assert fp.getvalue().startswith("Polygon((")


def test_generate_does_not_mutate_input(geom_polygon_hole):
    coords, commands = geom_polygon_hole.as_arrays(copy=True)
    generate(geom_polygon_hole)
    np.testing.assert_array_equal(geom_polygon_hole.coords, coords)
    np.testing.assert_array_equal(geom_polygon_hole.commands, commands)
