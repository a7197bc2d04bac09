"""Transform parsing and composition."""

from __future__ import annotations

import math

import pytest

from svg_laser.transform import (
    AffineTransform,
    compose_chain,
    parse_transform,
    scan_numbers,
)


def _close(p, q, tol=1e-9):
    return abs(p[0] - q[0]) < tol and abs(p[1] - q[1]) < tol


def test_matrix_coefficients():
    t = parse_transform("matrix(1, 2, 3, 4, 5, 6)")
    assert t == AffineTransform(1, 2, 3, 4, 5, 6)
    assert t.apply(1, 1) == (1 + 3 + 5, 2 + 4 + 6)


def test_translate_defaults_ty_to_zero():
    assert parse_transform("translate(7)") == AffineTransform.translate(7, 0)


def test_scale_defaults_sy_to_sx():
    assert parse_transform("scale(3)") == AffineTransform.scale(3, 3)


def test_rotate_about_point():
    t = parse_transform("rotate(90, 1, 1)")
    assert _close(t.apply(2.0, 1.0), (1.0, 2.0))


def test_transform_list_applies_rightmost_first():
    t = parse_transform("translate(10,0) scale(2)")
    assert _close(t.apply(1.0, 0.0), (12.0, 0.0))


def test_exponents_and_whitespace_separators():
    t = parse_transform("translate(1e1 -2.5E-1)")
    assert t == AffineTransform.translate(10.0, -0.25)


@pytest.mark.parametrize("text", [None, "", "   ", "foo(1,2)", "translate(10", "skewX(30)"])
def test_unrecognized_returns_none(text):
    assert parse_transform(text) is None


def test_unknown_function_in_list_is_identity():
    t = parse_transform("skewX(30) translate(4,5)")
    assert t == AffineTransform.translate(4, 5)


def test_malformed_numbers_degrade():
    assert parse_transform("translate(abc, 5)") == AffineTransform.translate(0, 5)
    assert parse_transform("scale(x)") == AffineTransform.scale(1, 1)
    assert parse_transform("scale(2, x)") == AffineTransform.scale(2, 1)
    assert parse_transform("rotate(nope)") == AffineTransform.rotate(0)
    assert parse_transform("matrix(2, 0, 0, ?, 0, 0)") == AffineTransform(2, 0, 0, 1, 0, 0)


def test_matrix_needs_six_values():
    assert parse_transform("matrix(1, 0, 0, 1)") is None


def test_translate_composition_adds():
    t = compose_chain(["translate(1.5, -2)"], "translate(3.25, 7)")
    expected = AffineTransform.translate(4.75, 5)
    assert abs(t.e - expected.e) <= 1e-9 * abs(expected.e)
    assert abs(t.f - expected.f) <= 1e-9 * abs(expected.f)
    assert (t.a, t.b, t.c, t.d) == (1, 0, 0, 1)


def test_scale_composition_multiplies():
    t = compose_chain(["scale(1.7)"], "scale(0.3)")
    assert abs(t.a - 0.51) <= 1e-9 * 0.51
    assert abs(t.d - 0.51) <= 1e-9 * 0.51
    assert t.b == t.c == t.e == t.f == 0


def test_chain_applies_ancestors_outermost_last():
    # Own transform is closest to the geometry.
    t = compose_chain(["translate(10,0)"], "scale(2)")
    assert _close(t.apply(1, 0), (12, 0))
    t = compose_chain(["scale(2)"], "translate(10,0)")
    assert _close(t.apply(1, 0), (22, 0))


def test_chain_outer_to_inner_order():
    t = compose_chain(["translate(10,20)", "scale(2)"], "rotate(90)")
    # (10,0) -> rotate -> (0,10) -> scale -> (0,20) -> translate -> (10,40)
    assert _close(t.apply(10, 0), (10, 40))


def test_bad_ancestor_contributes_identity():
    notes = []
    t = compose_chain(["translate(5,5)", "foo(1,2)"], "scale(2)", notes)
    assert len(notes) == 1
    assert "'foo(1,2)'" in notes[0]
    assert _close(t.apply(1, 1), (7, 7))


def test_clean_chain_has_no_notes():
    notes = []
    compose_chain(["translate(5,5)", "rotate(30, 1, 2)"], "matrix(1 0 0 1 2 3)", notes)
    assert notes == []


def test_degraded_number_is_reported():
    notes = []
    t = compose_chain([], "translate(abc, 5)", notes)
    assert t == AffineTransform.translate(0, 5)
    assert len(notes) == 1
    assert "'abc'" in notes[0]


def test_dropped_function_is_reported():
    notes = []
    t = compose_chain([], "translate(3) matrix(1, 0, 0, 1)", notes)
    assert t == AffineTransform.translate(3, 0)
    assert len(notes) == 1
    assert "matrix(1, 0, 0, 1)" in notes[0]


@pytest.mark.parametrize("text,expected", [
    ("translate(10-5)", AffineTransform.translate(10, -5)),
    ("translate(.5.5)", AffineTransform.translate(0.5, 0.5)),
    ("scale(2-1)", AffineTransform.scale(2, -1)),
    ("translate(1e1-2)", AffineTransform.translate(10, -2)),
    ("matrix(1 0 0 1-3-4)", AffineTransform(1, 0, 0, 1, -3, -4)),
])
def test_numbers_without_separators(text, expected):
    degraded = []
    assert parse_transform(text, degraded) == expected
    assert degraded == []


def test_scan_numbers_marks_malformed_run():
    assert scan_numbers("1,-2.5e1 x7 .5.5") == [
        (1.0, "1"), (-25.0, "-2.5e1"), (None, "x7"), (0.5, ".5"), (0.5, ".5"),
    ]


def test_empty_chain_is_identity():
    assert compose_chain([], None).is_identity


def test_decompose_rotation_and_scale():
    t = AffineTransform.rotate(30) @ AffineTransform.scale(2, 3)
    tx, ty, sx, sy, rot = t.decompose()
    assert (tx, ty) == (0, 0)
    assert sx == pytest.approx(2)
    assert sy == pytest.approx(3)
    assert rot == pytest.approx(30)


@pytest.mark.parametrize("sx,sy", [(-1, 1), (1, -1), (-2, -3)])
def test_decompose_keeps_mirror_signs(sx, sy):
    d = AffineTransform.scale(sx, sy).decompose()
    assert d.scale_x == pytest.approx(sx)
    assert d.scale_y == pytest.approx(sy)
    assert d.rotation_deg == pytest.approx(0)


def test_singular_values():
    s1, s2 = (AffineTransform.rotate(33) @ AffineTransform.scale(2, 1)).singular_values()
    assert s1 == pytest.approx(2)
    assert s2 == pytest.approx(1)


def test_apply_points_matches_apply():
    t = parse_transform("matrix(0.5, 0.2, -0.3, 1.1, 4, -6)")
    pts = [(1.0, 2.0), (-3.5, 0.25)]
    out = t.apply_points(pts)
    for (x, y), (u, v) in zip(pts, out):
        assert _close(t.apply(x, y), (u, v))


def test_rotate_matrix_is_orthonormal():
    t = AffineTransform.rotate(37)
    assert t.determinant == pytest.approx(1)
    assert math.hypot(t.a, t.b) == pytest.approx(1)
