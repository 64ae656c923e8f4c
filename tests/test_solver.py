import itertools
import logging
import math
import random

import pytest

from complexnum import ONE, ZERO, Complex, is_close, modulus
from errors import ValidationError
from solver import (
    Equation,
    cardano_terms,
    generate_random_roots,
    resolvent_root,
    roots_to_coefficients,
    solve,
    solve_cubic,
    solve_depressed_cubic,
    solve_quadratic,
    solve_quartic,
    unit_roots,
)


def roots_close_to(actual, expected, tol=1e-6):
    """Check that each expected root has a match in actual (unordered)."""
    if len(actual) != len(expected):
        return False
    used = [False] * len(actual)
    for exp in expected:
        found = False
        for j, act in enumerate(actual):
            if not used[j] and is_close(act, exp, tol):
                used[j] = True
                found = True
                break
        if not found:
            return False
    return True


def satisfies(equation, roots, tol=1e-6):
    return all(modulus(equation.evaluate(root)) < tol for root in roots)


class TestEquation:
    def test_coefficients_are_floats(self):
        eq = Equation(2, [1, -5, 6])
        assert eq.coefficients == (1.0, -5.0, 6.0)

    def test_from_coefficients_infers_degree(self):
        assert Equation.from_coefficients([1, 0, 0, -8]).degree == 3

    def test_evaluate(self):
        eq = Equation(2, (1, -5, 6))
        assert eq.evaluate(Complex(2)) == ZERO
        assert eq.evaluate(Complex(0, 1)) == Complex(5, -5)

    @pytest.mark.parametrize(
        "degree, coeffs",
        [
            (1, (1, 2)),
            (5, (1, 0, 0, 0, 0, 1)),
            (3, (1, 2, 3)),
            (2, (0, 1, 2)),
            (2, (1, math.nan, 2)),
            (2, (1, math.inf, 2)),
        ],
    )
    def test_rejects_invalid(self, degree, coeffs):
        with pytest.raises(ValidationError):
            Equation(degree, coeffs)


class TestQuadratic:
    def test_integer_roots(self):
        assert roots_close_to(solve_quadratic(1, -5, 6), [Complex(3), Complex(2)], 1e-12)

    def test_conjugate_pair(self):
        assert roots_close_to(solve_quadratic(1, 0, 1), [Complex(0, 1), Complex(0, -1)], 1e-12)

    def test_double_root(self):
        assert solve_quadratic(1, -4, 4) == [Complex(2), Complex(2)]

    def test_negative_leading_coefficient(self):
        assert roots_close_to(solve_quadratic(-2, 0, -8), [Complex(0, 2), Complex(0, -2)])

    def test_zero_leading_coefficient(self):
        with pytest.raises(ValidationError):
            solve_quadratic(0, 1, 1)


class TestCubic:
    def test_cube_root_of_eight(self):
        roots = solve_cubic(1, 0, 0, -8)
        assert len(roots) == 3
        assert any(is_close(r, Complex(2), 1e-9) for r in roots)
        complex_roots = [r for r in roots if abs(r.im) > 1e-6]
        assert len(complex_roots) == 2
        assert is_close(complex_roots[0], Complex(complex_roots[1].re, -complex_roots[1].im))
        assert satisfies(Equation(3, (1, 0, 0, -8)), roots)

    def test_three_real_roots(self):
        roots = solve_cubic(1, -6, 11, -6)
        assert roots_close_to(roots, [Complex(1), Complex(2), Complex(3)], 1e-9)

    def test_non_monic(self):
        eq = Equation(3, (2, -4, -22, 24))
        roots = solve(eq)
        assert roots_close_to(roots, [Complex(1), Complex(-3), Complex(4)], 1e-9)

    def test_triple_root(self):
        assert solve_cubic(1, -3, 3, -1) == [Complex(1), Complex(1), Complex(1)]

    def test_double_root_with_near_zero_discriminant(self):
        terms = cardano_terms(-3, 2 + 1e-12)
        assert terms.delta == 0.0
        roots = solve_depressed_cubic(-3, 2 + 1e-12)
        assert roots_close_to(roots, [Complex(1), Complex(1), Complex(-2)], 1e-5)

    def test_zero_leading_coefficient(self):
        with pytest.raises(ValidationError):
            solve_cubic(0, 1, 2, 3)


class TestDepressedCubic:
    def test_triple_zero_inside_threshold(self):
        assert solve_depressed_cubic(5e-11, -5e-11) == [ZERO, ZERO, ZERO]

    def test_outside_threshold_uses_cardano(self):
        roots = solve_depressed_cubic(0, 1e-9)
        assert all(modulus(r) == pytest.approx(1e-3, rel=1e-6) for r in roots)

    def test_principal_branches_already_pair(self):
        terms = cardano_terms(-3, 0)
        assert terms.branch == 0
        assert is_close(terms.u * terms.v, Complex(1))
        roots = solve_depressed_cubic(-3, 0)
        assert roots_close_to(roots, [Complex(math.sqrt(3)), Complex(-math.sqrt(3)), ZERO], 1e-9)

    def test_branch_is_corrected(self):
        # -q/2 - sqrt(Delta) < 0, whose principal cube root is not real
        terms = cardano_terms(3, -4)
        assert terms.branch == 1
        assert is_close(terms.u * terms.v, Complex(-1), 1e-9)
        roots = solve_depressed_cubic(3, -4)
        assert any(is_close(r, ONE, 1e-9) for r in roots)

    @pytest.mark.parametrize("p, q", [(-7, 6), (2, 5), (-1, -0.3), (4.5, 0.25), (0, -27)])
    def test_uv_identity(self, p, q):
        terms = cardano_terms(p, q)
        assert is_close(terms.u * terms.v, Complex(-p / 3), 1e-8)
        for t in solve_depressed_cubic(p, q):
            assert modulus(t * t * t + Complex(p) * t + Complex(q)) < 1e-8


class TestQuartic:
    def test_biquadratic(self):
        roots = solve_quartic(1, 0, -5, 0, 4)
        assert roots_close_to(roots, [Complex(1), Complex(-1), Complex(2), Complex(-2)], 1e-12)
        assert all(abs(r.im) < 1e-12 for r in roots)

    def test_biquadratic_with_complex_squares(self):
        # (y^2 + 1)(y^2 + 4)
        roots = solve_quartic(1, 0, 5, 0, 4)
        expected = [Complex(0, 1), Complex(0, -1), Complex(0, 2), Complex(0, -2)]
        assert roots_close_to(roots, expected, 1e-9)

    def test_threshold_boundary(self):
        below = solve_quartic(1, 0, -5, 5e-11, 4)
        above = solve_quartic(1, 0, -5, 1e-9, 4)
        expected = [Complex(1), Complex(-1), Complex(2), Complex(-2)]
        assert roots_close_to(below, expected)
        assert roots_close_to(above, expected)

    def test_four_real_roots(self):
        roots = solve_quartic(1, -10, 35, -50, 24)
        assert roots_close_to(roots, [Complex(k) for k in (1, 2, 3, 4)], 1e-7)

    def test_complex_roots(self):
        # (x^2 + 1)(x^2 - 2x + 5)
        roots = solve_quartic(1, -2, 6, -2, 5)
        expected = [Complex(0, 1), Complex(0, -1), Complex(1, 2), Complex(1, -2)]
        assert roots_close_to(roots, expected, 1e-7)

    def test_non_monic(self):
        eq = Equation(4, (2, -2, -16, 10, 12))
        roots = solve(eq)
        assert len(roots) == 4
        assert satisfies(eq, roots)

    def test_zero_leading_coefficient(self):
        with pytest.raises(ValidationError):
            solve_quartic(0, 1, 0, 0, 1)


class TestResolventRoot:
    def test_first_root_kept(self):
        assert resolvent_root([Complex(3), Complex(5), Complex(-1)]) == 3

    def test_first_root_rejected_when_negative(self):
        assert resolvent_root([Complex(-1), Complex(4), Complex(2)]) == 4

    def test_first_root_rejected_when_complex(self):
        assert resolvent_root([Complex(1, 1), Complex(1, -1), Complex(0.5)]) == 0.5

    def test_tiny_positive_root_is_kept(self):
        assert resolvent_root([Complex(1e-11), Complex(1, 1), Complex(1, -1)]) == 1e-11
        assert resolvent_root([Complex(1, 1), Complex(1e-11), Complex(1, -1)]) == 1e-11

    def test_no_positive_root_falls_back_to_first(self, caplog):
        with caplog.at_level(logging.WARNING):
            m = resolvent_root([Complex(-3), Complex(-1, 2), Complex(-1, -2)])
        assert m == -3
        assert "no positive real root" in caplog.text

    def test_tiny_resolvent_root_still_solves(self, caplog):
        # resolvent roots are about 1e-11 and 1 +/- i
        eq = Equation(4, (1, 0, -1.000000000005, 4.472e-06, -0.2500000000025))
        with caplog.at_level(logging.WARNING):
            roots = solve_quartic(*eq.coefficients)
        assert satisfies(eq, roots, 1e-4)
        assert "no positive real root" not in caplog.text


class TestUnitRoots:
    def test_fourth_roots_in_angle_order(self):
        roots = unit_roots(4)
        expected = [Complex(1), Complex(0, 1), Complex(-1), Complex(0, -1)]
        for actual, exp in zip(roots, expected):
            assert is_close(actual, exp, 1e-12)
        for z in roots:
            assert is_close(z * z * z * z, ONE, 1e-9)

    def test_roots_sum_to_zero(self):
        total = ZERO
        for z in unit_roots(7):
            total = total + z
        assert is_close(total, ZERO, 1e-12)

    def test_single_root(self):
        assert unit_roots(1) == [Complex(1.0, 0.0)]


class TestRandomRoots:
    @pytest.mark.parametrize("degree", [2, 3, 4])
    def test_count_and_conjugate_symmetry(self, degree):
        rng = random.Random(degree)
        for _ in range(25):
            roots = generate_random_roots(degree, rng)
            assert len(roots) == degree
            roots_to_coefficients(roots, strict=True)

    def test_seeded_source_is_reproducible(self):
        assert generate_random_roots(4, random.Random(42)) == generate_random_roots(4, random.Random(42))

    def test_ambient_source(self):
        assert len(generate_random_roots(3)) == 3

    def test_unsupported_degree(self):
        with pytest.raises(ValidationError):
            generate_random_roots(5)


class TestRootsToCoefficients:
    def test_real_roots(self):
        assert roots_to_coefficients([Complex(2), Complex(3)]) == [1, -5, 6]

    def test_conjugate_pair(self):
        coeffs = roots_to_coefficients([Complex(1, 2), Complex(1, -2)])
        assert coeffs == pytest.approx([1, -2, 5])

    def test_empty(self):
        assert roots_to_coefficients([]) == [1]

    def test_imaginary_remnant_is_logged(self, caplog):
        with caplog.at_level(logging.WARNING):
            coeffs = roots_to_coefficients([Complex(0, 1)])
        assert coeffs == [1, 0]
        assert "imaginary remnant" in caplog.text

    def test_imaginary_remnant_strict(self):
        with pytest.raises(ValidationError):
            roots_to_coefficients([Complex(0, 1)], strict=True)


def _min_separation(roots):
    return min(modulus(a - b) for a, b in itertools.combinations(roots, 2))


class TestRoundTrip:
    @pytest.mark.parametrize("degree", [2, 3, 4])
    def test_solve_recovers_generated_roots(self, degree):
        rng = random.Random(1000 + degree)
        checked = 0
        for _ in range(40):
            roots = generate_random_roots(degree, rng)
            if _min_separation(roots) < 0.05:
                continue
            eq = Equation(degree, tuple(roots_to_coefficients(roots)))
            assert roots_close_to(solve(eq), roots), roots
            checked += 1
        assert checked > 0
