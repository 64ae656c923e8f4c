from __future__ import annotations

from dataclasses import dataclass
from functools import partial
import logging
import math
import random
from typing import List, Optional, Sequence, Tuple

from complexnum import (
    OMEGA,
    OMEGA2,
    ONE,
    ZERO,
    Complex,
    cbrt,
    format_complex,
    modulus,
    nth_root,
    sqrt,
)
from config import BRANCH_TOL, DEFAULT_PRECISION, EPS, IMAG_REMNANT_TOL
from errors import ValidationError

logger = logging.getLogger(__name__)

Roots = List[Complex]

SUPPORTED_DEGREES = (2, 3, 4)


@dataclass(frozen=True)
class Equation:
    """Polynomial equation with coefficients ordered from the highest power down."""

    degree: int
    coefficients: Tuple[float, ...]

    def __post_init__(self) -> None:
        if self.degree not in SUPPORTED_DEGREES:
            raise ValidationError(f"Unsupported degree: {self.degree}")
        coeffs = tuple(float(c) for c in self.coefficients)
        if len(coeffs) != self.degree + 1:
            raise ValidationError(
                f"Degree {self.degree} needs {self.degree + 1} coefficients, got {len(coeffs)}"
            )
        if not all(math.isfinite(c) for c in coeffs):
            raise ValidationError(f"Coefficients must be finite: {coeffs}")
        if coeffs[0] == 0:
            raise ValidationError("Leading coefficient must be non-zero")
        object.__setattr__(self, "coefficients", coeffs)

    @classmethod
    def from_coefficients(cls, coefficients: Sequence[float]) -> "Equation":
        return cls(len(coefficients) - 1, tuple(coefficients))

    def evaluate(self, x: Complex) -> Complex:
        acc = ZERO
        for coef in self.coefficients:
            acc = acc * x + Complex(coef)
        return acc


@dataclass(frozen=True)
class CardanoTerms:
    """Cube roots u, v of -q/2 +/- sqrt(Delta), with v on the branch where u*v = -p/3.

    ``branch`` is 0 when the principal cube roots already pair up, 1 when v
    was rotated by omega and 2 when it was rotated by omega^2.
    """

    delta: float
    u: Complex
    v: Complex
    branch: int


def _require_leading(a: float, kind: str) -> None:
    if a == 0:
        raise ValidationError(f"Leading coefficient of a {kind} must be non-zero")


def solve_quadratic(a: float, b: float, c: float) -> Roots:
    _require_leading(a, "quadratic")
    disc = b * b - 4 * a * c
    if disc >= 0:
        sqrt_d = math.sqrt(disc)
        return [Complex((-b + sqrt_d) / (2 * a)), Complex((-b - sqrt_d) / (2 * a))]
    real = -b / (2 * a)
    imag = math.sqrt(-disc) / (2 * a)
    return [Complex(real, imag), Complex(real, -imag)]


def _match_branch(u: Complex, v: Complex, p: float) -> Tuple[int, Complex]:
    target = Complex(-p / 3)
    candidates = [(0, v), (1, OMEGA * v), (2, OMEGA2 * v)]
    residuals = [(modulus(u * cand - target), k, cand) for k, cand in candidates]
    residual, branch, best = min(residuals, key=lambda item: (item[0], item[1]))
    if branch:
        logger.debug("Cardano v rotated to branch %d (u*v residual %.3g)", branch, residuals[0][0])
    if residual > BRANCH_TOL * max(1.0, abs(p) / 3):
        logger.warning("No cube-root branch satisfies u*v = -p/3 (residual %.3g)", residual)
    return branch, best


def cardano_terms(p: float, q: float) -> CardanoTerms:
    half_q_sq = q * q / 4
    p_cubed = p * p * p / 27
    delta = half_q_sq + p_cubed
    if abs(delta) < EPS * max(half_q_sq, abs(p_cubed)):
        delta = 0.0
    if delta >= 0:
        # -q/2 +/- sqrt(Delta): form the larger one directly, the other from
        # their product -p^3/27, so neither loses digits to cancellation
        s = math.sqrt(delta)
        if q > 0:
            minus = -q / 2 - s
            plus = -p_cubed / minus
        else:
            plus = -q / 2 + s
            minus = -p_cubed / plus if plus else 0.0
        big_a = Complex(plus)
        big_b = Complex(minus)
    else:
        s = math.sqrt(-delta)
        big_a = Complex(-q / 2, s)
        big_b = Complex(-q / 2, -s)
    u = cbrt(big_a)
    branch, v = _match_branch(u, cbrt(big_b), p)
    return CardanoTerms(delta, u, v, branch)


def solve_depressed_cubic(p: float, q: float) -> Roots:
    """Roots of t^3 + pt + q = 0 by Cardano's formula."""
    if abs(p) < EPS and abs(q) < EPS:
        return [ZERO, ZERO, ZERO]
    terms = cardano_terms(p, q)
    u, v = terms.u, terms.v
    return [u + v, OMEGA * u + OMEGA2 * v, OMEGA2 * u + OMEGA * v]


def _depress_cubic(a: float, b: float, c: float, d: float) -> Tuple[float, float, float]:
    # x = t - shift turns ax^3 + bx^2 + cx + d into t^3 + pt + q
    shift = b / (3 * a)
    p = (3 * a * c - b * b) / (3 * a * a)
    q = (2 * b * b * b - 9 * a * b * c + 27 * a * a * d) / (27 * a * a * a)
    return shift, p, q


def solve_cubic(a: float, b: float, c: float, d: float) -> Roots:
    _require_leading(a, "cubic")
    shift, p, q = _depress_cubic(a, b, c, d)
    return [root - Complex(shift) for root in solve_depressed_cubic(p, q)]


def _depress_quartic(
    a: float, b: float, c: float, d: float, e: float
) -> Tuple[float, float, float, float]:
    # x = y - shift turns the quartic into y^4 + py^2 + qy + r
    shift = b / (4 * a)
    p = (8 * a * c - 3 * b * b) / (8 * a * a)
    q = (b * b * b - 4 * a * b * c + 8 * a * a * d) / (8 * a * a * a)
    r = (-3 * b ** 4 + 256 * a ** 3 * e - 64 * a * a * b * d + 16 * a * b * b * c) / (256 * a ** 4)
    return shift, p, q, r


def _solve_biquadratic(p: float, r: float) -> Roots:
    roots: Roots = []
    for z in solve_quadratic(1.0, p, r):
        y = sqrt(z)
        roots.extend([y, -y])
    return roots


def _is_positive_real(m: Complex) -> bool:
    return abs(m.im) <= BRANCH_TOL * max(1.0, modulus(m)) and m.re > 0


def resolvent_root(roots: Sequence[Complex]) -> float:
    """Pick m from the roots of m^3 + 2pm^2 + (p^2 - 4r)m - q^2 = 0.

    The first root is kept when it is real and positive, however small. When
    q != 0 a positive real root always exists, so the largest one is used
    otherwise. Failing both, the first root is used as-is.
    """
    if _is_positive_real(roots[0]):
        return roots[0].re
    positive = [m.re for m in roots if _is_positive_real(m)]
    if positive:
        logger.debug("First resolvent root %s rejected", format_complex(roots[0]))
        return max(positive)
    logger.warning("Resolvent cubic has no positive real root, using %s", format_complex(roots[0]))
    return roots[0].re


def _ferrari_split(p: float, q: float, r: float) -> Tuple[float, float, float, float]:
    """Returns (m, s, t, u) with y^4 + py^2 + qy + r = (y^2 + sy + t)(y^2 - sy + u)."""
    m = resolvent_root(solve_cubic(1.0, 2 * p, p * p - 4 * r, -q * q))
    if m <= 0:
        return m, math.nan, math.nan, math.nan
    s = math.sqrt(m)
    t = (p + m - q / s) / 2
    u = (p + m + q / s) / 2
    return m, s, t, u


def solve_quartic(a: float, b: float, c: float, d: float, e: float) -> Roots:
    _require_leading(a, "quartic")
    shift, p, q, r = _depress_quartic(a, b, c, d, e)
    if abs(q) < EPS:
        logger.debug("Biquadratic quartic (q = %.3g)", q)
        roots = _solve_biquadratic(p, r)
    else:
        m, s, t, u = _ferrari_split(p, q, r)
        if m <= 0:
            roots = [Complex(math.nan, math.nan)] * 4
        else:
            roots = solve_quadratic(1.0, s, t) + solve_quadratic(1.0, -s, u)
    return [root - Complex(shift) for root in roots]


def unit_roots(n: int) -> Roots:
    return [nth_root(ONE, n, k) for k in range(n)]


def generate_random_roots(degree: int, rng: Optional[random.Random] = None) -> Roots:
    """Random roots closed under conjugation, so their polynomial has real coefficients."""
    if degree not in SUPPORTED_DEGREES:
        raise ValidationError(f"Unsupported degree: {degree}")
    if rng is None:
        rng = random.Random()
    roots: Roots = []
    remaining = degree
    while remaining > 0:
        if remaining == 1 or rng.random() < 0.5:
            roots.append(Complex((rng.random() - 0.5) * 4))
            remaining -= 1
        else:
            re = (rng.random() - 0.5) * 3
            im = (rng.random() * 0.5 + 0.5) * 2
            roots.extend([Complex(re, im), Complex(re, -im)])
            remaining -= 2
    return roots[:degree]


def roots_to_coefficients(roots: Sequence[Complex], strict: bool = False) -> List[float]:
    """Expands prod(x - root) into real coefficients, highest power first.

    Imaginary parts are dropped. Remnants larger than round-off mean the
    roots were not closed under conjugation: they are logged, or raise
    ``ValidationError`` when ``strict`` is set.
    """
    coeffs: List[Complex] = [ONE]
    for root in roots:
        neg_root = -root
        expanded: List[Complex] = []
        for i in range(len(coeffs) + 1):
            shifted = coeffs[i] if i < len(coeffs) else ZERO
            scaled = coeffs[i - 1] * neg_root if i > 0 else ZERO
            expanded.append(shifted + scaled)
        coeffs = expanded

    remnant = max(abs(c.im) for c in coeffs)
    limit = IMAG_REMNANT_TOL * max(1.0, max(abs(c.re) for c in coeffs))
    if remnant > limit:
        if strict:
            raise ValidationError(f"Roots are not conjugate-symmetric (imaginary remnant {remnant:.3g})")
        logger.warning("Discarding imaginary remnant %.3g from coefficients", remnant)
    return [c.re for c in coeffs]


def solve(equation: Equation) -> Roots:
    coeffs = equation.coefficients
    if equation.degree == 2:
        return solve_quadratic(*coeffs)
    if equation.degree == 3:
        return solve_cubic(*coeffs)
    return solve_quartic(*coeffs)


def format_number(value: float, precision: int = DEFAULT_PRECISION) -> str:
    if not math.isfinite(value):
        return str(value)
    if abs(value - round(value)) < EPS:
        return str(int(round(value)))
    return f"{value:.{precision}f}"


def poly_text(coeffs: dict[int, float], var: str, precision: int = DEFAULT_PRECISION) -> str:
    terms: List[Tuple[str, str]] = []
    for deg in sorted(coeffs.keys(), reverse=True):
        coef = coeffs[deg]
        if abs(coef) < EPS:
            continue
        mag = format_number(abs(coef), precision)
        if deg == 0:
            body = mag
        else:
            power = var if deg == 1 else f"{var}^{deg}"
            body = power if mag == "1" else f"{mag}{power}"
        terms.append(("-" if coef < 0 else "+", body))
    if not terms:
        return "0"
    sign, body = terms[0]
    text = f"-{body}" if sign == "-" else body
    for sign, body in terms[1:]:
        text += f" {sign} {body}"
    return text


def _standard_form(equation: Equation, var: str, precision: int) -> List[str]:
    coeffs = equation.coefficients
    degree = equation.degree
    steps = [poly_text({degree - i: c for i, c in enumerate(coeffs)}, var, precision) + " = 0"]
    a = coeffs[0]
    if a != 1:
        monic = {degree - i: c / a for i, c in enumerate(coeffs)}
        steps.append(poly_text(monic, var, precision) + " = 0")
    return steps


def _substitution(var: str, new_var: str, shift: float, precision: int) -> str:
    if abs(shift) < EPS:
        return f"{var} = {new_var}"
    if shift > 0:
        return f"{var} = {new_var} - {format_number(shift, precision)}"
    return f"{var} = {new_var} + {format_number(-shift, precision)}"


def _quadratic_steps(a: float, b: float, c: float, precision: int) -> List[str]:
    fmt = partial(format_number, precision=precision)
    disc = b * b - 4 * a * c
    return [
        f"Delta = {fmt(disc)}",
        f"x = ({fmt(-b)} +/- sqrt({fmt(disc)})) / {fmt(2 * a)}",
    ]


def _cubic_steps(a: float, b: float, c: float, d: float, precision: int) -> List[str]:
    fmt = partial(format_number, precision=precision)
    shift, p, q = _depress_cubic(a, b, c, d)
    steps = [
        _substitution("x", "t", shift, precision),
        poly_text({3: 1.0, 1: p, 0: q}, "t", precision) + " = 0",
        f"p = {fmt(p)}",
        f"q = {fmt(q)}",
    ]
    if abs(p) < EPS and abs(q) < EPS:
        steps.append("t = 0")
        return steps

    terms = cardano_terms(p, q)
    steps.append(f"Delta = {fmt(terms.delta)}")
    rotation = {0: "", 1: "omega * ", 2: "omega^2 * "}[terms.branch]
    steps.append(f"u = cbrt({fmt(-q / 2)} + sqrt({fmt(terms.delta)})) = {format_complex(terms.u, precision)}")
    steps.append(
        f"v = {rotation}cbrt({fmt(-q / 2)} - sqrt({fmt(terms.delta)})) = {format_complex(terms.v, precision)}"
    )
    steps.append(f"omega = {format_complex(OMEGA, precision)}")
    return steps


def _quartic_steps(a: float, b: float, c: float, d: float, e: float, precision: int) -> List[str]:
    fmt = partial(format_number, precision=precision)
    shift, p, q, r = _depress_quartic(a, b, c, d, e)
    steps = [
        _substitution("x", "y", shift, precision),
        poly_text({4: 1.0, 2: p, 1: q, 0: r}, "y", precision) + " = 0",
        f"p = {fmt(p)}",
        f"q = {fmt(q)}",
        f"r = {fmt(r)}",
    ]
    if abs(q) < EPS:
        steps.append("z = y^2")
        steps.append(poly_text({2: 1.0, 1: p, 0: r}, "z", precision) + " = 0")
        return steps

    steps.append(poly_text({3: 1.0, 2: 2 * p, 1: p * p - 4 * r, 0: -q * q}, "m", precision) + " = 0")
    m, s, t, u = _ferrari_split(p, q, r)
    steps.append(f"m = {fmt(m)}")
    steps.append(poly_text({2: 1.0, 1: s, 0: t}, "y", precision) + " = 0")
    steps.append(poly_text({2: 1.0, 1: -s, 0: u}, "y", precision) + " = 0")
    return steps


def solution_steps(equation: Equation, precision: int = DEFAULT_PRECISION) -> List[str]:
    """Derivation of the roots as display lines, ending with x1..xn."""
    steps = _standard_form(equation, "x", precision)
    coeffs = equation.coefficients
    if equation.degree == 2:
        steps.extend(_quadratic_steps(*coeffs, precision))
    elif equation.degree == 3:
        steps.extend(_cubic_steps(*coeffs, precision))
    else:
        steps.extend(_quartic_steps(*coeffs, precision))
    for i, root in enumerate(solve(equation), start=1):
        steps.append(f"x{i} = {format_complex(root, precision)}")
    return steps
