"""
Complex value type and arithmetic for the closed-form solvers.

All roots returned here are principal-branch values: ``sqrt`` and ``cbrt``
halve or third the principal argument. Use ``nth_root`` with an explicit
branch index ``k``, or rotate by ``OMEGA``/``OMEGA2``, for the others.
"""
from __future__ import annotations

from dataclasses import dataclass
import math

from config import DEFAULT_PRECISION, EPS
from errors import ValidationError


@dataclass(frozen=True)
class Complex:
    re: float
    im: float = 0.0

    def __add__(self, other: "Complex") -> "Complex":
        return add(self, other)

    def __sub__(self, other: "Complex") -> "Complex":
        return sub(self, other)

    def __mul__(self, other: "Complex") -> "Complex":
        return mul(self, other)

    def __truediv__(self, other: "Complex") -> "Complex":
        return div(self, other)

    def __neg__(self) -> "Complex":
        return scale(self, -1.0)

    def __abs__(self) -> float:
        return modulus(self)

    def __str__(self) -> str:
        return format_complex(self)

    def to_builtin(self) -> complex:
        return complex(self.re, self.im)


def from_builtin(value: complex | float) -> Complex:
    value = complex(value)
    return Complex(value.real, value.imag)


def add(a: Complex, b: Complex) -> Complex:
    return Complex(a.re + b.re, a.im + b.im)


def sub(a: Complex, b: Complex) -> Complex:
    return Complex(a.re - b.re, a.im - b.im)


def mul(a: Complex, b: Complex) -> Complex:
    return Complex(a.re * b.re - a.im * b.im, a.re * b.im + a.im * b.re)


def _over_zero(x: float) -> float:
    if x == 0 or math.isnan(x):
        return math.nan
    return math.copysign(math.inf, x)


def div(a: Complex, b: Complex) -> Complex:
    """a / b as (a * conj(b)) / |b|^2.

    Dividing by the zero value does not raise. Each component comes back the
    way a float division by zero would: nan for a zero (or nan) numerator
    component, inf with the numerator's sign otherwise.
    """
    denom = b.re * b.re + b.im * b.im
    if denom == 0:
        return Complex(_over_zero(a.re), _over_zero(a.im))
    return Complex(
        (a.re * b.re + a.im * b.im) / denom,
        (a.im * b.re - a.re * b.im) / denom,
    )


def modulus(z: Complex) -> float:
    return math.hypot(z.re, z.im)


def arg(z: Complex) -> float:
    return math.atan2(z.im, z.re)


def conj(z: Complex) -> Complex:
    return Complex(z.re, -z.im)


def scale(z: Complex, k: float) -> Complex:
    return Complex(z.re * k, z.im * k)


def _polar(r: float, theta: float) -> Complex:
    return Complex(r * math.cos(theta), r * math.sin(theta))


def sqrt(z: Complex) -> Complex:
    return _polar(math.sqrt(modulus(z)), arg(z) / 2)


def cbrt(z: Complex) -> Complex:
    return _polar(modulus(z) ** (1.0 / 3.0), arg(z) / 3)


def nth_root(z: Complex, n: int, k: int = 0) -> Complex:
    """The k-th of the n roots of z; k = 0 is the principal root."""
    if n < 1:
        raise ValidationError(f"Root index must be positive, got {n}")
    return _polar(modulus(z) ** (1.0 / n), (arg(z) + 2 * math.pi * k) / n)


def is_close(a: Complex, b: Complex, tol: float = 1e-9) -> bool:
    return modulus(sub(a, b)) <= tol


def format_complex(z: Complex, precision: int = DEFAULT_PRECISION) -> str:
    if math.isnan(z.re) or math.isnan(z.im):
        return "nan"
    if math.isinf(z.re) or math.isinf(z.im):
        return "inf"
    re = f"{z.re:.{precision}f}"
    im = f"{abs(z.im):.{precision}f}"
    if abs(z.im) < EPS:
        return re
    if abs(z.re) < EPS:
        return f"{im}i" if z.im >= 0 else f"-{im}i"
    if z.im >= 0:
        return f"{re} + {im}i"
    return f"{re} - {im}i"


ZERO = Complex(0.0)
ONE = Complex(1.0)
I = Complex(0.0, 1.0)
# Primitive cube roots of unity.
OMEGA = Complex(-0.5, math.sqrt(3) / 2)
OMEGA2 = Complex(-0.5, -math.sqrt(3) / 2)
