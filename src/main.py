from __future__ import annotations

import logging
import os
import random
import re
import subprocess
from typing import List, Optional, Sequence, Tuple

from manim import (
    BLUE,
    DOWN,
    UP,
    YELLOW,
    ComplexPlane,
    Dot,
    FadeIn,
    FadeOut,
    MathTex,
    Scene,
    Text,
    Transform,
    VGroup,
    config,
)

from complexnum import Complex
from config import COEFFS_ENV, DEFAULT_COEFFS, DEGREE_ENV, SEED_ENV
from errors import ValidationError
from logging_config import setup_logging
from permutation import apply, get_actions, is_identity
from solver import Equation, generate_random_roots, roots_to_coefficients, solution_steps, solve

logger = logging.getLogger(__name__)

MAX_PLANE_RANGE = 4


def _extract_parens(s: str, start: int) -> Tuple[str, int]:
    depth = 1
    i = start
    while i < len(s):
        if s[i] == "(":
            depth += 1
        elif s[i] == ")":
            depth -= 1
            if depth == 0:
                return s[start:i], i + 1
        i += 1
    return s[start:], len(s)


def _convert_roots(text: str) -> str:
    out = []
    i = 0
    while i < len(text):
        for name, open_tex in (("sqrt(", r"\sqrt{"), ("cbrt(", r"\sqrt[3]{")):
            if text.startswith(name, i):
                inner, i = _extract_parens(text, i + len(name))
                out.append(open_tex + _convert_roots(inner) + "}")
                break
        else:
            out.append(text[i])
            i += 1
    return "".join(out)


def to_latex(text: str) -> str:
    converted = text.replace("+/-", r"\pm").replace(" * ", r" \cdot ")
    converted = _convert_roots(converted)
    converted = re.sub(r"\bomega\b", r"\\omega", converted)
    converted = re.sub(r"\bDelta\b", r"\\Delta", converted)
    converted = re.sub(r"(?<!\\)\b([a-zA-Z])([0-9]+)\b", r"\1_{\2}", converted)
    return converted


def parse_coefficients(text: str) -> Equation:
    """Reads "1 -5 6" or "1, -5, 6" (highest power first) into an Equation."""
    parts = [p for p in re.split(r"[\s,;]+", text.strip()) if p]
    try:
        coeffs = [float(p) for p in parts]
    except ValueError as exc:
        raise ValidationError(f"Bad coefficient list {text!r}: {exc}") from exc
    return Equation.from_coefficients(coeffs)


def parse_int_env(name: str, default: Optional[int] = None) -> Optional[int]:
    text = os.environ.get(name, "").strip()
    if not text:
        return default
    try:
        return int(text)
    except ValueError as exc:
        raise ValidationError(f"{name} must be an integer, got {text!r}") from exc


def random_equation(degree: int, seed: Optional[int] = None) -> Equation:
    roots = generate_random_roots(degree, random.Random(seed))
    return Equation(degree, tuple(roots_to_coefficients(roots)))


def permuted_targets(perm: Sequence[int], roots: Sequence[Complex]) -> List[Complex]:
    """Where each root's dot goes when the roots are reordered by ``perm``.

    After ``apply``, position i holds root ``perm[i]``, so that root moves to
    the point of position i.
    """
    reordered = apply(perm, list(range(len(roots))))
    targets: List[Complex] = list(roots)
    for position, root_index in enumerate(reordered):
        targets[root_index] = roots[position]
    return targets


class SolveScene(Scene):
    def construct(self) -> None:
        text = os.environ.get(COEFFS_ENV, DEFAULT_COEFFS)
        anim_run_time = 1.2
        final_wait = 2.0

        title = Text("Step: 0", font="Noto Sans", weight="BOLD")
        title.scale(0.45).to_edge(UP, buff=0.1)

        try:
            equation = parse_coefficients(text)
            steps = solution_steps(equation)
        except ValidationError as exc:
            error = Text(f"Invalid equation: {exc}", font="Noto Sans")
            error.scale(0.6)
            self.play(FadeIn(title), FadeIn(error), run_time=anim_run_time)
            self.wait(final_wait)
            return

        label = MathTex(to_latex(steps[0]))
        self._fit_to_frame(label)
        self.play(FadeIn(title), FadeIn(label), run_time=anim_run_time)

        for i, line in enumerate(steps[1:], start=1):
            new_title = Text(f"Step: {i}", font="Noto Sans", weight="BOLD")
            new_title.scale(0.45).to_edge(UP, buff=0.1)
            new_label = MathTex(to_latex(line))
            self._fit_to_frame(new_label)
            self.play(
                Transform(title, new_title),
                Transform(label, new_label),
                run_time=anim_run_time,
            )

        self.play(FadeOut(title), FadeOut(label), run_time=anim_run_time)
        self._play_symmetries(equation, anim_run_time)
        self.wait(final_wait)

    def _play_symmetries(self, equation: Equation, run_time: float) -> None:
        roots = solve(equation)
        plane = ComplexPlane(
            x_range=[-MAX_PLANE_RANGE, MAX_PLANE_RANGE],
            y_range=[-MAX_PLANE_RANGE, MAX_PLANE_RANGE],
        ).scale(0.8)
        dots = VGroup(*[Dot(plane.n2p(root.to_builtin()), color=YELLOW) for root in roots])
        names = VGroup(
            *[MathTex(f"x_{{{i}}}").scale(0.6).next_to(dot, UP, buff=0.1) for i, dot in enumerate(dots, start=1)]
        )
        self.play(FadeIn(plane), FadeIn(dots), FadeIn(names), run_time=run_time)

        for action in get_actions(equation.degree):
            if is_identity(action.perm):
                continue
            caption = MathTex(action.label, color=BLUE)
            caption.to_edge(DOWN, buff=0.3)
            targets = permuted_targets(action.perm, roots)
            self.play(FadeIn(caption), run_time=run_time / 2)
            self.play(
                *[dot.animate.move_to(plane.n2p(t.to_builtin())) for dot, t in zip(dots, targets)],
                *[name.animate.next_to(plane.n2p(t.to_builtin()), UP, buff=0.1) for name, t in zip(names, targets)],
                run_time=run_time,
            )
            self.play(
                *[dot.animate.move_to(plane.n2p(root.to_builtin())) for dot, root in zip(dots, roots)],
                *[name.animate.next_to(plane.n2p(root.to_builtin()), UP, buff=0.1) for name, root in zip(names, roots)],
                FadeOut(caption),
                run_time=run_time,
            )

    def _fit_to_frame(self, mob: MathTex) -> None:
        max_width = config.frame_width * 0.9
        max_height = config.frame_height * 0.8
        if mob.width > max_width:
            mob.scale(max_width / mob.width)
        if mob.height > max_height:
            mob.scale(max_height / mob.height)
        mob.move_to([0, 0, 0])


def main() -> None:
    setup_logging()
    print("Enter coefficients, highest power first (empty line for a random equation):")
    try:
        line = input().strip()
    except EOFError:
        line = ""

    try:
        if line:
            equation = parse_coefficients(line)
        else:
            degree = parse_int_env(DEGREE_ENV, 4)
            equation = random_equation(degree, parse_int_env(SEED_ENV))
        steps = solution_steps(equation)
    except ValidationError as exc:
        print(f"DEBUG_RENDER_INVALID: {exc}")
        return

    logger.info("Solving degree %d equation %s", equation.degree, equation.coefficients)
    print("DEBUG_RENDER_LIST:")
    for i, step in enumerate(steps):
        print(f"Step {i}: {to_latex(step)}")

    env = os.environ.copy()
    env[COEFFS_ENV] = " ".join(repr(c) for c in equation.coefficients)

    cmd: List[str] = ["manim", "-pqh", os.path.abspath(__file__), "SolveScene"]
    subprocess.run(cmd, check=False, env=env)


if __name__ == "__main__":
    main()
