"""
Permutation actions on an ordered root list.

A permutation is a tuple where ``perm[i] = j`` reads "the element at
position i moves to position j". Actions are composed left to right:
``compose(a, b)`` applies ``a`` first, then ``b``.

The catalogs below are fixed lookup tables, not groups generated from a
generator set. ``S4_ACTIONS`` lists the rotations and a few transpositions
only.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Dict, List, Optional, Sequence, Tuple, TypeVar

from complexnum import Complex
from errors import ValidationError

logger = logging.getLogger(__name__)

Permutation = Tuple[int, ...]
T = TypeVar("T")


@dataclass(frozen=True)
class GroupAction:
    id: str
    label: str
    perm: Permutation
    description: Optional[str] = None


def validate_permutation(perm: Sequence[int]) -> Permutation:
    values = tuple(perm)
    if sorted(values) != list(range(len(values))):
        raise ValidationError(f"Not a permutation of 0..{len(values) - 1}: {values}")
    return values


def _same_length(a: Sequence, b: Sequence) -> None:
    if len(a) != len(b):
        raise ValidationError(f"Length mismatch: {len(a)} != {len(b)}")


def identity(n: int) -> Permutation:
    return tuple(range(n))


def compose(a: Sequence[int], b: Sequence[int]) -> Permutation:
    a = validate_permutation(a)
    b = validate_permutation(b)
    _same_length(a, b)
    return tuple(b[i] for i in a)


def inverse(perm: Sequence[int]) -> Permutation:
    perm = validate_permutation(perm)
    result = [0] * len(perm)
    for src, dst in enumerate(perm):
        result[dst] = src
    return tuple(result)


def apply(perm: Sequence[int], items: Sequence[T]) -> List[T]:
    perm = validate_permutation(perm)
    _same_length(perm, items)
    return [items[i] for i in perm]


def apply_to_roots(perm: Sequence[int], roots: Sequence[Complex]) -> List[Complex]:
    return apply(perm, roots)


def is_identity(perm: Sequence[int]) -> bool:
    return all(v == i for i, v in enumerate(perm))


def cycle_notation(perm: Sequence[int]) -> str:
    """Cycle label with 1-based positions, e.g. (1, 2, 0) -> "(123)"."""
    perm = validate_permutation(perm)
    seen = set()
    cycles: List[str] = []
    for start in range(len(perm)):
        if start in seen or perm[start] == start:
            continue
        cycle = []
        pos = start
        while pos not in seen:
            seen.add(pos)
            cycle.append(str(pos + 1))
            pos = perm[pos]
        cycles.append("(" + "".join(cycle) + ")")
    return "".join(cycles) or "e"


S2_ACTIONS: Tuple[GroupAction, ...] = (
    GroupAction("e", "e", (0, 1), "identity"),
    GroupAction("swap", "(12)", (1, 0), "swap the two roots"),
)

S3_ACTIONS: Tuple[GroupAction, ...] = (
    GroupAction("e", "e", (0, 1, 2), "identity"),
    GroupAction("r1", "(123)", (1, 2, 0), "rotation"),
    GroupAction("r2", "(132)", (2, 0, 1), "reverse rotation"),
    GroupAction("s1", "(12)", (1, 0, 2), "swap 1-2"),
    GroupAction("s2", "(13)", (2, 1, 0), "swap 1-3"),
    GroupAction("s3", "(23)", (0, 2, 1), "swap 2-3"),
)

S4_ACTIONS: Tuple[GroupAction, ...] = (
    GroupAction("e", "e", (0, 1, 2, 3), "identity"),
    GroupAction("r90", "(1234)", (1, 2, 3, 0), "rotate 90°"),
    GroupAction("r180", "(13)(24)", (2, 3, 0, 1), "rotate 180°"),
    GroupAction("r270", "(1432)", (3, 0, 1, 2), "rotate 270°"),
    GroupAction("s12", "(12)", (1, 0, 2, 3), "swap 1-2"),
    GroupAction("s34", "(34)", (0, 1, 3, 2), "swap 3-4"),
    GroupAction("s13", "(13)", (2, 1, 0, 3), "swap 1-3"),
    GroupAction("s24", "(24)", (0, 3, 2, 1), "swap 2-4"),
)

ACTIONS: Dict[int, Tuple[GroupAction, ...]] = {
    2: S2_ACTIONS,
    3: S3_ACTIONS,
    4: S4_ACTIONS,
}


def get_actions(degree: int) -> Tuple[GroupAction, ...]:
    try:
        return ACTIONS[degree]
    except KeyError:
        raise ValidationError(f"No symmetry actions for degree {degree}") from None


def find_action(degree: int, perm: Sequence[int]) -> Optional[GroupAction]:
    target = tuple(perm)
    for action in get_actions(degree):
        if action.perm == target:
            return action
    logger.debug("Permutation %s is not in the degree %d catalog", target, degree)
    return None
