import random
from typing import List, Optional, Sequence, Tuple

OPERATORS: Tuple[str, ...] = ('+', '-', '*', '/')
FALLBACK_OPERATORS: Tuple[str, ...] = ('+', '-')

ROUND_SIZE = 5
MAX_TARGET_DISTANCE = 100
MIN_DIVISION_FACTORS = 5
ADDEND_RANGE = range(1, 51)
MULTIPLIER_RANGE = range(1, 11)

# Used to top up a round whose filtered pool came up short. These may land
# further than MAX_TARGET_DISTANCE from the target.
FALLBACK_CANDIDATES = {
    '+': (1, 2, 3, 4, 5),
    '*': (1, 2, 3, 4, 5),
    '-': (1, 2, 3),
    '/': (1,),
}


def apply_operation(current: int, op: str, selection: int) -> int:
    """Apply ``op`` to ``current`` and ``selection``.

    Division floors the quotient. Unknown operators leave ``current`` as is.
    """
    if op == '+':
        return current + selection
    if op == '-':
        return current - selection
    if op == '*':
        return current * selection
    if op == '/':
        return current // selection
    return current


def count_factors(num: int) -> int:
    """Number of positive divisors of ``num`` (0 for anything below 1)."""
    return sum(1 for i in range(1, num + 1) if num % i == 0)


def within_reach(result: int, target: int) -> bool:
    return abs(result - target) <= MAX_TARGET_DISTANCE


def is_operator_safe(current: int, op: str, target: int) -> bool:
    """Whether ``op`` is a sensible operator to offer at ``current``.

    - Division needs at least MIN_DIVISION_FACTORS divisors
    - Once more than MAX_TARGET_DISTANCE away from the target, operators
      that push further away are excluded
    """
    if op == '/' and count_factors(current) < MIN_DIVISION_FACTORS:
        return False

    diff = current - target
    if abs(diff) > MAX_TARGET_DISTANCE:
        if diff > 0 and op in ('+', '*'):
            return False
        if diff < 0 and op in ('-', '/'):
            return False
    return True


def pick_operator(current: int, target: int, rng: Optional[random.Random] = None) -> str:
    rng = rng or random
    ops = [op for op in OPERATORS if is_operator_safe(current, op, target)]
    if not ops:
        ops = list(FALLBACK_OPERATORS)
    return rng.choice(ops)


def candidate_pool(current: int, op: str, target: int) -> List[int]:
    """Every legal operand for ``op`` whose result stays within reach of the target."""
    if op == '-':
        domain = range(1, current + 1)
    elif op == '/':
        domain = [i for i in range(1, current + 1) if current % i == 0]
    elif op == '+':
        domain = ADDEND_RANGE
    elif op == '*':
        domain = MULTIPLIER_RANGE
    else:
        return []
    return [i for i in domain if within_reach(apply_operation(current, op, i), target)]


def generate_round_candidates(current: int, op: str, target: int,
                              rng: Optional[random.Random] = None) -> List[int]:
    """Sample up to ROUND_SIZE distinct operands for the next move.

    Short pools are topped up from FALLBACK_CANDIDATES so a round is never
    left without buttons.
    """
    rng = rng or random
    pool = candidate_pool(current, op, target)
    picks = rng.sample(pool, min(ROUND_SIZE, len(pool)))
    if len(picks) < ROUND_SIZE:
        extras = list(FALLBACK_CANDIDATES.get(op, ()))
        # Subtraction top-ups never exceed a positive current number. Unlike the
        # other fallbacks this one is trimmed, so a '-' round at 1 offers only [1].
        # Below 1 the full set stays; the ±100 overshoot is left as is.
        if op == '-' and current >= 1:
            extras = [n for n in extras if n <= current]
        merged = dict.fromkeys(picks + extras)
        picks = list(merged)[:ROUND_SIZE]
    return picks


def preview_next_operator(current: int, op: str, candidates: Sequence[int], target: int,
                          rng: Optional[random.Random] = None) -> str:
    """Pick the operator for the round after this one.

    Only operators that are safe for every number the player could land on
    this round survive.
    """
    rng = rng or random
    outcomes = [apply_operation(current, op, c) for c in candidates]
    ops = [
        nxt for nxt in OPERATORS
        if all(is_operator_safe(result, nxt, target) for result in outcomes)
    ]
    if not ops:
        ops = list(FALLBACK_OPERATORS)
    return rng.choice(ops)
