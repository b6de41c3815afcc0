"""
Compound primality test for Mersenne numbers M_p = 2^p - 1.

Cheap filters run first, in order, and the first one that proves M_p
composite ends the check:

1. p == 2 (M_2 = 3 is prime)
2. p itself must be (probably) prime
3. p = 3 (mod 4) with 2p+1 prime: 2p+1 divides M_p
4. trial division by q = 2kp + 1 up to a word-size bound
5. Lucas-Lehmer, the only stage that can declare M_p prime for p > 2
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from .bigint import BigIntBackend, PythonIntBackend
from .errors import PipelineCancelled

logger = logging.getLogger(__name__)

DEFAULT_ROUNDS = 25
DEFAULT_WORD_MAX = 2 ** 64 - 1

# Any factor of M_p (p odd prime) is 1 or 7 mod 8
_FACTOR_RESIDUES_MOD_8 = (1, 7)

# Iterations between cancel-token checks in the trial division loop
_TRIAL_CANCEL_INTERVAL = 4096


class Stage(Enum):
    """Pipeline stage that decided a verdict."""
    BASE_CASE = "base_case"
    EXPONENT_FILTER = "exponent_filter"
    SPECIAL_FACTOR = "special_factor"
    TRIAL_DIVISION = "trial_division"
    LUCAS_LEHMER = "lucas_lehmer"


@dataclass(frozen=True)
class Verdict:
    """Outcome of checking one exponent."""
    exponent: int
    is_prime: bool
    stage: Stage
    factor: Optional[int] = None


def trial_division_limit(p: int, word_max: int = DEFAULT_WORD_MAX) -> int:
    """
    Upper bound (exclusive) on k for trial factors q = 2kp + 1.

    The bound is min(p / 2, word_max / 2p), evaluated division-first so
    neither 2p nor 2kp is ever formed beyond word_max. Every q tried is
    therefore representable in a word of that size.

    Args:
        p: Exponent (>= 1)
        word_max: Largest value of the word type factors must fit in

    Returns:
        Non-negative bound; 0 when no k fits
    """
    if p < 1:
        return 0
    return min(p // 2, (word_max // 2) // p)


def _passes_factor_sieve(q: int) -> bool:
    return q % 8 in _FACTOR_RESIDUES_MOD_8 and q % 3 != 0 and q % 5 != 0 and q % 7 != 0


class MersennePipeline:
    """
    Decide whether 2^p - 1 is prime.

    The pipeline holds no per-check state, so one instance can be shared by
    all worker threads.

    Usage:
        pipeline = MersennePipeline(PythonIntBackend())
        pipeline.is_mersenne_prime(127)   # True
        pipeline.check(11)                # Verdict(11, False, SPECIAL_FACTOR, 23)
    """

    def __init__(
        self,
        backend: Optional[BigIntBackend] = None,
        rounds: int = DEFAULT_ROUNDS,
        word_max: int = DEFAULT_WORD_MAX,
        on_lucas_lehmer: Optional[Callable[[int], None]] = None
    ):
        """
        Initialize the pipeline.

        Args:
            backend: Big-integer backend (default: PythonIntBackend)
            rounds: Miller-Rabin rounds for the probable-prime filters
            word_max: Word-size bound for trial-division factors
            on_lucas_lehmer: Called with p when a candidate reaches stage 5
        """
        self.backend = backend or PythonIntBackend()
        self.rounds = rounds
        self.word_max = word_max
        self.on_lucas_lehmer = on_lucas_lehmer

    def is_mersenne_prime(self, p: int, cancel: Optional[threading.Event] = None) -> bool:
        return self.check(p, cancel).is_prime

    def check(self, p: int, cancel: Optional[threading.Event] = None) -> Verdict:
        """
        Run all stages for exponent p.

        Args:
            p: Exponent
            cancel: Optional event; when set, the check aborts

        Returns:
            Verdict naming the deciding stage

        Raises:
            PipelineCancelled: If cancel was set during trial division or Lucas-Lehmer
        """
        if p == 2:
            return Verdict(p, True, Stage.BASE_CASE)

        backend = self.backend
        if not backend.is_probable_prime(backend.from_int(p), self.rounds):
            return Verdict(p, False, Stage.EXPONENT_FILTER)

        mersenne = backend.mersenne(p)

        factor = self.special_factor(p, mersenne)
        if factor is not None:
            return Verdict(p, False, Stage.SPECIAL_FACTOR, factor)

        factor = self.find_small_factor(p, mersenne, cancel)
        if factor is not None:
            return Verdict(p, False, Stage.TRIAL_DIVISION, factor)

        if self.on_lucas_lehmer is not None:
            self.on_lucas_lehmer(p)
        return Verdict(p, self.lucas_lehmer(p, cancel, mersenne), Stage.LUCAS_LEHMER)

    def special_factor(self, p: int, mersenne: Any = None) -> Optional[int]:
        """
        Return 2p+1 if it is a prime factor of M_p for p > 3, p = 3 (mod 4).

        For such p, 2p+1 prime always divides M_p; the divisibility check
        keeps the result exact even if the probable-prime test misfires.
        """
        if p <= 3 or p % 4 != 3:
            return None

        backend = self.backend
        if mersenne is None:
            mersenne = backend.mersenne(p)
        q = 2 * p + 1
        if backend.is_probable_prime(backend.from_int(q), self.rounds) and backend.divisible(mersenne, q):
            return q
        return None

    def find_small_factor(
        self,
        p: int,
        mersenne: Any = None,
        cancel: Optional[threading.Event] = None
    ) -> Optional[int]:
        """
        Trial-divide M_p by q = 2kp + 1 for 1 <= k < trial_division_limit(p).

        Candidates not 1 or 7 mod 8, or divisible by 3, 5 or 7, are skipped
        without touching M_p.

        Returns:
            The smallest factor found, or None
        """
        backend = self.backend
        if mersenne is None:
            mersenne = backend.mersenne(p)

        tlim = trial_division_limit(p, self.word_max)
        step = 2 * p
        q = 1
        for k in range(1, tlim):
            q += step
            if cancel is not None and k % _TRIAL_CANCEL_INTERVAL == 0 and cancel.is_set():
                raise PipelineCancelled(p, Stage.TRIAL_DIVISION.value)
            if _passes_factor_sieve(q) and backend.divisible(mersenne, q):
                return q
        return None

    def lucas_lehmer(
        self,
        p: int,
        cancel: Optional[threading.Event] = None,
        mersenne: Any = None
    ) -> bool:
        """
        Lucas-Lehmer test for an odd prime p.

        V starts at 4 and is replaced p - 2 times by V^2 - 2 mod M_p. The
        reduction uses 2^p = 1 (mod M_p): the low p bits are added to the
        high part, then M_p is subtracted while V >= M_p.

        Returns:
            True iff M_p is prime
        """
        backend = self.backend
        if mersenne is None:
            mersenne = backend.mersenne(p)

        two = backend.from_int(2)
        v = backend.from_int(4)
        for _ in range(p - 2):
            if cancel is not None and cancel.is_set():
                raise PipelineCancelled(p, Stage.LUCAS_LEHMER.value)

            square = backend.mul(v, v)
            if backend.compare(square, two) < 0:
                square = backend.add(square, mersenne)
            v = backend.sub(square, two)

            low = backend.mod_pow2(v, p)
            v = backend.add(backend.div_pow2(v, p), low)
            while backend.compare(v, mersenne) >= 0:
                v = backend.sub(v, mersenne)

        return backend.is_zero(v)
