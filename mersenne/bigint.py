"""
Big-integer backends for the primality pipeline.

The pipeline never touches integers directly; it goes through a
BigIntBackend so the same control flow runs on Python's built-in int or
on GMP via gmpy2.
"""

import logging
import random
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Type

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# Primes used to reject most composites before any Miller-Rabin round
_SMALL_PRIMES = (2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37)


class BigIntBackend(ABC):
    """Arithmetic capability required by MersennePipeline."""

    name = "abstract"

    @abstractmethod
    def from_int(self, value: int) -> Any:
        """Convert a Python int into the backend's integer type."""

    def mersenne(self, p: int) -> Any:
        """Return 2^p - 1."""
        return self.sub(self.from_int(1 << p), self.from_int(1))

    @abstractmethod
    def add(self, a: Any, b: Any) -> Any:
        pass

    @abstractmethod
    def sub(self, a: Any, b: Any) -> Any:
        pass

    @abstractmethod
    def mul(self, a: Any, b: Any) -> Any:
        pass

    @abstractmethod
    def compare(self, a: Any, b: Any) -> int:
        """Return -1, 0 or 1 as a is less than, equal to or greater than b."""

    @abstractmethod
    def mod_pow2(self, x: Any, bits: int) -> Any:
        """Return the low `bits` bits of a non-negative x."""

    @abstractmethod
    def div_pow2(self, x: Any, bits: int) -> Any:
        """Return x shifted right by `bits` for a non-negative x."""

    @abstractmethod
    def is_zero(self, x: Any) -> bool:
        pass

    @abstractmethod
    def is_probable_prime(self, n: Any, rounds: int) -> bool:
        """Probabilistic primality; False means definitely composite."""

    @abstractmethod
    def divisible(self, n: Any, d: Any) -> bool:
        pass


class PythonIntBackend(BigIntBackend):
    """Backend on Python's arbitrary-precision int."""

    name = "python"

    def __init__(self, rng: Optional[random.Random] = None):
        # Own generator so tests can seed witnesses without touching module state
        self._rng = rng or random.Random()

    def from_int(self, value: int) -> int:
        return int(value)

    def mersenne(self, p: int) -> int:
        return (1 << p) - 1

    def add(self, a: int, b: int) -> int:
        return a + b

    def sub(self, a: int, b: int) -> int:
        return a - b

    def mul(self, a: int, b: int) -> int:
        return a * b

    def compare(self, a: int, b: int) -> int:
        return (a > b) - (a < b)

    def mod_pow2(self, x: int, bits: int) -> int:
        return x & ((1 << bits) - 1)

    def div_pow2(self, x: int, bits: int) -> int:
        return x >> bits

    def is_zero(self, x: int) -> bool:
        return x == 0

    def is_probable_prime(self, n: int, rounds: int) -> bool:
        """
        Miller-Rabin primality test.

        With `rounds` random witnesses the false positive rate is at most
        4^-rounds.

        Example:
            >>> PythonIntBackend().is_probable_prime(127, 25)
            True
            >>> PythonIntBackend().is_probable_prime(2047, 25)
            False
        """
        if n < 2:
            return False
        for small in _SMALL_PRIMES:
            if n == small:
                return True
            if n % small == 0:
                return False

        # Write n-1 as 2^r * d
        r, d = 0, n - 1
        while d % 2 == 0:
            r += 1
            d //= 2

        # Witness loop
        for _ in range(rounds):
            a = self._rng.randrange(2, n - 1)
            x = pow(a, d, n)

            if x == 1 or x == n - 1:
                continue

            for _ in range(r - 1):
                x = pow(x, 2, n)
                if x == n - 1:
                    break
            else:
                return False

        return True

    def divisible(self, n: int, d: int) -> bool:
        return n % d == 0


class GMPYBackend(BigIntBackend):
    """Backend on GMP through gmpy2."""

    name = "gmpy2"

    def __init__(self):
        import gmpy2
        self._gmpy2 = gmpy2

    def from_int(self, value: int):
        return self._gmpy2.mpz(value)

    def mersenne(self, p: int):
        return (self._gmpy2.mpz(1) << p) - 1

    def add(self, a, b):
        return a + b

    def sub(self, a, b):
        return a - b

    def mul(self, a, b):
        return a * b

    def compare(self, a, b) -> int:
        return (a > b) - (a < b)

    def mod_pow2(self, x, bits: int):
        return self._gmpy2.f_mod_2exp(x, bits)

    def div_pow2(self, x, bits: int):
        return self._gmpy2.f_div_2exp(x, bits)

    def is_zero(self, x) -> bool:
        return x == 0

    def is_probable_prime(self, n, rounds: int) -> bool:
        if n < 2:
            return False
        return bool(self._gmpy2.is_prime(self._gmpy2.mpz(n), rounds))

    def divisible(self, n, d) -> bool:
        return bool(self._gmpy2.is_divisible(self._gmpy2.mpz(n), d))


BACKENDS: Dict[str, Type[BigIntBackend]] = {
    PythonIntBackend.name: PythonIntBackend,
    GMPYBackend.name: GMPYBackend,
}


def get_backend(name: str) -> BigIntBackend:
    """
    Create a backend by name.

    Args:
        name: 'python' or 'gmpy2'

    Returns:
        New backend instance

    Raises:
        ConfigurationError: If the name is not a known backend
    """
    try:
        backend_cls = BACKENDS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown big-integer backend '{name}' (choose from {', '.join(sorted(BACKENDS))})"
        ) from None

    logger.debug(f"Using big-integer backend: {name}")
    return backend_cls()
