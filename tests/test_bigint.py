"""
Tests for the big-integer backends.
"""
import random

import pytest

from mersenne.bigint import GMPYBackend, PythonIntBackend, get_backend
from mersenne.errors import ConfigurationError
from mersenne.primality import MersennePipeline


class TestPythonIntBackend:
    @pytest.mark.parametrize("n", [2, 3, 5, 7, 37, 41, 97, 127, 8191, 2147483647, (1 << 61) - 1])
    def test_primes_are_probable_primes(self, backend, n):
        assert backend.is_probable_prime(n, 25)

    @pytest.mark.parametrize("n", [-7, 0, 1, 4, 9, 561, 1105, 2047, 8911, 3215031751, (1 << 67) - 1])
    def test_composites_are_rejected(self, backend, n):
        # 561, 1105 and 8911 are Carmichael numbers; 2047 and 3215031751 are strong pseudoprimes
        assert not backend.is_probable_prime(n, 25)

    def test_mersenne(self, backend):
        assert backend.mersenne(2) == 3
        assert backend.mersenne(13) == 8191

    def test_power_of_two_split(self, backend):
        x = 0b1011_0110_1101
        assert backend.mod_pow2(x, 4) == 0b1101
        assert backend.div_pow2(x, 4) == 0b1011_0110
        assert backend.add(backend.div_pow2(x, 4) << 4, backend.mod_pow2(x, 4)) == x

    def test_compare(self, backend):
        assert backend.compare(3, 5) == -1
        assert backend.compare(5, 5) == 0
        assert backend.compare(7, 5) == 1

    def test_divisible(self, backend):
        assert backend.divisible(2047, 23)
        assert not backend.divisible(2047, 29)

    def test_seeded_rng_is_used(self):
        rng = random.Random(5)
        backend = PythonIntBackend(rng=rng)
        state = rng.getstate()
        backend.is_probable_prime(1000003, 5)
        assert rng.getstate() != state


class TestGetBackend:
    def test_python_backend(self):
        assert isinstance(get_backend("python"), PythonIntBackend)

    def test_unknown_backend(self):
        with pytest.raises(ConfigurationError, match="Unknown big-integer backend"):
            get_backend("bignum")


class TestGMPYBackend:
    @pytest.fixture
    def gmp(self):
        pytest.importorskip("gmpy2")
        return get_backend("gmpy2")

    def test_backend_name(self, gmp):
        assert isinstance(gmp, GMPYBackend)
        assert gmp.name == "gmpy2"

    def test_operations(self, gmp):
        m = gmp.mersenne(11)
        assert m == 2047
        assert gmp.divisible(m, 23)
        assert gmp.mod_pow2(gmp.from_int(0b110101), 3) == 0b101
        assert gmp.div_pow2(gmp.from_int(0b110101), 3) == 0b110
        assert gmp.is_probable_prime(gmp.from_int(127), 25)
        assert not gmp.is_probable_prime(gmp.from_int(561), 25)
        assert not gmp.is_probable_prime(gmp.from_int(1), 25)

    def test_pipeline_agrees_with_python_backend(self, gmp, backend):
        python_pipeline = MersennePipeline(backend)
        gmp_pipeline = MersennePipeline(gmp)
        for p in range(0, 131):
            assert python_pipeline.check(p) == gmp_pipeline.check(p), f"Mismatch at p={p}"
