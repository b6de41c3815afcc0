"""
Pytest configuration for the Mersenne search tests.

Adds the project root to the Python path so tests can import 'mersenne'
and 'mersenne_search' without installing the package.
"""
import logging
import random
import sys
from pathlib import Path

import pytest

# Add project root to Python path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

from mersenne.bigint import PythonIntBackend  # noqa: E402
from mersenne.primality import MersennePipeline  # noqa: E402

# Exponents whose Mersenne numbers are prime / composite
KNOWN_MERSENNE_EXPONENTS = [2, 3, 5, 7, 13, 17, 19, 31, 61, 89, 107, 127]
COMPOSITE_MERSENNE_EXPONENTS = [11, 23, 29, 37, 41, 43, 47, 53]


@pytest.fixture
def backend():
    """Python backend with seeded Miller-Rabin witnesses."""
    return PythonIntBackend(rng=random.Random(20240101))


@pytest.fixture
def pipeline(backend):
    return MersennePipeline(backend)


@pytest.fixture
def restore_logging():
    """Restore root logger handlers after a test reconfigures logging."""
    root = logging.getLogger()
    saved_handlers = root.handlers[:]
    saved_level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in saved_handlers:
            handler.close()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)
