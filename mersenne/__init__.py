"""Threaded Mersenne prime search: bounded task queue, primality pipeline, worker pool."""

__version__ = "0.1.0"
