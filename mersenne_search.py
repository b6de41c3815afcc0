#!/usr/bin/env python3
"""
Mersenne Search - find Mersenne primes 2^p - 1 with a threaded worker pool

The main thread enumerates exponents p = start, start+1, ... into a bounded
queue; worker threads run each through the filter + Lucas-Lehmer pipeline
and log the verdict. Without --end the search runs until interrupted.
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional

from mersenne.api_client import APIClient
from mersenne.arg_parser import create_search_parser, parse_start_exponent
from mersenne.bigint import get_backend
from mersenne.errors import ConfigurationError
from mersenne.primality import MersennePipeline
from mersenne.reporting import ConsoleReporter, configure_logging
from mersenne.submission_queue import ResultSubmitter, SubmissionQueue
from mersenne.typed_config import AppConfig, TypedConfigLoader
from mersenne.worker_pool import MersenneSearch, exponent_source

logger = logging.getLogger("mersenne_search")

EXIT_OK = 0
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130


def load_app_config(config_path: str) -> AppConfig:
    """Load typed config, using built-in defaults when the file is absent."""
    if not Path(config_path).exists():
        config = AppConfig()
        config.validate()
        return config
    return TypedConfigLoader().load(config_path)


def apply_overrides(config: AppConfig, args) -> AppConfig:
    """Apply command line values on top of the loaded configuration."""
    search = config.search
    search.start = parse_start_exponent(args.start, default=search.start)
    if args.end is not None:
        search.end = args.end
    if args.workers is not None:
        search.workers = args.workers
    if args.queue_capacity is not None:
        search.queue_capacity = args.queue_capacity
    if args.backend is not None:
        search.backend = args.backend
    if args.rounds is not None:
        search.probable_prime_rounds = args.rounds
    if args.verbose:
        config.logging.level = "DEBUG"
    config.validate()
    return config


def build_reporter(config: AppConfig, backend_name: str) -> ConsoleReporter:
    submitter = None
    if config.api.enabled:
        api_client = APIClient(
            api_endpoint=config.api.endpoint,
            timeout=config.api.timeout,
            retry_attempts=config.api.retry_attempts
        )
        submitter = ResultSubmitter(
            api_client, SubmissionQueue(config.api.queue_dir), config.client.client_id
        )

    record = config.logging.log_discoveries
    return ConsoleReporter(
        record_file=config.results.record_file if record else None,
        record_json=config.results.record_json if record else None,
        submitter=submitter,
        backend_name=backend_name
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the Mersenne search."""
    parser = create_search_parser()
    args = parser.parse_args(argv)

    try:
        config = apply_overrides(load_app_config(args.config), args)
        backend = get_backend(config.search.backend)
    except (ConfigurationError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except ImportError as e:
        print(f"Error: backend '{config.search.backend}' is unavailable: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    configure_logging(config.logging.level, config.logging.file)

    search_config = config.search
    reporter = build_reporter(config, backend.name)
    pipeline = MersennePipeline(
        backend=backend,
        rounds=search_config.probable_prime_rounds,
        word_max=search_config.word_max,
        on_lucas_lehmer=reporter.lucas_lehmer_required
    )
    search = MersenneSearch(
        pipeline,
        reporter,
        workers=search_config.workers,
        queue_capacity=search_config.queue_capacity
    )

    range_desc = f"M{search_config.start}..M{search_config.end}" if search_config.end is not None \
        else f"M{search_config.start} onwards"
    logger.info(
        f"Searching {range_desc} with {search_config.workers} workers "
        f"({backend.name} backend, queue capacity {search_config.queue_capacity})"
    )

    try:
        search.run(exponent_source(search_config.start, search_config.end))
    except KeyboardInterrupt:
        logger.info("Search interrupted")
        return EXIT_INTERRUPTED

    logger.info("Search complete")
    return EXIT_OK


if __name__ == '__main__':
    sys.exit(main())
