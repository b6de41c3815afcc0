"""
Verdict sinks shared by all worker threads.

Workers never print directly; they hand each Verdict to an injected sink.
ConsoleReporter turns verdicts into timestamped log lines (logging handlers
serialise per record, so lines from different workers never interleave)
and records discoveries on disk. CollectingReporter keeps verdicts in
memory for finite searches and tests.
"""

import datetime
import logging
import math
import sys
import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Set, TextIO, TYPE_CHECKING

from .file_utils import load_json, save_json
from .primality import Verdict

if TYPE_CHECKING:
    from .submission_queue import ResultSubmitter

CONSOLE_FORMAT = '%(asctime)s %(message)s'
FILE_FORMAT = '%(asctime)s - %(threadName)s - %(levelname)s - %(message)s'
TIMESTAMP_FORMAT = '%Y/%m/%d %H:%M:'


def configure_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    stream: Optional[TextIO] = None
) -> None:
    """
    Set up root logging with UTC timestamps.

    Args:
        level: Logging level name (e.g. 'INFO', 'DEBUG')
        log_file: Optional log file path; parent directories are created
        stream: Console stream (default: sys.stdout)
    """
    console_formatter = logging.Formatter(CONSOLE_FORMAT, datefmt=TIMESTAMP_FORMAT)
    console_formatter.converter = time.gmtime
    console_handler = logging.StreamHandler(stream or sys.stdout)
    console_handler.setFormatter(console_formatter)
    handlers: List[logging.Handler] = [console_handler]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_formatter = logging.Formatter(FILE_FORMAT, datefmt=TIMESTAMP_FORMAT)
        file_formatter.converter = time.gmtime
        file_handler = logging.FileHandler(log_path, encoding='utf-8')
        file_handler.setFormatter(file_formatter)
        handlers.append(file_handler)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=handlers,
        force=True
    )


def mersenne_digits(p: int) -> int:
    """Number of decimal digits in 2^p - 1."""
    return int(p * math.log10(2)) + 1


class VerdictSink(ABC):
    """Thread-safe destination for pipeline events."""

    @abstractmethod
    def lucas_lehmer_required(self, exponent: int) -> None:
        """Called when a candidate survives every cheap filter."""

    @abstractmethod
    def report(self, verdict: Verdict, worker: Optional[str] = None) -> None:
        """Called once per checked exponent."""


class ConsoleReporter(VerdictSink):
    """
    Log verdicts and record discoveries.

    Usage:
        reporter = ConsoleReporter(record_file="data/mersenne_found.txt",
                                   record_json="data/mersenne_found.json")
        reporter.report(Verdict(127, True, Stage.LUCAS_LEHMER), worker="mersenne-worker-1")
    """

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        record_file: Optional[str] = None,
        record_json: Optional[str] = None,
        submitter: Optional['ResultSubmitter'] = None,
        backend_name: str = "python"
    ):
        """
        Initialize reporter.

        Args:
            logger: Logger for the verdict lines (default: module logger)
            record_file: Text file discoveries are appended to (None = skip)
            record_json: JSON file holding a list of discoveries (None = skip)
            submitter: Optional ResultSubmitter for discoveries
            backend_name: Backend name stored with each discovery
        """
        self.logger = logger or logging.getLogger(__name__)
        self.record_file = Path(record_file) if record_file else None
        self.record_json = Path(record_json) if record_json else None
        self.submitter = submitter
        self.backend_name = backend_name
        self._lock = threading.Lock()

    def lucas_lehmer_required(self, exponent: int) -> None:
        self.logger.info(f"Lucas-Lehmer is required for M{exponent}")

    def report(self, verdict: Verdict, worker: Optional[str] = None) -> None:
        if not verdict.is_prime:
            self.logger.info(f"-- {verdict.exponent} is not prime.")
            if verdict.factor is not None:
                self.logger.debug(
                    f"M{verdict.exponent} has factor {verdict.factor} ({verdict.stage.value})"
                )
            return

        with self._lock:
            self.logger.info(f"Discovered Mersenne Prime!! M{verdict.exponent}")
            self.logger.info("Remember to do a full candidacy check.")
            self._record_discovery(verdict, worker)

        if self.submitter is not None:
            try:
                self.submitter.submit(verdict, worker)
            except Exception as e:
                self.logger.error(f"Failed to submit discovery M{verdict.exponent}: {e}")

    def _record_discovery(self, verdict: Verdict, worker: Optional[str]) -> None:
        """Append a discovery to the text and JSON records. Caller holds the lock."""
        timestamp = datetime.datetime.now(datetime.timezone.utc).strftime('%Y-%m-%d %H:%M:%S')
        digits = mersenne_digits(verdict.exponent)

        if self.record_file is not None:
            try:
                self.record_file.parent.mkdir(parents=True, exist_ok=True)
                with open(self.record_file, 'a', encoding='utf-8') as f:
                    f.write(f"\n{'='*80}\n")
                    f.write(f"MERSENNE PRIME CANDIDATE: {timestamp} UTC\n")
                    f.write(f"{'='*80}\n")
                    f.write(f"Exponent: {verdict.exponent}\n")
                    f.write(f"M{verdict.exponent} has {digits} digits\n")
                    f.write(f"Decided by: {verdict.stage.value} ({self.backend_name} backend)\n")
                    if worker:
                        f.write(f"Worker: {worker}\n")
                    f.write("Status: needs independent verification\n")
                    f.write(f"{'='*80}\n\n")
            except OSError as e:
                self.logger.error(f"Failed to write discovery to {self.record_file}: {e}")

        if self.record_json is not None:
            entries = load_json(self.record_json, default=[])
            entries.append({
                "exponent": verdict.exponent,
                "digits": digits,
                "found_at": timestamp,
                "worker": worker,
                "backend": self.backend_name,
            })
            save_json(self.record_json, entries)


class CollectingReporter(VerdictSink):
    """Keep every verdict in memory, keyed by exponent."""

    def __init__(self):
        self._lock = threading.Lock()
        self.verdicts: Dict[int, Verdict] = {}
        self.lucas_lehmer_exponents: Set[int] = set()

    def lucas_lehmer_required(self, exponent: int) -> None:
        with self._lock:
            self.lucas_lehmer_exponents.add(exponent)

    def report(self, verdict: Verdict, worker: Optional[str] = None) -> None:
        with self._lock:
            self.verdicts[verdict.exponent] = verdict

    def primes(self) -> List[int]:
        """Exponents reported prime, ascending."""
        with self._lock:
            return sorted(p for p, v in self.verdicts.items() if v.is_prime)
