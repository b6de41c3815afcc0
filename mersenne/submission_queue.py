"""
Persistent submission queue for automatic retry of failed discovery submissions.

When the server is down, discovery payloads are saved to disk and retried
on the next submission.

Queue directory structure:
    data/queue/discoveries/ - Failed discovery submissions (JSON payloads)
"""
import datetime
import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING

from .reporting import mersenne_digits

if TYPE_CHECKING:
    from .api_client import APIClient
    from .primality import Verdict

logger = logging.getLogger(__name__)


class SubmissionQueue:
    """
    Persistent queue for retrying failed submissions.

    Each item is a JSON file holding the payload and an attempt counter.

    Usage:
        queue = SubmissionQueue("data/queue")
        queue.enqueue({"exponent": 127, ...})
        success, fail = queue.drain(api_client)
    """

    def __init__(self, queue_dir: str = "data/queue"):
        self.queue_dir = Path(queue_dir)
        self.discoveries_dir = self.queue_dir / "discoveries"
        self.logger = logging.getLogger(f"{__name__}.SubmissionQueue")

    def _generate_filename(self, payload: Dict[str, Any]) -> str:
        """Generate a unique timestamped filename."""
        ts = datetime.datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        return f"discovery_M{payload.get('exponent', 'unknown')}_{ts}.json"

    def enqueue(self, payload: Dict[str, Any]) -> Optional[Path]:
        """
        Enqueue a failed submission for later retry.

        Returns:
            Path to the queued item file, or None on error
        """
        item = {
            "type": "discovery",
            "created_at": datetime.datetime.now().isoformat(),
            "attempts": 0,
            "payload": payload,
        }

        filepath = self.discoveries_dir / self._generate_filename(payload)

        try:
            self.discoveries_dir.mkdir(parents=True, exist_ok=True)
            with open(filepath, 'w', encoding='utf-8') as f:
                json.dump(item, f, indent=2)
            self.logger.info(f"Queued failed discovery submission: {filepath.name}")
            return filepath
        except OSError as e:
            self.logger.error(f"Failed to queue discovery submission: {e}")
            return None

    def count(self) -> int:
        """Count pending items."""
        if not self.discoveries_dir.exists():
            return 0
        return sum(1 for _ in self.discoveries_dir.glob("*.json"))

    def _get_queue_files(self) -> List[Path]:
        """Get all queue item files sorted oldest-first."""
        if not self.discoveries_dir.exists():
            return []
        files = list(self.discoveries_dir.glob("*.json"))
        files.sort(key=lambda p: (p.stat().st_mtime, p.name))
        return files

    def drain(self, api_client: 'APIClient') -> Tuple[int, int]:
        """
        Attempt to submit all queued items, oldest first.

        Successful items are removed; failed items stay queued with their
        attempt count bumped.

        Returns:
            Tuple of (success_count, fail_count)
        """
        files = self._get_queue_files()
        if not files:
            return (0, 0)

        self.logger.info(f"Draining submission queue: {len(files)} item(s) pending")
        success_count = 0
        fail_count = 0

        for filepath in files:
            try:
                with open(filepath, 'r', encoding='utf-8') as f:
                    item = json.load(f)

                item["attempts"] = item.get("attempts", 0) + 1

                if api_client.submit_discovery(item.get("payload", {})) is not None:
                    success_count += 1
                    self.logger.info(f"Queue drain: submission succeeded ({filepath.name})")
                    filepath.unlink(missing_ok=True)
                else:
                    fail_count += 1
                    self.logger.warning(
                        f"Queue drain: submission failed (attempt {item['attempts']}, {filepath.name})"
                    )
                    with open(filepath, 'w', encoding='utf-8') as f:
                        json.dump(item, f, indent=2)

            except (OSError, json.JSONDecodeError) as e:
                fail_count += 1
                self.logger.error(f"Queue drain error for {filepath.name}: {e}")

        self.logger.info(f"Queue drain complete: {success_count} succeeded, {fail_count} failed")
        return (success_count, fail_count)


class ResultSubmitter:
    """
    Submit discoveries, queueing them on disk when the server is unreachable.

    Pending items are drained before each new submission.
    """

    def __init__(self, api_client: 'APIClient', queue: SubmissionQueue, client_id: str):
        self.api_client = api_client
        self.queue = queue
        self.client_id = client_id
        self.logger = logging.getLogger(f"{__name__}.ResultSubmitter")
        self._lock = threading.Lock()

    def build_payload(self, verdict: 'Verdict', worker: Optional[str] = None) -> Dict[str, Any]:
        return {
            "client_id": self.client_id,
            "exponent": verdict.exponent,
            "digits": mersenne_digits(verdict.exponent),
            "method": verdict.stage.value,
            "worker": worker,
            "found_at": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        }

    def submit(self, verdict: 'Verdict', worker: Optional[str] = None) -> bool:
        """
        Submit a prime verdict.

        Returns:
            True if the server accepted it, False if it was queued instead
        """
        if not verdict.is_prime:
            return False

        payload = self.build_payload(verdict, worker)
        with self._lock:
            if self.queue.count():
                self.queue.drain(self.api_client)

            if self.api_client.submit_discovery(payload) is not None:
                return True

            self.queue.enqueue(payload)
            return False
