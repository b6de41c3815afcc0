"""
Typed Configuration Classes

Provides type-safe access to configuration values through dataclasses,
validated once at load time.
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any

from .bigint import BACKENDS
from .errors import ConfigurationError


@dataclass
class SearchConfig:
    """Search range and worker pool configuration."""
    start: int = 1
    end: Optional[int] = None
    workers: int = 8
    queue_capacity: int = 100
    probable_prime_rounds: int = 25
    word_bits: int = 64
    backend: str = "python"

    @property
    def word_max(self) -> int:
        """Largest value representable in the trial-division word."""
        return 2 ** self.word_bits - 1


@dataclass
class LoggingConfig:
    """Logging configuration."""
    file: Optional[str] = "data/logs/mersenne_search.log"
    level: str = "INFO"
    log_discoveries: bool = True


@dataclass
class ResultsConfig:
    """Where discoveries are recorded."""
    record_file: str = "data/mersenne_found.txt"
    record_json: str = "data/mersenne_found.json"


@dataclass
class APIConfig:
    """Discovery submission configuration."""
    enabled: bool = False
    endpoint: str = "http://localhost:8000/api/v1"
    timeout: int = 30
    retry_attempts: int = 3
    queue_dir: str = "data/queue"


@dataclass
class ClientConfig:
    """Client identification configuration."""
    username: str = "default_user"
    cpu_name: str = "default_machine"

    @property
    def client_id(self) -> str:
        return f"{self.username}-{self.cpu_name}"


@dataclass
class AppConfig:
    """
    Root configuration object containing all settings.

    Usage:
        config = TypedConfigLoader().load("mersenne.yaml")
        print(config.search.workers)
    """
    search: SearchConfig = field(default_factory=SearchConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    results: ResultsConfig = field(default_factory=ResultsConfig)
    api: APIConfig = field(default_factory=APIConfig)
    client: ClientConfig = field(default_factory=ClientConfig)

    def validate(self) -> None:
        """
        Check value ranges.

        Raises:
            ConfigurationError: On the first invalid value found
        """
        search = self.search
        if search.workers < 1:
            raise ConfigurationError(f"search.workers must be >= 1, got {search.workers}")
        if search.queue_capacity < 1:
            raise ConfigurationError(
                f"search.queue_capacity must be >= 1, got {search.queue_capacity}"
            )
        if search.probable_prime_rounds < 1:
            raise ConfigurationError(
                f"search.probable_prime_rounds must be >= 1, got {search.probable_prime_rounds}"
            )
        if search.word_bits < 8:
            raise ConfigurationError(f"search.word_bits must be >= 8, got {search.word_bits}")
        if search.end is not None and search.end < search.start:
            raise ConfigurationError(
                f"search.end ({search.end}) is below search.start ({search.start})"
            )
        if search.backend not in BACKENDS:
            raise ConfigurationError(
                f"search.backend must be one of {', '.join(sorted(BACKENDS))}, got '{search.backend}'"
            )


class TypedConfigLoader:
    """
    Load configuration from YAML into typed dataclasses.

    Usage:
        loader = TypedConfigLoader()
        config = loader.load("mersenne.yaml")
    """

    def load(self, config_path: str) -> AppConfig:
        """
        Load and validate configuration from a YAML file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ConfigurationError: If the YAML is unreadable, or values are malformed or out of range
        """
        from .config_manager import ConfigManager

        manager = ConfigManager()
        raw_config = manager.load_config(config_path)

        config = self.parse(raw_config)
        config.validate()
        return config

    def parse(self, raw: Dict[str, Any]) -> AppConfig:
        """Parse raw dictionary into typed config."""
        try:
            return AppConfig(
                search=self._parse_search(raw.get('search') or {}),
                logging=self._parse_logging(raw.get('logging') or {}),
                results=self._parse_results(raw.get('results') or {}),
                api=self._parse_api(raw.get('api') or {}),
                client=self._parse_client(raw.get('client') or {}),
            )
        except (TypeError, ValueError, AttributeError) as e:
            raise ConfigurationError(f"Malformed configuration: {e}") from e

    def _parse_search(self, raw: Dict[str, Any]) -> SearchConfig:
        """Parse search configuration."""
        end = raw.get('end')
        return SearchConfig(
            start=int(raw.get('start', 1)),
            end=int(end) if end is not None else None,
            workers=int(raw.get('workers', 8)),
            queue_capacity=int(raw.get('queue_capacity', 100)),
            probable_prime_rounds=int(raw.get('probable_prime_rounds', 25)),
            word_bits=int(raw.get('word_bits', 64)),
            backend=str(raw.get('backend', 'python')),
        )

    def _parse_logging(self, raw: Dict[str, Any]) -> LoggingConfig:
        """Parse logging configuration."""
        return LoggingConfig(
            file=raw.get('file', 'data/logs/mersenne_search.log'),
            level=str(raw.get('level', 'INFO')),
            log_discoveries=bool(raw.get('log_discoveries', True)),
        )

    def _parse_results(self, raw: Dict[str, Any]) -> ResultsConfig:
        """Parse results configuration."""
        return ResultsConfig(
            record_file=raw.get('record_file', 'data/mersenne_found.txt'),
            record_json=raw.get('record_json', 'data/mersenne_found.json'),
        )

    def _parse_api(self, raw: Dict[str, Any]) -> APIConfig:
        """Parse API configuration."""
        return APIConfig(
            enabled=bool(raw.get('enabled', False)),
            endpoint=raw.get('endpoint', 'http://localhost:8000/api/v1'),
            timeout=int(raw.get('timeout', 30)),
            retry_attempts=int(raw.get('retry_attempts', 3)),
            queue_dir=raw.get('queue_dir', 'data/queue'),
        )

    def _parse_client(self, raw: Dict[str, Any]) -> ClientConfig:
        """Parse client configuration."""
        return ClientConfig(
            username=str(raw.get('username', 'default_user')),
            cpu_name=str(raw.get('cpu_name', 'default_machine')),
        )
