"""
Per-user settings for SimilarImage.

A setting is looked up in this order, first hit wins:
1. Keyword overrides passed to indexer_settings() (CLI flags)
2. SIMILARIMAGE_* environment variables
3. config.json in the config directory (~/.similarimage, or
   $SIMILARIMAGE_CONFIG_DIR)
4. The constants in config.py

`similarimage config --init` writes a config.json listing every key:
{
    "loader_threads": 2,
    "worker_threads": 6,
    "queue_capacity": 400,
    "batch_size": 20,
    "hash_size": 8,
    "highfreq_factor": 4,
    "stop_timeout": 10.0,
    "default_threshold": 8,
    "record_db_file": null
}
"""

import json
import os
from pathlib import Path
from typing import Any, Optional
import logging

from .config import (
    DEFAULT_LOADER_THREADS,
    DEFAULT_WORKER_THREADS,
    DEFAULT_QUEUE_CAPACITY,
    DEFAULT_BATCH_SIZE,
    DEFAULT_HASH_SIZE,
    DEFAULT_HIGHFREQ_FACTOR,
    DEFAULT_THRESHOLD,
    DEFAULT_STOP_TIMEOUT,
    RECORD_DB_FILE,
)
from .models import IndexerSettings

logger = logging.getLogger(__name__)


class UserConfig:
    """
    Process-wide view of the user's settings.

    Only one instance exists; get_user_config() returns it.
    """

    _instance: Optional['UserConfig'] = None
    _config_data: Optional[dict] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def config_dir(self) -> Path:
        """Directory holding config.json."""
        override = os.getenv('SIMILARIMAGE_CONFIG_DIR')
        return Path(override) if override else Path.home() / '.similarimage'

    @property
    def config_file_path(self) -> Path:
        """Location of config.json."""
        return self.config_dir / 'config.json'

    def _read_file(self) -> dict:
        path = self.config_file_path
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable config file {path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring config file {path}: expected a JSON object")
            return {}
        logger.debug(f"Read settings from {path}")
        return data

    @property
    def file_settings(self) -> dict:
        """Contents of config.json, read once and cached."""
        if self._config_data is None:
            self._config_data = self._read_file()
        return self._config_data

    def reload(self):
        """Forget the cached config.json so the next lookup re-reads it."""
        self._config_data = None

    def get(self, key: str, default: Any = None, env_var: Optional[str] = None) -> Any:
        """
        Resolve one setting.

        Args:
            key: Key in config.json
            default: Returned when neither source defines the key
            env_var: Environment variable consulted before the file

        Returns:
            The environment value (JSON-decoded when possible), else the
            file value, else default
        """
        if env_var:
            raw = os.getenv(env_var)
            if raw is not None:
                try:
                    return json.loads(raw)
                except ValueError:
                    return raw

        value = self.file_settings.get(key)
        return default if value is None else value

    @property
    def loader_threads(self) -> int:
        """Threads decoding image files."""
        return self.get('loader_threads', default=DEFAULT_LOADER_THREADS,
                        env_var='SIMILARIMAGE_LOADER_THREADS')

    @property
    def worker_threads(self) -> int:
        """Threads hashing decoded images."""
        return self.get('worker_threads', default=DEFAULT_WORKER_THREADS,
                        env_var='SIMILARIMAGE_WORKER_THREADS')

    @property
    def queue_capacity(self) -> int:
        """Maximum decoded images buffered between loaders and workers."""
        return self.get('queue_capacity', default=DEFAULT_QUEUE_CAPACITY,
                        env_var='SIMILARIMAGE_QUEUE_CAPACITY')

    @property
    def batch_size(self) -> int:
        """Images drained per worker wake-up."""
        return self.get('batch_size', default=DEFAULT_BATCH_SIZE,
                        env_var='SIMILARIMAGE_BATCH_SIZE')

    @property
    def hash_size(self) -> int:
        """Side of the DCT block kept for the fingerprint."""
        return self.get('hash_size', default=DEFAULT_HASH_SIZE,
                        env_var='SIMILARIMAGE_HASH_SIZE')

    @property
    def highfreq_factor(self) -> int:
        """Downsample factor applied before the DCT."""
        return self.get('highfreq_factor', default=DEFAULT_HIGHFREQ_FACTOR,
                        env_var='SIMILARIMAGE_HIGHFREQ_FACTOR')

    @property
    def stop_timeout(self) -> float:
        """Seconds to wait for threads after a stop request."""
        return self.get('stop_timeout', default=DEFAULT_STOP_TIMEOUT,
                        env_var='SIMILARIMAGE_STOP_TIMEOUT')

    @property
    def default_threshold(self) -> int:
        """Hamming distance used by similarity queries (0-64)."""
        return self.get('default_threshold', default=DEFAULT_THRESHOLD,
                        env_var='SIMILARIMAGE_THRESHOLD')

    @property
    def record_db_file(self) -> str:
        """Path to the record database."""
        custom = self.get('record_db_file', env_var='SIMILARIMAGE_DB')
        if custom:
            return custom
        return RECORD_DB_FILE

    def indexer_settings(self, **overrides) -> IndexerSettings:
        """
        Build IndexerSettings from this configuration.

        Keyword arguments that are not None override configured values.

        Raises:
            ValueError: If a resulting value is invalid
        """
        values = {
            'loader_threads': self.loader_threads,
            'worker_threads': self.worker_threads,
            'queue_capacity': self.queue_capacity,
            'batch_size': self.batch_size,
            'hash_size': self.hash_size,
            'highfreq_factor': self.highfreq_factor,
            'stop_timeout': self.stop_timeout,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return IndexerSettings(**values)

    def create_example_config(self):
        """Create an example configuration file."""
        example_config = {
            "_comment": "SimilarImage User Configuration",
            "loader_threads": DEFAULT_LOADER_THREADS,
            "worker_threads": DEFAULT_WORKER_THREADS,
            "queue_capacity": DEFAULT_QUEUE_CAPACITY,
            "batch_size": DEFAULT_BATCH_SIZE,
            "hash_size": DEFAULT_HASH_SIZE,
            "highfreq_factor": DEFAULT_HIGHFREQ_FACTOR,
            "stop_timeout": DEFAULT_STOP_TIMEOUT,
            "default_threshold": DEFAULT_THRESHOLD,
            "record_db_file": None,
        }

        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, 'w', encoding='utf-8') as f:
                json.dump(example_config, f, indent=2)
            logger.info(f"Created example config file at {self.config_file_path}")
            return True
        except OSError as e:
            logger.error(f"Failed to create example config: {e}")
            return False


# Global instance
_user_config = UserConfig()


def get_user_config() -> UserConfig:
    """Get the global UserConfig instance."""
    return _user_config
