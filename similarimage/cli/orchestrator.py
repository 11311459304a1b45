"""
CLI workflow orchestration for SimilarImage.

Provides the CLIOrchestrator class that coordinates each subcommand from
argument parsing through final reporting.
"""

from __future__ import annotations

import logging
import signal
import threading
from typing import Optional

from ..database import SQLiteRecordStore, open_store
from ..errors import DecodeError, HashError, StoreError, StoreUnavailableError
from ..indexer import ImageIndexer
from ..models import IndexerSettings, RunStats
from ..pipeline import (
    find_image_files,
    PerceptualHasher,
    LoggingProgress,
    TqdmProgress,
)
from ..similarity import find_similar, fingerprint_image
from ..user_config import get_user_config
from ..utils.validators import validate_directory, validate_image_file, validate_threshold
from .arg_parser import parse_arguments
from .reporting import print_run_summary, print_query_results, print_store_stats


def setup_logging(verbose: bool = False) -> logging.Logger:
    """
    Configure logging for the CLI.

    Args:
        verbose: Enable verbose (DEBUG level) logging

    Returns:
        Configured logger instance
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )
    return logging.getLogger(__name__)


class CLIOrchestrator:
    """
    Orchestrates the CLI workflow.

    Parses arguments, then runs the selected subcommand in phases. Each
    phase returns an exit code; the first non-zero code ends the run.
    """

    def __init__(self, argv=None):
        """
        Initialize the orchestrator.

        Args:
            argv: Argument list (default: sys.argv)
        """
        self.argv = argv
        self.logger = None
        self.args = None
        self.config = get_user_config()
        self.settings: Optional[IndexerSettings] = None
        self.store: Optional[SQLiteRecordStore] = None
        self.indexer: Optional[ImageIndexer] = None
        self.image_files: list[str] = []
        self.stats: Optional[RunStats] = None

    def run(self) -> int:
        """
        Execute the CLI workflow for the parsed subcommand.

        Returns:
            Exit code (0 for success, 1 for error)
        """
        # Phase 1: Setup
        exit_code = self._setup_phase()
        if exit_code != 0:
            return exit_code

        commands = {
            'index': self._run_index,
            'query': self._run_query,
            'stats': self._run_stats,
            'config': self._run_config,
        }
        return commands[self.args.command]()

    def _setup_phase(self) -> int:
        """
        Phase 1: Parse arguments and setup logging.

        Returns:
            0 for success, non-zero for error
        """
        self.args = parse_arguments(self.argv)
        self.logger = setup_logging(self.args.verbose)
        return 0

    def _open_store_phase(self) -> int:
        """
        Open the record store named by --db or the user configuration.

        Returns:
            0 for success, 1 if the store cannot be opened
        """
        db_path = str(self.args.db) if self.args.db else None
        try:
            self.store = open_store(db_path)
        except StoreUnavailableError as e:
            self.logger.error(f"Cannot open record database: {e}")
            return 1
        self.logger.debug(f"Using record database {self.store.db_path}")
        return 0

    # ------------------------------------------------------------------
    # index
    # ------------------------------------------------------------------

    def _run_index(self) -> int:
        """
        Index workflow phases:
        1. Validation
        2. Configuration
        3. File scanning
        4. Indexing
        5. Reporting
        """
        for phase in (self._validate_index_phase, self._configure_phase,
                      self._open_store_phase, self._scan_phase):
            exit_code = phase()
            if exit_code != 0:
                return exit_code

        if not self.image_files:
            self.logger.info("No images found. Nothing to index.")
            return 0

        exit_code = self._index_phase()
        if self.stats is not None:
            print_run_summary(self.stats, stopped=self.indexer.stop_requested)
        return exit_code

    def _validate_index_phase(self) -> int:
        """
        Validate the index directory.

        Returns:
            0 for success, 1 for validation error
        """
        is_valid, error = validate_directory(str(self.args.directory))
        if not is_valid:
            self.logger.error(error)
            return 1
        return 0

    def _configure_phase(self) -> int:
        """
        Build pipeline settings from user config and command-line overrides.

        Returns:
            0 for success, 1 if the resulting settings are invalid
        """
        try:
            self.settings = self.config.indexer_settings(
                loader_threads=self.args.loaders,
                worker_threads=self.args.workers,
                queue_capacity=self.args.queue_capacity,
                batch_size=self.args.batch_size,
            )
        except (ValueError, TypeError) as e:
            self.logger.error(f"Invalid pipeline settings: {e}")
            return 1
        self.show_progress = not self.args.no_progress
        return 0

    def _scan_phase(self) -> int:
        """
        Scan for image files.

        Returns:
            0 for success
        """
        self.logger.info(f"Scanning {self.args.directory} for images...")
        recursive = not self.args.no_recursive
        self.image_files = find_image_files(self.args.directory, recursive=recursive)
        self.logger.info(f"Found {len(self.image_files):,} image files")
        return 0

    def _index_phase(self) -> int:
        """
        Run the indexing pipeline with a SIGINT handler that stops it cleanly.

        Returns:
            0 for success, 1 if the record store became unavailable
        """
        progress = TqdmProgress() if self.show_progress else None
        if progress is None or not progress.enabled:
            progress = LoggingProgress(self.logger)

        self.indexer = ImageIndexer(self.store, self.settings, progress=progress)
        previous_handler = self._install_interrupt_handler()
        try:
            self.stats = self.indexer.index(self.image_files)
        except StoreUnavailableError as e:
            self.logger.error(f"Indexing aborted, record database unavailable: {e}")
            self.stats = self.indexer.stats
            return 1
        finally:
            progress.close()
            self._restore_interrupt_handler(previous_handler)

        return 0

    def _install_interrupt_handler(self):
        # signal.signal() is only allowed on the main thread
        if threading.current_thread() is not threading.main_thread():
            return None

        def _handle_interrupt(signum, frame):
            self.logger.info("Interrupt received, stopping indexing...")
            # The interrupted main thread may hold the indexer lock
            threading.Thread(
                target=self.indexer.request_stop,
                name="interrupt-stop",
                daemon=True,
            ).start()

        return signal.signal(signal.SIGINT, _handle_interrupt)

    def _restore_interrupt_handler(self, previous_handler) -> None:
        if previous_handler is not None:
            signal.signal(signal.SIGINT, previous_handler)

    # ------------------------------------------------------------------
    # query
    # ------------------------------------------------------------------

    def _run_query(self) -> int:
        """Fingerprint the query image and list similar indexed images."""
        threshold = self.args.threshold
        if threshold is None:
            threshold = self.config.default_threshold
        hasher = PerceptualHasher(
            hash_size=self.config.hash_size,
            highfreq_factor=self.config.highfreq_factor,
        )
        is_valid, error = validate_threshold(threshold, max_bits=hasher.bits)
        if not is_valid:
            self.logger.error(error)
            return 1

        query_path = self.args.image.resolve()
        is_valid, error = validate_image_file(str(query_path))
        if not is_valid:
            self.logger.error(error)
            return 1

        exit_code = self._open_store_phase()
        if exit_code != 0:
            return exit_code

        try:
            fingerprint = fingerprint_image(query_path, hasher)
        except (OSError, DecodeError, HashError) as e:
            self.logger.error(f"Cannot fingerprint {query_path}: {e}")
            return 1

        try:
            matches = find_similar(
                self.store.iter_records(),
                fingerprint,
                threshold=threshold,
                exclude_path=str(query_path),
            )
        except StoreError as e:
            self.logger.error(f"Failed to read records: {e}")
            return 1

        print_query_results(str(query_path), fingerprint, matches, threshold, limit=self.args.limit)
        return 0

    # ------------------------------------------------------------------
    # stats
    # ------------------------------------------------------------------

    def _run_stats(self) -> int:
        """Print store statistics, optionally after removing stale entries."""
        exit_code = self._open_store_phase()
        if exit_code != 0:
            return exit_code

        if self.args.cleanup:
            removed = self.store.cleanup_missing()
            self.logger.info(f"Removed {removed:,} entries for missing files")

        print_store_stats(self.store.get_stats())
        return 0

    # ------------------------------------------------------------------
    # config
    # ------------------------------------------------------------------

    def _run_config(self) -> int:
        """Show the effective configuration or create an example file."""
        config = self.config

        if self.args.init:
            if config.create_example_config():
                print("Created example configuration file at:")
                print(f"  {config.config_file_path}")
                print("\nEdit this file to customize SimilarImage settings.")
                return 0
            print("Failed to create configuration file.")
            return 1

        print(f"Configuration file: {config.config_file_path}")
        if config.config_file_path.exists():
            print("Status: Found")
        else:
            print("Status: Not found (using defaults)")
            print("\nRun 'similarimage config --init' to create one.")

        print("\nCurrent settings:")
        print(f"  loader_threads: {config.loader_threads}")
        print(f"  worker_threads: {config.worker_threads}")
        print(f"  queue_capacity: {config.queue_capacity}")
        print(f"  batch_size: {config.batch_size}")
        print(f"  hash_size: {config.hash_size}")
        print(f"  highfreq_factor: {config.highfreq_factor}")
        print(f"  stop_timeout: {config.stop_timeout}")
        print(f"  default_threshold: {config.default_threshold}")
        print(f"  record_db_file: {config.record_db_file}")
        return 0


__all__ = ['CLIOrchestrator', 'setup_logging']
