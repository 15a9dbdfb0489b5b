"""Garbage collector for the per-job artifact folders of finished imports."""

import time
from datetime import timedelta
from threading import Event
from threading import Lock
from threading import Thread
from threading import current_thread
from typing import Any
from typing import Iterable

from pydantic import ValidationError

from catalog_import_safety.data_models.cleanup import CleanupConfig
from catalog_import_safety.data_models.cleanup import CleanupResult
from catalog_import_safety.data_models.cleanup import CleanupStatus
from catalog_import_safety.data_models.import_config import ImportSafetyConfig
from catalog_import_safety.data_models.import_config import describe_validation_error
from catalog_import_safety.errors import CleanupInProgressError
from catalog_import_safety.errors import CleanupPassFailure
from catalog_import_safety.errors import ConfigurationError
from catalog_import_safety.helpers.filesystem import BYTES_PER_MB
from catalog_import_safety.helpers.filesystem import list_job_directories
from catalog_import_safety.helpers.filesystem import remove_directory
from catalog_import_safety.helpers.schedule import seconds_until_next_run
from catalog_import_safety.logger import LOGGING_PROVIDER
from catalog_import_safety.metrics import LoggingMetricsSink
from catalog_import_safety.metrics import MetricsSink
from catalog_import_safety.metrics import emit_cleanup_metrics

logger = LOGGING_PROVIDER.new_logger("catalog_import_safety.garbage_collector")

STOP_JOIN_TIMEOUT_SECONDS = 5


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class ArtifactCleanupService:
    """
    Deletes import_<job id> folders that are older than the retention window.

    A pass can be run by hand with cleanup() or on a cron schedule with
    start_scheduled_cleanup(). Passes never overlap: a second cleanup() while one
    is running raises CleanupInProgressError.
    """

    def __init__(
        self,
        config: CleanupConfig | None = None,
        metrics_sinks: Iterable[MetricsSink] | None = None,
        max_age_override: timedelta | None = None,
    ) -> None:
        """
        Args:
            config: Cleanup settings, defaults to CleanupConfig().
            metrics_sinks: Receivers of the per-pass metrics record. Defaults to logging only.
            max_age_override: Replaces retention_days when deciding eligibility. Test seam,
                not part of CleanupConfig so it cannot come in through configuration.
        """
        self._config = config if config is not None else CleanupConfig()
        self._metrics_sinks: list[MetricsSink] = (
            list(metrics_sinks) if metrics_sinks is not None else [LoggingMetricsSink()]
        )
        self._max_age_override = max_age_override

        # held for the whole duration of a pass
        self._run_lock = Lock()

        # guards _stop_event and _thread
        self._schedule_lock = Lock()
        self._stop_event: Event | None = None
        self._thread: Thread | None = None

    @classmethod
    def from_import_config(cls, config: ImportSafetyConfig, **kwargs: Any) -> "ArtifactCleanupService":
        return cls(CleanupConfig.from_import_config(config), **kwargs)

    @property
    def config(self) -> CleanupConfig:
        return self._config

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    @property
    def is_scheduled(self) -> bool:
        return self._thread is not None

    def _max_age(self, config: CleanupConfig) -> timedelta:
        if self._max_age_override is not None:
            return self._max_age_override
        return timedelta(days=config.retention_days)

    def cleanup(self) -> CleanupResult:
        """
        Run a single cleanup pass now.

        Raises:
            CleanupInProgressError: if another pass is running.
            CleanupPassFailure: if the artifacts folder does not exist.
        """
        if not self._run_lock.acquire(blocking=False):
            raise CleanupInProgressError("Cleanup already in progress")

        config = self._config
        start = time.monotonic()
        try:
            result = self._run_pass(config, start)
        finally:
            self._run_lock.release()

        self._report(result, config)
        return result

    def _run_pass(self, config: CleanupConfig, start: float) -> CleanupResult:
        artifacts_folder = config.artifacts_path
        if not artifacts_folder.is_dir():
            logger.error(f"Cleanup failed: artifacts folder does not exist: {artifacts_folder}")
            raise CleanupPassFailure(
                f"Artifacts directory not found: {artifacts_folder}", execution_time_ms=_elapsed_ms(start)
            )

        try:
            job_folders = list_job_directories(artifacts_folder)
        except OSError as e:
            logger.error(f"Cleanup failed: cannot list {artifacts_folder}: {e}", exc_info=True)
            raise CleanupPassFailure(
                f"Cannot list artifacts directory {artifacts_folder}: {e}", execution_time_ms=_elapsed_ms(start)
            ) from e

        max_age_seconds = self._max_age(config).total_seconds()
        deleted_count = 0
        retained_count = 0
        error_count = 0
        freed_bytes = 0

        for folder_path in job_folders:
            try:
                folder_age = time.time() - folder_path.stat().st_mtime

                if folder_age <= max_age_seconds:
                    retained_count += 1
                    continue

                folder_size = remove_directory(folder_path, dry_run=config.dry_run)
                freed_bytes += folder_size
                deleted_count += 1

                if config.dry_run:
                    logger.info(
                        f"DRY RUN - would delete old folder: {folder_path.name} "
                        f"(age: {timedelta(seconds=folder_age)}, size: {folder_size / BYTES_PER_MB:.2f} MB)"
                    )
                else:
                    logger.info(
                        f"Deleted old folder: {folder_path.name} "
                        f"(age: {timedelta(seconds=folder_age)}, size: {folder_size / BYTES_PER_MB:.2f} MB)"
                    )
            except Exception as e:
                # one broken folder never stops the scan of the others
                error_count += 1
                logger.warning(f"Error processing folder {folder_path.name}: {e}", exc_info=True)

        return CleanupResult(
            scanned=len(job_folders),
            deleted=deleted_count,
            retained=retained_count,
            errors=error_count,
            freed_space_mb=freed_bytes / BYTES_PER_MB,
            execution_time_ms=_elapsed_ms(start),
        )

    def _report(self, result: CleanupResult, config: CleanupConfig) -> None:
        success_rate = "N/A" if result.success_rate is None else f"{result.success_rate:.1f}%"
        message = (
            f"Cleanup completed: scanned {result.scanned}, deleted {result.deleted}, "
            f"retained {result.retained}, errors {result.errors}, "
            f"freed {result.freed_space_mb:.2f} MB in {result.execution_time_ms} ms "
            f"(success rate: {success_rate})"
        )
        if config.dry_run:
            message = f"DRY RUN - {message}"

        if result.errors > 0:
            logger.warning(message)
        else:
            logger.info(message)

        emit_cleanup_metrics(result, self._metrics_sinks)

    def _run_scheduled_pass(self) -> None:
        logger.info("Starting scheduled cleanup")
        try:
            self.cleanup()
        except CleanupInProgressError:
            logger.warning("Skipping scheduled cleanup, another pass is still in progress")
        except CleanupPassFailure as e:
            logger.info(f"Scheduled cleanup did not run ({e}), retrying at the next tick")
        except Exception as e:
            logger.error(f"Error in scheduled cleanup: {e}", exc_info=True)

    def _schedule_loop(self, stop_event: Event, schedule: str) -> None:
        logger.info(f"Scheduled cleanup started: '{schedule}' (UTC)")

        while not stop_event.is_set():
            # Wait for the next tick or until stop_event is set
            if stop_event.wait(timeout=seconds_until_next_run(schedule)):
                break
            self._run_scheduled_pass()

        logger.info("Scheduled cleanup stopped")

    def start_scheduled_cleanup(self) -> None:
        """Arm the recurring cleanup. Does nothing but warn if it is already armed."""
        with self._schedule_lock:
            if self._thread is not None:
                logger.warning("Cleanup job already scheduled")
                return

            stop_event = Event()
            thread = Thread(
                target=self._schedule_loop,
                args=(stop_event, self._config.cleanup_schedule),
                name="artifact-cleanup",
                daemon=True,
            )
            self._stop_event = stop_event
            self._thread = thread
            thread.start()

    def stop_scheduled_cleanup(self) -> None:
        """
        Disarm the recurring cleanup. A pass that is already running is not interrupted,
        the loop exits once it is done.
        """
        with self._schedule_lock:
            if self._thread is None:
                return

            assert self._stop_event is not None
            self._stop_event.set()
            thread = self._thread
            self._thread = None
            self._stop_event = None

        if thread is not current_thread():
            thread.join(timeout=STOP_JOIN_TIMEOUT_SECONDS)

    def get_status(self) -> CleanupStatus:
        return CleanupStatus(is_running=self.is_running, is_scheduled=self.is_scheduled, config=self._config)

    def update_config(self, **changes: Any) -> CleanupConfig:
        """
        Merge changes into the live config.

        An armed schedule is restarted so the new settings apply from its next tick.
        An invalid change raises ConfigurationError and leaves everything as it was.
        """
        try:
            new_config = CleanupConfig(**{**self._config.model_dump(), **changes})
        except ValidationError as e:
            raise ConfigurationError(describe_validation_error(e)) from e

        was_scheduled = self.is_scheduled
        if was_scheduled:
            self.stop_scheduled_cleanup()

        self._config = new_config
        logger.info(
            f"Cleanup config updated (path: {new_config.artifacts_path}, retention: {new_config.retention_days} days, "
            f"schedule: '{new_config.cleanup_schedule}', dry_run: {new_config.dry_run})"
        )

        if was_scheduled:
            self.start_scheduled_cleanup()

        return new_config
