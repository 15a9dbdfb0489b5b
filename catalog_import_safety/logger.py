"""
Logging provider.

Every module of the import safety package creates its logger through LOGGING_PROVIDER,
so that file logging can be switched on for all of them at once at startup.
"""

import datetime
import logging
import os
from pathlib import Path

from pydantic import BaseModel
from pydantic import ConfigDict

LOG_FILE_PREFIX = "import_safety"


class InitializedProviderState(BaseModel):
    """
    Parameters of the LoggingProvider that are available once init_logging() has been called.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    log_file: Path
    file_handler: logging.FileHandler


class LoggingProvider:
    """
    Hands out the loggers of the import safety services.

    All loggers print to the console. After init_logging() they also share one log file,
    so a cleanup pass and the requests around it can be read in order.
    """

    def __init__(self) -> None:
        self.file_name_tag = datetime.datetime.now().strftime("%Y%m%d-%H%M%S")
        self.formatter = logging.Formatter("[%(asctime)s.%(msecs)03d][%(levelname)s][%(name)s] %(message)s")
        self.formatter.datefmt = "%Y-%m-%d %H:%M:%S"

        # loggers created before init_logging() get the file handler on initialization
        self.created_loggers: list[logging.Logger] = []

        self._initialized: InitializedProviderState | None = None

    @property
    def is_initialized(self) -> bool:
        return self._initialized is not None

    @property
    def log_file(self) -> Path | None:
        return None if self._initialized is None else self._initialized.log_file

    def new_logger(self, name: str) -> logging.Logger:
        """
        Create a logger, by convention named after the dotted module path.
        Calling it twice with the same name does not duplicate handlers.
        """
        logger = logging.getLogger(name)
        logger.setLevel(logging.DEBUG)
        logger.handlers.clear()

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(self.formatter)
        logger.addHandler(console_handler)

        if self._initialized is not None:
            logger.addHandler(self._initialized.file_handler)

        self.created_loggers.append(logger)
        return logger

    def init_logging(self, log_dir: Path | None = None) -> Path:
        """
        Start writing every logger of this provider to <log_dir>/import_safety_<timestamp>.log.

        Falls back to the LOG_DIR environment variable when no directory is given.

        Returns:
            The path of the log file.
        """
        if self._initialized is not None:
            raise RuntimeError("LoggingProvider is already initialized, this is a bug in the calling code!")

        if log_dir is None:
            env_log_dir = os.getenv("LOG_DIR")
            if env_log_dir is None:
                raise RuntimeError("No log directory given and LOG_DIR is not set")
            log_dir = Path(env_log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)

        log_file = log_dir / f"{LOG_FILE_PREFIX}_{self.file_name_tag}.log"
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(self.formatter)
        self._initialized = InitializedProviderState(log_file=log_file, file_handler=file_handler)

        for logger in self.created_loggers:
            logger.addHandler(file_handler)

        return log_file


LOGGING_PROVIDER = LoggingProvider()
