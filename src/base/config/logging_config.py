import logging
import os

from src.base.middleware.correlation_middleware import CorrelationFilter


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name and shortens the logger name."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
        "RESET": "\033[0m",
    }

    def __init__(self, fmt: str, datefmt: str | None = None, use_colors: bool = True):
        super().__init__(fmt, datefmt=datefmt)
        self.use_colors = use_colors

    def format(self, record):
        levelname = record.levelname
        if self.use_colors and levelname in self.COLORS:
            record.colored_levelname = (
                f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"
            )
        else:
            record.colored_levelname = levelname

        # "src.domain.services.user_service" -> "user_service"
        module = (record.name or "unknown").split(".")[-1]
        record.filename_only = "app" if module == "__main__" else module

        if not getattr(record, "correlation_id", ""):
            record.correlation_id = "-"

        return super().format(record)


class LoggingConfig:
    """Configuration class for application logging setup."""

    FORMAT = (
        "%(asctime)s | %(colored_levelname)s | %(correlation_id)s | "
        "%(filename_only)s | %(message)s"
    )

    @staticmethod
    def resolve_level(default: int = logging.INFO) -> int:
        """Read LOG_LEVEL from the environment, falling back to ``default``."""
        name = os.getenv("LOG_LEVEL", "").upper()
        level = logging.getLevelName(name) if name else default
        return level if isinstance(level, int) else default

    @staticmethod
    def setup_logging(log_level: int | None = None) -> None:
        """
        Configure root logging with correlation ID support.

        Args:
            log_level: Explicit level; when omitted LOG_LEVEL (or INFO) is used.
        """
        logger = logging.getLogger()
        logger.setLevel(log_level if log_level is not None else LoggingConfig.resolve_level())

        # Only add handlers if none exist to avoid duplicates
        if not logger.hasHandlers():
            handler = logging.StreamHandler()
            handler.setFormatter(
                ColoredFormatter(
                    LoggingConfig.FORMAT,
                    datefmt="%Y-%m-%d %H:%M:%S",
                    use_colors=os.getenv("LOG_COLORS", "true").lower() != "false",
                )
            )
            handler.addFilter(CorrelationFilter())
            logger.addHandler(handler)
