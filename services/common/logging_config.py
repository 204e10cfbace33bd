import logging
import os
import sys
from typing import Optional, Tuple

_is_configured = False

VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
DEFAULT_FORMAT = "%(asctime)s %(levelname)s role=%(role)s logger=%(name)s %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"
QUIET_LOGGERS = ("urllib3", "docker", "requests", "hypercorn")
_FALSY = ("0", "false", "no", "off")


class RoleInjectingFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        # Records from third-party loggers carry no role
        if not hasattr(record, "role"):
            setattr(record, "role", os.getenv("ROLE", "webhook"))
        return super().format(record)


def configure_logging(default_level: str = "INFO") -> None:
    """Install a single stdout handler on the root logger.

    Safe to call more than once; only the first call has an effect.
    """
    global _is_configured
    if _is_configured:
        return

    level_name = os.getenv("LOG_LEVEL", default_level).upper()
    if level_name not in VALID_LEVELS:
        print(
            f"Warning: Invalid LOG_LEVEL '{level_name}'. Using default '{default_level}'. "
            f"Valid levels: {', '.join(VALID_LEVELS)}",
            file=sys.stderr,
        )
        level_name = default_level.upper()

    level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    handler = logging.StreamHandler(stream=sys.stdout)
    fmt = os.getenv("LOG_FORMAT", DEFAULT_FORMAT)
    datefmt = os.getenv("LOG_DATEFMT", DEFAULT_DATEFMT)
    handler.setFormatter(RoleInjectingFormatter(fmt=fmt, datefmt=datefmt))

    root.handlers[:] = [handler]

    for noisy in QUIET_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    _is_configured = True

    role = os.getenv("ROLE", "webhook")
    logging.getLogger(f"{role}.logging_config").info(
        f"logging configured with level={level_name} (numeric={level})"
    )


def get_logger(service_role: str, name: Optional[str] = None) -> logging.LoggerAdapter:
    logger_name = name or service_role
    base_logger = logging.getLogger(logger_name)
    return logging.LoggerAdapter(base_logger, extra={"role": service_role})


def server_loggers(service_role: str) -> Tuple[logging.Logger, logging.Logger]:
    """Access and error loggers handed to the HTTP server.

    ACCESS_LOG=false raises the access logger to WARNING, which drops the
    per-request lines the server writes at INFO.
    """
    access = logging.getLogger(f"{service_role}.access")
    if os.getenv("ACCESS_LOG", "true").strip().lower() in _FALSY:
        access.setLevel(logging.WARNING)
    else:
        access.setLevel(logging.NOTSET)
    return access, logging.getLogger(f"{service_role}.error")
