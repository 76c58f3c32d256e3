"""
Logging setup.

Configures the root logger once per process. Structured context passed via
``extra={...}`` on a log call is appended to the line as ``key=value`` pairs so
the probe attempts of the host client stay greppable in plain log output.
"""
import logging
import os
import sys

_RESERVED_ATTRS = set(logging.LogRecord(
    'x', logging.INFO, '', 0, '', (), None
).__dict__.keys()) | {'message', 'asctime'}

_configured = False


class ContextFormatter(logging.Formatter):
    """Formatter that renders non-standard record attributes."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = {
            key: value for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith('_')
        }
        if context:
            rendered = ' '.join(f'{key}={value!r}' for key, value in sorted(context.items()))
            line = f'{line} | {rendered}'
        return line


def setup_logging(level: str = None) -> None:
    """
    Configure root logging to stdout.

    Args:
        level: Log level name; defaults to the LOG_LEVEL environment variable
    """
    global _configured
    if _configured:
        return

    level_name = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ContextFormatter(
        '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
    ))

    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name, logging.INFO))
    root.addHandler(handler)

    # urllib3 is chatty at DEBUG
    logging.getLogger('urllib3').setLevel(logging.WARNING)

    _configured = True
