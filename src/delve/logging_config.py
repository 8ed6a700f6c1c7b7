import logging
import os
from typing import Optional

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: Optional[int] = None, default_level: int = logging.INFO) -> None:
    """Configure the root logger for command line use.

    An explicit ``level`` wins; otherwise DELVE_LOG_LEVEL is honoured, falling
    back to ``default_level``.
    """
    if level is None:
        level = default_level
        level_name = os.getenv("DELVE_LOG_LEVEL")
        if level_name:
            level = getattr(logging, level_name.upper(), default_level)
    logging.basicConfig(level=level, format=LOG_FORMAT)
