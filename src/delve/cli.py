from __future__ import annotations

import logging
import sys

from .config import build_settings, parse_args
from .dungeon.generator import MapGenerator
from .errors import DelveError
from .logging_config import configure_logging

logger = logging.getLogger(__name__)

EXIT_GENERATION_ERROR = 2


def main(argv=None) -> int:
    args = parse_args(argv)
    configure_logging(level=logging.DEBUG if args.debug else None)

    try:
        settings = build_settings(args)
        map_data = MapGenerator(settings).generate()
    except DelveError as exc:
        logger.error("Map generation failed: %s", exc)
        return EXIT_GENERATION_ERROR

    if args.format == "ascii":
        print(map_data.render_ascii())
    else:
        # Sorted keys so output can be diffed across runs
        print(map_data.to_json(indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
