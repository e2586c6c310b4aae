import logging
import sys


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for the API process."""
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        level=level.upper(),
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # the client logs every request at INFO
    logging.getLogger("opensearch").setLevel(logging.WARNING)
