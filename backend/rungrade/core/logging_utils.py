import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # fitparse/gpxpy are chatty at DEBUG
    logging.getLogger("gpxpy").setLevel(max(logging.INFO, root.level))
