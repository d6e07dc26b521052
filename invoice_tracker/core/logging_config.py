import logging
import sys


def configure_logging(level: str = "INFO") -> None:
    """Sets up the root logger once; later calls only adjust the level."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    logging.getLogger("invoice_tracker").setLevel(level)
    # reportlab and openpyxl are chatty at DEBUG
    logging.getLogger("reportlab").setLevel(logging.WARNING)
    logging.getLogger("openpyxl").setLevel(logging.WARNING)
