# pto_reconciliation/logging_config.py
import logging


def setup_logging(level: int = logging.INFO) -> None:
    """Configure console logging for command-line runs

    Args:
        level: Root logger level

    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)
