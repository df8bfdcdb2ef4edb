import logging


def configure_logging(level: str = "INFO") -> None:
    """Install a single timestamped stream handler on the root logger"""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
