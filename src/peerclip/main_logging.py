"""Logging configuration for the peerclip CLI."""
import logging


def configure_logging(verbose: bool) -> None:
    """Configure logging level based on verbosity setting.

    Args:
        verbose: If True, log DEBUG and above including per-chunk progress;
            otherwise WARNING and above.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(name)s: %(message)s",
        handlers=[logging.StreamHandler()],
    )
