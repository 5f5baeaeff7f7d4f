import logging
import os

# The impostor's reasoning goes to a file the player never sees.
# Override the location with VENT_CHASE_HIDDEN_LOG.
DEFAULT_HIDDEN_LOG = os.environ.get("VENT_CHASE_HIDDEN_LOG", "hidden_state.log")


def setup_hidden_logger(name="hidden_state", log_file=DEFAULT_HIDDEN_LOG):
    """
    Sets up a logger that writes only to a file.
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)

    # Check if handler already exists to avoid duplicate logs
    if not logger.handlers:
        file_handler = logging.FileHandler(log_file, delay=True)
        formatter = logging.Formatter('%(asctime)s - %(name)s - %(message)s')
        file_handler.setFormatter(formatter)

        logger.addHandler(file_handler)

        # Prevent propagation to the root logger to avoid printing to stdout
        logger.propagate = False

    return logger


def configure_console_logging(level=logging.INFO):
    """Route module loggers to stderr for the launcher and web server."""
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    )


# Singleton-like access
hidden_logger = setup_hidden_logger()
