import logging
import logging.handlers
import os
import sys
import threading

from config.app_config import AppConfig

logger = logging.getLogger(__name__)


def setup_logging():
    """
    Configure logging for the entire application

    Sets up:
    - Console handler (stdout)
    - File handler (rotating, 10MB max, 5 backups)
    - Consistent formatting
    - Configurable log level
    """
    log_dir = os.path.dirname(AppConfig.LOG_FILE)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir)

    root_logger = logging.getLogger()
    root_logger.setLevel(AppConfig.get_log_level())
    root_logger.handlers = []

    formatter = logging.Formatter(
        AppConfig.LOG_FORMAT,
        datefmt=AppConfig.LOG_DATE_FORMAT
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(AppConfig.get_log_level())
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    try:
        file_handler = logging.handlers.RotatingFileHandler(
            AppConfig.LOG_FILE,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5
        )
        file_handler.setLevel(AppConfig.get_log_level())
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
    except Exception as e:
        root_logger.warning(f"Could not create file handler: {e}")

    root_logger.info("=" * 80)
    root_logger.info("Device Validator Starting")
    root_logger.info(f"Log Level: {AppConfig.LOG_LEVEL}")
    root_logger.info(f"Log File: {AppConfig.LOG_FILE}")
    root_logger.info("=" * 80)


def install_exception_hooks():
    """
    Log uncaught exceptions instead of letting them pass unnoticed

    Covers the main thread and every worker/timer thread. Keyboard
    interrupts keep their default behaviour.
    """
    def handle_exception(exc_type, exc_value, exc_traceback):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return
        logger.critical(
            "Uncaught exception",
            exc_info=(exc_type, exc_value, exc_traceback)
        )

    def handle_thread_exception(args):
        if args.exc_type is SystemExit:
            return
        thread_name = args.thread.name if args.thread else 'unknown'
        logger.error(
            f"Uncaught exception in thread '{thread_name}'",
            exc_info=(args.exc_type, args.exc_value, args.exc_traceback)
        )

    sys.excepthook = handle_exception
    threading.excepthook = handle_thread_exception
