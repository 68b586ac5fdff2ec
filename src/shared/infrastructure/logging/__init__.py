from .logger_config import setup_logging, install_exception_hooks

__all__ = ['setup_logging', 'install_exception_hooks']
