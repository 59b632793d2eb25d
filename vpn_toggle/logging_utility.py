import logging
import os
from logging.handlers import RotatingFileHandler


LOG_FORMAT = '%(asctime)s - %(levelname)s - %(name)s:%(lineno)d - %(pathname)s - %(message)s'


class Logger:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(Logger, cls).__new__(cls)
            cls._instance._setup_logger()
        return cls._instance

    def _setup_logger(self):
        self.logger = logging.getLogger('VPNToggle')
        self.logger.setLevel(logging.INFO)
        self.file_handler = None

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))
        self.logger.addHandler(console_handler)

    def configure(self, log_dir, level="INFO"):
        """Attach the rotating file handler under log_dir and set the level."""
        self.logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

        os.makedirs(log_dir, exist_ok=True)
        log_file = os.path.join(log_dir, 'vpn_toggle.log')
        if self.file_handler is not None:
            if self.file_handler.baseFilename == os.path.abspath(log_file):
                return
            self.logger.removeHandler(self.file_handler)
            self.file_handler.close()

        # Use RotatingFileHandler to limit log file size
        self.file_handler = RotatingFileHandler(log_file, maxBytes=5 * 1024 * 1024,
                                                backupCount=3)
        self.file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        self.logger.addHandler(self.file_handler)

    def get_logger(self):
        return self.logger


def configure_logging(settings) -> None:
    Logger().configure(settings.log_dir, settings.log_level)


logger = Logger().get_logger()
