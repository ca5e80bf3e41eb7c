import logging
import os
from logging.handlers import RotatingFileHandler
from threading import Lock


LOGGER_NAME = 'order_tracker'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5


class Logger:
    """
    Process-wide ``order_tracker`` logger used by the lookup and notify
    routes, the commerce client and the reminder batch.

    Log lines go to ``$LOG_DIR/app.log`` (default ``logs/``) and to the
    console. Upstream response bodies and tracebacks only ever appear here,
    never in HTTP responses.
    """
    _instance = None
    _lock = Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        log_dir = os.getenv('LOG_DIR', 'logs')
        os.makedirs(log_dir, exist_ok=True)

        self.logger = logging.getLogger(LOGGER_NAME)
        self.logger.setLevel(logging.INFO)
        # keep lines out of Flask's and the root logger's handlers
        self.logger.propagate = False

        formatter = logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')
        handlers = [
            RotatingFileHandler(os.path.join(log_dir, 'app.log'),
                                maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS),
            logging.StreamHandler(),
        ]
        for handler in handlers:
            handler.setLevel(logging.INFO)
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

        self._initialized = True

    def get_logger(self):
        return self.logger

    def set_level(self, level):
        """
        Applies ``Settings.log_level`` (a name such as ``"DEBUG"`` or a
        ``logging`` constant). Unknown names fall back to INFO.
        """
        if isinstance(level, str):
            level = logging.getLevelName(level.upper())
            if not isinstance(level, int):
                level = logging.INFO
        self.logger.setLevel(level)
        for handler in self.logger.handlers:
            handler.setLevel(level)
