import json
import logging
import datetime
import sys
import traceback

from inkpost.config.settings import settings


class StructuredLogger:

    def __init__(self, logger_name='StructuredLogger', level=None):
        self.logger = logging.getLogger(logger_name)
        self.logger.setLevel(getattr(logging, (level or 'DEBUG').upper(), logging.DEBUG))

        # avoid stacking handlers when the module is reloaded (tests, uvicorn --reload)
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter('%(message)s')
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)


    def _log(self, level, message, exc_info=None, **kwargs):
        log_entry = {
            'timestamp': datetime.datetime.now().isoformat(),
            'level': level.upper(),
            'message': message,
            **kwargs
        }
        if exc_info:
            log_entry.update(self._exception_fields(exc_info))
        # exceptions and other objects passed as context are rendered with str()
        json_log = json.dumps(log_entry, default=str)
        getattr(self.logger, level)(json_log) # Invoke the method corresponding to the level


    @staticmethod
    def _exception_fields(exc_info):
        """exc_type and formatted traceback for an exception, or the one being handled when exc_info=True"""
        if isinstance(exc_info, BaseException):
            exc = exc_info
        else:
            exc = sys.exc_info()[1]
        if exc is None:
            return {}
        return {
            'exc_type': type(exc).__name__,
            'traceback': ''.join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        }

    def info(self, message, **kwargs):
        self._log('info', message, **kwargs)

    def warning(self, message, **kwargs):
        self._log('warning', message, **kwargs)

    def error(self, message, **kwargs):
        self._log('error', message, **kwargs)

    def debug(self, message, **kwargs):
        self._log('debug', message, **kwargs)

app_logger = StructuredLogger('InkpostLogger', level=settings.LOG_LEVEL)
