import json
import logging

from .config import settings

LOGGER_NAME = "gearguard"


class JsonFormatter(logging.Formatter):
    """
    Formatter that dumps the selected LogRecord attributes as one JSON object per line.

    fmt_dict maps output keys to LogRecord attribute names.
    """

    def __init__(self, fmt_dict: dict = None, time_format: str = "%Y-%m-%dT%H:%M:%S", msec_format: str = "%s.%03dZ"):
        super().__init__()
        self.fmt_dict = fmt_dict if fmt_dict is not None else {"message": "message"}
        self.default_time_format = time_format
        self.default_msec_format = msec_format

    def usesTime(self) -> bool:
        return "asctime" in self.fmt_dict.values()

    def formatMessage(self, record) -> dict:
        return {key: record.__dict__[attr] for key, attr in self.fmt_dict.items()}

    def format(self, record) -> str:
        record.message = record.getMessage()
        if self.usesTime():
            record.asctime = self.formatTime(record, self.datefmt)

        message_dict = self.formatMessage(record)

        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            message_dict["exc_info"] = record.exc_text
        if record.stack_info:
            message_dict["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(message_dict, default=str)


def setup_logging(level: str = None, json_output: bool = None) -> logging.Logger:
    """Configure the package logger once; later calls only adjust the level."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, (level or settings.log_level).upper(), logging.INFO))

    if logger.handlers:
        return logger

    use_json = settings.log_json if json_output is None else json_output
    if use_json:
        formatter = JsonFormatter({
            "timestamp": "asctime",
            "level": "levelname",
            "logger": "name",
            "function": "funcName",
            "line": "lineno",
            "message": "message",
        })
    else:
        formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Child logger under the package logger, e.g. get_logger(__name__)."""
    if not name.startswith(LOGGER_NAME):
        name = f"{LOGGER_NAME}.{name}"
    return logging.getLogger(name)
