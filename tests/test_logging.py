from logging.handlers import RotatingFileHandler

from flask import Flask

from utils.logger import init_logging


def _file_handlers(logger):
    return [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]


def test_reinitialising_closes_previous_file_handler(tmp_path):
    app = Flask("citizenx_logging_test")
    app.config.update(LOG_TO_FILE=True, LOG_DIR=str(tmp_path), LOG_LEVEL="INFO")

    first = _file_handlers(init_logging(app))
    assert len(first) == 1

    logger = init_logging(app)
    assert len(_file_handlers(logger)) == 1
    assert first[0] not in logger.handlers
    assert first[0].stream is None

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
