import logging

from taskboard.logger import get_logger, set_level


def test_unknown_level_falls_back_to_info():
    get_logger(__name__)
    set_level("verbose")
    assert logging.getLogger().level == logging.INFO


def test_known_level_is_applied():
    set_level("debug")
    try:
        assert logging.getLogger().level == logging.DEBUG
    finally:
        set_level("INFO")
