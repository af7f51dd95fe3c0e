import logging

import pytest

from invoice_variants.logger import LOGGER_NAME, setup_file_logger


@pytest.fixture
def clean_logger():
    logger = logging.getLogger(LOGGER_NAME)
    saved = logger.handlers[:]
    logger.handlers.clear()
    yield logger
    for h in logger.handlers:
        h.close()
    logger.handlers[:] = saved


def test_file_log_written(tmp_path, clean_logger):
    logger = setup_file_logger(tmp_path / "logs")
    logging.getLogger(f"{LOGGER_NAME}.pipeline").info("Batch INV-1: Completed")
    for h in logger.handlers:
        h.flush()

    files = list((tmp_path / "logs").glob("invoice_variants_*.log"))
    assert len(files) == 1
    assert "INFO: Batch INV-1: Completed" in files[0].read_text(encoding="utf-8")


def test_setup_is_idempotent(tmp_path, clean_logger):
    setup_file_logger(tmp_path, console=True)
    setup_file_logger(tmp_path, console=True)
    assert len(clean_logger.handlers) == 2
