import logging
import os

import main


def test_setup_logging_handlers(monkeypatch, tmp_path):
    calls = {}
    monkeypatch.setattr(os.path, "expanduser", lambda path: str(tmp_path))
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.update(kwargs))

    log_file = main.setup_logging(verbose=False)

    assert log_file == os.path.join(str(tmp_path), ".netdisconnect", "netdisconnect.log")
    assert os.path.isdir(os.path.dirname(log_file))
    file_handler, console = calls["handlers"]
    assert file_handler.baseFilename == log_file
    assert console.level == logging.WARNING
    file_handler.close()
    # only this project's own loggers are configured
    assert logging.getLogger("PIL").level == logging.NOTSET


def test_setup_logging_verbose(monkeypatch, tmp_path):
    calls = {}
    monkeypatch.setattr(os.path, "expanduser", lambda path: str(tmp_path))
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.update(kwargs))

    main.setup_logging(verbose=True)

    file_handler, console = calls["handlers"]
    assert console.level == logging.DEBUG
    file_handler.close()
