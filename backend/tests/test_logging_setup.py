import logging

from logging_setup import LOG_FORMAT, build_config, configure_logging

def test_build_config_routes_server_loggers_to_stdout():
    cfg = build_config("DEBUG")
    assert cfg["root"] == {"level": "DEBUG", "handlers": ["stdout"]}
    assert cfg["handlers"]["stdout"]["stream"] == "ext://sys.stdout"
    assert cfg["formatters"]["plain"]["format"] == LOG_FORMAT
    for name in ("uvicorn", "uvicorn.access"):
        assert cfg["loggers"][name]["propagate"] is False
    assert cfg["loggers"]["sqlalchemy.engine"]["level"] == "WARNING"

def test_configure_logging_leaves_existing_handlers_alone():
    root = logging.getLogger()
    marker = logging.NullHandler()
    root.addHandler(marker)
    try:
        before = list(root.handlers)
        configure_logging("debug")
        assert root.handlers == before
    finally:
        root.removeHandler(marker)
