"""Tests for init_logging / get_logger."""

from __future__ import annotations

import logging

from athena_explorer.logging import logger as logger_mod


def test_get_logger_is_namespaced() -> None:
    assert logger_mod.get_logger("db.engine").name == "athena_explorer.db.engine"


def test_init_logging_is_idempotent(tmp_path, monkeypatch) -> None:
    calls = []
    monkeypatch.setattr(logger_mod, "_INITIALIZED", False)
    monkeypatch.setattr(logger_mod.logging, "basicConfig", lambda **kw: calls.append(kw))
    log_file = tmp_path / "logs" / "explorer.log"

    logger_mod.init_logging("debug", str(log_file))
    logger_mod.init_logging("debug", str(log_file))

    assert len(calls) == 1
    assert calls[0]["level"] == logging.DEBUG
    assert len(calls[0]["handlers"]) == 2
    assert log_file.parent.is_dir()
    for h in calls[0]["handlers"]:
        h.close()


def test_init_logging_without_file(monkeypatch) -> None:
    calls = []
    monkeypatch.setattr(logger_mod, "_INITIALIZED", False)
    monkeypatch.setattr(logger_mod.logging, "basicConfig", lambda **kw: calls.append(kw))

    logger_mod.init_logging("INFO", None)

    assert [type(h) for h in calls[0]["handlers"]] == [logging.StreamHandler]
