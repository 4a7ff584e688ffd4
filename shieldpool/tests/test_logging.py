from __future__ import annotations

import io
import json
import logging

from shieldpool import logging as plog
from shieldpool.field import Fr


def test_json_lines_carry_context_and_extras():
    buf = io.StringIO()
    plog.configure(level="INFO", json=True, stream=buf)
    log = logging.getLogger("shieldpool.pool")
    with plog.op_scope(action="withdraw"):
        log.info("withdrawal accepted", extra={"fee": 2, "root": Fr(5)})
    log.debug("hidden")
    lines = buf.getvalue().splitlines()
    assert len(lines) == 1
    rec = json.loads(lines[0])
    assert rec["msg"] == "withdrawal accepted"
    assert rec["level"] == "INFO"
    assert rec["logger"] == "shieldpool.pool"
    assert rec["action"] == "withdraw"
    assert rec["fee"] == 2
    assert rec["root"] == "5"


def test_scope_is_restored():
    with plog.op_scope(action="deposit"):
        assert plog.context()["action"] == "deposit"
    assert "action" not in plog.context()


def test_text_format():
    buf = io.StringIO()
    plog.configure(level="DEBUG", json=False, stream=buf)
    logging.getLogger("shieldpool.x").warning("careful", extra={"code": "duplicate_nullifier"})
    line = buf.getvalue().strip()
    assert "| WARNING | shieldpool.x |" in line
    assert "code=duplicate_nullifier" in line
    assert line.endswith("| careful")


def test_reconfigure_replaces_handler():
    plog.configure(json=True, stream=io.StringIO())
    logger = plog.configure(json=True, stream=io.StringIO())
    assert len(logger.handlers) == 1
