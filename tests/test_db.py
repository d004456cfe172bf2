import logging

import pytest
from fastapi import HTTPException
from fastapi.exceptions import RequestValidationError

from proasset.db import get_session


@pytest.mark.parametrize("exc", [RequestValidationError([]), HTTPException(status_code=404)])
def test_expected_errors_pass_through_quietly(caplog, exc):
    gen = get_session()
    next(gen)
    with caplog.at_level(logging.ERROR, logger="proasset.db"):
        with pytest.raises(type(exc)):
            gen.throw(exc)
    assert caplog.records == []


def test_unexpected_errors_are_logged(caplog):
    gen = get_session()
    next(gen)
    with caplog.at_level(logging.ERROR, logger="proasset.db"):
        with pytest.raises(RuntimeError):
            gen.throw(RuntimeError("boom"))
    assert "session rolled back" in caplog.text
