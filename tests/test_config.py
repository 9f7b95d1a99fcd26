"""
tests/test_config.py -- SECRET_KEY policy enforced by core.config.Settings.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from core.config import MIN_SECRET_KEY_BYTES, Settings


def test_debug_generates_key() -> None:
    settings = Settings(_env_file=None, debug=True, secret_key="")
    assert len(settings.secret_key.encode("utf-8")) >= MIN_SECRET_KEY_BYTES


def test_production_requires_key() -> None:
    with pytest.raises(ValidationError, match="SECRET_KEY is required"):
        Settings(_env_file=None, debug=False, secret_key="")


@pytest.mark.parametrize("debug", [True, False])
def test_short_key_rejected_in_every_mode(debug: bool) -> None:
    with pytest.raises(ValidationError, match="at least 32 bytes"):
        Settings(_env_file=None, debug=debug, secret_key="x" * (MIN_SECRET_KEY_BYTES - 1))


def test_token_lifetime_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, secret_key="x" * MIN_SECRET_KEY_BYTES, token_expire_seconds=0)


def test_defaults() -> None:
    settings = Settings(_env_file=None, secret_key="x" * MIN_SECRET_KEY_BYTES)
    assert settings.token_expire_seconds == 3600
    assert settings.default_tenant == ""
    assert settings.allowed_hosts == ["*"]
