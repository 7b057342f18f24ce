from __future__ import annotations

import warnings

import jwt
import pytest
from pydantic import ValidationError

from agencydesk_api.settings import DEV_JWT_SECRET, Settings


def test_production_requires_real_jwt_secret() -> None:
    with pytest.raises(ValidationError, match="JWT_SECRET"):
        Settings(_env_file=None, app_env="production")


def test_s3_storage_requires_bucket() -> None:
    with pytest.raises(ValidationError, match="S3_BUCKET"):
        Settings(_env_file=None, upload_storage="s3")


def test_production_settings_accept_explicit_secret() -> None:
    configured = Settings(_env_file=None, app_env="production", jwt_secret="a-long-random-secret")

    assert configured.jwt_expires_hours == 168
    assert configured.live_channel_mode == "redis"


def test_dev_jwt_secret_is_long_enough_for_hs256() -> None:
    assert Settings(_env_file=None).jwt_secret == DEV_JWT_SECRET
    assert len(DEV_JWT_SECRET.encode()) >= 32

    with warnings.catch_warnings():
        warnings.simplefilter("error")
        token = jwt.encode({"sub": "someone"}, DEV_JWT_SECRET, algorithm="HS256")
        assert jwt.decode(token, DEV_JWT_SECRET, algorithms=["HS256"])["sub"] == "someone"
