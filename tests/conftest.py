"""Shared fixtures: configuration, a mocked R2 client and a fake HTTP session."""

from typing import Dict, Optional
from unittest.mock import MagicMock

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from image2url.config import load_config
from image2url.storage import R2Storage
from image2url.tools import ImageTools

ENVIRON = {
    "R2_ACCOUNT_ID": "acct123",
    "R2_ACCESS_KEY_ID": "AKIDEXAMPLE",
    "R2_SECRET_ACCESS_KEY": "secret",
    "R2_BUCKET_NAME": "images-bucket",
    "R2_PUBLIC_URL": "https://cdn.example.com",
}


def _make_response(
    status_code: int = 200,
    body: bytes = b"",
    headers: Optional[Dict[str, str]] = None,
    reason: str = "OK",
) -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    response.reason = reason
    response._content = body
    response.headers = CaseInsensitiveDict(headers or {})
    return response


@pytest.fixture
def make_response():
    """Build real requests.Response objects for the fake session."""
    return _make_response


@pytest.fixture
def environ():
    return dict(ENVIRON)


@pytest.fixture
def config(environ):
    return load_config(environ)


@pytest.fixture
def s3_client():
    """Stands in for the boto3 S3 client."""
    return MagicMock()


@pytest.fixture
def storage(config, s3_client):
    return R2Storage(config, client=s3_client)


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def tools(config, storage, session):
    return ImageTools(config, storage, session=session)
