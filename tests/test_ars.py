"""Test ARS client."""
import pytest
from pytest_httpx import HTTPXMock

from kgpath.ars import ARSClient, ARSRequestError, environment_url

from tests.helpers.messages import treats_message


def test_environment_url():
    """Unknown environments fall back to prod."""
    assert environment_url("test") == "https://ars.test.transltr.io"
    assert environment_url("prod") == "https://ars-prod.transltr.io"
    assert environment_url("staging") == "https://ars-prod.transltr.io"


@pytest.mark.asyncio
async def test_fetch_message(httpx_mock: HTTPXMock):
    """Messages are fetched by primary key."""
    httpx_mock.add_response(
        url="https://ars.test.transltr.io/ars/api/messages/abc?trace=y",
        json={"fields": {"data": {"message": treats_message()}}},
    )
    response = await ARSClient("test").fetch_message("abc")
    assert "fields" in response


@pytest.mark.asyncio
async def test_fetch_merged_version(httpx_mock: HTTPXMock):
    """The merged version is preferred when the ARS names one."""
    httpx_mock.add_response(
        url="https://ars-prod.transltr.io/ars/api/messages/abc?trace=y",
        json={"pk": "abc", "merged_version": "def"},
    )
    httpx_mock.add_response(
        url="https://ars-prod.transltr.io/ars/api/messages/def",
        json={"fields": {"data": {"message": treats_message()}}},
    )
    response = await ARSClient("prod").fetch_message("abc")
    assert response["fields"]["data"]["message"]["results"]


@pytest.mark.asyncio
async def test_fetch_error(httpx_mock: HTTPXMock):
    """HTTP errors become ARSRequestError."""
    httpx_mock.add_response(
        url="https://ars-prod.transltr.io/ars/api/messages/abc?trace=y",
        status_code=404,
    )
    with pytest.raises(ARSRequestError):
        await ARSClient().fetch_message("abc")


@pytest.mark.asyncio
async def test_fetch_bad_json(httpx_mock: HTTPXMock):
    """Non-JSON bodies become ARSRequestError."""
    httpx_mock.add_response(
        url="https://ars-prod.transltr.io/ars/api/messages/abc?trace=y",
        text="<html>",
    )
    with pytest.raises(ARSRequestError):
        await ARSClient("prod").fetch_message("abc")
