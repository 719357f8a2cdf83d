"""Tests for the shared aioboto3 client holder."""

from unittest.mock import AsyncMock, MagicMock, call, patch

import pytest

from lambda_reconciler.clients import AwsClients


def _mock_session() -> MagicMock:
    """aioboto3 session whose client() context managers yield named mocks."""
    session = MagicMock()
    entered: dict[str, MagicMock] = {}

    def client(service: str, **kwargs):
        ctx = MagicMock()
        ctx.__aenter__ = AsyncMock(return_value=MagicMock(name=service))
        ctx.__aexit__ = AsyncMock(return_value=None)
        entered[service] = ctx
        return ctx

    session.client.side_effect = client
    session.entered = entered
    return session


class TestAwsClients:
    """Tests for AwsClients."""

    @pytest.mark.asyncio
    async def test_open_creates_both_clients(self) -> None:
        session = _mock_session()
        with patch("lambda_reconciler.clients.aioboto3.Session", return_value=session):
            async with AwsClients(region="eu-west-1", endpoint_url="http://localhost:4566") as c:
                assert c.iam is session.entered["iam"].__aenter__.return_value
                assert c.lambda_ is session.entered["lambda"].__aenter__.return_value

        assert session.client.call_args_list == [
            call("iam", region_name="eu-west-1", endpoint_url="http://localhost:4566"),
            call("lambda", region_name="eu-west-1", endpoint_url="http://localhost:4566"),
        ]

    @pytest.mark.asyncio
    async def test_no_kwargs_by_default(self) -> None:
        session = _mock_session()
        with patch("lambda_reconciler.clients.aioboto3.Session", return_value=session):
            async with AwsClients():
                pass

        assert session.client.call_args_list == [call("iam"), call("lambda")]

    @pytest.mark.asyncio
    async def test_close_exits_clients(self) -> None:
        session = _mock_session()
        with patch("lambda_reconciler.clients.aioboto3.Session", return_value=session):
            clients = AwsClients(region="us-east-1")
            await clients.open()
            await clients.close()

        session.entered["iam"].__aexit__.assert_awaited_once_with(None, None, None)
        session.entered["lambda"].__aexit__.assert_awaited_once_with(None, None, None)
        with pytest.raises(RuntimeError, match="not open"):
            clients.iam

    @pytest.mark.asyncio
    async def test_open_is_idempotent(self) -> None:
        session = _mock_session()
        with patch("lambda_reconciler.clients.aioboto3.Session", return_value=session):
            clients = AwsClients()
            await clients.open()
            await clients.open()
            await clients.close()

        assert session.client.call_count == 2

    def test_not_open(self) -> None:
        clients = AwsClients()
        with pytest.raises(RuntimeError, match="not open"):
            clients.iam
        with pytest.raises(RuntimeError, match="not open"):
            clients.lambda_
