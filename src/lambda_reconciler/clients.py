"""Long-lived aioboto3 clients for IAM and Lambda."""

from typing import Any

import aioboto3


class AwsClients:
    """
    Holds one aioboto3 session with entered IAM and Lambda clients.

    The clients are created once per run and injected into the components
    that need them. Supports both AWS and LocalStack/moto: when endpoint_url
    is provided, every call goes to that endpoint.

    Example:
        async with AwsClients(region="us-east-1") as clients:
            engine = ReconciliationEngine.from_clients(config, clients.iam, clients.lambda_)
    """

    def __init__(
        self,
        region: str | None = None,
        endpoint_url: str | None = None,
    ) -> None:
        self.region = region
        self.endpoint_url = endpoint_url
        self._session: aioboto3.Session | None = None
        self._iam: Any = None
        self._lambda: Any = None

    def _client_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {}
        if self.region:
            kwargs["region_name"] = self.region
        if self.endpoint_url:
            kwargs["endpoint_url"] = self.endpoint_url
        return kwargs

    async def open(self) -> None:
        """Create the session and enter both clients."""
        if self._session is None:
            self._session = aioboto3.Session()

        kwargs = self._client_kwargs()
        if self._iam is None:
            self._iam = await self._session.client("iam", **kwargs).__aenter__()
        if self._lambda is None:
            self._lambda = await self._session.client("lambda", **kwargs).__aenter__()

    @property
    def iam(self) -> Any:
        if self._iam is None:
            raise RuntimeError("AwsClients is not open")
        return self._iam

    @property
    def lambda_(self) -> Any:
        if self._lambda is None:
            raise RuntimeError("AwsClients is not open")
        return self._lambda

    async def close(self) -> None:
        """Exit both clients and drop the session."""
        try:
            for client in (self._iam, self._lambda):
                if client is not None:
                    await client.__aexit__(None, None, None)
        finally:
            self._iam = None
            self._lambda = None
            self._session = None

    async def __aenter__(self) -> "AwsClients":
        """Enter async context manager."""
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Exit async context manager."""
        await self.close()
