from abc import abstractmethod

import httpx

from shared.clients.ClientInterface import ClientInterface
from shared.errors import DependencyError
from shared.helper.HelperConfig import HelperConfig


class HttpClientInterface(ClientInterface):
    """Base for clients that talk to an HTTP backend through a shared httpx.AsyncClient."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.timeout = helper_config.get_number_val(f"{self.get_client_type().upper()}_TIMEOUT", default=300.0)

        self._client: httpx.AsyncClient | None = None

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ AUTH ##################
    @abstractmethod
    def _get_auth_header(self) -> dict:
        """
        Returns the authentication header for the client backend server, if an API key is set.

        Returns:
            dict: A dictionary containing the auth data
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_base_url(self) -> str:
        """
        Returns the base URL of the client backend server from env variables

        Returns:
            str: The base URL of the client backend server (e.g. "http://localhost:11434")
        """
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        """
        Returns the endpoint path for healthcheck requests.

        Returns:
            str: The endpoint path for healthcheck requests (e.g. "/healthz")
        """
        pass

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self) -> None:
        """Initialise the HTTP client."""
        self._client = httpx.AsyncClient(timeout=self.timeout)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def do_healthcheck(self) -> bool:
        """Check if the client backend is healthy by sending a test request.

        Returns:
            bool: True if the backend answered with a 2xx status.
        """
        try:
            response = await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck())
        except DependencyError:
            return False
        return response.is_success

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    async def do_request(
        self,
        method: str = "GET",
        json: dict | None = None,
        endpoint: str = "",
        raise_on_error: bool = False,
    ) -> httpx.Response:
        """Send an HTTP request to the client backend.

        Args:
            method: HTTP method (GET or POST for the Ollama API).
            json: JSON body, sent only when given.
            endpoint: Path to append to the base URL (leading slash optional).
            raise_on_error: Raise instead of returning a non-2xx response.

        Returns:
            httpx.Response: The raw response.

        Raises:
            DependencyError: If the client is not booted, the transport fails, or the
                response has a non-2xx status (when raise_on_error is True).
        """
        if self._client is None:
            raise DependencyError("HTTP client not initialised. Call boot() before making requests.")

        endpoint = "/" + endpoint.strip().lstrip("/") if endpoint.strip() else ""

        kwargs: dict = {
            "url": f"{self._get_base_url().rstrip('/')}{endpoint}",
            "headers": self._get_auth_header(),
            "timeout": self.timeout,
        }
        # httpx sets Content-Type itself
        if json is not None:
            kwargs["json"] = json

        try:
            response = await self._client.request(method, **kwargs)
        except httpx.HTTPError as e:
            self.logging.error("Request to %s failed: %s", kwargs["url"], e)
            raise DependencyError(
                f"{self.get_client_type().upper()} backend '{self.get_engine_name()}' is not reachable: {e}",
                details={"url": kwargs["url"]},
            ) from e

        if raise_on_error and not response.is_success:
            self.logging.error(
                "Request to %s failed with status %d: %s",
                kwargs["url"],
                response.status_code,
                response.text[:200],
            )
            raise DependencyError(
                f"Request to {kwargs['url']} failed with status {response.status_code}",
                details={"status": response.status_code, "body": response.text[:200]},
            )

        return response
