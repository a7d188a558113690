from abc import abstractmethod

from shared.clients.HttpClientInterface import HttpClientInterface
from shared.clients.llm.models.ChatReply import ChatReply
from shared.errors import DependencyError, ValidationError
from shared.helper.HelperConfig import HelperConfig

# Value shipped in example env files; treated the same as an unset model
MODEL_PLACEHOLDER = "SET_ME"


class LLMClientInterface(HttpClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # model config
        self.embed_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_EMBED_MODEL", default="nomic-embed-text")
        self.chat_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_CHAT_MODEL", default="llama3.1:8b-instruct-q4_K_M")

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def _ensure_model(self, model: str | None, env_key: str) -> str:
        """Make sure a model identifier is configured before calling the backend.

        Args:
            model (str | None): The configured model identifier.
            env_key (str): Suffix of the environment variable, for the error message.

        Returns:
            str: The model identifier.

        Raises:
            ValidationError: If the model is unset or still the placeholder value.
        """
        if not model or model.strip() == MODEL_PLACEHOLDER:
            raise ValidationError(f"{self.get_client_type().upper()}_{env_key} is not set.")
        return model

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "llm"

    ################ ENDPOINTS ##################
    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """Returns the endpoint path for embedding requests (e.g. "/api/embed")."""
        pass

    @abstractmethod
    def get_endpoint_model_details(self) -> str:
        """Returns the endpoint path for model details requests (e.g. "/api/show")."""
        pass

    @abstractmethod
    def _get_endpoint_chat(self) -> str:
        """Returns the endpoint path for chat/completion requests (e.g. "/api/chat")."""
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, texts: list[str]) -> dict:
        """Build the backend-specific request body for an embedding request.

        Args:
            texts (list[str]): The texts to embed.

        Returns:
            dict: JSON-serialisable request body (e.g. {"model": "...", "input": [...]}).
        """
        pass

    @abstractmethod
    def get_chat_payload(self, messages: list[dict]) -> dict:
        """Build the backend-specific request body for a non-streaming chat request.

        Args:
            messages (list[dict]): Ordered messages (e.g. [{"role": "user", "content": "..."}]).

        Returns:
            dict: JSON-serialisable request body.
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_vector_size_from_model_info(self, model_info: dict) -> int:
        """Extracts the embedding vector size from the model information response.

        Args:
            model_info (dict): The raw response from the model details endpoint.

        Returns:
            int: The dimension of the embedding vectors produced by the model.
        """
        pass

    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract embedding vectors from a raw embedding API response.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the input texts.

        Raises:
            DependencyError: If the response carries no embeddings.
        """
        pass

    @abstractmethod
    def extract_chat_reply(self, response_data: dict) -> ChatReply:
        """Extract the assistant reply from a raw chat API response.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            ChatReply: The reply text plus whatever usage data the backend reports.

        Raises:
            DependencyError: If the response carries no reply text.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_fetch_embedding_vector_size(self) -> int:
        """Fetch the output vector dimension of the configured embedding model.

        Returns:
            int: The number of dimensions produced by the embedding model.

        Raises:
            DependencyError: If the backend cannot be reached or the dimension cannot be
                determined from the response.
        """
        model = self._ensure_model(self.embed_model, "EMBED_MODEL")
        response = await self.do_request(
            method="POST",
            json={"name": model},
            endpoint=self.get_endpoint_model_details(),
            raise_on_error=True,
        )
        return self.extract_vector_size_from_model_info(model_info=response.json())

    async def do_embed(self, texts: list[str] | str) -> list[list[float]]:
        """Send an embedding request and return the extracted vectors.

        Args:
            texts (list[str] | str): One or more texts to embed.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the inputs.

        Raises:
            ValidationError: If no embedding model is configured.
            DependencyError: If the request fails or returns no embeddings.
        """
        self._ensure_model(self.embed_model, "EMBED_MODEL")
        texts = [texts] if isinstance(texts, str) else texts
        body = self.get_embed_payload(texts)
        response = await self.do_request(method="POST", endpoint=self.get_endpoint_embedding(), json=body)
        if not response.is_success:
            self.logging.error(
                "Embedding request failed: status %d, body: %s",
                response.status_code,
                response.text[:200],
            )
            raise DependencyError(
                f"{self._get_engine_name()} embed failed: {response.status_code} {response.text[:200]}",
                details={"status": response.status_code},
            )
        return self.extract_embeddings_from_response(response.json())

    async def do_chat_reply(self, messages: list[dict]) -> ChatReply:
        """Send a non-streaming chat request and return the full reply.

        Args:
            messages (list[dict]): Ordered messages
                (e.g. [{"role": "system", "content": "..."}, {"role": "user", "content": "..."}]).

        Returns:
            ChatReply: The assistant reply and token usage, if reported.

        Raises:
            ValidationError: If no chat model is configured.
            DependencyError: If the request fails or the response has no reply text.
        """
        self._ensure_model(self.chat_model, "CHAT_MODEL")
        body = self.get_chat_payload(messages)
        response = await self.do_request(method="POST", endpoint=self._get_endpoint_chat(), json=body)
        if not response.is_success:
            self.logging.error(
                "Chat request failed: status %d, body: %s",
                response.status_code,
                response.text[:200],
            )
            raise DependencyError(
                f"{self._get_engine_name()} chat failed: {response.status_code} {response.text[:200]}",
                details={"status": response.status_code},
            )
        return self.extract_chat_reply(response.json())

    async def do_chat(self, messages: list[dict]) -> str:
        """Send a non-streaming chat request and return only the reply text."""
        reply = await self.do_chat_reply(messages)
        return reply.content
