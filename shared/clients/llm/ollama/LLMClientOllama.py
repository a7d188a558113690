from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.llm.models.ChatReply import ChatReply
from shared.errors import DependencyError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class LLMClientOllama(LLMClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="http://localhost:11434", val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Ollama"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="http://localhost:11434"),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        # root on ollama
        return ""

    def get_endpoint_embedding(self) -> str:
        return "/api/embed"

    def get_endpoint_model_details(self) -> str:
        return "/api/show"

    def _get_endpoint_chat(self) -> str:
        return "/api/chat"

    ################ PAYLOAD BUILDER ##################
    def get_embed_payload(self, texts: list[str]) -> dict:
        """Build the Ollama embedding request body.

        Args:
            texts (list[str]): The texts to embed.

        Returns:
            dict: {"model": "...", "input": [...]}
        """
        return {"model": self.embed_model, "input": texts}

    def get_chat_payload(self, messages: list[dict]) -> dict:
        """Build the Ollama chat request body.

        Args:
            messages (list[dict]): Ordered role/content messages.

        Returns:
            dict: {"model": "...", "messages": [...], "stream": False}
        """
        return {"model": self.chat_model, "messages": messages, "stream": False}

    ##########################################
    ################# OTHER ##################
    ##########################################

    def extract_vector_size_from_model_info(self, model_info: dict) -> int:
        info: dict = model_info.get("model_info", {})
        for key, value in info.items():
            if key.endswith(".embedding_length"):
                return int(value)
        raise DependencyError("Could not determine embedding vector size for model '%s'" % self.embed_model)

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract embedding vectors from an Ollama /api/embed response.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            list[list[float]]: Embedding vectors in input order.

        Raises:
            DependencyError: If the response does not contain embeddings.
        """
        embeddings = response_data.get("embeddings")
        if not embeddings or not embeddings[0]:
            raise DependencyError(
                "Ollama embed returned no embeddings.",
                details={"response_keys": list(response_data.keys())},
            )
        return embeddings

    def extract_chat_reply(self, response_data: dict) -> ChatReply:
        """Extract the assistant reply from an Ollama /api/chat response.

        /api/chat answers with {"message": {"content": ...}}; the /api/generate
        shape {"response": ...} is accepted too.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            ChatReply: Reply text with prompt_eval_count/eval_count as token usage.

        Raises:
            DependencyError: If neither shape carries any text.
        """
        message = response_data.get("message") or {}
        content = message.get("content") or response_data.get("response")
        if not content:
            raise DependencyError(
                "Ollama chat returned no content.",
                details={"response_keys": list(response_data.keys())},
            )
        return ChatReply(
            content=content,
            model=response_data.get("model"),
            prompt_tokens=response_data.get("prompt_eval_count"),
            completion_tokens=response_data.get("eval_count"),
        )
