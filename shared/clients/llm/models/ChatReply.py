from pydantic import BaseModel


class ChatReply(BaseModel):
    """The assistant reply of a non-streaming chat request.

    Attributes:
        content:           The reply text.
        model:             Model identifier the backend reports, if any.
        prompt_tokens:     Tokens consumed by the prompt, if reported.
        completion_tokens: Tokens generated for the reply, if reported.
    """

    content: str
    model: str | None = None
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
