from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    Represents a single configuration parameter a client reads from the environment.

    Attributes:
        env_key (str): The client-relative key, e.g. "DSN" for STORE_POSTGRES_DSN.
        val_type (str): The expected value type: "string", "number" or "bool".
        default (str | int | float | bool | None): Value used when the variable is not set.
            None marks the variable as required.
    """

    env_key: str
    val_type: str
    default: str | int | float | bool | None = None
