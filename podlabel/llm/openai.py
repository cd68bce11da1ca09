import json
from typing import Any, Optional

from openai import OpenAI, OpenAIError

from ..errors import ConfigError, NetworkError


def init_llm_openai(api_key: Optional[str], timeout: float = 120.0) -> OpenAI:
    """
    Initialize OpenAI LLM client.

    Args:
        api_key: OpenAI API key from the pipeline configuration
        timeout: Request timeout in seconds

    Returns:
        OpenAI LLM client instance

    Raises:
        ConfigError: If no API key is provided
    """
    if not api_key:
        raise ConfigError(["OPENAI_API_KEY is required to initialize the OpenAI client"])
    return OpenAI(api_key=api_key, timeout=timeout)


def request_json(client: OpenAI, model: str, instructions: str, text: str) -> Any:
    """
    Send one request and parse the model output as JSON.

    Raises:
        NetworkError: If the API call fails
        ValueError: If the output is empty or not valid JSON
    """
    try:
        response = client.responses.create(
            model=model,
            instructions=instructions,
            input=text,
        )
    except OpenAIError as e:
        raise NetworkError(f"OpenAI request failed: {e}") from e

    output = getattr(response, "output_text", None)
    if not output:
        raise ValueError("No response text received from the language model")
    return json.loads(output)
