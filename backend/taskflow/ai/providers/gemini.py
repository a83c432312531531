"""Google Gemini AI provider implementation."""

import time
from typing import List, Optional

from google import genai
from google.genai import types

from taskflow.ai.exceptions import AIConfigurationError, AIProviderError, AIRateLimitError
from taskflow.ai.providers.base import AIMessage, AIProvider, AIResponse, GenerationOptions


class GeminiProvider(AIProvider):
    """Google Gemini implementation.

    Example:
        ```python
        provider = GeminiProvider(api_key="...")
        response = await provider.complete(
            [AIMessage(role="user", content="Assess the delay risk of ...")],
            options=GenerationOptions(temperature=0.3),
        )
        print(response.content)
        ```
    """

    def __init__(
        self,
        api_key: str,
        default_model: str = "gemini-1.5-flash",
        timeout: float = 60.0,
    ):
        """Initialize the Gemini provider.

        Args:
            api_key: Google AI API key (GEMINI_API_KEY)
            default_model: Default model to use for requests
            timeout: Request timeout in seconds
        """
        self._api_key = api_key
        self._default_model = default_model
        self._timeout = timeout

    @property
    def provider_name(self) -> str:
        return "gemini"

    @property
    def default_model(self) -> str:
        return self._default_model

    def _build_contents(
        self,
        messages: List[AIMessage],
    ) -> tuple[Optional[str], list[types.Content]]:
        """Split out the system instruction and map roles to Gemini's.

        Gemini uses 'user' and 'model' roles (not 'assistant').
        """
        system_instruction = None
        contents = []

        for msg in messages:
            if msg.role == "system":
                system_instruction = msg.content
            else:
                role = "model" if msg.role == "assistant" else "user"
                contents.append(
                    types.Content(
                        role=role,
                        parts=[types.Part(text=msg.content)],
                    )
                )

        return system_instruction, contents

    def _build_config(
        self,
        options: GenerationOptions,
        system_instruction: Optional[str],
    ) -> types.GenerateContentConfig:
        config = types.GenerateContentConfig(
            temperature=options.temperature,
            max_output_tokens=options.max_tokens,
            top_k=options.top_k,
            top_p=options.top_p,
            response_mime_type=options.response_mime_type,
            safety_settings=[
                types.SafetySetting(
                    category=types.HarmCategory.HARM_CATEGORY_HARASSMENT,
                    threshold=types.HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
                )
            ],
        )
        if system_instruction:
            config.system_instruction = system_instruction
        return config

    async def complete(
        self,
        messages: List[AIMessage],
        model: Optional[str] = None,
        options: Optional[GenerationOptions] = None,
    ) -> AIResponse:
        """Generate a completion using Gemini.

        Raises:
            AIConfigurationError: If no API key is configured
            AIProviderError: If the Gemini API request fails
            AIRateLimitError: If rate limited by Google
        """
        if not self._api_key:
            raise AIConfigurationError("GEMINI_API_KEY")
        self._validate_messages(messages)

        model = model or self._default_model
        options = options or GenerationOptions()
        start_time = time.perf_counter()

        system_instruction, contents = self._build_contents(messages)

        try:
            # Fresh client per request avoids "client closed" errors across event loops
            client = genai.Client(
                api_key=self._api_key,
                http_options=types.HttpOptions(timeout=int(self._timeout * 1000)),
            )
            response = await client.aio.models.generate_content(
                model=model,
                contents=contents,
                config=self._build_config(options, system_instruction),
            )
        except Exception as e:
            error_str = str(e).lower()
            if ("rate" in error_str and "limit" in error_str) or "quota" in error_str or "429" in error_str:
                raise AIRateLimitError(
                    provider=self.provider_name,
                    message=str(e),
                    retry_after=None,
                ) from e
            raise AIProviderError(
                provider=self.provider_name,
                message=str(e),
                status_code=getattr(e, "code", None),
            ) from e

        if not response.candidates:
            raise AIProviderError(
                provider=self.provider_name,
                message="Invalid response structure from Gemini API",
            )

        latency_ms = int((time.perf_counter() - start_time) * 1000)

        usage = response.usage_metadata
        input_tokens = (usage.prompt_token_count or 0) if usage else 0
        output_tokens = (usage.candidates_token_count or 0) if usage else 0

        finish_reason = "stop"
        if response.candidates[0].finish_reason:
            finish_reason = response.candidates[0].finish_reason.name.lower()

        return AIResponse(
            content=response.text or "",
            model=model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            finish_reason=finish_reason,
            latency_ms=latency_ms,
        )
