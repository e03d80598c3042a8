"""Text-generation adapters: the narrative review stage and its siblings."""

import logging
from typing import Dict, Optional

from ..core.config import LLMConfig
from ..core.models import AnalysisRequest, AdapterFailure, AdapterOutcome, FailureReason, NarrativeResult
from ..core.registry import ALL_LANGUAGES, AdapterSpec
from .groq_client import GroqClient, GroqError, AuthMissingError
from .prompts import NARRATIVE_TEMPLATE, PromptTemplate


logger = logging.getLogger(__name__)

NARRATIVE_ADAPTER_ID = "narrative"
NARRATIVE_UNAVAILABLE = "AI review unavailable"


class TextGenerationAdapter:
    """Sends one rendered template to Groq and reports the outcome as data."""

    def __init__(self,
                 adapter_id: str,
                 llm_config: LLMConfig,
                 unavailable_prefix: str,
                 client: Optional[GroqClient] = None):
        self.adapter_id = adapter_id
        self.llm_config = llm_config
        self.unavailable_prefix = unavailable_prefix
        self._client = client
        self.logger = logging.getLogger(f"{__name__}.{adapter_id}")

    @property
    def auth_missing_message(self) -> str:
        return f"{self.unavailable_prefix}: GROQ_API_KEY is not configured."

    def explain(self, detail: str) -> str:
        return f"{self.unavailable_prefix}: {detail}"

    def _get_client(self) -> GroqClient:
        if self._client is None:
            if not self.llm_config.has_credentials:
                raise AuthMissingError("Groq API key not provided")
            self._client = GroqClient(
                api_key=self.llm_config.api_key,
                model=self.llm_config.model,
                timeout=self.llm_config.timeout_seconds,
                max_retries=self.llm_config.max_retries,
                retry_delay=self.llm_config.retry_delay,
                context_window=self.llm_config.context_window,
            )
        return self._client

    def generate(self,
                 template: PromptTemplate,
                 variables: Dict[str, str],
                 max_tokens: Optional[int] = None,
                 temperature: Optional[float] = None,
                 timeout_seconds: Optional[float] = None) -> AdapterOutcome:
        """Render ``template`` and complete it. Never raises."""
        try:
            client = self._get_client()
            response = client.chat_completion(
                template.render(**variables),
                max_tokens=max_tokens or template.max_tokens,
                temperature=template.temperature if temperature is None else temperature,
                timeout=timeout_seconds or template.timeout_seconds or self.llm_config.timeout_seconds,
            )
            text = (response.content or "").strip()
            if not text:
                return AdapterFailure(
                    adapter_id=self.adapter_id,
                    reason=FailureReason.MALFORMED_RESPONSE,
                    message=self.explain("the model returned an empty response"),
                )
            self.logger.info(f"{self.adapter_id} generated {response.tokens_used} tokens with {template.name}")
            return NarrativeResult(
                adapter_id=self.adapter_id,
                text=text,
                model=response.model,
                tokens_used=response.tokens_used,
            )
        except AuthMissingError as e:
            self.logger.warning(f"{self.adapter_id} skipped: {e}")
            message = self.auth_missing_message if not self.llm_config.has_credentials else self.explain(str(e))
            return AdapterFailure(adapter_id=self.adapter_id, reason=e.reason, message=message)
        except GroqError as e:
            self.logger.warning(f"{self.adapter_id} failed ({e.reason.value}): {e}")
            return AdapterFailure(adapter_id=self.adapter_id, reason=e.reason, message=self.explain(str(e)))
        except Exception as e:
            self.logger.exception(f"{self.adapter_id} crashed")
            return AdapterFailure(
                adapter_id=self.adapter_id,
                reason=FailureReason.INTERNAL_ERROR,
                message=self.explain(str(e)),
            )


class NarrativeAdapter(TextGenerationAdapter):
    """Mandatory free-text security review that runs for every language."""

    def __init__(self, llm_config: LLMConfig, client: Optional[GroqClient] = None):
        super().__init__(NARRATIVE_ADAPTER_ID, llm_config, NARRATIVE_UNAVAILABLE, client=client)

    def spec(self) -> AdapterSpec:
        return AdapterSpec(
            id=self.adapter_id,
            target_languages=frozenset({ALL_LANGUAGES}),
            invoke=self.invoke,
            timeout_ms=self.llm_config.timeout_seconds * 1000,
            mandatory=True,
        )

    def invoke(self, request: AnalysisRequest) -> AdapterOutcome:
        return self.generate(
            NARRATIVE_TEMPLATE,
            {"language": request.language, "code": request.source_text},
            max_tokens=self.llm_config.narrative_max_tokens,
            temperature=self.llm_config.narrative_temperature,
        )
