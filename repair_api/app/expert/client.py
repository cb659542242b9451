from dataclasses import dataclass
from typing import List, Optional, Union

import openai
import structlog
from openai import AsyncOpenAI

from app.diagnosis.parser import parse_diagnosis_response
from app.diagnosis.schemas import MAX_SOURCE_URLS, DiagnosisResult
from app.expert import prompts

logger = structlog.get_logger()


@dataclass(frozen=True)
class LlmOk:
    text: str


@dataclass(frozen=True)
class LlmFailed:
    reason: str


LlmResult = Union[LlmOk, LlmFailed]


@dataclass(frozen=True)
class LlmDiagnosis:
    result: DiagnosisResult
    raw_text: str


DiagnosisOutcome = Union[LlmDiagnosis, LlmFailed]


class ExpertLLMClient:
    """
    Client for the chat-completion model that writes appliance diagnoses.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        temperature: float = 0.2,
        max_tokens: int = 1500,
        max_retries: int = 1,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client = AsyncOpenAI(
            api_key=api_key, base_url=base_url, max_retries=max_retries
        )
        logger.info("initialized_expert_llm_client", base_url=base_url, model=self.model)

    def build_prompt(
        self,
        appliance: str,
        brand: str,
        problem: str,
        error_code: Optional[str],
        context: str = "",
    ) -> str:
        return prompts.DIAGNOSIS_USER_TEMPLATE.format(
            appliance=appliance,
            brand=brand,
            problem=problem,
            error_code=error_code or prompts.NO_ERROR_CODE,
            context=context or prompts.NO_CONTEXT,
        )

    async def complete(self, user_prompt: str) -> LlmResult:
        """Run one chat completion.  API errors and empty replies fail softly."""
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": prompts.SYSTEM_PROMPT},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except openai.APIStatusError as e:
            logger.error("llm_request_rejected", status=e.status_code, error=str(e))
            return LlmFailed(f"status_{e.status_code}")
        except openai.OpenAIError as e:
            logger.error("llm_request_failed", error=str(e))
            return LlmFailed("request_error")

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            logger.warning("llm_empty_response", model=self.model)
            return LlmFailed("empty_content")

        logger.info("llm_response_received", raw_content_length=len(content))
        return LlmOk(content)

    async def generate_diagnosis(
        self,
        appliance: str,
        brand: str,
        problem: str,
        error_code: Optional[str],
        context: str = "",
        source_urls: Optional[List[str]] = None,
    ) -> DiagnosisOutcome:
        """
        Build the prompt, call the model and parse its sectioned reply.
        Up to three search source URLs are attached to the parsed result.
        """
        prompt = self.build_prompt(appliance, brand, problem, error_code, context)
        logger.info(
            "generating_diagnosis_start",
            appliance=appliance,
            brand=brand,
            error_code=error_code,
            has_context=bool(context),
        )

        outcome = await self.complete(prompt)
        if isinstance(outcome, LlmFailed):
            return outcome

        result = parse_diagnosis_response(
            outcome.text, appliance, brand, problem, error_code
        )
        if source_urls:
            result = result.model_copy(
                update={"source_urls": list(source_urls[:MAX_SOURCE_URLS])}
            )
        return LlmDiagnosis(result=result, raw_text=outcome.text)

    async def close(self) -> None:
        await self.client.close()
