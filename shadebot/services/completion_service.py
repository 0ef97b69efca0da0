"""Completion service: intent classification, edge-case detection and free-text generation.

Every call returns a Result so that a provider failure is distinguishable from
a low-confidence answer. Callers decide what the safe default is.
"""

import json
import re
import time
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, ValidationError

from shadebot.logging_config import get_logger
from shadebot.schemas.intent import IntentDefinition
from shadebot.services.llm.base import LLMProvider, LLMProviderError
from shadebot.services.result import Result

logger = get_logger("completion_service")

CLASSIFY_PROMPT = """Eres un clasificador de intenciones para un chatbot de ventas de malla sombra.

Intenciones disponibles:
{intents}

Contexto de la conversación:
- Intención anterior: {last_intent}
- Campaña activa: {campaign_ref}

Mensaje del cliente: "{message}"

Responde ÚNICAMENTE con este formato JSON:
{{"intent": "<clave>", "confidence": 0.0-1.0, "reasoning": "breve explicación"}}"""

EDGE_CASE_PROMPT = """Analiza el mensaje de un cliente y clasifícalo en una categoría:

UNINTELLIGIBLE: incomprensible, spam o sin contenido útil ("asdfgh", "?????", emojis sin contexto).
No lo son las respuestas cortas en contexto ("si", "de esa medida") ni errores de tipeo menores.

COMPLEX: requiere análisis técnico avanzado o conocimiento muy especializado
(áreas irregulares con tensores, certificaciones para exportación).

NORMAL: cualquier pregunta que un chatbot de ventas básico puede responder. Prefiere esta categoría en casos dudosos.

Responde ÚNICAMENTE con un JSON:
{"category": "UNINTELLIGIBLE" | "COMPLEX" | "NORMAL", "confidence": 0.0-1.0, "reason": "breve explicación"}"""


@dataclass
class Classification:
    intent: str
    confidence: float
    reasoning: str = ""


@dataclass
class EdgeCaseVerdict:
    is_unintelligible: bool
    is_complex: bool
    confidence: float
    reason: str = ""

    @property
    def is_normal(self) -> bool:
        return not (self.is_unintelligible or self.is_complex)


UNKNOWN_CLASSIFICATION = Classification(intent="unknown", confidence=0.0, reasoning="fallback")
NORMAL_EDGE_CASE = EdgeCaseVerdict(is_unintelligible=False, is_complex=False, confidence=0.0)


class _ClassificationPayload(BaseModel):
    intent: str
    confidence: float = 0.0
    reasoning: str = ""


class _EdgeCasePayload(BaseModel):
    category: str
    confidence: float = 0.0
    reason: str = ""


def _extract_json(content: str) -> dict[str, Any]:
    text = (content or "").strip()
    fenced = re.search(r"```(?:json)?\s*(\{.*\})\s*```", text, re.DOTALL)
    if fenced:
        text = fenced.group(1)
    elif not text.startswith("{"):
        braces = re.search(r"\{.*\}", text, re.DOTALL)
        if braces:
            text = braces.group(0)
    return json.loads(text)


class CompletionService:
    def __init__(
        self,
        provider: LLMProvider,
        model: Optional[str] = None,
        fast_model: Optional[str] = None,
    ):
        self.provider = provider
        self.model = model
        self.fast_model = fast_model or model

    def _timed_generate(self, stage: str, messages: list[dict], **kwargs):
        started = time.monotonic()
        try:
            return self.provider.generate(messages, **kwargs)
        finally:
            logger.info(
                "Timing",
                extra={
                    "context": {
                        "stage": stage,
                        "elapsed_ms": round((time.monotonic() - started) * 1000, 2),
                        "model_name": kwargs.get("model"),
                    }
                },
            )

    def classify(
        self,
        message: str,
        context: dict[str, Any],
        intents: list[IntentDefinition],
    ) -> Result[Classification]:
        allowed = {intent.key for intent in intents}
        intent_lines = "\n".join(f"- {intent.key}: {intent.description}" for intent in intents)
        prompt = CLASSIFY_PROMPT.format(
            intents=intent_lines,
            last_intent=context.get("last_intent") or "ninguna",
            campaign_ref=context.get("campaign_ref") or "ninguna",
            message=message,
        )
        try:
            response = self._timed_generate(
                "classify_llm_ms",
                [{"role": "user", "content": prompt}],
                model=self.fast_model,
                temperature=0.2,
                max_tokens=150,
                json_mode=True,
            )
        except LLMProviderError as exc:
            logger.warning(f"Intent classification failed: {exc}")
            return Result.failure(str(exc), code="llm_error")

        try:
            payload = _ClassificationPayload.model_validate(_extract_json(response.content))
        except (ValueError, ValidationError) as exc:
            logger.warning(f"Intent classification reply unparseable: {exc}")
            return Result.failure(str(exc), code="parse_error")

        intent = payload.intent.strip().lower()
        if intent not in allowed:
            logger.info(
                "Classifier returned undefined intent",
                extra={"context": {"intent": intent}},
            )
            return Result.success(Classification(intent="unknown", confidence=0.0, reasoning=payload.reasoning))

        confidence = min(max(payload.confidence, 0.0), 1.0)
        return Result.success(Classification(intent=intent, confidence=confidence, reasoning=payload.reasoning))

    def detect_edge_case(self, message: str) -> Result[EdgeCaseVerdict]:
        try:
            response = self._timed_generate(
                "edge_case_llm_ms",
                [
                    {"role": "system", "content": EDGE_CASE_PROMPT},
                    {"role": "user", "content": message},
                ],
                model=self.fast_model,
                temperature=0.3,
                max_tokens=120,
                json_mode=True,
            )
        except LLMProviderError as exc:
            logger.warning(f"Edge case detection failed: {exc}")
            return Result.failure(str(exc), code="llm_error")

        try:
            payload = _EdgeCasePayload.model_validate(_extract_json(response.content))
        except (ValueError, ValidationError) as exc:
            logger.warning(f"Edge case reply unparseable: {exc}")
            return Result.failure(str(exc), code="parse_error")

        category = payload.category.strip().upper()
        return Result.success(
            EdgeCaseVerdict(
                is_unintelligible=category == "UNINTELLIGIBLE",
                is_complex=category == "COMPLEX",
                confidence=min(max(payload.confidence, 0.0), 1.0),
                reason=payload.reason,
            )
        )

    def generate(self, messages: list[dict], temperature: float = 0.7, max_tokens: int = 400) -> Result[str]:
        try:
            response = self._timed_generate(
                "generate_llm_ms",
                messages,
                model=self.model,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except LLMProviderError as exc:
            logger.warning(f"Generation failed: {exc}")
            return Result.failure(str(exc), code="llm_error")

        content = (response.content or "").strip()
        if not content:
            return Result.failure("empty completion", code="empty")
        return Result.success(content)
