import re
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import yaml

from shadebot.logging_config import get_logger
from shadebot.schemas.intent import IntentDefinition
from shadebot.services.completion_service import (
    NORMAL_EDGE_CASE,
    UNKNOWN_CLASSIFICATION,
    Classification,
    CompletionService,
    EdgeCaseVerdict,
)
from shadebot.services.extraction.dimensions import has_dimension_pattern
from shadebot.services.normalizer import normalize_for_matching

logger = get_logger("intent_service")

DEFAULT_INTENTS_PATH = Path(__file__).resolve().parent.parent / "data" / "intents.yaml"

GREETING_PHRASES = {
    "hola",
    "holi",
    "buenas",
    "buen día",
    "buen dia",
    "buenos días",
    "buenos dias",
    "buenas tardes",
    "buenas noches",
    "qué tal",
    "que tal",
    "hey",
    "saludos",
}

ACKNOWLEDGEMENT_PHRASES = {
    "ok",
    "okay",
    "okey",
    "oki",
    "vale",
    "perfecto",
    "sale",
    "va",
    "entendido",
    "de acuerdo",
    "listo",
    "excelente",
    "muy bien",
    "bien",
    "ah ok",
    "ya",
}

OPT_OUT_WHILE_CLOSED = {"no", "nop", "nope", "no gracias", "ok", "vale", "entendido"}

_GREETING_PREFIX = re.compile(
    r"^(hola+|holi|buen[oa]s?(\s+(d[ií]as?|tardes|noches))?|qu[eé]\s+tal|hey|saludos)\b[\s,.!¡]*"
)
_THANKS = re.compile(
    r"\b(gracias|muchas gracias|mil gracias|te agradezco|adi[oó]s|bye|hasta luego|nos vemos|hasta pronto|que est[eé]s? bien)\b"
)
_CONTINUATION = re.compile(
    r"\?|\b(pero|tambi[eé]n|adem[aá]s|otra|otro|cu[aá]nto|precio|medida|malla|rollo|env[ií]o|quiero|necesito)\b|\d"
)
_EMOJI_ONLY = re.compile(r"^[\W_]+$")

HUMAN_REQUEST_PATTERNS = (
    re.compile(r"\bhablar\s+con\s+(una\s+persona|alguien|un\s+humano|un\s+asesor|un\s+agente|un\s+vendedor|una\s+asesora)\b"),
    re.compile(r"\b(asesor|asesora|vendedor|vendedora|agente|ejecutivo)\s+(real|humano|por\s+favor)\b"),
    re.compile(r"\b(persona\s+real|atenci[oó]n\s+humana|un\s+humano|una\s+persona)\b"),
    re.compile(r"\b(me\s+atienda|que\s+me\s+llame|me\s+pueden\s+llamar|comunicarme\s+con)\b"),
    re.compile(r"^(asesor|humano|agente|operador)$"),
)

FRUSTRATION_PATTERNS = (
    re.compile(r"\bno\s+(me\s+)?(entiendes|entiende|entienden|ayudas|ayuda|sirves|sirve)\b"),
    re.compile(r"\bya\s+(te|les?)\s+(dije|lo\s+dije|pregunt[eé])\b"),
    re.compile(r"\b(p[eé]simo|p[eé]sima|qu[eé]\s+mal\s+servicio|mal\s+servicio|in[uú]til|harto|harta|fastidio)\b"),
    re.compile(r"\beres\s+un\s+(robot|bot)\b"),
    re.compile(r"\bno\s+contestas?\s+lo\s+que\b"),
)

PURCHASE_DEFERRAL_PATTERNS = (
    re.compile(r"\b(lo|la)\s+(voy\s+a\s+)?pens(o|ar[eé]|ar)\b"),
    re.compile(r"\b(luego|despu[eé]s|m[aá]s\s+tarde|ma[ñn]ana)\s+(te|les?)\s+(aviso|escribo|confirmo|digo|marco)\b"),
    re.compile(r"\b(lo|la)\s+(checo|consulto|platico)\b"),
    re.compile(r"\bte\s+aviso\b"),
)

BUYING_INTENT_PATTERNS = (
    re.compile(r"\bquiero\s+(comprar|pedir|ordenar|apartar)\b"),
    re.compile(r"\b(me\s+interesa|lo\s+quiero|la\s+quiero|me\s+la\s+llevo|me\s+lo\s+llevo)\b"),
    re.compile(r"\bc[oó]mo\s+(lo|la|le)\s+(compro|hago\s+para\s+comprar|pido)\b"),
    re.compile(r"\bd[oó]nde\s+(lo|la)\s+(compro|pido)\b"),
    re.compile(r"\b(quiero|necesito|ocupo)\s+(poner|colocar|instalar)\s+(una|un|la|el)\s+(malla|lona|toldo)\b"),
)

INSTALLATION_PATTERNS = (
    re.compile(r"\binstal(an|ar|aci[oó]n|ada|amos)\b"),
    re.compile(r"\bcoloca(n|r|ci[oó]n)\b"),
    re.compile(r"\bmontaje\b"),
    re.compile(r"\b(la|lo)s?\s+ponen\b"),
)

CATALOG_OVERVIEW_PATTERNS = (
    re.compile(r"\bqu[eé]\s+(productos|venden|manejan|tienen|ofrecen)\b"),
    re.compile(r"\bcat[aá]logo\b"),
    re.compile(r"\b(todos\s+los|sus)\s+productos\b"),
)

MEASURES_GENERIC_PATTERNS = (
    re.compile(r"\bqu[eé]\s+(medidas|tama[ñn]os)\b"),
    re.compile(r"\b(medidas|tama[ñn]os)\s+(tienen|manejan|hay)\b"),
    re.compile(r"\b(lista\s+de\s+)?precios\b"),
)

SHIPPING_PATTERNS = (re.compile(r"\b(env[ií]os?|entregas?|paqueter[ií]a|domicilio|mandan|env[ií]an)\b"),)
LOCATION_PATTERNS = (re.compile(r"\b(d[oó]nde\s+(est[aá]n|se\s+ubican|quedan)|direcci[oó]n|ubicaci[oó]n|tienda\s+f[ií]sica)\b"),)
PAYMENT_PATTERNS = (re.compile(r"\b(formas?\s+de\s+pago|tarjeta|transferencia|efectivo|meses\s+sin\s+intereses|pago\s+contra\s+entrega)\b"),)
COLOR_QUERY_PATTERNS = (re.compile(r"\bqu[eé]\s+colou?r(es)?\b|\bcolou?res\b|\bcolou?r\s+tienen\b"),)


def _matches(patterns, text: str) -> bool:
    return any(pattern.search(text) for pattern in patterns)


def is_greeting_message(text: str) -> bool:
    normalized = normalize_for_matching(text)
    if not normalized:
        return False
    return normalized in GREETING_PHRASES or bool(_GREETING_PREFIX.match(normalized))


def strip_greeting(text: str) -> str:
    """Remove a leading greeting and return whatever payload follows it."""
    normalized = normalize_for_matching(text)
    return _GREETING_PREFIX.sub("", normalized, count=1).strip(" ,.!¡")


def greeting_has_payload(text: str) -> bool:
    return bool(strip_greeting(text))


def is_acknowledgement_message(text: str) -> bool:
    raw = (text or "").strip()
    if raw and _EMOJI_ONLY.match(raw):
        return True
    return normalize_for_matching(text) in ACKNOWLEDGEMENT_PHRASES


def is_opt_out_message(text: str) -> bool:
    """Bare negative or acknowledgement; while closed this means "nothing else"."""
    return normalize_for_matching(text) in OPT_OUT_WHILE_CLOSED


def is_thanks_message(text: str) -> bool:
    return bool(_THANKS.search(normalize_for_matching(text)))


def has_continuation(text: str) -> bool:
    """A question or product request riding along with a thanks/farewell."""
    remainder = _THANKS.sub("", (text or "").lower())
    return bool(_CONTINUATION.search(remainder))


def is_farewell_message(text: str) -> bool:
    return is_thanks_message(text) and not has_continuation(text)


def is_human_request_message(text: str) -> bool:
    return _matches(HUMAN_REQUEST_PATTERNS, normalize_for_matching(text))


def is_frustration_message(text: str) -> bool:
    return _matches(FRUSTRATION_PATTERNS, normalize_for_matching(text))


def is_purchase_deferral(text: str) -> bool:
    return _matches(PURCHASE_DEFERRAL_PATTERNS, normalize_for_matching(text))


def is_buying_intent(text: str) -> bool:
    return _matches(BUYING_INTENT_PATTERNS, normalize_for_matching(text))


def is_installation_query(text: str) -> bool:
    """Installation question. Buying phrasing ("quiero poner una malla") is excluded."""
    if is_buying_intent(text):
        return False
    return _matches(INSTALLATION_PATTERNS, normalize_for_matching(text))


def is_catalog_overview(text: str) -> bool:
    return _matches(CATALOG_OVERVIEW_PATTERNS, normalize_for_matching(text))


def is_generic_measures_query(text: str) -> bool:
    return _matches(MEASURES_GENERIC_PATTERNS, normalize_for_matching(text))


def quick_classify(text: str) -> Optional[str]:
    """Deterministic label for unambiguous phrasing, or None.

    Buying intent is tested before installation so "quiero poner una malla"
    is a purchase, not a service question.
    """
    if is_human_request_message(text):
        return "human_request"
    if is_buying_intent(text):
        return "buying_intent"
    if is_installation_query(text):
        return "installation"
    normalized = normalize_for_matching(text)
    if _matches(PAYMENT_PATTERNS, normalized):
        return "payment_methods"
    if _matches(SHIPPING_PATTERNS, normalized):
        return "shipping"
    if _matches(LOCATION_PATTERNS, normalized):
        return "location"
    if _matches(COLOR_QUERY_PATTERNS, normalized):
        return "colors"
    return None


@lru_cache(maxsize=4)
def load_intent_definitions(path: Optional[str] = None) -> tuple[IntentDefinition, ...]:
    intents_path = Path(path) if path else DEFAULT_INTENTS_PATH
    with intents_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    definitions = tuple(IntentDefinition.model_validate(item) for item in raw.get("intents", []))
    logger.info(
        "Intent definitions loaded",
        extra={"context": {"path": str(intents_path), "count": len(definitions)}},
    )
    return definitions


@dataclass
class ProbabilisticResult:
    classification: Classification
    edge_case: EdgeCaseVerdict
    edge_case_skipped: bool = False


def _classify_safely(
    completion: CompletionService,
    message: str,
    context: dict[str, Any],
    intents: list[IntentDefinition],
) -> Classification:
    try:
        result = completion.classify(message, context, intents)
    except Exception as exc:
        logger.error(f"Intent classification error: {exc}", exc_info=True)
        return UNKNOWN_CLASSIFICATION
    if not result.ok:
        logger.warning(
            "Classification degraded to unknown",
            extra={"context": {"error_code": result.error_code}},
        )
    return result.unwrap_or(UNKNOWN_CLASSIFICATION)


def _detect_safely(completion: CompletionService, message: str) -> EdgeCaseVerdict:
    try:
        result = completion.detect_edge_case(message)
    except Exception as exc:
        logger.error(f"Edge case detection error: {exc}", exc_info=True)
        return NORMAL_EDGE_CASE
    if not result.ok:
        logger.warning(
            "Edge case detection degraded to normal",
            extra={"context": {"error_code": result.error_code}},
        )
    return result.unwrap_or(NORMAL_EDGE_CASE)


def needs_edge_case_check(message: str) -> bool:
    """A message with an explicit size is never unintelligible nor specialist-only."""
    return not has_dimension_pattern(message)


def run_probabilistic_tier(
    completion: CompletionService,
    message: str,
    context: dict[str, Any],
    intents: list[IntentDefinition],
    check_edge_case: bool = True,
) -> ProbabilisticResult:
    """Classify intent and detect edge cases; both calls run concurrently.

    Failures never propagate: classification degrades to unknown/0.0 and edge
    case detection to normal/0.0.
    """
    started = time.monotonic()
    if not check_edge_case:
        classification = _classify_safely(completion, message, context, intents)
        edge_case = NORMAL_EDGE_CASE
    else:
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="completion") as pool:
            edge_future = pool.submit(_detect_safely, completion, message)
            classify_future = pool.submit(_classify_safely, completion, message, context, intents)
            edge_case = edge_future.result()
            classification = classify_future.result()

    logger.info(
        "Intent classified",
        extra={
            "context": {
                "intent": classification.intent,
                "confidence": classification.confidence,
                "edge_case_checked": check_edge_case,
                "elapsed_ms": round((time.monotonic() - started) * 1000, 2),
            }
        },
    )
    return ProbabilisticResult(classification, edge_case, edge_case_skipped=not check_edge_case)
