# storefront/services/classifier.py
import json
import re
from dataclasses import dataclass
from typing import List, Optional

from pydantic import ValidationError
from requests import RequestException

from storefront.domain.errors import RateLimitedError, UpstreamError
from storefront.domain.schemas import ClassificationResult
from storefront.services.classification_cache import ClassificationCache, get_classification_cache
from storefront.services.llm_client import ChatCompletionProvider, groq_provider, huggingface_provider
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

PROMPT_TEMPLATE = """You are a product data parser for a shoe and streetwear store. Parse this product name and extract structured data.

Product: "{name}"

RULES:
1. Identify product type: sneaker, apparel (tees, hoodies, jackets, pants), accessory (socks, masks, bags, hats), or other
2. Extract brand name ONCE (don't duplicate, e.g., "Jordan Jordan" is wrong, just "Jordan")
3. Extract model name (Air Force 1, Dunk, 550, Tee, Hoodie, etc.)
4. Extract size if present (sneaker sizes like "7y", "8.5w", "12" OR apparel sizes "S", "M", "L", "XL", "2XL")
5. Extract colorway/color if present (Triple White, Bred, Onyx, Black, etc.)
6. Extract condition if mentioned: "used", "deadstock" (DS), or assume "new"
7. Extract variant label if present in parentheses like "(2)" or "(02)"

RESPOND WITH ONLY VALID JSON:
{{
  "cleanedName": "Display name without size/condition",
  "brand": "Single brand name",
  "model": "Model or product type",
  "productType": "sneaker" | "apparel" | "accessory" | "other",
  "size": "Size string or null",
  "colorway": "Color or null",
  "condition": "new" | "used" | "deadstock" | null,
  "variantLabel": "Variant like (2) or null",
  "confidence": "high" | "medium" | "low"
}}"""

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


def extract_json_object(text: str) -> Optional[dict]:
    """
    Pierwszy poprawny obiekt JSON w tekscie. Toleruje ```json ...``` oraz
    tekst przed/po obiekcie. None jesli nic sie nie parsuje.
    """
    if not text:
        return None
    cleaned = _FENCE_RE.sub("", text)
    decoder = json.JSONDecoder()
    start = cleaned.find("{")
    while start != -1:
        try:
            obj, _ = decoder.raw_decode(cleaned, start)
        except json.JSONDecodeError:
            start = cleaned.find("{", start + 1)
            continue
        if isinstance(obj, dict):
            return obj
        start = cleaned.find("{", start + 1)
    return None


def parse_classification(text: str) -> Optional[ClassificationResult]:
    data = extract_json_object(text)
    if data is None:
        return None
    try:
        return ClassificationResult.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Classifier output failed validation: {e.error_count()} error(s)")
        return None


@dataclass
class ClassifierOutcome:
    result: Optional[ClassificationResult] = None
    rate_limited: bool = False
    provider: Optional[str] = None
    cached: bool = False


class NameClassifier:
    """
    Adapter klasyfikatora nazw:
    - cache (wspolny na proces)
    - glowny dostawca, zapasowy tylko przy 429 glownego
    - nigdy nie rzuca, porazka = result None
    """

    def __init__(
        self,
        providers: List[ChatCompletionProvider] | None = None,
        cache: ClassificationCache | None = None,
    ):
        if providers is None:
            providers = [groq_provider(), huggingface_provider()]
        self.providers = providers
        self.cache = cache if cache is not None else get_classification_cache()

    def classify(self, raw_name: str) -> Optional[ClassificationResult]:
        return self.classify_with_status(raw_name).result

    def classify_with_status(self, raw_name: str) -> ClassifierOutcome:
        cached = self.cache.get(raw_name)
        if cached is not None:
            return ClassifierOutcome(result=cached, cached=True)

        enabled = [p for p in self.providers if p.enabled]
        if not enabled:
            logger.warning("No classifier provider configured, skipping classification")
            return ClassifierOutcome()

        prompt = PROMPT_TEMPLATE.format(name=raw_name.replace('"', "'"))
        rate_limited = False

        for index, provider in enumerate(enabled):
            #zapasowy dostawca tylko gdy poprzedni dostal 429
            if index > 0 and not rate_limited:
                break
            try:
                text = provider.complete(prompt)
            except RateLimitedError:
                logger.warning(f"Classifier provider {provider.name} rate limited")
                rate_limited = True
                continue
            except (UpstreamError, RequestException) as e:
                logger.error(f"Classifier provider {provider.name} failed: {e}")
                #glowny nadal w limicie, wiersz ma poczekac a nie trafic do "other"
                return ClassifierOutcome(rate_limited=rate_limited, provider=provider.name)

            result = parse_classification(text)
            if result is None:
                logger.warning(f"Could not parse classifier output for '{raw_name}'")
                return ClassifierOutcome(provider=provider.name)

            self.cache.set(raw_name, result)
            return ClassifierOutcome(result=result, provider=provider.name)

        return ClassifierOutcome(rate_limited=rate_limited)
