"""AI helpers backed by Google Gemini.

The model is a translator, not a source of truth: whatever it returns is
reconciled against the categories stored in the database, and any category
name it invents is replaced by the fallback category.

Two operations:
- ``categorize_transaction`` suggests a category for a description and never
  raises; failures degrade to keyword rules and then to "Other".
- ``parse_natural_language_transaction`` turns free text into transaction
  fields for the user to confirm; failures raise ``TransactionParseError``.
"""

from __future__ import annotations

import datetime as dt
import json
import re
from typing import Dict, List, Optional, Protocol, Sequence

import google.generativeai as genai
import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .categorizer import fallback_category, match_category, suggest_category
from .config import DEFAULT_RULES, PAYMENT_METHODS
from .errors import AIConfigurationError, AIResponseError, AIServiceError, TransactionParseError
from .log import get_logger
from .settings import GeminiSettings

log = get_logger(__name__)

DEFAULT_CONFIDENCE = 0.7
KEYWORD_CONFIDENCE = 0.5
MAX_TAGS = 3

PAYMENT_METHOD_ALIASES: Dict[str, str] = {
    "cash": "Cash",
    "credit_card": "Credit Card",
    "credit card": "Credit Card",
    "debit_card": "Debit Card",
    "debit card": "Debit Card",
    "bank_transfer": "Bank Transfer",
    "bank transfer": "Bank Transfer",
    "gcash": "GCash",
    "paymaya": "PayMaya",
    "grabpay": "GrabPay",
    "grab pay": "GrabPay",
}

_FENCE_RE = re.compile(r"```(?:json)?\n?|\n?```")
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


class TextGenerator(Protocol):
    def generate(self, prompt: str) -> str: ...


class GeminiClient:
    """Minimal wrapper so the rest of the module only sees ``generate``."""

    def __init__(self, settings: GeminiSettings):
        self._settings = settings
        self._model = None
        if not settings.api_key:
            log.warning("gemini_api_key_missing", hint="set GEMINI_API_KEY to enable AI features")

    def _get_model(self):
        if self._model is None:
            genai.configure(api_key=self._settings.api_key)
            self._model = genai.GenerativeModel(
                model_name=self._settings.model_name,
                generation_config={
                    "temperature": self._settings.temperature,
                    "max_output_tokens": self._settings.max_tokens,
                },
            )
        return self._model

    def generate(self, prompt: str) -> str:
        if not self._settings.api_key:
            raise AIConfigurationError("GEMINI_API_KEY is not set. Please add it to your environment or .env file.")
        try:
            response = self._get_model().generate_content(prompt)
            text = response.text
        except Exception as exc:  # noqa: BLE001 - SDK raises many unrelated types
            raise AIServiceError(f"Gemini request failed: {exc}") from exc
        if not text or not text.strip():
            raise AIResponseError("Empty response from AI model")
        return text


class CategorySuggestion(BaseModel):
    category_id: Optional[int] = None
    category_name: str
    confidence: float = Field(ge=0.0, le=1.0)

    def to_dict(self) -> dict:
        return self.model_dump()


class ParsedTransaction(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    amount: float = Field(gt=0)
    description: str
    category_id: Optional[int] = None
    transaction_type: str
    transaction_date: dt.date
    payment_method: Optional[str] = None
    location: Optional[str] = None
    tags: Optional[List[str]] = None

    @field_validator("transaction_type")
    @classmethod
    def _known_type(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("income", "expense"):
            raise ValueError("transaction_type must be income or expense")
        return v

    def to_dict(self) -> dict:
        data = self.model_dump()
        data["transaction_date"] = self.transaction_date.isoformat()
        return data


def extract_json(text: str) -> dict:
    """Pull the JSON object out of a model reply.

    Markdown fences are stripped first; if the rest still is not JSON the
    outermost ``{...}`` span is tried.
    """
    clean = _FENCE_RE.sub("", text or "").strip()
    try:
        parsed = json.loads(clean)
    except json.JSONDecodeError:
        match = _OBJECT_RE.search(clean)
        if not match:
            raise AIResponseError("Failed to parse AI response as JSON") from None
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError as exc:
            raise AIResponseError("Failed to parse AI response as JSON") from exc
    if not isinstance(parsed, dict):
        raise AIResponseError("AI response is not a JSON object")
    return parsed


def normalize_payment_method(value: Optional[str]) -> Optional[str]:
    if not value or not isinstance(value, str):
        return None
    return PAYMENT_METHOD_ALIASES.get(value.strip().lower(), value.strip())


def build_categorize_prompt(description: str, category_names: Sequence[str]) -> str:
    return f"""You are a transaction categorization assistant. Categorize this transaction into ONE of these categories:
{', '.join(category_names)}

Transaction description: "{description}"

Return ONLY valid JSON (no markdown, no extra text) with this exact format:
{{"category": "category_name", "confidence": 0.95}}

Rules:
- Choose the most appropriate category from the list above
- Confidence should be between 0 and 1
- Return the exact category name as listed above"""


def build_parse_prompt(
    text: str,
    income_names: Sequence[str],
    expense_names: Sequence[str],
    today: dt.date,
    payment_methods: Sequence[str] = PAYMENT_METHODS,
) -> str:
    today_s = today.isoformat()
    return f"""You are a transaction parser. Extract transaction details from natural language.

User input: "{text}"

Available income categories: {', '.join(income_names)}
Available expense categories: {', '.join(expense_names)}

Today's date: {today_s}

Return ONLY valid JSON (no markdown, no extra text) with this exact format:
{{
  "amount": 50.00,
  "description": "Grocery shopping at Walmart",
  "category": "Groceries",
  "transaction_type": "expense",
  "transaction_date": "{today_s}",
  "payment_method": "credit_card",
  "location": "Walmart Downtown",
  "tags": ["grocery", "shopping"]
}}

Rules:
- amount: positive number (extract the amount mentioned)
- description: brief description of the transaction
- category: must be one of the categories listed above (choose the most appropriate)
- transaction_type: "income" if money received, "expense" if money spent
- transaction_date: YYYY-MM-DD format. If date mentioned (yesterday, last Monday, specific date), parse it. Otherwise use today: {today_s}
- payment_method: optional, one of ({', '.join(payment_methods)}) or null
- location: optional, extract location if mentioned
- tags: optional array of relevant tags (max {MAX_TAGS} tags)

Extract carefully and return valid JSON only."""


def _fallback_suggestion(candidates: Sequence) -> CategorySuggestion:
    cat = fallback_category(candidates)
    return CategorySuggestion(
        category_id=cat.id if cat else None,
        category_name=cat.name if cat else "Other",
        confidence=0.0,
    )


def _coerce_confidence(value) -> float:
    try:
        conf = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    if conf == 0:
        return DEFAULT_CONFIDENCE
    return max(0.0, min(1.0, conf))


def categorize_transaction(
    client: TextGenerator,
    description: str,
    is_income: bool,
    categories: Sequence,
    rules: Optional[Dict[str, List[str]]] = None,
) -> CategorySuggestion:
    candidates = [c for c in categories if bool(c.is_income) == bool(is_income)]
    if not candidates:
        return CategorySuggestion(category_id=None, category_name="Other", confidence=0.0)

    prompt = build_categorize_prompt(description, [c.name for c in candidates])
    try:
        parsed = extract_json(client.generate(prompt))
    except AIServiceError as exc:
        log.warning("ai_categorize_failed", error=str(exc), description=description[:80])
        keyword_match = suggest_category(description, candidates, DEFAULT_RULES if rules is None else rules)
        if keyword_match is not None:
            return CategorySuggestion(
                category_id=keyword_match.id,
                category_name=keyword_match.name,
                confidence=KEYWORD_CONFIDENCE,
            )
        return _fallback_suggestion(candidates)

    matched = match_category(parsed.get("category"), candidates)
    if matched is None:
        log.info("ai_category_unmatched", returned=parsed.get("category"))
        return _fallback_suggestion(candidates)
    return CategorySuggestion(
        category_id=matched.id,
        category_name=matched.name,
        confidence=_coerce_confidence(parsed.get("confidence")),
    )


def parse_natural_language_transaction(
    client: TextGenerator,
    text: str,
    categories: Sequence,
    today: Optional[dt.date] = None,
    payment_methods: Sequence[str] = PAYMENT_METHODS,
) -> ParsedTransaction:
    today = today or dt.date.today()
    income = [c for c in categories if c.is_income]
    expense = [c for c in categories if not c.is_income]
    prompt = build_parse_prompt(text, [c.name for c in income], [c.name for c in expense], today, payment_methods)

    try:
        parsed = extract_json(client.generate(prompt))
        tx_type = str(parsed.get("transaction_type") or "").strip().lower()
        type_categories = income if tx_type == "income" else expense
        matched = match_category(parsed.get("category"), type_categories) or fallback_category(type_categories)

        tags = parsed.get("tags")
        if isinstance(tags, list):
            tags = [str(t).strip() for t in tags if str(t).strip()][:MAX_TAGS] or None
        else:
            tags = None

        return ParsedTransaction(
            amount=parsed.get("amount"),
            description=(parsed.get("description") or text).strip(),
            category_id=matched.id if matched else None,
            transaction_type=tx_type,
            transaction_date=parsed.get("transaction_date") or today,
            payment_method=normalize_payment_method(parsed.get("payment_method")),
            location=(parsed.get("location") or None),
            tags=tags,
        )
    except (AIServiceError, pydantic.ValidationError, TypeError, ValueError) as exc:
        log.error("ai_parse_failed", error=str(exc), input=text[:120])
        raise TransactionParseError() from exc
