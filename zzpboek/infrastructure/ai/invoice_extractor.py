"""
AI invoice extraction via an OpenAI-compatible chat completions endpoint.

PDF invoices are sent as extracted text, images as a base64 `image_url`.
The model answers with JSON; `extract_json` also accepts answers wrapped in a
```json fence.
"""

import base64
import io
import json
import re
import time
from collections.abc import Callable, Iterable
from decimal import Decimal
from typing import Any

import PyPDF2
import requests

from zzpboek.core.config import AISettings
from zzpboek.core.logging import get_logger
from zzpboek.domain.exceptions import ExternalServiceError
from zzpboek.domain.value_objects import AccountType, parse_amount, round_cents, to_decimal

logger = get_logger(__name__)

RETRYABLE_STATUS = {429, 500, 502, 503, 504}

_EXCLUDED_NAME_KEYWORDS = ("btw", "vat", "crediteur", "afschrijving")

SYSTEM_PROMPT = """Je bent een Nederlandse boekhouder gespecialiseerd in ZZP-administraties.

Taak: lees de factuur of bon, zoek de leverancier in de lijst met relaties en
kies de juiste grootboekrekening uit de lijst met rekeningen.

1. Neem leverancier, adres, plaats, factuurdatum, factuurnummer en bedragen over.
2. Staat de leverancier in de lijst met relaties: vul contact_id in en zet
   is_new_supplier op false. Anders contact_id leeg en is_new_supplier true.
3. Kies een rekening uit de lijst. Geef id, code en naam van dezelfde rekening.
   Verzin geen id's of codes.

Antwoord uitsluitend met JSON in dit formaat:
{
  "supplier_name": "Shell Nederland B.V.",
  "supplier_address": "Mariaplaats 50",
  "supplier_city": "Utrecht",
  "category_clues": "tankstation brandstof",
  "contact_id": "",
  "is_new_supplier": true,
  "invoice_date": "2024-03-15",
  "invoice_number": "INV-2024-001",
  "total_amount": 121.00,
  "vat_amount": 21.00,
  "net_amount": 100.00,
  "vat_percentage": 21,
  "suggested_account_id": "",
  "suggested_account_code": "4000",
  "suggested_account_name": "Brandstof",
  "description": "Tanken",
  "confidence": 0.95
}

Beschikbare relaties:
{contacts}

Beschikbare rekeningen:
{accounts}"""

Transport = Callable[..., Any]


def extract_pdf_text(data: bytes) -> str:
    """Text of all pages, separated by blank lines."""
    try:
        reader = PyPDF2.PdfReader(io.BytesIO(data))
        pages = [(page.extract_text() or "") for page in reader.pages]
    except Exception as e:
        raise ExternalServiceError(f"Kon geen tekst uit PDF halen: {e}") from e
    return "\n\n".join(pages).strip()


def extract_json(content: str) -> dict:
    """Parse the first JSON object in a model answer."""
    fenced = re.search(r"```(?:json)?\s*(\{.*?\})\s*```", content, re.DOTALL)
    candidate = fenced.group(1) if fenced else None
    if candidate is None:
        start, end = content.find("{"), content.rfind("}")
        if start == -1 or end <= start:
            raise ExternalServiceError("AI-antwoord bevat geen JSON")
        candidate = content[start:end + 1]
    try:
        return json.loads(candidate)
    except json.JSONDecodeError as e:
        raise ExternalServiceError(f"AI-antwoord is geen geldige JSON: {e}") from e


def is_candidate_account(account) -> bool:
    """Only active cost and asset accounts, without depreciation, VAT, bank or creditor accounts."""
    if not account.is_active:
        return False
    if account.account_type not in (AccountType.EXPENSE.value, AccountType.ASSET.value):
        return False
    try:
        if 4200 <= int(account.code) <= 4299:
            return False
    except (TypeError, ValueError):
        pass
    name = (account.name or "").lower()
    if any(keyword in name for keyword in _EXCLUDED_NAME_KEYWORDS):
        return False
    category = (account.tax_category or "").lower()
    return category not in ("liquide middelen", "vorderingen")


def candidate_accounts(accounts: Iterable) -> list[dict]:
    return [
        {
            "id": str(a.id),
            "code": a.code,
            "name": a.name,
            "type": a.account_type,
            "vat_code": a.vat_code,
        }
        for a in accounts
        if is_candidate_account(a)
    ]


def _amount(data: dict, key: str) -> Decimal | None:
    raw = data.get(key)
    if raw is None or raw == "":
        return None
    value = parse_amount(raw)
    if value is None:
        raise ExternalServiceError(f"AI-antwoord bevat geen geldig bedrag voor {key}: {raw!r}")
    return round_cents(value)


def normalize_extraction(data: dict) -> dict:
    """Amounts to 2 decimals; net = total - vat when missing, vat% derived when missing."""
    total = _amount(data, "total_amount") or Decimal("0.00")
    vat = _amount(data, "vat_amount") or Decimal("0.00")
    net = _amount(data, "net_amount")
    if net is None:
        net = total - vat
    vat_percentage = parse_amount(data.get("vat_percentage"))
    if vat_percentage is None:
        vat_percentage = round_cents(vat / net * 100) if net else Decimal("21")

    result = dict(data)
    result.update(
        total_amount=float(total),
        vat_amount=float(vat),
        net_amount=float(net),
        vat_percentage=float(to_decimal(vat_percentage)),
        contact_id=data.get("contact_id") or None,
        is_new_supplier=bool(data.get("is_new_supplier", not data.get("contact_id"))),
        confidence=float(data.get("confidence") or 0),
    )
    return result


class InvoiceExtractor:
    """Chat completions client with exponential backoff on 429 and 5xx."""

    def __init__(
        self,
        settings: AISettings | None = None,
        transport: Transport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings or AISettings()
        self.transport = transport or requests.post
        self.sleep = sleep

    def chat_completion(self, messages: list[dict]) -> str:
        if not self.settings.enabled:
            raise ExternalServiceError("AI-extractie is niet geconfigureerd (OPENAI_API_KEY ontbreekt)")

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.settings.api_key}",
        }
        payload = {
            "model": self.settings.model,
            "messages": messages,
            "temperature": self.settings.temperature,
            "max_tokens": self.settings.max_tokens,
        }

        delay = self.settings.initial_delay_seconds
        last_error = "onbekende fout"
        for attempt in range(self.settings.max_retries + 1):
            try:
                response = self.transport(
                    self.settings.api_url,
                    json=payload,
                    headers=headers,
                    timeout=self.settings.timeout_seconds,
                )
            except requests.exceptions.RequestException as e:
                last_error = str(e)
                logger.warning("ai_request_failed", attempt=attempt + 1, error=last_error)
            else:
                if response.status_code == 200:
                    return response.json()["choices"][0]["message"]["content"]
                last_error = f"HTTP {response.status_code}: {response.text[:200]}"
                if response.status_code not in RETRYABLE_STATUS:
                    break
                logger.warning("ai_request_retry", attempt=attempt + 1, status=response.status_code)

            if attempt < self.settings.max_retries:
                self.sleep(delay)
                delay = min(delay * 2, self.settings.max_delay_seconds)

        logger.error("ai_request_gave_up", error=last_error)
        raise ExternalServiceError(f"AI-service niet bereikbaar: {last_error}")

    def build_messages(self, data: bytes, mime_type: str, accounts: list[dict], contacts: list[dict]) -> list[dict]:
        system = SYSTEM_PROMPT.replace("{contacts}", json.dumps(contacts, indent=2, ensure_ascii=False))
        system = system.replace("{accounts}", json.dumps(accounts, indent=2, ensure_ascii=False))

        if mime_type == "application/pdf":
            text = extract_pdf_text(data)
            user = {
                "role": "user",
                "content": f"Analyseer deze factuurtekst en haal de gegevens eruit.\n\nFACTUURTEKST:\n{text}",
            }
        else:
            encoded = base64.b64encode(data).decode("ascii")
            user = {
                "role": "user",
                "content": [
                    {"type": "text", "text": "Analyseer deze factuur of bon en haal de gegevens eruit."},
                    {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{encoded}"}},
                ],
            }
        return [{"role": "system", "content": system}, user]

    def extract(self, data: bytes, mime_type: str, accounts: Iterable, contacts: list[dict]) -> dict:
        candidates = candidate_accounts(accounts)
        messages = self.build_messages(data, mime_type, candidates, contacts)
        logger.info("ai_extraction_started", mime_type=mime_type, accounts=len(candidates), contacts=len(contacts))

        result = normalize_extraction(extract_json(self.chat_completion(messages)))

        # only accept a suggestion that is actually in the candidate list
        by_id = {c["id"]: c for c in candidates}
        by_code = {c["code"]: c for c in candidates}
        suggestion = by_id.get(str(result.get("suggested_account_id") or "")) or by_code.get(
            str(result.get("suggested_account_code") or "")
        )
        if suggestion:
            result.update(
                suggested_account_id=suggestion["id"],
                suggested_account_code=suggestion["code"],
                suggested_account_name=suggestion["name"],
            )
        else:
            result.update(suggested_account_id=None, suggested_account_code=None, suggested_account_name=None)

        known_contacts = {str(c["id"]) for c in contacts}
        if result.get("contact_id") and str(result["contact_id"]) not in known_contacts:
            result.update(contact_id=None, is_new_supplier=True)

        logger.info(
            "ai_extraction_completed",
            supplier=result.get("supplier_name"),
            total=result.get("total_amount"),
            account=result.get("suggested_account_code"),
        )
        return result
