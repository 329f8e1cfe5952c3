"""
Unit tests - AI-factuurextractie zonder netwerk: transport en sleep worden vervangen.
"""

import json
from types import SimpleNamespace
from uuid import uuid4

import pytest
import requests

from zzpboek.core.config import AISettings
from zzpboek.domain.exceptions import ExternalServiceError
from zzpboek.infrastructure.ai.invoice_extractor import (
    InvoiceExtractor,
    candidate_accounts,
    extract_json,
    is_candidate_account,
    normalize_extraction,
)


class FakeResponse:
    def __init__(self, status_code: int, content: str = ""):
        self.status_code = status_code
        self.text = content

    def json(self):
        return {"choices": [{"message": {"content": self.text}}]}


class FakeTransport:
    """Returns queued responses (or raises queued exceptions) in order."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def __call__(self, url, json=None, headers=None, timeout=None):
        self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def account(code, name, account_type="Expense", tax_category=None, is_active=True):
    return SimpleNamespace(
        id=uuid4(), code=code, name=name, account_type=account_type,
        tax_category=tax_category, vat_code=None, is_active=is_active,
    )


ANSWER = {
    "supplier_name": "Shell Nederland B.V.",
    "invoice_number": "INV-2024-001",
    "invoice_date": "2024-03-15",
    "total_amount": 121.0,
    "vat_amount": 21.0,
    "suggested_account_code": "4000",
    "contact_id": "",
    "confidence": 0.95,
}


class TestExtractJson:
    def test_fenced_answer(self):
        content = "Hier is het resultaat:\n```json\n{\"total_amount\": 12.5}\n```"
        assert extract_json(content) == {"total_amount": 12.5}

    def test_bare_answer(self):
        assert extract_json('Resultaat: {"a": 1} klaar') == {"a": 1}

    @pytest.mark.parametrize("content", ["geen json", "{niet: geldig}"])
    def test_invalid(self, content):
        with pytest.raises(ExternalServiceError):
            extract_json(content)


class TestNormalize:
    def test_net_and_rate_derived(self):
        result = normalize_extraction({"total_amount": "121", "vat_amount": 21})
        assert result["net_amount"] == 100.0
        assert result["vat_percentage"] == 21.0
        assert result["is_new_supplier"] is True

    def test_zero_net_defaults_to_high_rate(self):
        result = normalize_extraction({"total_amount": 0, "vat_amount": 0})
        assert result["vat_percentage"] == 21.0

    def test_low_rate(self):
        result = normalize_extraction({"total_amount": 109, "vat_amount": 9, "contact_id": "abc"})
        assert result["vat_percentage"] == 9.0
        assert result["is_new_supplier"] is False

    def test_dutch_formatted_amounts(self):
        result = normalize_extraction({"total_amount": "€ 1.210,00", "vat_amount": "210,00"})
        assert result["total_amount"] == 1210.0
        assert result["net_amount"] == 1000.0
        assert result["vat_percentage"] == 21.0

    @pytest.mark.parametrize("amount", ["onbekend", ",", "NaN"])
    def test_unreadable_amount(self, amount):
        with pytest.raises(ExternalServiceError):
            normalize_extraction({"total_amount": amount, "vat_amount": "21,00"})


class TestCandidateAccounts:
    """Alleen actieve kosten- en activarekeningen komen in de prompt."""

    def test_filtering(self):
        accounts = [
            account("4000", "Brandstof"),
            account("0100", "Inventaris", "Asset"),
            account("8000", "Omzet", "Revenue"),
            account("4210", "Auto lease"),
            account("1450", "Te vorderen BTW", "Asset"),
            account("6000", "Afschrijving inventaris"),
            account("1100", "Spaar", "Asset", tax_category="Liquide middelen"),
            account("6200", "Telefoon", is_active=False),
        ]
        assert [a["code"] for a in candidate_accounts(accounts)] == ["4000", "0100"]

    def test_non_numeric_code_is_allowed(self):
        assert is_candidate_account(account("X1", "Diversen")) is True


class TestChatCompletion:
    def test_disabled_without_api_key(self):
        extractor = InvoiceExtractor(AISettings(api_key=None), transport=FakeTransport())
        with pytest.raises(ExternalServiceError):
            extractor.chat_completion([])

    def test_retries_with_backoff(self):
        transport = FakeTransport(FakeResponse(429), FakeResponse(503), FakeResponse(200, "ok"))
        sleeps = []
        extractor = InvoiceExtractor(AISettings(api_key="k", max_retries=2), transport, sleep=sleeps.append)

        assert extractor.chat_completion([{"role": "user", "content": "hoi"}]) == "ok"
        assert sleeps == [1.0, 2.0]
        assert transport.calls[0]["headers"]["Authorization"] == "Bearer k"
        assert transport.calls[0]["json"]["model"] == "gpt-4o-mini"

    def test_network_error_is_retried(self):
        transport = FakeTransport(requests.exceptions.ConnectionError("down"), FakeResponse(200, "ok"))
        extractor = InvoiceExtractor(AISettings(api_key="k", max_retries=1), transport, sleep=lambda s: None)
        assert extractor.chat_completion([]) == "ok"

    def test_client_error_is_not_retried(self):
        transport = FakeTransport(FakeResponse(401, "unauthorized"))
        sleeps = []
        extractor = InvoiceExtractor(AISettings(api_key="k", max_retries=3), transport, sleep=sleeps.append)

        with pytest.raises(ExternalServiceError) as exc:
            extractor.chat_completion([])
        assert "401" in str(exc.value)
        assert len(transport.calls) == 1
        assert sleeps == []

    def test_gives_up_after_max_retries(self):
        transport = FakeTransport(FakeResponse(500), FakeResponse(500))
        extractor = InvoiceExtractor(AISettings(api_key="k", max_retries=1), transport, sleep=lambda s: None)
        with pytest.raises(ExternalServiceError):
            extractor.chat_completion([])
        assert len(transport.calls) == 2


class TestExtract:
    def test_suggestion_resolved_against_candidates(self):
        fuel = account("4000", "Brandstof")
        transport = FakeTransport(FakeResponse(200, json.dumps(ANSWER)))
        extractor = InvoiceExtractor(AISettings(api_key="k"), transport)

        result = extractor.extract(b"\x89PNG", "image/png", [fuel, account("8000", "Omzet", "Revenue")], [])

        assert result["suggested_account_id"] == str(fuel.id)
        assert result["suggested_account_name"] == "Brandstof"
        assert result["net_amount"] == 100.0
        user = transport.calls[0]["json"]["messages"][1]
        assert user["content"][1]["image_url"]["url"].startswith("data:image/png;base64,")

    def test_unknown_suggestion_and_contact_dropped(self):
        answer = dict(ANSWER, suggested_account_code="9999", contact_id=str(uuid4()), is_new_supplier=False)
        transport = FakeTransport(FakeResponse(200, json.dumps(answer)))
        extractor = InvoiceExtractor(AISettings(api_key="k"), transport)

        result = extractor.extract(b"img", "image/jpeg", [account("4000", "Brandstof")], [{"id": "known"}])

        assert result["suggested_account_id"] is None
        assert result["contact_id"] is None
        assert result["is_new_supplier"] is True

    def test_unreadable_pdf(self):
        extractor = InvoiceExtractor(AISettings(api_key="k"), FakeTransport())
        with pytest.raises(ExternalServiceError):
            extractor.extract(b"not a pdf", "application/pdf", [], [])
