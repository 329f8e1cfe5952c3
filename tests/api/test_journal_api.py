"""
API tests - journaalposten en rollen (X-Role).
"""

from decimal import Decimal
from uuid import uuid4

import pytest

URL = "/api/v1/journal-entries"


def entry_payload(accounts, amount="121.00", status="Draft", **overrides) -> dict:
    payload = {
        "entry_date": "2024-03-01",
        "description": "Factuur 2024-001",
        "status": status,
        "lines": [
            {"account_id": str(accounts["1300"].id), "debit": amount},
            {"account_id": str(accounts["8000"].id), "credit": amount},
        ],
    }
    payload.update(overrides)
    return payload


class TestJournalEntries:
    def test_create_draft(self, client, accounts):
        response = client.post(URL, json=entry_payload(accounts))

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "Draft"
        assert body["memoriaal_type"] == "Memoriaal"
        assert [Decimal(l["debit"]) for l in body["lines"]] == [Decimal("121.00"), Decimal("0.00")]

    def test_unbalanced_final_is_rejected(self, client, accounts):
        payload = entry_payload(accounts, status="Final")
        payload["lines"][1]["credit"] = "100.00"

        response = client.post(URL, json=payload)

        assert response.status_code == 400
        assert "niet in balans" in response.json()["detail"]

    def test_balance_check_and_finalize(self, client, accounts):
        entry_id = client.post(URL, json=entry_payload(accounts)).json()["id"]

        check = client.get(f"{URL}/{entry_id}/balance-check").json()
        assert check["is_balanced"] is True

        finalized = client.post(f"{URL}/{entry_id}/finalize")
        assert finalized.status_code == 200
        assert finalized.json()["status"] == "Final"

        assert client.patch(f"{URL}/{entry_id}", json={"description": "Anders"}).status_code == 400
        assert client.delete(f"{URL}/{entry_id}").status_code == 400

    def test_reverse(self, client, accounts):
        entry_id = client.post(URL, json=entry_payload(accounts, status="Final")).json()["id"]

        response = client.post(f"{URL}/{entry_id}/reverse", params={"entry_date": "2024-04-01"})

        assert response.status_code == 201
        assert response.json()["memoriaal_type"] == "Correctie"
        assert response.json()["entry_date"] == "2024-04-01"

    def test_list_filters_on_status(self, client, accounts):
        client.post(URL, json=entry_payload(accounts))
        client.post(URL, json=entry_payload(accounts, status="Final"))

        assert len(client.get(URL).json()) == 2
        assert [e["status"] for e in client.get(URL, params={"status": "Final"}).json()] == ["Final"]

    def test_unknown_entry(self, client):
        assert client.get(f"{URL}/{uuid4()}").status_code == 404

    def test_negative_amount_is_invalid(self, client, accounts):
        response = client.post(URL, json=entry_payload(accounts, amount="-5"))
        assert response.status_code == 422


class TestRoles:
    """Expert mag alles; client niet definitief boeken of verwijderen; viewer alleen lezen."""

    def test_client_may_create_drafts_only(self, client, accounts):
        headers = {"X-Role": "client"}
        assert client.post(URL, json=entry_payload(accounts), headers=headers).status_code == 201
        assert client.post(URL, json=entry_payload(accounts, status="Final"), headers=headers).status_code == 403

    def test_client_cannot_finalize_or_delete(self, client, accounts):
        entry_id = client.post(URL, json=entry_payload(accounts)).json()["id"]
        headers = {"X-Role": "client"}

        assert client.post(f"{URL}/{entry_id}/finalize", headers=headers).status_code == 403
        assert client.delete(f"{URL}/{entry_id}", headers=headers).status_code == 403
        assert client.delete(f"{URL}/{entry_id}").status_code == 204

    def test_viewer_cannot_create(self, client, accounts):
        response = client.post(URL, json=entry_payload(accounts), headers={"X-Role": "viewer"})
        assert response.status_code == 403

    @pytest.mark.parametrize("role", ["admin", "boekhouder"])
    def test_unknown_role(self, client, accounts, role):
        response = client.post(URL, json=entry_payload(accounts), headers={"X-Role": role})
        assert response.status_code == 403
        assert "Onbekende rol" in response.json()["detail"]

    def test_role_header_is_case_insensitive(self, client):
        assert client.get("/api/v1/settings/role", headers={"X-Role": "Client"}).json() == {"role": "client"}
        assert client.get("/api/v1/settings/role").json() == {"role": "expert"}
