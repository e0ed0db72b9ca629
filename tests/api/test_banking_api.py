"""
Tests for bank account and bank transaction endpoints.
"""

from decimal import Decimal

import pytest


@pytest.fixture
def accounts(client):
    response = client.post("/accounts/templates/standard")
    return {a["account_number"]: a["id"] for a in response.json()}


@pytest.fixture
def bank_account_id(client, accounts):
    bank_account = client.post("/bank-accounts", json={
        "name": "Operating",
        "institution_name": "First Bank",
        "account_mask": "4321",
    }).json()
    client.post(
        f"/bank-accounts/{bank_account['id']}/map",
        json={"finance_account_id": accounts["1000"]},
    )
    return bank_account["id"]


def import_rows(client, bank_account_id, *rows):
    return client.post(
        f"/bank-accounts/{bank_account_id}/transactions/import",
        json={"rows": [
            {"transaction_date": d, "description": desc, "amount": amount}
            for d, desc, amount in rows
        ]},
    )


class TestBankAccounts:

    def test_create_returns_201(self, client):
        response = client.post("/bank-accounts", json={"name": "Savings"})

        assert response.status_code == 201
        data = response.json()
        assert data["currency"] == "USD"
        assert data["finance_account_id"] is None

    def test_map_to_coa(self, client, accounts, bank_account_id):
        data = client.get(f"/bank-accounts/{bank_account_id}").json()
        assert data["finance_account_id"] == accounts["1000"]

    def test_map_to_unknown_account_returns_404(self, client, bank_account_id):
        response = client.post(
            f"/bank-accounts/{bank_account_id}/map", json={"finance_account_id": 9999}
        )
        assert response.status_code == 404

    def test_deactivate_hides_from_list(self, client, bank_account_id):
        client.post(f"/bank-accounts/{bank_account_id}/deactivate")
        assert client.get("/bank-accounts").json() == []


class TestImport:

    def test_reimport_skips_duplicates(self, client, bank_account_id):
        rows = (("2024-03-01", "Coffee", "-4.50"), ("2024-03-02", "Client payment", "1200.00"))

        first = import_rows(client, bank_account_id, *rows)
        second = import_rows(client, bank_account_id, *rows)

        assert first.status_code == 201
        assert first.json()["imported"] == 2
        assert second.json()["imported"] == 0
        assert second.json()["skipped"] == 2
        assert second.json()["import_batch_id"].startswith("csv-")

    def test_import_to_unknown_account_returns_404(self, client):
        response = import_rows(client, 999, ("2024-03-01", "Coffee", "-4.50"))
        assert response.status_code == 404

    def test_csv_import_returns_row_errors(self, client, bank_account_id):
        response = client.post(
            f"/bank-accounts/{bank_account_id}/transactions/import-csv",
            json={
                "content": (
                    "Date,Description,Debit,Credit\n"
                    "03/01/2024,Rent,1500.00,\n"
                    "03/02/2024,Refund,,25.00\n"
                    "03/03/2024,Broken,1.2.3,\n"
                ),
                "mapping": {
                    "date_column": "Date",
                    "description_column": "Description",
                    "debit_column": "Debit",
                    "credit_column": "Credit",
                },
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["imported"] == 2
        assert data["errors"] == ["Line 4: invalid amount '1.2.3'"]

        amounts = sorted(
            Decimal(t["amount"]) for t in client.get("/bank-transactions").json()
        )
        assert amounts == [Decimal("-1500.00"), Decimal("25.00")]

    def test_csv_missing_column_returns_400(self, client, bank_account_id):
        response = client.post(
            f"/bank-accounts/{bank_account_id}/transactions/import-csv",
            json={
                "content": "Date,Description\n2024-03-01,x\n",
                "mapping": {
                    "date_column": "Date",
                    "description_column": "Description",
                    "amount_column": "Amount",
                },
            },
        )
        assert response.status_code == 400


class TestTransactionLifecycle:

    def _import_one(self, client, bank_account_id, amount="-45.00"):
        import_rows(client, bank_account_id, ("2024-03-05", "Staples", amount))
        return client.get("/bank-transactions", params={"search": "Staples"}).json()[0]

    def test_categorize_then_post(self, client, accounts, bank_account_id):
        txn = self._import_one(client, bank_account_id)

        matched = client.post(
            f"/bank-transactions/{txn['id']}/categorize",
            json={"matched_account_id": accounts["6100"], "notes": "printer paper"},
        )
        assert matched.json()["status"] == "matched"

        posted = client.post(f"/bank-transactions/{txn['id']}/post")
        assert posted.status_code == 200
        assert posted.json()["status"] == "posted"

        bank_account = client.get(f"/bank-accounts/{bank_account_id}").json()
        assert Decimal(bank_account["current_balance"]) == Decimal("-45.00")
        expense = client.get(f"/accounts/{accounts['6100']}/balance").json()
        assert Decimal(expense["balance"]) == Decimal("45.00")

    def test_post_uncategorized_returns_400(self, client, bank_account_id):
        txn = self._import_one(client, bank_account_id)

        response = client.post(f"/bank-transactions/{txn['id']}/post")
        assert response.status_code == 400

    def test_exclude_then_post_returns_409(self, client, accounts, bank_account_id):
        txn = self._import_one(client, bank_account_id)

        excluded = client.post(f"/bank-transactions/{txn['id']}/exclude")
        assert excluded.json()["status"] == "excluded"

        response = client.post(f"/bank-transactions/{txn['id']}/post")
        assert response.status_code == 409

    def test_unpost_returns_to_matched(self, client, accounts, bank_account_id):
        txn = self._import_one(client, bank_account_id)
        client.post(
            f"/bank-transactions/{txn['id']}/categorize",
            json={"matched_account_id": accounts["6100"]},
        )
        client.post(f"/bank-transactions/{txn['id']}/post")

        response = client.post(f"/bank-transactions/{txn['id']}/unpost")

        assert response.status_code == 200
        assert response.json()["status"] == "matched"
        assert response.json()["posted_date"] is None

    def test_filter_by_status(self, client, bank_account_id):
        self._import_one(client, bank_account_id)

        unmatched = client.get("/bank-transactions", params={"status": "unmatched"}).json()
        posted = client.get("/bank-transactions", params={"status": "posted"}).json()

        assert len(unmatched) == 1
        assert posted == []
