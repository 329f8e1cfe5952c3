#!/usr/bin/env python3
"""
Database Seeding Script - ZZP Boekhouding
Seed standaard rekeningschema, bedrijfsgegevens en voorbeeldrelaties voor testen.

Relaties komen uit scripts/seed_data/contacts.csv als dat bestand bestaat,
anders uit SAMPLE_CONTACTS.
"""

import csv
import os
from pathlib import Path

SAMPLE_CONTACTS = [
    {
        "company_name": "Bakkerij De Korenschoof",
        "relation_type": "Customer",
        "email": "info@korenschoof.nl",
        "iban": "NL91ABNA0417164300",
        "city": "Utrecht",
        "account_code": "8000",
    },
    {
        "company_name": "KPN B.V.",
        "relation_type": "Supplier",
        "email": "zakelijk@kpn.com",
        "iban": "NL20INGB0001234567",
        "city": "Rotterdam",
        "account_code": "6200",
    },
    {
        "company_name": "Adobe Systems Software Ireland",
        "relation_type": "Supplier",
        "email": "",
        "iban": "",
        "city": "Dublin",
        "account_code": "6210",
    },
]


def read_csv(filepath: str) -> list[dict]:
    """Lees een CSV-bestand (komma-gescheiden, met kopregel)."""
    if not os.path.exists(filepath):
        return []
    with open(filepath, "r", encoding="utf-8") as f:
        return list(csv.DictReader(f))


def main():
    """Main function."""
    print("=" * 60)
    print("Database Seeding - ZZP Boekhouding")
    print("=" * 60)

    from zzpboek.core.config import get_settings
    from zzpboek.core.logging import configure_logging
    from zzpboek.infrastructure.database import SessionLocal, init_db, seed_default_accounts

    settings = get_settings()
    configure_logging(settings.log_level, json_logs=False)
    init_db()

    from zzpboek.infrastructure.database.models import Account, CompanySettings, Contact

    db = SessionLocal()

    try:
        created = seed_default_accounts(db)
        total = db.query(Account).count()
        print(f"✓ Rekeningschema: {created} nieuw, {total} totaal")

        company = db.query(CompanySettings).first()
        if company.kvk_number is None:
            company.name = "Demo Onderneming"
            company.kvk_number = "12345678"
            company.vat_number = "NL001234567B01"
            company.iban = "NL02RABO0123456789"
            company.city = "Amsterdam"
            company.email = "demo@example.nl"
            db.commit()
            print(f"✓ Bedrijfsgegevens ingevuld: {company.name}")
        else:
            print(f"✓ Bedrijfsgegevens bestaan al: {company.name}")

        contacts_file = Path(__file__).parent / "seed_data" / "contacts.csv"
        contacts_data = read_csv(str(contacts_file)) or SAMPLE_CONTACTS
        print(f"\n📦 Seeding {len(contacts_data)} relaties...")

        accounts_by_code = {a.code: a for a in db.query(Account).all()}
        seeded = 0
        for row in contacts_data:
            exists = db.query(Contact).filter(Contact.company_name == row["company_name"]).first()
            if exists:
                continue
            account = accounts_by_code.get(row.get("account_code", ""))
            db.add(
                Contact(
                    company_name=row["company_name"],
                    relation_type=row.get("relation_type") or "Customer",
                    email=row.get("email") or None,
                    iban=(row.get("iban") or "").replace(" ", "").upper() or None,
                    city=row.get("city") or None,
                    default_ledger_account_id=account.id if account else None,
                )
            )
            seeded += 1
        db.commit()
        print(f"✓ Seeded {seeded} relaties")

        print("\n" + "=" * 60)
        print("Seeding completed successfully!")
        print("=" * 60)

    except Exception as e:
        print(f"\n❌ Error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
