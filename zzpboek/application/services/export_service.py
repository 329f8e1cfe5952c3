"""
Exports: XAF 3.2 auditfile en Excel-overzichten; Excel-import van
rekeningschema en relaties.
"""

from datetime import date

from sqlalchemy import func
from sqlalchemy.orm import Session

from zzpboek.application.services.report_service import ReportService
from zzpboek.core.config import Settings, get_settings
from zzpboek.core.logging import get_logger
from zzpboek.domain.services import code_sort_key
from zzpboek.domain.tax_categories import infer_tax_category
from zzpboek.domain.value_objects import AccountType, EntryStatus, RelationType, round_cents
from zzpboek.infrastructure.database.models import (
    Account,
    CompanySettings,
    Contact,
    JournalEntry,
    JournalLine,
)
from zzpboek.infrastructure.export import (
    Column,
    Sheet,
    build_xaf,
    export_workbook,
    read_rows,
    xaf_filename,
)

logger = get_logger(__name__)

ACCOUNT_TYPE_ALIASES = {
    "asset": AccountType.ASSET,
    "activa": AccountType.ASSET,
    "liability": AccountType.LIABILITY,
    "passiva": AccountType.LIABILITY,
    "schulden": AccountType.LIABILITY,
    "equity": AccountType.EQUITY,
    "eigen vermogen": AccountType.EQUITY,
    "revenue": AccountType.REVENUE,
    "opbrengsten": AccountType.REVENUE,
    "omzet": AccountType.REVENUE,
    "expense": AccountType.EXPENSE,
    "kosten": AccountType.EXPENSE,
}

RELATION_TYPE_ALIASES = {
    "customer": RelationType.CUSTOMER,
    "klant": RelationType.CUSTOMER,
    "debiteur": RelationType.CUSTOMER,
    "supplier": RelationType.SUPPLIER,
    "leverancier": RelationType.SUPPLIER,
    "crediteur": RelationType.SUPPLIER,
    "both": RelationType.BOTH,
    "beide": RelationType.BOTH,
}

AMOUNT_COLUMNS = dict(width=14, numeric=True)


def _pick(row: dict, *keywords: str) -> str:
    """Waarde van de eerste kolom waarvan de kop een van de trefwoorden bevat."""
    for keyword in keywords:
        for header, value in row.items():
            if keyword in header and value != "":
                return value
    return ""


class ExportService:
    def __init__(self, db: Session, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()
        self.reports = ReportService(db)

    # --- XAF ---------------------------------------------------------------

    def xaf(self, year: int) -> tuple[str, bytes]:
        start_date, end_date = date(year, 1, 1), date(year, 12, 31)
        company = self.db.query(CompanySettings).first()
        accounts = sorted(self.db.query(Account).all(), key=lambda a: code_sort_key(a.code))

        opening = (
            self.db.query(
                JournalLine.account_id,
                func.coalesce(func.sum(JournalLine.debit), 0),
                func.coalesce(func.sum(JournalLine.credit), 0),
            )
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .filter(JournalEntry.status == EntryStatus.FINAL.value, JournalEntry.entry_date < start_date)
            .group_by(JournalLine.account_id)
            .all()
        )
        opening_balances = {
            account_id: (round_cents(debit), round_cents(credit)) for account_id, debit, credit in opening
        }

        entries = (
            self.db.query(JournalEntry)
            .filter(
                JournalEntry.status == EntryStatus.FINAL.value,
                JournalEntry.entry_date >= start_date,
                JournalEntry.entry_date <= end_date,
            )
            .order_by(JournalEntry.entry_date, JournalEntry.created_at)
            .all()
        )

        content = build_xaf(
            fiscal_year=year,
            start_date=start_date,
            end_date=end_date,
            company_name=company.name if company else "Onbekend",
            company_vat=company.vat_number if company else None,
            accounts=accounts,
            opening_balances=opening_balances,
            entries=entries,
            software_name=self.settings.software_name,
            software_version=self.settings.software_version,
        )
        logger.info("xaf_exported", year=year, accounts=len(accounts), transactions=len(entries))
        return xaf_filename(year), content

    # --- Excel -------------------------------------------------------------

    def accounts_workbook(self) -> bytes:
        accounts = sorted(self.db.query(Account).all(), key=lambda a: code_sort_key(a.code))
        return export_workbook([
            Sheet(
                name="Rekeningschema",
                title="Rekeningschema",
                columns=[
                    Column("code", "Code", 10),
                    Column("name", "Naam", 35),
                    Column("account_type", "Type", 12),
                    Column("tax_category", "Categorie", 30),
                    Column("vat_code", "BTW", 10),
                    Column("rgs_code", "RGS", 18),
                    Column("is_active", "Actief", 8),
                ],
                rows=[a.model_dump() for a in accounts],
            )
        ])

    def journal_workbook(self, start_date: date | None = None, end_date: date | None = None) -> bytes:
        query = self.db.query(JournalEntry)
        if start_date:
            query = query.filter(JournalEntry.entry_date >= start_date)
        if end_date:
            query = query.filter(JournalEntry.entry_date <= end_date)
        accounts = {a.id: a for a in self.db.query(Account).all()}

        rows = []
        for entry in query.order_by(JournalEntry.entry_date, JournalEntry.created_at).all():
            for line in entry.lines:
                account = accounts.get(line.account_id)
                rows.append({
                    "entry_date": entry.entry_date,
                    "reference": entry.reference,
                    "description": line.description or entry.description,
                    "memoriaal_type": entry.memoriaal_type,
                    "status": entry.status,
                    "code": account.code if account else "",
                    "account": account.name if account else "",
                    "debit": line.debit,
                    "credit": line.credit,
                })
        return export_workbook([
            Sheet(
                name="Journaal",
                title="Journaalposten",
                columns=[
                    Column("entry_date", "Datum", 12),
                    Column("reference", "Referentie", 16),
                    Column("description", "Omschrijving", 40),
                    Column("memoriaal_type", "Dagboek", 14),
                    Column("status", "Status", 10),
                    Column("code", "Rekening", 10),
                    Column("account", "Rekeningnaam", 30),
                    Column("debit", "Debet", **AMOUNT_COLUMNS),
                    Column("credit", "Credit", **AMOUNT_COLUMNS),
                ],
                rows=rows,
            )
        ])

    def trial_balance_workbook(self, start_date: date | None = None, end_date: date | None = None) -> bytes:
        report = self.reports.trial_balance(start_date, end_date)
        rows = [
            {"code": t.code, "name": t.name, "account_type": t.account_type.value,
             "debit": t.debit, "credit": t.credit, "balance": t.balance}
            for t in report["accounts"]
        ]
        rows.append({"name": "Totaal", "debit": report["total_debit"], "credit": report["total_credit"]})
        return export_workbook([
            Sheet(
                name="Proefbalans",
                title="Proefbalans",
                columns=[
                    Column("code", "Code", 10),
                    Column("name", "Rekening", 35),
                    Column("account_type", "Type", 12),
                    Column("debit", "Debet", **AMOUNT_COLUMNS),
                    Column("credit", "Credit", **AMOUNT_COLUMNS),
                    Column("balance", "Saldo", **AMOUNT_COLUMNS),
                ],
                rows=rows,
            )
        ])

    @staticmethod
    def _group_rows(groups) -> list[dict]:
        rows = []
        for group in groups:
            rows.append({"label": group.category, "amount": group.total})
            for account in group.accounts:
                rows.append({"code": account.code, "label": f"  {account.name}", "amount": account.balance})
        return rows

    def profit_and_loss_workbook(self, start_date: date, end_date: date) -> bytes:
        report = self.reports.profit_and_loss(start_date, end_date)
        rows = [{"label": "Opbrengsten"}]
        rows += self._group_rows(report["revenue_groups"])
        rows.append({"label": "Totaal opbrengsten", "amount": report["total_revenue"]})
        rows.append({"label": "Kosten"})
        rows += self._group_rows(report["expense_groups"])
        rows.append({"label": "Totaal kosten", "amount": report["total_expenses"]})
        rows.append({"label": "Resultaat", "amount": report["net_profit"]})
        return export_workbook([
            Sheet(
                name="Winst en verlies",
                title=f"Winst- en verliesrekening {start_date.isoformat()} t/m {end_date.isoformat()}",
                columns=[Column("code", "Code", 10), Column("label", "Omschrijving", 40),
                         Column("amount", "Bedrag", **AMOUNT_COLUMNS)],
                rows=rows,
            )
        ])

    def balance_sheet_workbook(self, end_date: date) -> bytes:
        report = self.reports.balance_sheet(end_date)
        rows = [{"label": "Activa"}]
        rows += self._group_rows(report["asset_groups"])
        rows.append({"label": "Totaal activa", "amount": report["total_assets"]})
        rows.append({"label": "Passiva"})
        rows += self._group_rows(report["equity_groups"])
        rows.append({"label": "Onverdeeld resultaat", "amount": report["undistributed_result"]})
        rows += self._group_rows(report["liability_groups"])
        rows.append({"label": "Totaal passiva", "amount": report["total_liabilities_equity"]})
        return export_workbook([
            Sheet(
                name="Balans",
                title=f"Balans per {end_date.isoformat()}",
                columns=[Column("code", "Code", 10), Column("label", "Omschrijving", 40),
                         Column("amount", "Bedrag", **AMOUNT_COLUMNS)],
                rows=rows,
            )
        ])

    # --- Excel-import ------------------------------------------------------

    def import_accounts(self, content: bytes) -> dict:
        """Rekeningen upserten op code; foute regels worden gerapporteerd en overgeslagen."""
        existing = {a.code: a for a in self.db.query(Account).all()}
        created = updated = 0
        errors = []
        for number, row in enumerate(read_rows(content), start=2):
            code = _pick(row, "code", "nummer")
            name = _pick(row, "naam", "name", "omschrijving")
            raw_type = _pick(row, "type").lower()
            category = _pick(row, "categor") or None
            if not code or not name:
                errors.append({"row": number, "error": "Code en naam zijn verplicht"})
                continue
            account_type = ACCOUNT_TYPE_ALIASES.get(raw_type)
            if account_type is None:
                errors.append({"row": number, "error": f"Onbekend rekeningtype '{raw_type}'"})
                continue

            account = existing.get(code)
            if account is None:
                account = Account(code=code, name=name, account_type=account_type.value)
                self.db.add(account)
                existing[code] = account
                created += 1
            else:
                account.name = name
                account.account_type = account_type.value
                updated += 1
            account.tax_category = category or infer_tax_category(name, code, account_type)

        self.db.commit()
        logger.info("accounts_imported", created=created, updated=updated, errors=len(errors))
        return {"created": created, "updated": updated, "errors": errors}

    def import_contacts(self, content: bytes) -> dict:
        """Relaties upserten op bedrijfsnaam (hoofdletterongevoelig)."""
        existing = {c.company_name.lower(): c for c in self.db.query(Contact).all()}
        created = updated = 0
        errors = []
        for number, row in enumerate(read_rows(content), start=2):
            name = _pick(row, "bedrijf", "company", "naam", "name")
            if not name:
                errors.append({"row": number, "error": "Naam is verplicht"})
                continue
            raw_type = _pick(row, "type", "relatie").lower()
            relation_type = RELATION_TYPE_ALIASES.get(raw_type or "customer")
            if relation_type is None:
                errors.append({"row": number, "error": f"Onbekend relatietype '{raw_type}'"})
                continue

            values = {
                "email": _pick(row, "mail") or None,
                "phone": _pick(row, "telefoon", "phone") or None,
                "iban": _pick(row, "iban") or None,
                "city": _pick(row, "plaats", "city") or None,
                "vat_number": _pick(row, "btw", "vat") or None,
                "coc_number": _pick(row, "kvk", "coc") or None,
                "relation_type": relation_type.value,
            }
            contact = existing.get(name.lower())
            if contact is None:
                contact = Contact(company_name=name)
                self.db.add(contact)
                existing[name.lower()] = contact
                created += 1
            else:
                updated += 1
            for field, value in values.items():
                if value is not None:
                    setattr(contact, field, value)

        self.db.commit()
        logger.info("contacts_imported", created=created, updated=updated, errors=len(errors))
        return {"created": created, "updated": updated, "errors": errors}
