"""
Reports: proefbalans, winst- en verliesrekening, balans, BTW-aangifte, dashboard.

Alleen definitieve journaalposten tellen mee. Elke rapportage telt de
regels in het gevraagde datumvenster opnieuw op.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from zzpboek.application.services.system_accounts import SystemAccounts
from zzpboek.domain.services import (
    AccountTotal,
    calculate_invoice_vat,
    code_sort_key,
    group_by_category,
    quarter_period,
    sum_groups,
)
from zzpboek.domain.value_objects import (
    BALANCE_TOLERANCE,
    VAT_RATES,
    ZERO,
    AccountType,
    EntryStatus,
    LineItem,
    SalesInvoiceStatus,
    VatCode,
    round_cents,
    to_decimal,
)
from zzpboek.infrastructure.database.models import (
    Account,
    JournalEntry,
    JournalLine,
    Notification,
    PurchaseInvoice,
    SalesInvoice,
)


def _code_in(code: str, low: int, high: int) -> bool:
    number, _ = code_sort_key(code)
    return low <= number <= high


class ReportService:
    def __init__(self, db: Session):
        self.db = db

    def account_totals(self, start_date: date | None = None, end_date: date | None = None) -> list[AccountTotal]:
        """Debet en credit per rekening over definitieve regels in het venster."""
        query = (
            self.db.query(
                Account,
                func.coalesce(func.sum(JournalLine.debit), 0).label("debit"),
                func.coalesce(func.sum(JournalLine.credit), 0).label("credit"),
            )
            .join(JournalLine, JournalLine.account_id == Account.id)
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .filter(JournalEntry.status == EntryStatus.FINAL.value)
        )
        if start_date:
            query = query.filter(JournalEntry.entry_date >= start_date)
        if end_date:
            query = query.filter(JournalEntry.entry_date <= end_date)

        totals = []
        for account, debit, credit in query.group_by(Account.id).all():
            total = AccountTotal(
                account_id=account.id,
                code=account.code,
                name=account.name,
                account_type=AccountType(account.account_type),
                tax_category=account.tax_category,
            )
            total.add(round_cents(debit), round_cents(credit))
            totals.append(total)
        return sorted(totals, key=lambda t: code_sort_key(t.code))

    def trial_balance(self, start_date: date | None = None, end_date: date | None = None) -> dict:
        totals = self.account_totals(start_date, end_date)
        total_debit = sum((t.debit for t in totals), ZERO)
        total_credit = sum((t.credit for t in totals), ZERO)
        difference = total_debit - total_credit
        return {
            "start_date": start_date,
            "end_date": end_date,
            "accounts": totals,
            "total_debit": total_debit,
            "total_credit": total_credit,
            "difference": difference,
            "is_balanced": abs(difference) < BALANCE_TOLERANCE,
        }

    def profit_and_loss(self, start_date: date, end_date: date) -> dict:
        totals = self.account_totals(start_date, end_date)
        revenue_groups = group_by_category(t for t in totals if t.account_type == AccountType.REVENUE)
        expense_groups = group_by_category(t for t in totals if t.account_type == AccountType.EXPENSE)
        total_revenue = sum_groups(revenue_groups)
        total_expenses = sum_groups(expense_groups)
        return {
            "start_date": start_date,
            "end_date": end_date,
            "revenue_groups": revenue_groups,
            "expense_groups": expense_groups,
            "total_revenue": total_revenue,
            "total_expenses": total_expenses,
            "net_profit": total_revenue - total_expenses,
        }

    def balance_sheet(self, end_date: date) -> dict:
        """Balans op basis van alle definitieve regels tot en met de einddatum."""
        totals = self.account_totals(None, end_date)

        def by_type(account_type: AccountType) -> list[AccountTotal]:
            return [t for t in totals if t.account_type == account_type]

        asset_groups = group_by_category(by_type(AccountType.ASSET))
        liability_groups = group_by_category(by_type(AccountType.LIABILITY))
        equity_groups = group_by_category(by_type(AccountType.EQUITY))

        total_assets = sum_groups(asset_groups)
        total_liabilities = sum_groups(liability_groups)
        total_equity = sum_groups(equity_groups)
        total_liabilities_equity = total_liabilities + total_equity

        undistributed_result = sum((t.balance for t in by_type(AccountType.REVENUE)), ZERO) - sum(
            (t.balance for t in by_type(AccountType.EXPENSE)), ZERO
        )

        return {
            "end_date": end_date,
            "asset_groups": asset_groups,
            "liability_groups": liability_groups,
            "equity_groups": equity_groups,
            "total_assets": total_assets,
            "total_liabilities": total_liabilities,
            "total_equity": total_equity,
            "undistributed_result": undistributed_result,
            "total_liabilities_equity": total_liabilities_equity,
            "difference": abs(total_assets - total_liabilities_equity),
        }

    def vat_return(self, start_date: date, end_date: date) -> dict:
        """BTW-aangifte uit het grootboek."""
        totals = self.account_totals(start_date, end_date)
        accounts = {a.id: a for a in self.db.query(Account).all()}
        system = SystemAccounts(self.db)

        buckets = {code: ZERO for code in VatCode}
        box1_revenue = ZERO
        for total in totals:
            if total.account_type != AccountType.REVENUE:
                continue
            box1_revenue += total.balance
            vat_code = accounts[total.account_id].vat_code
            bucket = VatCode(vat_code) if vat_code in {c.value for c in VatCode} else VatCode.NUL
            buckets[bucket] += total.balance

        def vat_on(code: VatCode) -> Decimal:
            return round_cents(buckets[code] * VAT_RATES[code] / Decimal("100"))

        rubrieken = [
            {"rubriek": "1a", "description": "Leveringen/diensten belast met hoog tarief",
             "grondslag": round_cents(buckets[VatCode.HOOG]), "btw": vat_on(VatCode.HOOG)},
            {"rubriek": "1b", "description": "Leveringen/diensten belast met laag tarief",
             "grondslag": round_cents(buckets[VatCode.LAAG]), "btw": vat_on(VatCode.LAAG)},
            {"rubriek": "1e", "description": "Leveringen/diensten belast met 0% of niet bij u belast",
             "grondslag": round_cents(buckets[VatCode.NUL]), "btw": ZERO},
            {"rubriek": "2a", "description": "Leveringen/diensten waarbij de heffing van btw naar u is verlegd",
             "grondslag": round_cents(buckets[VatCode.VERLEGD]), "btw": ZERO},
        ]

        by_id = {t.account_id: t for t in totals}

        def side_total(role: str, debit_side: bool) -> Decimal:
            account = system.find(role)
            total = by_id.get(account.id) if account else None
            if total is None:
                return ZERO
            return total.debit - total.credit if debit_side else total.credit - total.debit

        box1_vat = side_total("vat_payable", debit_side=False)
        box5b = side_total("vat_receivable", debit_side=True)
        net_payable = box1_vat - box5b

        return {
            "start_date": start_date,
            "end_date": end_date,
            "rubrieken": rubrieken,
            "box1_revenue": round_cents(box1_revenue),
            "box1_vat": round_cents(box1_vat),
            "box5b": round_cents(box5b),
            "net_payable": round_cents(net_payable),
            "is_refund": net_payable < 0,
        }

    def quarterly_vat_from_invoices(self, year: int, quarter: int) -> dict:
        """BTW per kwartaal uit verkoopfacturen (verzonden/betaald/vervallen) en inkoopfacturen."""
        start_date, end_date = quarter_period(year, quarter)
        counted = (SalesInvoiceStatus.SENT.value, SalesInvoiceStatus.PAID.value, SalesInvoiceStatus.OVERDUE.value)
        invoices = (
            self.db.query(SalesInvoice)
            .filter(
                SalesInvoice.invoice_date >= start_date,
                SalesInvoice.invoice_date <= end_date,
                SalesInvoice.status.in_(counted),
            )
            .all()
        )
        items = [
            LineItem(
                description=item.get("description", ""),
                quantity=to_decimal(item.get("quantity")),
                price=to_decimal(item.get("price")),
                vat_percentage=to_decimal(item.get("vat_percentage", 21)),
            )
            for invoice in invoices
            for item in (invoice.items or [])
        ]
        purchase_vat = [
            vat for (vat,) in self.db.query(PurchaseInvoice.vat_amount).filter(
                PurchaseInvoice.invoice_date >= start_date,
                PurchaseInvoice.invoice_date <= end_date,
            )
        ]
        summary = calculate_invoice_vat(items, purchase_vat)
        return {
            "year": year,
            "quarter": quarter,
            "start_date": start_date,
            "end_date": end_date,
            "omzet_hoog": summary.omzet_hoog,
            "omzet_laag": summary.omzet_laag,
            "omzet_nul": summary.omzet_nul,
            "voorbelasting": summary.voorbelasting,
            "verschuldigd": summary.verschuldigd,
            "teruggave": summary.teruggave,
            "totaal": summary.totaal,
        }

    def dashboard(self, year: int) -> dict:
        """Omzet, kosten per maand en kengetallen voor één jaar."""
        start_date, end_date = date(year, 1, 1), date(year, 12, 31)

        rows = (
            self.db.query(Account.code, JournalEntry.entry_date, JournalLine.debit, JournalLine.credit)
            .join(JournalLine, JournalLine.account_id == Account.id)
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .filter(
                JournalEntry.status == EntryStatus.FINAL.value,
                JournalEntry.entry_date >= start_date,
                JournalEntry.entry_date <= end_date,
            )
            .all()
        )
        monthly = {m: {"month": m, "revenue": ZERO, "expenses": ZERO} for m in range(1, 13)}
        for code, entry_date, debit, credit in rows:
            if _code_in(code, 8000, 8999):
                monthly[entry_date.month]["revenue"] += to_decimal(credit) - to_decimal(debit)
            elif _code_in(code, 4000, 7999):
                monthly[entry_date.month]["expenses"] += to_decimal(debit) - to_decimal(credit)
        revenue = sum((m["revenue"] for m in monthly.values()), ZERO)
        expenses = sum((m["expenses"] for m in monthly.values()), ZERO)

        balances = self.account_totals(None, end_date)

        def balance_of(account_type: AccountType, low: int = 0, high: int = 9999) -> Decimal:
            return sum(
                (t.balance for t in balances if t.account_type == account_type and _code_in(t.code, low, high)),
                ZERO,
            )

        bank_balance = sum(
            (
                t.balance for t in balances
                if t.account_type == AccountType.ASSET
                and (_code_in(t.code, 1000, 1099) or (t.tax_category or "").lower() == "liquide middelen")
            ),
            ZERO,
        )
        receivables = balance_of(AccountType.ASSET, 1300, 1399)
        payables = balance_of(AccountType.LIABILITY, 1600, 1699)
        current_assets = balance_of(AccountType.ASSET, 1000, 1999)
        total_assets = balance_of(AccountType.ASSET)
        total_liabilities = balance_of(AccountType.LIABILITY)
        equity = total_assets - total_liabilities

        liquidity = round_cents(current_assets / payables) if payables else None
        solvency = round_cents(equity / total_assets) if total_assets else None

        open_invoices = (
            self.db.query(func.count(SalesInvoice.id))
            .filter(SalesInvoice.status.in_((SalesInvoiceStatus.SENT.value, SalesInvoiceStatus.OVERDUE.value)))
            .scalar()
        )
        unread = self.db.query(func.count(Notification.id)).filter(Notification.is_read.is_(False)).scalar()

        return {
            "year": year,
            "revenue": round_cents(revenue),
            "expenses": round_cents(expenses),
            "profit": round_cents(revenue - expenses),
            "monthly": [
                {"month": m["month"], "revenue": round_cents(m["revenue"]), "expenses": round_cents(m["expenses"])}
                for m in monthly.values()
            ],
            "bank_balance": round_cents(bank_balance),
            "receivables": round_cents(receivables),
            "payables": round_cents(payables),
            "liquidity_ratio": liquidity,
            "solvency_ratio": solvency,
            "open_sales_invoices": open_invoices or 0,
            "unread_notifications": unread or 0,
        }
