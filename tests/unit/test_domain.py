"""
Unit tests - Domain layer: dubbel boekhouden, BTW, IB-berekening, afschrijving.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from zzpboek.domain.entities import JournalEntry, JournalLine
from zzpboek.domain.exceptions import BookkeepingError, EntryLockedError, UnbalancedEntryError
from zzpboek.domain.services import (
    AccountTotal,
    IncomeTaxCalculator,
    build_tax_balance_sheet,
    calculate_invoice_vat,
    group_by_category,
    quarter_period,
    signed_balance,
    yearly_depreciation,
)
from zzpboek.domain.value_objects import (
    AccountType,
    EntryStatus,
    LineItem,
    MemoriaalType,
    Money,
    round_cents,
)

BANK = uuid4()
REVENUE = uuid4()
VAT = uuid4()


def entry(*lines: JournalLine, status=EntryStatus.DRAFT) -> JournalEntry:
    return JournalEntry(entry_date=date(2024, 3, 1), description="Factuur 2024-001", lines=list(lines), status=status)


class TestJournalLine:
    """Een regel is debet of credit, nooit negatief."""

    def test_amounts_are_coerced_to_decimal(self):
        line = JournalLine(account_id=BANK, debit="12.50")
        assert line.debit == Decimal("12.50")
        assert line.credit == Decimal("0")

    def test_negative_amount_rejected(self):
        with pytest.raises(BookkeepingError):
            JournalLine(account_id=BANK, debit=Decimal("-1"))

    def test_both_sides_rejected(self):
        with pytest.raises(BookkeepingError):
            JournalLine(account_id=BANK, debit=Decimal("1"), credit=Decimal("1"))

    def test_zero_line(self):
        assert JournalLine(account_id=BANK).is_zero is True


class TestBalanceCheck:
    """Totaal debet = totaal credit (binnen 1 cent)."""

    def test_balanced_entry(self):
        e = entry(
            JournalLine(account_id=BANK, debit=Decimal("121.00")),
            JournalLine(account_id=REVENUE, credit=Decimal("100.00")),
            JournalLine(account_id=VAT, credit=Decimal("21.00")),
        )
        assert e.total_debit == Money(Decimal("121.00"))
        assert e.total_credit == Money(Decimal("121.00"))
        assert e.is_balanced() is True

    def test_difference_below_tolerance_is_balanced(self):
        e = entry(
            JournalLine(account_id=BANK, debit=Decimal("100.00")),
            JournalLine(account_id=REVENUE, credit=Decimal("99.995")),
        )
        assert e.is_balanced() is True

    def test_unbalanced_entry(self):
        e = entry(
            JournalLine(account_id=BANK, debit=Decimal("100.00")),
            JournalLine(account_id=REVENUE, credit=Decimal("90.00")),
        )
        assert e.is_balanced() is False
        assert e.difference.amount == Decimal("10.00")

    def test_finalize_unbalanced_fails(self):
        e = entry(
            JournalLine(account_id=BANK, debit=Decimal("100.00")),
            JournalLine(account_id=REVENUE, credit=Decimal("90.00")),
        )
        with pytest.raises(UnbalancedEntryError) as exc:
            e.finalize()
        assert exc.value.total_debit == Decimal("100.00")

    def test_finalize_without_amounts_fails(self):
        with pytest.raises(BookkeepingError):
            entry(JournalLine(account_id=BANK)).finalize()

    def test_finalize_balanced_entry(self):
        e = entry(
            JournalLine(account_id=BANK, debit=Decimal("50")),
            JournalLine(account_id=REVENUE, credit=Decimal("50")),
        )
        final = e.finalize()
        assert final.is_final is True
        assert final.finalized_at is not None
        assert e.status == EntryStatus.DRAFT

    def test_final_entry_is_locked(self):
        final = entry(
            JournalLine(account_id=BANK, debit=Decimal("50")),
            JournalLine(account_id=REVENUE, credit=Decimal("50")),
        ).finalize()
        with pytest.raises(EntryLockedError):
            final.finalize()
        with pytest.raises(EntryLockedError):
            final.with_lines([])


class TestReversal:
    def test_reversal_swaps_debit_and_credit(self):
        final = entry(
            JournalLine(account_id=BANK, debit=Decimal("121")),
            JournalLine(account_id=REVENUE, credit=Decimal("121")),
        ).finalize()
        reversal = final.reversal(date(2024, 4, 1))

        assert reversal.memoriaal_type == MemoriaalType.CORRECTIE
        assert reversal.status == EntryStatus.FINAL
        assert reversal.entry_date == date(2024, 4, 1)
        assert reversal.description == "Correctie: Factuur 2024-001"
        assert [(l.account_id, l.debit, l.credit) for l in reversal.lines] == [
            (BANK, Decimal("0"), Decimal("121")),
            (REVENUE, Decimal("121"), Decimal("0")),
        ]

    def test_draft_cannot_be_reversed(self):
        with pytest.raises(BookkeepingError):
            entry(JournalLine(account_id=BANK, debit=Decimal("1"))).reversal()


class TestBalances:
    def test_signed_balance_follows_normal_side(self):
        assert signed_balance(AccountType.ASSET, Decimal("100"), Decimal("30")) == Decimal("70")
        assert signed_balance("Expense", Decimal("100"), Decimal("30")) == Decimal("70")
        assert signed_balance(AccountType.REVENUE, Decimal("30"), Decimal("100")) == Decimal("70")
        assert signed_balance("Liability", Decimal("30"), Decimal("100")) == Decimal("70")

    def test_group_by_category_drops_zero_and_sorts_by_code(self):
        totals = [
            AccountTotal(uuid4(), "6210", "Software", AccountType.EXPENSE, "Kantoorkosten", Decimal("50")),
            AccountTotal(uuid4(), "6200", "Telefoon", AccountType.EXPENSE, "Kantoorkosten", Decimal("30")),
            AccountTotal(uuid4(), "4000", "Brandstof", AccountType.EXPENSE, "Kosten van vervoer",
                         Decimal("10"), Decimal("10")),
            AccountTotal(uuid4(), "6900", "Overig", AccountType.EXPENSE, None, Decimal("5")),
        ]
        groups = group_by_category(totals)

        assert [g.category for g in groups] == ["Kantoorkosten", "Overig"]
        assert [a.code for a in groups[0].accounts] == ["6200", "6210"]
        assert groups[0].total == Decimal("80")

    def test_tax_balance_sheet_matches_categories_case_insensitive(self):
        totals = [
            AccountTotal(uuid4(), "1100", "Bank", AccountType.ASSET, "Liquide middelen", Decimal("1500")),
            AccountTotal(uuid4(), "0500", "Eigen vermogen", AccountType.EQUITY, "Ondernemingsvermogen",
                         credit=Decimal("1500")),
        ]
        sheet = build_tax_balance_sheet(totals)

        liquid = next(g for g in sheet.assets if g.category == "Liquide Middelen")
        assert [a.code for a in liquid.accounts] == ["1100"]
        assert sheet.total_assets == Decimal("1500")
        assert sheet.total_liabilities == Decimal("1500")
        assert sheet.is_balanced is True


class TestInvoiceVat:
    """BTW-aangifte per kwartaal uit factuurregels."""

    def test_quarter_period(self):
        assert quarter_period(2024, 1) == (date(2024, 1, 1), date(2024, 3, 31))
        assert quarter_period(2024, 2) == (date(2024, 4, 1), date(2024, 6, 30))
        assert quarter_period(2024, 4) == (date(2024, 10, 1), date(2024, 12, 31))

    def test_invalid_quarter(self):
        with pytest.raises(ValueError):
            quarter_period(2024, 5)

    def test_buckets_per_rate(self):
        items = [
            LineItem("Advies", Decimal("2"), Decimal("50"), Decimal("21")),
            LineItem("Boeken", Decimal("1"), Decimal("100"), Decimal("9")),
            LineItem("Export", Decimal("1"), Decimal("40"), Decimal("0")),
        ]
        summary = calculate_invoice_vat(items, [Decimal("10"), Decimal("5.50")])

        assert summary.omzet_hoog.grondslag == Decimal("100.00")
        assert summary.omzet_hoog.btw == Decimal("21.00")
        assert summary.omzet_laag.btw == Decimal("9.00")
        assert summary.omzet_nul.grondslag == Decimal("40.00")
        assert summary.verschuldigd == Decimal("30.00")
        assert summary.voorbelasting == Decimal("15.50")
        assert summary.totaal == Decimal("14.50")
        assert summary.teruggave == Decimal("0")

    def test_refund_when_input_vat_exceeds_output(self):
        items = [LineItem("Advies", Decimal("1"), Decimal("100"))]
        summary = calculate_invoice_vat(items, [Decimal("50")])
        assert summary.totaal == Decimal("-29.00")
        assert summary.teruggave == Decimal("29.00")

    def test_other_rates_count_as_high(self):
        summary = calculate_invoice_vat([LineItem("X", Decimal("1"), Decimal("100"), Decimal("19"))], [])
        assert summary.omzet_hoog.grondslag == Decimal("100.00")
        assert summary.omzet_hoog.btw == Decimal("19.00")


class TestIncomeTax:
    """Winst uit onderneming met ondernemersaftrek en MKB-winstvrijstelling."""

    def test_full_calculation(self):
        result = IncomeTaxCalculator().calculate(
            year=2024,
            revenue=Decimal("60000"),
            expenses=Decimal("10000"),
            hours_criterion_met=True,
        )
        assert result.commercial_profit == Decimal("50000.00")
        assert result.zelfstandigenaftrek == Decimal("3750")
        assert result.startersaftrek == Decimal("0")
        assert result.profit_after_deductions == Decimal("46250.00")
        assert result.mkb_winstvrijstelling == Decimal("6155.88")
        assert result.taxable_income == Decimal("40094.12")

    def test_no_deductions_without_hours_criterion(self):
        result = IncomeTaxCalculator().calculate(2024, Decimal("20000"), Decimal("5000"), is_starter=True)
        assert result.zelfstandigenaftrek == Decimal("0")
        assert result.startersaftrek == Decimal("2123")

    def test_corrections_added_to_profit(self):
        result = IncomeTaxCalculator().calculate(
            2024, Decimal("20000"), Decimal("5000"),
            private_use_car=Decimal("1500"), manual_corrections=Decimal("-500"),
        )
        assert result.adjusted_profit == Decimal("16000.00")

    def test_loss_is_not_negative_after_deductions(self):
        result = IncomeTaxCalculator().calculate(2024, Decimal("1000"), Decimal("3000"), hours_criterion_met=True)
        assert result.profit_after_deductions == Decimal("0.00")
        assert result.taxable_income == Decimal("0.00")

    @pytest.mark.parametrize(
        "investments, expected",
        [
            (Decimal("2800"), Decimal("0")),
            (Decimal("5000"), Decimal("1400.00")),
        ],
    )
    def test_kia_threshold(self, investments, expected):
        result = IncomeTaxCalculator().calculate(2024, Decimal("0"), Decimal("0"), investments=investments)
        assert result.kia_deduction == expected


class TestDepreciation:
    def test_pro_rata_in_purchase_year(self):
        amount = yearly_depreciation(Decimal("1200"), Decimal("0"), 4, date(2024, 7, 1), 2024)
        assert amount == Decimal("150.00")

    def test_full_year_after_purchase_year(self):
        amount = yearly_depreciation(Decimal("1200"), Decimal("0"), 4, date(2024, 7, 1), 2025, Decimal("150"))
        assert amount == Decimal("300.00")

    def test_never_below_residual_value(self):
        amount = yearly_depreciation(Decimal("1200"), Decimal("200"), 4, date(2024, 1, 1), 2028, Decimal("900"))
        assert amount == Decimal("100.00")
        assert yearly_depreciation(Decimal("1200"), Decimal("200"), 4, date(2024, 1, 1), 2029, Decimal("1000")) == 0

    def test_nothing_before_purchase(self):
        assert yearly_depreciation(Decimal("1200"), Decimal("0"), 4, date(2024, 1, 1), 2023) == 0


def test_round_cents_half_up():
    assert round_cents("2.675") == Decimal("2.68")
    assert round_cents(None) == Decimal("0.00")
