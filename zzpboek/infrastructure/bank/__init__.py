"""Bank statement parsing."""

from zzpboek.infrastructure.bank.parsers import (
    CAMT053,
    CSV,
    MT940,
    ParsedTransaction,
    ParseResult,
    detect_format,
    parse_bank_file,
    parse_camt053,
    parse_csv,
    parse_mt940,
)
