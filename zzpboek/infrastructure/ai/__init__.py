"""AI-assisted document extraction."""

from zzpboek.infrastructure.ai.invoice_extractor import InvoiceExtractor, extract_json, extract_pdf_text
