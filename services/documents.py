"""Parse staged benchmark PDFs into the CUSTOMER_BENCHMARK_DOCS table."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import lru_cache
from io import BytesIO
from typing import List, Optional, Sequence, Tuple

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from app.schemas import BenchmarkDocument
from datastore.mock_dynamodb import MockDynamoDBTable, build_default_documents_table
from models.records import DEFAULT_CUSTOMERS, Customer
from storage.benchmark_stage import BenchmarkStage, build_default_stage

logger = logging.getLogger(__name__)


def extract_pdf_text(pdf_bytes: bytes) -> str:
    """Extract page text from PDF bytes, prefixing each non-empty page with a marker."""
    reader = PdfReader(BytesIO(pdf_bytes))
    pages = []

    for number, page in enumerate(reader.pages, 1):
        text = page.extract_text()
        if text and text.strip():
            pages.append(f"[Page {number}]\n{text.strip()}")

    return "\n\n".join(pages)


def match_customer(
    file_name: str, customers: Sequence[Customer] = DEFAULT_CUSTOMERS
) -> Tuple[Optional[str], Optional[str]]:
    """Return ``(customer_id, customer_name)`` for the first pattern found in ``file_name``."""
    lowered = file_name.lower()
    for customer in customers:
        pattern = customer.document_pattern or customer.customer_name
        if pattern.lower() in lowered:
            return customer.customer_id, customer.customer_name
    return None, None


class DocumentIngestor:
    """Turns staged PDFs into customer-tagged ``BenchmarkDocument`` rows."""

    def __init__(
        self,
        stage: BenchmarkStage,
        table: MockDynamoDBTable[BenchmarkDocument],
        customers: Sequence[Customer] = DEFAULT_CUSTOMERS,
    ) -> None:
        self.stage = stage
        self.table = table
        self.customers = tuple(customers)

    def upload(self, file_name: str, data: bytes) -> str:
        if not data:
            raise ValueError("Uploaded file is empty.")
        if not file_name.lower().endswith(".pdf"):
            raise ValueError("Only PDF benchmark documents are accepted.")
        return self.stage.put_object(file_name, data)

    def ingest(self) -> List[BenchmarkDocument]:
        """Parse every staged PDF into the documents table and drop rows whose PDF is gone."""
        ingested: List[BenchmarkDocument] = []
        staged = list(self.stage.list_objects(suffix=".pdf"))
        for file_name in staged:
            try:
                content = extract_pdf_text(self.stage.get_object(file_name))
            except (PdfReadError, ValueError, KeyError) as exc:
                logger.warning(
                    "Skipping unreadable PDF",
                    extra={"file_name": file_name, "reason": str(exc)},
                )
                continue

            customer_id, customer_name = match_customer(file_name, self.customers)
            if customer_id is None:
                logger.warning("No customer matches document name", extra={"file_name": file_name})

            document = BenchmarkDocument(
                file_name=file_name,
                document_content=content,
                customer_id=customer_id,
                customer_name=customer_name,
                ingested_at=datetime.now(timezone.utc),
            )
            self.table.put_item(document)
            ingested.append(document)

        for stale in self.table.scan():
            if stale.file_name not in staged:
                self.table.delete_item(stale.file_name)
                logger.info(
                    "Dropped benchmark document no longer staged",
                    extra={"file_name": stale.file_name},
                )

        logger.info("Benchmark documents ingested", extra={"row_count": len(ingested)})
        return ingested

    def list_documents(self) -> List[BenchmarkDocument]:
        return sorted(self.table.scan(), key=lambda item: item.file_name)


@lru_cache
def build_default_ingestor() -> DocumentIngestor:
    return DocumentIngestor(stage=build_default_stage(), table=build_default_documents_table())
