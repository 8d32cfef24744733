from __future__ import annotations

import io
import logging
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
from pypdf import PageObject, PdfWriter

from app.schemas import BenchmarkDocument
from datastore.mock_dynamodb import MockDynamoDBTable
from services.documents import DocumentIngestor, extract_pdf_text, match_customer
from storage.benchmark_stage import BenchmarkStage


def _blank_pdf(num_pages: int = 1) -> bytes:
    writer = PdfWriter()
    for _ in range(num_pages):
        writer.add_page(PageObject.create_blank_page(width=612, height=792))
    output = io.BytesIO()
    writer.write(output)
    return output.getvalue()


def _mock_reader(page_texts: list[str]) -> Mock:
    reader = Mock()
    pages = []
    for text in page_texts:
        page = Mock()
        page.extract_text.return_value = text
        pages.append(page)
    reader.pages = pages
    return reader


def _ingestor(tmp_path: Path) -> DocumentIngestor:
    stage = BenchmarkStage(name="customer_benchmarks", root_path=tmp_path / "stage")
    table = MockDynamoDBTable(
        name="CUSTOMER_BENCHMARK_DOCS",
        model=BenchmarkDocument,
        key_attribute="file_name",
        persistence_path=tmp_path / "docs.json",
    )
    return DocumentIngestor(stage=stage, table=table)


def test_stage_put_get_and_list(tmp_path: Path) -> None:
    stage = BenchmarkStage(name="customer_benchmarks", root_path=tmp_path)
    stage.put_object("Apex.pdf", b"%PDF")
    stage.put_object("notes.txt", b"hello")

    assert (tmp_path / "Apex.pdf").read_bytes() == b"%PDF"
    assert list(stage.list_objects()) == ["Apex.pdf", "notes.txt"]
    assert list(stage.list_objects(suffix=".PDF")) == ["Apex.pdf"]

    fresh = BenchmarkStage(name="customer_benchmarks", root_path=tmp_path)
    assert fresh.get_object("notes.txt") == b"hello"


def test_stage_missing_key_and_path_traversal(tmp_path: Path) -> None:
    stage = BenchmarkStage(name="customer_benchmarks", root_path=tmp_path / "stage")

    with pytest.raises(KeyError, match="missing.pdf"):
        stage.get_object("missing.pdf")

    assert stage.put_object("../../escape.pdf", b"x") == "escape.pdf"
    assert (tmp_path / "stage" / "escape.pdf").exists()


@pytest.mark.parametrize(
    ("file_name", "expected"),
    [
        ("Apex Cloud Data Center - Temperature Spec.pdf", ("CUST-DC-8472", "Apex Cloud Data Center")),
        ("biosyn pharmaceutical benchmarks.PDF", ("CUST-PH-3291", "BioSyn Pharmaceutical Manufacturing")),
        ("2025/PRECISION AUTOMOTIVE.pdf", ("CUST-AU-5614", "Precision Automotive Components")),
        ("Unknown Facility.pdf", (None, None)),
    ],
)
def test_match_customer_by_file_name(file_name: str, expected) -> None:
    assert match_customer(file_name) == expected


def test_extract_pdf_text_marks_non_empty_pages() -> None:
    reader = _mock_reader(["Range 18-21 C", "   ", "Humidity 40%"])

    with patch("services.documents.PdfReader", return_value=reader):
        text = extract_pdf_text(b"%PDF")

    assert text == "[Page 1]\nRange 18-21 C\n\n[Page 3]\nHumidity 40%"


def test_extract_pdf_text_from_real_blank_pdf() -> None:
    assert extract_pdf_text(_blank_pdf(2)) == ""


def test_ingest_tags_documents_and_skips_other_files(tmp_path: Path) -> None:
    ingestor = _ingestor(tmp_path)
    ingestor.stage.put_object("Apex Cloud Data Center spec.pdf", b"%PDF-apex")
    ingestor.stage.put_object("Mystery.pdf", b"%PDF-mystery")
    ingestor.stage.put_object("readme.txt", b"not a pdf")

    with patch("services.documents.PdfReader", return_value=_mock_reader(["Keep between 18 and 21 C"])):
        documents = ingestor.ingest()

    assert [doc.file_name for doc in documents] == ["Apex Cloud Data Center spec.pdf", "Mystery.pdf"]
    apex, mystery = documents
    assert apex.customer_id == "CUST-DC-8472"
    assert apex.customer_name == "Apex Cloud Data Center"
    assert apex.document_content == "[Page 1]\nKeep between 18 and 21 C"
    assert mystery.customer_id is None and mystery.customer_name is None
    assert [doc.file_name for doc in ingestor.list_documents()] == [doc.file_name for doc in documents]


def test_ingest_skips_unreadable_pdf(tmp_path: Path, caplog) -> None:
    ingestor = _ingestor(tmp_path)
    ingestor.stage.put_object("BioSyn Pharmaceutical.pdf", b"this is not a pdf")

    with caplog.at_level(logging.WARNING):
        documents = ingestor.ingest()

    assert documents == []
    assert any(getattr(record, "file_name", None) == "BioSyn Pharmaceutical.pdf" for record in caplog.records)


def test_upload_validates_input(tmp_path: Path) -> None:
    ingestor = _ingestor(tmp_path)

    with pytest.raises(ValueError, match="empty"):
        ingestor.upload("Apex.pdf", b"")
    with pytest.raises(ValueError, match="PDF"):
        ingestor.upload("Apex.docx", b"data")

    assert ingestor.upload("Apex.pdf", _blank_pdf()) == "Apex.pdf"


def test_reingest_replaces_existing_row(tmp_path: Path) -> None:
    ingestor = _ingestor(tmp_path)
    ingestor.stage.put_object("Precision Automotive.pdf", b"%PDF")
    ingestor.table.put_item(
        BenchmarkDocument(
            file_name="Precision Automotive.pdf",
            document_content="stale",
            ingested_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
    )

    with patch("services.documents.PdfReader", return_value=_mock_reader(["fresh"])):
        ingestor.ingest()

    (document,) = ingestor.list_documents()
    assert document.document_content == "[Page 1]\nfresh"
    assert document.customer_id == "CUST-AU-5614"


def test_ingest_continues_past_a_malformed_page(tmp_path: Path, caplog) -> None:
    ingestor = _ingestor(tmp_path)
    ingestor.stage.put_object("Apex Cloud Data Center spec.pdf", b"%PDF-apex")
    ingestor.stage.put_object("BioSyn Pharmaceutical.pdf", b"%PDF-biosyn")

    def fake_extract(data: bytes) -> str:
        if data == b"%PDF-apex":
            raise ValueError("bad content stream")
        return "[Page 1]\nKeep between 2 and 8 C"

    with patch("services.documents.extract_pdf_text", side_effect=fake_extract):
        with caplog.at_level(logging.WARNING):
            documents = ingestor.ingest()

    assert [doc.file_name for doc in documents] == ["BioSyn Pharmaceutical.pdf"]
    skipped = [r for r in caplog.records if getattr(r, "file_name", None) == "Apex Cloud Data Center spec.pdf"]
    assert skipped and skipped[0].reason == "bad content stream"


def test_ingest_drops_rows_for_documents_no_longer_staged(tmp_path: Path) -> None:
    ingestor = _ingestor(tmp_path)
    ingestor.stage.put_object("Precision Automotive.pdf", b"%PDF")
    ingestor.table.put_item(
        BenchmarkDocument(
            file_name="Removed Facility.pdf",
            document_content="old",
            ingested_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
    )

    with patch("services.documents.PdfReader", return_value=_mock_reader(["fresh"])):
        ingestor.ingest()

    assert [doc.file_name for doc in ingestor.list_documents()] == ["Precision Automotive.pdf"]
    assert ingestor.table.get_item("Removed Facility.pdf") is None
