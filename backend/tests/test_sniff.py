"""Type sniffer tests."""

from pathlib import Path
from unittest.mock import patch

import pytest

from picon.conversion import sniff
from picon.conversion.models import SourceKind

DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def test_detects_pdf_from_content_not_extension(tmp_path):
    path = tmp_path / "report.txt"
    path.write_bytes(b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\n%%EOF\n")
    assert sniff.detect_type(path) == "application/pdf"


def test_detects_plain_text(tmp_path):
    path = tmp_path / "notes.pdf"
    path.write_text("just some notes\nnothing else\n")
    assert sniff.detect_type(path) == "text/plain"


def test_missing_file_raises(tmp_path):
    with pytest.raises(OSError):
        sniff.detect_type(tmp_path / "missing")


def test_predicates():
    assert sniff.is_pdf("application/pdf")
    assert not sniff.is_pdf("video/mp4")
    assert sniff.is_video("video/mp4")
    assert not sniff.is_video("application/pdf")
    assert sniff.is_office_document(DOCX)
    assert not sniff.is_office_document("text/plain")


@pytest.mark.parametrize("mime,expected", [
    ("application/pdf", SourceKind.PDF),
    ("video/quicktime", SourceKind.VIDEO),
    (DOCX, SourceKind.OFFICE),
    ("text/plain", None),
    ("image/png", None),
])
def test_classify(mime, expected):
    with patch.object(sniff, "detect_type", return_value=mime) as detect:
        assert sniff.classify(Path("upload")) == expected
    detect.assert_called_once()


def test_pdf_checked_before_allow_lists():
    with patch.object(sniff, "detect_type", return_value="application/pdf"), \
            patch.object(sniff, "VIDEO_TYPES", ["application/pdf"]):
        assert sniff.classify(Path("upload")) == SourceKind.PDF
