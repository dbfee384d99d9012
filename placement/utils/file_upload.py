"""
File Upload Utility - Extract text from resume files.

Supported formats:
- PDF (.pdf) using PyPDF2
- Word (.docx) using python-docx
- Plain Text (.txt)

Max file size: 5MB
"""

import io
import zipfile
from typing import Tuple

from docx import Document
from docx.opc.exceptions import PackageNotFoundError
from fastapi import UploadFile
from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError

from placement.core.errors import ValidationError

MAX_FILE_SIZE_MB = 5
MAX_FILE_SIZE_BYTES = MAX_FILE_SIZE_MB * 1024 * 1024
ALLOWED_EXTENSIONS = {".pdf", ".docx", ".txt"}


def get_file_extension(filename: str) -> str:
    """Get lowercase file extension."""
    if "." not in filename:
        return ""
    return "." + filename.rsplit(".", 1)[1].lower()


def extract_text(filename: str, content: bytes) -> str:
    """
    Extract text from raw file bytes.

    Raises:
        ValidationError on unsupported type, oversize or unreadable content
    """
    if not filename:
        raise ValidationError("No filename provided")

    ext = get_file_extension(filename)
    if ext not in ALLOWED_EXTENSIONS:
        raise ValidationError(f"Unsupported file type '{ext}'. Allowed: PDF, DOCX, TXT")

    if len(content) > MAX_FILE_SIZE_BYTES:
        raise ValidationError(f"File too large. Maximum size: {MAX_FILE_SIZE_MB}MB")

    if ext == ".pdf":
        text = extract_from_pdf(content)
    elif ext == ".docx":
        text = extract_from_docx(content)
    else:  # .txt
        text = extract_from_txt(content)

    if not text.strip():
        raise ValidationError("Could not extract text from file. File may be empty or corrupted.")
    return text


async def extract_text_from_file(file: UploadFile) -> Tuple[str, str]:
    """
    Extract text from uploaded file.

    Returns:
        Tuple of (extracted_text, filename)
    """
    content = await file.read()
    return extract_text(file.filename or "", content), file.filename


def extract_from_pdf(content: bytes) -> str:
    """Extract text from PDF bytes."""
    try:
        reader = PdfReader(io.BytesIO(content))
        text_parts = [page.extract_text() or "" for page in reader.pages]
    except (PdfReadError, ValueError) as e:
        raise ValidationError(f"Error reading PDF: {e}") from e
    return "\n".join(part for part in text_parts if part)


def extract_from_docx(content: bytes) -> str:
    """Extract text from DOCX bytes."""
    try:
        doc = Document(io.BytesIO(content))
    except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as e:
        raise ValidationError(f"Error reading DOCX: {e}") from e

    text_parts = [para.text for para in doc.paragraphs if para.text.strip()]

    # Tables
    for table in doc.tables:
        for row in table.rows:
            row_text = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if row_text:
                text_parts.append(" | ".join(row_text))

    return "\n".join(text_parts)


def extract_from_txt(content: bytes) -> str:
    """Extract text from TXT bytes."""
    for encoding in ["utf-8", "cp1252"]:
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue
    return content.decode("latin-1")


def get_supported_formats() -> dict:
    """Get info about supported file formats."""
    return {
        "supported_formats": [
            {"extension": ".pdf", "name": "PDF"},
            {"extension": ".docx", "name": "Word Document"},
            {"extension": ".txt", "name": "Plain Text"},
        ],
        "max_size_mb": MAX_FILE_SIZE_MB,
    }
