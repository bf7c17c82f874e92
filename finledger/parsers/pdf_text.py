"""Default text extraction service backed by pdfplumber."""

from pathlib import Path

import pdfplumber


def extract_text(file_path: Path) -> str:
    """
    Return the text layer of every page, joined with newlines.

    OSError from opening the file propagates unchanged so the dispatcher can
    decide whether it is worth retrying.
    """
    full_text = ""
    with pdfplumber.open(file_path) as pdf:
        for page in pdf.pages:
            text = page.extract_text()
            if text:
                full_text += text + "\n"
    return full_text
