"""Normalization of the tabular report.

The service's tabular download is CSV with quoted fields, some of which wrap
accession numbers in links. The normalized artifact is a plain TSV derived
from it by a deterministic transformation:
- comma-separated fields (quotes respected) become tab-separated
- quote characters are dropped
- `<a href=...>value</a>` and `=HYPERLINK("url","value")` become `value`
- trailing whitespace is trimmed (per field and per line) and blank lines are dropped

A report the csv module cannot parse raises ReportFormatError.
Same input bytes always produce the same output bytes.
"""

from __future__ import annotations

import csv
import io
import re
from typing import List

from .errors import ReportFormatError


ANCHOR_RE = re.compile(r"<a\b[^>]*>(.*?)</a\s*>", flags=re.IGNORECASE | re.DOTALL)
HYPERLINK_RE = re.compile(r'^=HYPERLINK\(\s*"[^"]*"\s*[,;]\s*"([^"]*)"\s*\)$', flags=re.IGNORECASE)


def unwrap_link(field: str) -> str:
    """Reduce a link-wrapped field to its displayed value."""
    m = HYPERLINK_RE.match(field.strip())
    if m:
        return m.group(1)
    return ANCHOR_RE.sub(lambda mm: mm.group(1), field)


def normalize_field(field: str) -> str:
    """Unwrap links, drop quote characters and trailing whitespace; leading space is kept."""
    return unwrap_link(field).replace('"', "").rstrip()


def normalize_tabular(data: bytes) -> bytes:
    """Convert the raw tabular report into the normalized TSV artifact."""
    text = data.decode("utf-8", errors="replace")
    out: List[str] = []
    try:
        for row in csv.reader(io.StringIO(text, newline="")):
            line = "\t".join(normalize_field(f) for f in row).rstrip()
            if line:
                out.append(line)
    except csv.Error as exc:
        raise ReportFormatError(f"tabular report is not valid CSV: {exc}") from exc
    return "".join(f"{line}\n" for line in out).encode("utf-8")
