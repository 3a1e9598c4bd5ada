from __future__ import annotations

import csv
import re
from typing import Dict, Sequence

_NUMBER = re.compile(r"^[+-]?(\d+([.,]\d*)?|[.,]\d+)([eE][+-]?\d+)?$")


def sniff_locale(sample: str) -> Dict[str, str]:
    """Guess delimiter and decimal separator of a small numeric table.

    Reference curves come from spreadsheets as often as from scripts, so
    decimal commas with semicolon or tab delimiters are common. A decimal
    comma is assumed when digit-comma-digit runs outnumber digit-dot-digit
    runs and a semicolon or tab is present to take over as delimiter.
    """

    lines = [ln for ln in (sample or "").splitlines() if ln.strip()]
    if not lines:
        return {"decimal": ".", "delimiter": ","}
    trimmed = "\n".join(lines)

    dot_matches = re.findall(r"\d\.\d", trimmed)
    comma_matches = re.findall(r"\d,\d", trimmed)
    other_separator = ";" in trimmed or "\t" in trimmed
    decimal = "," if other_separator and len(comma_matches) > len(dot_matches) else "."

    candidates = ";\t" if decimal == "," else ",;\t"
    delimiter = None
    try:
        delimiter = csv.Sniffer().sniff(trimmed, delimiters=candidates).delimiter
    except csv.Error:
        pass

    if not delimiter:
        counts = {sep: trimmed.count(sep) for sep in candidates}
        delimiter = max(counts, key=counts.get)
        if counts[delimiter] == 0:
            delimiter = ","
    return {"decimal": decimal, "delimiter": delimiter}


def looks_numeric(cells: Sequence[object]) -> bool:
    """True when every non-empty cell parses as a number."""

    texts = [str(cell).strip() for cell in cells if str(cell).strip()]
    return bool(texts) and all(_NUMBER.match(text) for text in texts)
