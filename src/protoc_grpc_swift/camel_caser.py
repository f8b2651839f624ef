from __future__ import annotations


def _is_lower_case(ch: str) -> bool:
    # Uncased characters (digits) count as lower case, underscores never do.
    return ch != "_" and ch.lower() == ch


def to_lower_camel_case(s: str) -> str:
    """Convert an upper camel case identifier to lower camel case.

    >>> to_lower_camel_case("ImportCSV")
    'importCSV'
    >>> to_lower_camel_case("FOOBARImport")
    'foobarImport'
    """
    if not s:
        return ""

    index = next((i for i, ch in enumerate(s) if _is_lower_case(ch)), None)

    if index is None:
        # No lower case letter at all, as in "CSV".
        return s.lower()
    if index == 0:
        # Already lower camel case, as in "importCSV".
        return s
    if index == 1:
        # As in "ImportCSV".
        return s[0].lower() + s[1:]

    # The identifier starts with an abbreviation. Its last upper case letter
    # begins the next word, as in "FOOBARImport".
    split = index - 1
    return s[:split].lower() + s[split:]
