"""Order number formats: party orders are PREFIX/NNN, party-less orders PREFIX/N."""


def generate_party_prefix(name: str) -> str:
    """Initials of up to three words; names yielding a single initial use their first two letters."""
    prefix = ""
    for word in (name or "").upper().split(" "):
        if len(prefix) < 3 and len(word) > 0:
            prefix += word[0]
    if len(prefix) < 2:
        prefix = (name or "").strip().upper()[:2]
    return prefix


def format_party_order_number(prefix: str, number: int) -> str:
    return f"{prefix}/{str(number).zfill(3)}"


def format_counter_order_number(prefix: str, number: int) -> str:
    return f"{prefix}/{number}"
