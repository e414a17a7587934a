"""Best-effort repair of model payloads cut off before the closing brackets.

When the model hits its token ceiling mid-array, the payload ends without
its closers. repair() appends them so the parse step gets one more chance.
It never touches a payload that already looks complete.
"""

_CLOSERS = {"{": "}", "[": "]"}
_FALLBACK_SUFFIX = b"]}"


def repair(raw: bytes) -> bytes:
    """Return raw, or raw with the missing closing brackets appended.

    A payload that ends with '}' and contains ']' is returned byte-identical.
    Otherwise the missing closers are computed by balance_brackets(); when the
    scan cannot decide, the literal suffix ']}' is appended.
    Dangling commas and unterminated strings are not fixed.
    """
    stripped = raw.rstrip()
    if stripped.endswith(b"}") and b"]" in stripped:
        return raw

    closers = balance_brackets(stripped)
    if closers is None:
        return stripped + _FALLBACK_SUFFIX
    return stripped + closers


def balance_brackets(raw: bytes):
    """Return the closers that balance raw, or None if it cannot be balanced.

    Brackets inside JSON strings are ignored. None is returned when the
    payload ends inside a string or has a closer without a matching opener.
    """
    text = raw.decode("utf-8", errors="replace")
    stack = []
    in_string = False
    escape_next = False

    for ch in text:
        if escape_next:
            escape_next = False
            continue
        if in_string:
            if ch == "\\":
                escape_next = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch in _CLOSERS:
            stack.append(_CLOSERS[ch])
        elif ch in ("}", "]"):
            if not stack or stack.pop() != ch:
                return None

    if in_string:
        return None
    return "".join(reversed(stack)).encode("utf-8")
