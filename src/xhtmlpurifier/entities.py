"""Character reference decoding.

Decodes named (&amp;, &nbsp;) and numeric (&#60;, &#x3C;) references found in
text runs and attribute values. Loosely-authored input is the norm here, so
unknown references are left as literal text rather than rejected.
"""

import html.entities
import re

# Keys of html5 include the trailing semicolon ("amp;"); a few legacy names
# also appear without it ("amp").
NAMED_ENTITIES = {}
for _key, _value in html.entities.html5.items():
    NAMED_ENTITIES.setdefault(_key.rstrip(";"), _value)

# Latin-1 era names that browsers accept without the semicolon
LEGACY_ENTITIES = frozenset(
    key for key in html.entities.html5 if not key.endswith(";")
)

# Windows-1252 code points that word processors emit as numeric references
NUMERIC_REPLACEMENTS = {
    0x00: "�",
    0x80: "€",
    0x82: "‚",
    0x83: "ƒ",
    0x84: "„",
    0x85: "…",
    0x86: "†",
    0x87: "‡",
    0x88: "ˆ",
    0x89: "‰",
    0x8a: "Š",
    0x8b: "‹",
    0x8c: "Œ",
    0x8e: "Ž",
    0x91: "‘",
    0x92: "’",
    0x93: "“",
    0x94: "”",
    0x95: "•",
    0x96: "–",
    0x97: "—",
    0x98: "˜",
    0x99: "™",
    0x9a: "š",
    0x9b: "›",
    0x9c: "œ",
    0x9e: "ž",
    0x9f: "Ÿ",
}

_REFERENCE = re.compile(r"&(?:#[xX]([0-9a-fA-F]+)|#([0-9]+)|([a-zA-Z][a-zA-Z0-9]*))(;?)")


def decode_numeric_entity(text, is_hex=False):
    """Decode the digits of a numeric reference; None if they are unusable."""
    try:
        codepoint = int(text, 16 if is_hex else 10)
    except ValueError:
        return None
    if codepoint in NUMERIC_REPLACEMENTS:
        return NUMERIC_REPLACEMENTS[codepoint]
    if codepoint > 0x10FFFF or 0xD800 <= codepoint <= 0xDFFF:
        return "�"
    return chr(codepoint)


def _decode_named(name, has_semicolon, next_char, in_attribute):
    """Return (replacement, consumed_name_length) or None."""
    if has_semicolon and name in NAMED_ENTITIES:
        return NAMED_ENTITIES[name], len(name)
    # Longest legacy prefix, e.g. "&notit" -> "¬it"
    for length in range(len(name), 0, -1):
        prefix = name[:length]
        if prefix not in LEGACY_ENTITIES:
            continue
        follower = name[length] if length < len(name) else next_char
        if in_attribute and follower and (follower.isalnum() or follower == "="):
            return None
        return NAMED_ENTITIES[prefix], length
    return None


def decode_entities_in_text(text, in_attribute=False):
    """Decode every character reference in `text`."""
    if "&" not in text:
        return text

    result = []
    pos = 0
    for match in _REFERENCE.finditer(text):
        start = match.start()
        result.append(text[pos:start])
        hex_digits, dec_digits, name, semicolon = match.groups()
        end = match.end()
        if name is None:
            decoded = decode_numeric_entity(hex_digits or dec_digits, is_hex=hex_digits is not None)
            result.append(decoded if decoded is not None else match.group(0))
            pos = end
            continue

        next_char = text[end] if end < len(text) else None
        named = _decode_named(name, bool(semicolon), next_char, in_attribute)
        if named is None:
            result.append(match.group(0))
            pos = end
            continue
        replacement, consumed = named
        result.append(replacement)
        if consumed == len(name):
            pos = end
        else:
            # Only a prefix matched; the rest of the name is literal text
            pos = start + 1 + consumed
    result.append(text[pos:])
    return "".join(result)
