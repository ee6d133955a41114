# =============================================================================
# Header Decoding
# =============================================================================
# Turns raw header text from a FETCH response into plain strings.
#
#   1. Unfold: a line break followed by a space or tab continues the
#      previous line (RFC 5322 folding) and collapses to a single space.
#   2. Look up a header by name: case-insensitive, first match wins.
#   3. Decode encoded words (RFC 2047):
#        =?UTF-8?B?aMOpbGxv?=        -> "héllo"
#        =?UTF-8?Q?A?= =?UTF-8?Q?B?= -> "AB"
#      Whitespace between two adjacent encoded words is dropped, and their
#      bytes are joined before the charset is applied, so multi-byte
#      characters split across words survive.
#
# Decoding never raises: anything that cannot be decoded is returned as the
# original raw text.
# =============================================================================

import base64
import binascii
import logging
import re

logger = logging.getLogger(__name__)

# =?charset?encoding?data?=
_ENCODED_WORD = re.compile(r"=\?([^?\s]+)\?([BbQq])\?([^?\s]*)\?=")

# Line break followed by folding whitespace
_FOLD = re.compile(r"\r?\n[ \t]+")

# =XX escape inside Q-encoded text
_Q_ESCAPE = re.compile(rb"=([0-9A-Fa-f]{2})")


def unfold(text: str) -> str:
    """Join folded header lines back into single logical lines."""
    return _FOLD.sub(" ", text)


def header_value(block: str, name: str) -> str | None:
    """
    Find the first header called name in an (unfolded) header block.

    Args:
        block: Header text, one header per line.
        name: Header name without the colon (e.g., "Subject").

    Returns:
        The raw value with surrounding whitespace stripped, or None if the
        header is not present.
    """
    pattern = re.compile(rf"^{re.escape(name)}:[ \t]*(.*?)\r?$", re.IGNORECASE | re.MULTILINE)
    match = pattern.search(block)
    if not match:
        return None
    return match.group(1).strip()


def _decode_payload(encoding: str, data: str) -> bytes:
    """Decode the data part of one encoded word to raw bytes."""
    if encoding.upper() == "B":
        # Some mailers drop the trailing padding
        padded = data + "=" * (-len(data) % 4)
        return base64.b64decode(padded, validate=True)

    raw = data.replace("_", " ").encode("ascii")
    return _Q_ESCAPE.sub(lambda m: bytes([int(m.group(1), 16)]), raw)


def _flush(run: list[tuple[str, bytes, str]], out: list[str]) -> None:
    """Decode a run of adjacent same-charset words, or emit them raw."""
    if not run:
        return
    charset = run[0][0]
    payload = b"".join(chunk for _, chunk, _ in run)
    try:
        out.append(payload.decode(charset))
    except (LookupError, UnicodeDecodeError) as e:
        logger.debug(f"Could not decode {charset!r} header text: {e}")
        out.append(" ".join(raw for _, _, raw in run))
    run.clear()


def decode_words(value: str) -> str:
    """
    Decode all RFC 2047 encoded words in a header value.

    Plain text around the encoded words is kept as-is. A word whose payload
    is malformed (bad base64, non-ASCII Q data) or whose charset is unknown is
    emitted as its raw "=?...?=" token.
    """
    if "=?" not in value:
        return value

    out: list[str] = []
    run: list[tuple[str, bytes, str]] = []
    pos = 0
    previous_was_word = False

    for match in _ENCODED_WORD.finditer(value):
        gap = value[pos:match.start()]
        adjacent = previous_was_word and gap.strip() == ""

        charset, encoding, data = match.groups()
        # RFC 2231 language suffix: =?UTF-8*en?Q?...?=
        charset = charset.split("*", 1)[0]
        raw = match.group(0)
        try:
            chunk = _decode_payload(encoding, data)
        except (binascii.Error, ValueError, UnicodeEncodeError) as e:
            logger.debug(f"Could not decode header word {raw!r}: {e}")
            _flush(run, out)
            out.append(gap)
            out.append(raw)
            pos = match.end()
            previous_was_word = False
            continue

        if adjacent and run and run[0][0].lower() == charset.lower():
            run.append((charset, chunk, raw))
        else:
            _flush(run, out)
            if not adjacent:
                out.append(gap)
            run.append((charset, chunk, raw))

        pos = match.end()
        previous_was_word = True

    _flush(run, out)
    out.append(value[pos:])
    return "".join(out)
