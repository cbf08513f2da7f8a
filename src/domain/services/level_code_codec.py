"""Level code codec for Super Mario Maker 2 course and maker ids.

This module extracts level codes from chat messages and checks whether
a code is one the game can actually generate.

Code Format:
    Nine characters from the game's base-30 alphabet, written as three
    groups of three (``XXX-XXX-XXX``). The last character of a valid
    code is always F, G or H. Separators may be ``-``, ``.``, a space,
    or nothing at all. ``O`` and ``I`` are read as ``0`` and ``1``.

Semantic Validation:
    The characters are read in reverse order as a base-30 number (after
    mapping the game's alphabet to the standard one) and turned into a
    44 bit string. The bits are sliced into fields:

    - bits 0-3: constant tag (``1000``)
    - bits 4-9: checksum, equal to ``(data_id - 31) mod 64``
    - bits 10-29: low 20 bits of the obfuscated data id
    - bit 30: maker flag (maker code instead of course code)
    - bit 31: marker bit, always set
    - bits 32-43: high 12 bits of the obfuscated data id

    The data id is recovered by joining the two data ranges and XORing
    the result with a fixed constant.

Usage:
    from src.domain.services.level_code_codec import validate

    result = validate("d36 010 5yf", course_threshold=50_000_000)
    if result.valid:
        print(result.code)  # "D36-010-5YF"
"""

from __future__ import annotations

import re
from dataclasses import dataclass

STANDARD_BASE30 = "0123456789abcdefghijklmnopqrst"
NINTENDO_BASE30 = "0123456789BCDFGHJKLMNPQRSTVWXY"
DATA_ID_XOR = 377544828
COURSE_ID_BITS = 44
CHECKSUM_OFFSET = 31

# meta = tag nibble, then the 8 bits starting at the maker flag
NSO_LEVEL_META = 2117
NSO_MAKER_META = 2245

_CHAR = "[0-9A-HJ-NP-Ya-hj-np-yOoIi]"
_GROUP = f"{_CHAR}{{3}}"
_LAST_GROUP = f"{_CHAR}{{2}}[FGHfgh]"
_DELIM = "[-. ]?"

STRICT_CODE_PATTERN = re.compile(
    rf"^({_GROUP}){_DELIM}({_GROUP}){_DELIM}({_LAST_GROUP})$"
)
LENIENT_CODE_PATTERN = re.compile(
    rf"({_GROUP}){_DELIM}({_GROUP}){_DELIM}({_LAST_GROUP})"
)

_AMBIGUOUS_GLYPHS = str.maketrans({"O": "0", "I": "1"})


@dataclass(frozen=True)
class CourseIdFields:
    """Fields decoded from the 44 bit representation of a course id.

    Attributes:
        tag: Constant tag field (bits 0-3).
        checksum: Checksum field (bits 4-9).
        maker_code: True if the maker flag (bit 30) is set.
        marker: True if the marker bit (bit 31) is set.
        meta: Tag nibble combined with bits 30-37.
        data_id: The de-obfuscated data id.
    """

    tag: int
    checksum: int
    maker_code: bool
    marker: bool
    meta: int
    data_id: int

    @property
    def checksum_valid(self) -> bool:
        """Check the checksum field against the data id."""
        return self.checksum == (self.data_id - CHECKSUM_OFFSET) % 64

    @property
    def is_valid(self) -> bool:
        """Check every field constraint (thresholds excluded)."""
        return (
            self.tag == 0b1000
            and self.marker
            and self.meta in (NSO_LEVEL_META, NSO_MAKER_META)
            and self.checksum_valid
        )


@dataclass(frozen=True)
class CodeValidation:
    """Result of validating a submitted level code.

    Attributes:
        code: Canonical ``XXX-XXX-XXX`` code, or the raw input if no
            code could be found.
        syntax_valid: True if a code with the right syntax was found.
        valid: True if the code is one the game can generate and the
            configured thresholds allow it.
        maker_code: True if the code is a maker id.
        data_id: Recovered data id, None when decoding failed.
    """

    code: str
    syntax_valid: bool
    valid: bool
    maker_code: bool = False
    data_id: int | None = None

    @property
    def semantically_valid(self) -> bool:
        """Alias for ``valid`` using the codec's vocabulary."""
        return self.valid


def decode_course_id(course_id: str) -> CourseIdFields | None:
    """Decode a nine character course id into its bit fields.

    Args:
        course_id: Nine characters without separators, upper case.

    Returns:
        The decoded fields, or None if the id contains characters outside
        the game's alphabet or does not decode to exactly 44 bits.
    """
    if len(course_id) != 9:
        return None
    try:
        digits = [NINTENDO_BASE30.index(c) for c in reversed(course_id)]
    except ValueError:
        return None
    value = int("".join(STANDARD_BASE30[d] for d in digits), 30)
    bits = format(value, "b")
    if len(bits) != COURSE_ID_BITS:
        return None

    tag = int(bits[0:4], 2)
    meta = (tag << 8) | int(bits[30:38], 2)
    data_id = int(bits[32:44] + bits[10:30], 2) ^ DATA_ID_XOR
    return CourseIdFields(
        tag=tag,
        checksum=int(bits[4:10], 2),
        maker_code=bits[30] == "1",
        marker=bits[31] == "1",
        meta=meta,
        data_id=data_id,
    )


def course_id_validity(
    course_id: str,
    course_threshold: int | None = None,
    maker_threshold: int | None = None,
) -> tuple[bool, bool, int | None]:
    """Check a course id, applying the optional data id thresholds.

    Args:
        course_id: Nine characters without separators, upper case.
        course_threshold: Highest allowed data id for course codes, or None.
        maker_threshold: Highest allowed data id for maker codes, or None.

    Returns:
        Tuple of (valid, maker_code, data_id).
    """
    fields = decode_course_id(course_id)
    if fields is None:
        return False, False, None
    if not fields.is_valid:
        return False, False, fields.data_id

    if fields.maker_code and maker_threshold is not None:
        return fields.data_id <= maker_threshold, True, fields.data_id
    if not fields.maker_code and course_threshold is not None:
        return fields.data_id <= course_threshold, False, fields.data_id
    return True, fields.maker_code, fields.data_id


def _canonical(groups: tuple[str, ...]) -> tuple[str, str]:
    normalized = [g.upper().translate(_AMBIGUOUS_GLYPHS) for g in groups]
    return "".join(normalized), "-".join(normalized)


def validate(
    raw_text: str,
    course_threshold: int | None = None,
    maker_threshold: int | None = None,
    *,
    strict: bool = True,
) -> CodeValidation:
    """Extract a level code from text and validate it.

    In strict mode the whole (trimmed) text must be a level code. In
    lenient mode the text is searched; when several codes are found the
    first valid one wins, and the first match is reported if none is.

    Args:
        raw_text: The user input.
        course_threshold: Highest allowed data id for course codes, or None.
        maker_threshold: Highest allowed data id for maker codes, or None.
        strict: Require the whole input to be a code.

    Returns:
        CodeValidation describing the best match.
    """
    text = raw_text.strip()
    if strict:
        match = STRICT_CODE_PATTERN.match(text)
        matches = [match] if match else []
    else:
        matches = list(LENIENT_CODE_PATTERN.finditer(text))

    first: CodeValidation | None = None
    for match in matches:
        course_id, code = _canonical(match.groups())
        valid, maker_code, data_id = course_id_validity(
            course_id, course_threshold, maker_threshold
        )
        result = CodeValidation(
            code=code,
            syntax_valid=True,
            valid=valid,
            maker_code=maker_code,
            data_id=data_id,
        )
        if valid:
            return result
        if first is None:
            first = result

    if first is not None:
        return first
    return CodeValidation(code=raw_text, syntax_valid=False, valid=False)
