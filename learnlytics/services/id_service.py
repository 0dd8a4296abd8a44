"""
Identifier Service

Generation and validation of the two identifier families used across
learning records:

- Watch (session) identifiers: "W" + base-36 millisecond timestamp +
  6 random base-36 characters, upper-cased.
- Role-scoped learner identifiers: a 2-character role prefix followed by
  a 5-character digest of the learner's primary identifier. The digest
  depends only on the learner, so one learner gets the same digest under
  every role.

Video identifiers ("V" family) are generated the same way as watch
identifiers for content that has no UUID of its own.
"""

import re
import secrets
import time
from datetime import datetime, timezone
from typing import Union

from learnlytics.core.exceptions import FormatError
from learnlytics.models.enums import IdFamily, UserRole
from learnlytics.schemas.identifiers import LearningRecordIds


BASE36_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"

SESSION_PREFIX = "W"
VIDEO_PREFIX = "V"
DIGEST_LENGTH = 5

ROLE_PREFIXES: dict[UserRole, str] = {
    UserRole.LEARNER: "1L",
    UserRole.EVALUATOR: "1E",
    UserRole.RESEARCHER: "1R",
    UserRole.ADMIN: "1A",
}
UNKNOWN_ROLE_PREFIX = "1U"

_SESSION_ID_RE = re.compile(r"W[A-Z0-9]{10,}")
_ROLE_SCOPED_ID_RE = re.compile(r"1[LERA][A-Z0-9]{5}")
_VIDEO_ID_RE = re.compile(r"V[A-Z0-9]{8,}")
_UUID_RE = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}",
    re.IGNORECASE,
)


# ============== Encoding Helpers ==============

def to_base36(value: int) -> str:
    """Encode a non-negative integer in upper-case base 36."""
    if value < 0:
        raise ValueError("base-36 encoding requires a non-negative integer")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def random_base36(length: int) -> str:
    """Random upper-case base-36 string of the given length."""
    return "".join(secrets.choice(BASE36_ALPHABET) for _ in range(length))


def _timestamp_base36() -> str:
    return to_base36(time.time_ns() // 1_000_000)


def _utf16_code_units(text: str) -> list[int]:
    data = text.encode("utf-16-le")
    return [int.from_bytes(data[i:i + 2], "little") for i in range(0, len(data), 2)]


def learner_digest(learner_id: str) -> str:
    """
    Five-character digest of a learner identifier.
    
    Rolling 32-bit signed hash (h * 31 + code unit) over UTF-16 code units,
    absolute value, base-36. The encoding is cut to its first five
    characters and left-padded with "0" when shorter, so the digest
    always has exactly five characters.
    
    Args:
        learner_id: Learner's primary identifier.
        
    Returns:
        str: Digest of length DIGEST_LENGTH.
    """
    h = 0
    for unit in _utf16_code_units(learner_id):
        h = ((h << 5) - h + unit) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return to_base36(abs(h))[:DIGEST_LENGTH].rjust(DIGEST_LENGTH, "0")


# ============== Generation ==============

def new_session_id() -> str:
    """Generate a watch (session) identifier."""
    return f"{SESSION_PREFIX}{_timestamp_base36()}{random_base36(6)}".upper()


def new_video_id() -> str:
    """Generate a video identifier."""
    return f"{VIDEO_PREFIX}{_timestamp_base36()}{random_base36(4)}".upper()


def role_prefix(role: Union[str, UserRole]) -> str:
    """
    Role prefix for a role name.
    
    Raises:
        FormatError: If the role is not one of the platform roles.
    """
    name = role.value if isinstance(role, UserRole) else str(role)
    try:
        return ROLE_PREFIXES[UserRole(name.lower())]
    except ValueError:
        raise FormatError(f"Unknown role: {name}") from None


def new_role_scoped_id(
    learner_id: str,
    role: Union[str, UserRole],
    strict: bool = True,
) -> str:
    """
    Map a learner to their identifier under a role.
    
    Args:
        learner_id: Learner's primary identifier.
        role: learner, evaluator, researcher or admin (case-insensitive).
        strict: When False, unknown roles get the "1U" prefix instead of
            being rejected. Such identifiers do not pass
            validate_role_scoped_id.
        
    Returns:
        str: Role-scoped identifier, e.g. "1L0A3ZQ".
        
    Raises:
        FormatError: Unknown role in strict mode.
    """
    try:
        prefix = role_prefix(role)
    except FormatError:
        if strict:
            raise
        prefix = UNKNOWN_ROLE_PREFIX
    return f"{prefix}{learner_digest(learner_id)}"


def generate_batch(count: int, family: IdFamily = IdFamily.SESSION) -> list[str]:
    """
    Generate `count` distinct identifiers of one family.
    
    Collisions within a timestamp tick are retried until the set is full.
    """
    if count < 0:
        raise ValueError("count must be non-negative")
    generate = new_session_id if family == IdFamily.SESSION else new_video_id
    ids: set[str] = set()
    ordered: list[str] = []
    while len(ids) < count:
        candidate = generate()
        if candidate not in ids:
            ids.add(candidate)
            ordered.append(candidate)
    return ordered


def generate_learning_record_ids(learner_id: str, role: Union[str, UserRole]) -> LearningRecordIds:
    """Identifier bundle a player needs before starting a session."""
    return LearningRecordIds(
        watch_id=new_session_id(),
        user_role_id=new_role_scoped_id(learner_id, role),
        timestamp=datetime.now(timezone.utc),
    )


# ============== Validation ==============

def validate_session_id(value: object) -> bool:
    """Check the watch identifier format: "W" then 10+ upper-case alphanumerics."""
    return isinstance(value, str) and _SESSION_ID_RE.fullmatch(value) is not None


def validate_role_scoped_id(value: object) -> bool:
    """Check the role-scoped format: "1", one of L/E/R/A, then exactly 5 upper-case alphanumerics."""
    return isinstance(value, str) and _ROLE_SCOPED_ID_RE.fullmatch(value) is not None


def validate_video_id(value: object) -> bool:
    """Accept UUIDs and generated "V" identifiers."""
    if not isinstance(value, str):
        return False
    return _UUID_RE.fullmatch(value) is not None or _VIDEO_ID_RE.fullmatch(value) is not None


def parse_role_from_role_id(role_scoped_id: str) -> str:
    """Role name encoded in a role-scoped identifier, or "unknown"."""
    prefix = role_scoped_id[:2]
    for role, role_prefix_value in ROLE_PREFIXES.items():
        if role_prefix_value == prefix:
            return role.value
    return "unknown"
