"""Access control: UUID keys, IP rules, size limits, expiry timestamps.

Pure functions, no I/O. IP rules are format-checked once at write time;
the matcher trusts stored rules and does not re-check literal bounds.
"""

import re
import time
import uuid
from datetime import UTC, datetime

DEFAULT_TTL_MS = 7 * 24 * 60 * 60 * 1000
MAX_PAYLOAD_LENGTH = 1024 * 1024
MAX_PASSWORD_LENGTH = 128
# 9999-12-31T23:59:59.999Z, the last instant datetime can represent
MAX_EXPIRY_MS = 253_402_300_799_999

UUID_V4_PATTERN = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}",
    re.IGNORECASE | re.ASCII,
)
_OCTET_LITERAL = re.compile(r"\d{1,3}", re.ASCII)
_OCTET_RANGE = re.compile(r"(\d{1,3})-(\d{1,3})", re.ASCII)
WILDCARD = "*"


# --- Keys ---
def is_valid_uuid(value: str | None) -> bool:
    """True for canonical 8-4-4-4-12 UUID v4 text in any letter case."""
    return bool(value) and UUID_V4_PATTERN.fullmatch(value) is not None


def normalize_uuid(value: str) -> str:
    """Lowercase canonical form used as the storage key."""
    return value.lower()


def generate_uuid() -> str:
    return str(uuid.uuid4())


def resolve_key(requested: str | None) -> str:
    """Reuse a valid caller-supplied key, otherwise mint a fresh one."""
    if requested and is_valid_uuid(requested):
        return normalize_uuid(requested)
    return generate_uuid()


# --- IP rules ---
def _octet_in_bounds(text: str) -> bool:
    return 0 <= int(text) <= 255


def is_valid_ip_rule(rule: str | None) -> bool:
    """Four dot-separated fields, each `*`, an integer 0-255, or a range a-b."""
    if not rule:
        return False
    fields = rule.split(".")
    if len(fields) != 4:
        return False
    for field in fields:
        if field == WILDCARD:
            continue
        if _OCTET_LITERAL.fullmatch(field):
            if not _octet_in_bounds(field):
                return False
            continue
        m = _OCTET_RANGE.fullmatch(field)
        if not m:
            return False
        low, high = m.group(1), m.group(2)
        if not (_octet_in_bounds(low) and _octet_in_bounds(high)) or int(low) > int(high):
            return False
    return True


def _parse_octet(text: str | None) -> int | None:
    if text is None or not _OCTET_LITERAL.fullmatch(text):
        return None
    return int(text)


def ip_matches(rule: str, address: str) -> bool:
    """Match a caller address against a stored rule, field by field.

    Missing or non-numeric address octets only satisfy `*`, so IPv6 callers
    can read unrestricted records and nothing else.
    """
    rule_fields = rule.split(".")
    address_fields = (address or "").split(".")
    for i, field in enumerate(rule_fields):
        if field == WILDCARD:
            continue
        octet = _parse_octet(address_fields[i] if i < len(address_fields) else None)
        if octet is None:
            return False
        if "-" in field:
            low, _, high = field.partition("-")
            if not (int(low) <= octet <= int(high)):
                return False
        elif int(field) != octet:
            return False
    return True


# --- Passwords and limits ---
def password_satisfied(stored: str | None, provided: str | None) -> bool:
    """Unprotected records are readable by anyone; otherwise exact equality."""
    if not stored:
        return True
    return provided == stored


def payload_within_limit(payload: str, limit: int = MAX_PAYLOAD_LENGTH) -> bool:
    return len(payload) <= limit


def password_within_limit(password: str, limit: int = MAX_PASSWORD_LENGTH) -> bool:
    return len(password) <= limit


# --- Expiry ---
def now_ms() -> int:
    return time.time_ns() // 1_000_000


def compute_expiry_ms(ttl_ms: int, write_time_ms: int | None = None) -> int:
    """Absolute expiry = write time + TTL, both in epoch milliseconds."""
    base = now_ms() if write_time_ms is None else write_time_ms
    return base + ttl_ms


def expiry_within_range(expiry_ms: int) -> bool:
    return expiry_ms <= MAX_EXPIRY_MS


def ms_to_iso(timestamp_ms: int) -> str:
    """Render epoch milliseconds as ISO-8601 UTC with millisecond precision."""
    seconds, millis = divmod(timestamp_ms, 1000)
    dt = datetime.fromtimestamp(seconds, tz=UTC).replace(microsecond=millis * 1000)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def iso_to_ms(value: str) -> int:
    """Inverse of ms_to_iso.

    Not used on the serving path; for tests and tooling that parse expiredAt.
    """
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return round(dt.timestamp() * 1000)
