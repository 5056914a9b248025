"""
Snapshot codec for sharing portfolios.
Turns {user, transactions, timestamp} into a URL-safe transport string and
back, and validates imported payloads before anything touches the ledger.
"""

import base64
import binascii
import json
import logging
import time
from datetime import date
from typing import List, Optional, Tuple
from urllib.parse import parse_qsl, unquote, urlencode, urlsplit, urlunsplit

from pydantic import ValidationError

from models import Snapshot, Transaction
from services.common import Failure, Result, Success

logger = logging.getLogger(__name__)

SHARE_PARAM = "data"

# Accept standard base64 (as produced by browsers' btoa) as well as the URL-safe
# alphabet; a '+' that went through form decoding arrives as a space.
_TO_URLSAFE = str.maketrans({" ": "-", "+": "-", "/": "_"})


def make_snapshot(owner_id: str, transactions: List[Transaction], with_timestamp: bool = True) -> Snapshot:
    """Build a snapshot of a profile's log, stamped with the current time in ms."""
    timestamp = int(time.time() * 1000) if with_timestamp else None
    return Snapshot(user=owner_id, transactions=list(transactions), timestamp=timestamp)


def encode(snapshot: Snapshot) -> str:
    """
    Encode a snapshot as a URL-safe base64 string of its compact JSON form.

    Args:
        snapshot: Snapshot to encode

    Returns:
        Opaque transport string
    """
    payload = json.dumps(snapshot.to_wire(), separators=(",", ":"), ensure_ascii=False)
    return base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii")


def _unwrap(text: str) -> str:
    """Return the JSON text inside a transport string (plain JSON passes through)."""
    stripped = text.strip()
    if stripped.startswith("{"):
        return stripped

    token = unquote(stripped).translate(_TO_URLSAFE)
    token += "=" * (-len(token) % 4)
    return base64.urlsafe_b64decode(token.encode("ascii")).decode("utf-8")


def validate_payload(text: Optional[str]) -> Result[Snapshot, str]:
    """
    Parse and validate an imported payload (encoded string or plain JSON).

    Args:
        text: Clipboard text, file content or URL parameter

    Returns:
        Success(Snapshot) or Failure(reason). Never raises.
    """
    if not text or not text.strip():
        return Failure("Payload is empty")

    try:
        raw = _unwrap(text)
    except (binascii.Error, ValueError, UnicodeError) as e:
        return Failure(f"Payload is not a valid encoded snapshot: {e}")

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        return Failure(f"Payload is not valid JSON: {e.msg}")

    if not isinstance(data, dict):
        return Failure("Snapshot must be a JSON object")

    owner = data.get("user", data.get("ownerId"))
    if not isinstance(owner, str) or not owner:
        return Failure("Snapshot has no owner")
    if not isinstance(data.get("transactions"), list):
        return Failure("Snapshot transactions must be an array")

    try:
        snapshot = Snapshot.model_validate(data)
    except ValidationError as e:
        return Failure(f"Invalid transaction data ({e.error_count()} error(s))")

    return Success(snapshot)


def decode(text: Optional[str]) -> Optional[Snapshot]:
    """
    Inverse of encode. Also accepts the plain JSON export form.

    Returns:
        Snapshot, or None if the payload is absent or malformed
    """
    result = validate_payload(text)
    if isinstance(result, Failure):
        logger.warning(f"Could not decode snapshot: {result.error}")
        return None
    return result.value


def to_json(snapshot: Snapshot) -> str:
    """Readable JSON used for clipboard copy and file export."""
    return json.dumps(snapshot.to_wire(), indent=2, ensure_ascii=False)


def export_filename(owner_id: str, on: Optional[date] = None) -> str:
    """File name for a downloaded export, e.g. portfolio-1a2b3c4d-2024-05-01.json."""
    on = on or date.today()
    return f"portfolio-{owner_id[:8]}-{on.isoformat()}.json"


def build_share_url(base_url: str, snapshot: Snapshot) -> str:
    """
    Embed an encoded snapshot in a URL's query string.
    Other query fields are kept; an existing snapshot field is replaced.
    """
    parts = urlsplit(base_url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != SHARE_PARAM]
    query.append((SHARE_PARAM, encode(snapshot)))
    return urlunsplit(parts._replace(query=urlencode(query)))


def parse_and_clear(url: str) -> Tuple[Optional[Snapshot], str]:
    """
    Read a shared snapshot from a URL and strip it in one step.

    Args:
        url: Location carrying an optional `data` query field

    Returns:
        (snapshot or None, url without the `data` field). Unrelated query
        fields and the fragment are preserved.
    """
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    shared = [value for key, value in query if key == SHARE_PARAM]
    if not shared:
        return None, url

    remaining = [(key, value) for key, value in query if key != SHARE_PARAM]
    cleaned = urlunsplit(parts._replace(query=urlencode(remaining)))
    return decode(shared[0]), cleaned
