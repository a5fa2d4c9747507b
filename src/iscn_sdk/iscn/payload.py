"""
ISCN payload formatting.

Maps a free-form content description onto the three fields of an ISCN
record: content fingerprints, stakeholders and content metadata. The
output feeds both fee quoting and the real transaction, so it has to be
byte-for-byte reproducible.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

SCHEMA_ORG_CONTEXT = "http://schema.org/"
DEFAULT_CONTENT_TYPE = "CreativeWork"
AUTHOR_CONTRIBUTION_TYPE = "http://schema.org/author"

# Keys consumed by the formatter; everything else is passed through into
# the content metadata untouched.
DISTINGUISHED_FIELDS = ("hash", "hashes", "title", "description", "url", "author", "type")


class InvalidPayloadError(ValueError):
    """Raised when a payload cannot produce a valid ISCN record."""
    pass


@dataclass
class FormattedRecord:
    record_notes: str = ""
    content_fingerprints: list[Optional[str]] = field(default_factory=list)
    stakeholders: list[bytes] = field(default_factory=list)
    content_metadata: bytes = b""

    def to_message_value(self) -> dict[str, Any]:
        """Render the record with the chain's JSON field names."""
        return {
            "recordNotes": self.record_notes,
            "contentFingerprints": list(self.content_fingerprints),
            "stakeholders": list(self.stakeholders),
            "contentMetadata": self.content_metadata,
        }


def to_json_bytes(obj: Any) -> bytes:
    """Compact, insertion-ordered JSON encoded as UTF-8."""
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def validate_payload(payload: Mapping[str, Any]) -> None:
    hashes = payload.get("hashes")
    if hashes is not None:
        if isinstance(hashes, (str, bytes)) or not hashes:
            raise InvalidPayloadError("'hashes' must be a non-empty sequence of fingerprints")
        return
    if not payload.get("hash"):
        raise InvalidPayloadError("payload must supply either 'hash' or 'hashes'")


def format_payload(payload: Mapping[str, Any], version: int = 1) -> FormattedRecord:
    """
    Format a content payload into an ISCN record.

    No validation happens here: a payload with neither ``hash`` nor
    ``hashes`` yields ``[None]`` as fingerprints. Use
    :func:`validate_payload` to fail early.

    Args:
        payload: Content description. ``hash``/``hashes``, ``title``,
            ``description``, ``url``, ``author`` and ``type`` are mapped to
            their record fields, any other key is copied into the metadata.
        version: Record version written into the metadata.

    Returns:
        FormattedRecord
    """
    fields = {k: v for k, v in payload.items() if k not in DISTINGUISHED_FIELDS}
    hashes = payload.get("hashes")
    author = payload.get("author")

    if hashes is None:
        content_fingerprints = [payload.get("hash")]
    elif isinstance(hashes, str):
        content_fingerprints = [hashes]
    else:
        content_fingerprints = list(hashes)

    stakeholders = []
    if author:
        stakeholders.append(to_json_bytes({
            "entity": {
                "id": author,
                "name": author,
            },
            "rewardProportion": 1,
            "contributionType": AUTHOR_CONTRIBUTION_TYPE,
        }))

    content_metadata = {
        **fields,
        "@context": SCHEMA_ORG_CONTEXT,
        "@type": payload.get("type") or DEFAULT_CONTENT_TYPE,
        "title": payload.get("title"),
        "author": author,
        "description": payload.get("description"),
        "version": version,
        "url": payload.get("url"),
    }
    # unset distinguished fields are left out, not serialized as null
    for key in ("title", "author", "description", "url"):
        if content_metadata[key] is None:
            del content_metadata[key]

    return FormattedRecord(
        record_notes="",
        content_fingerprints=content_fingerprints,
        stakeholders=stakeholders,
        content_metadata=to_json_bytes(content_metadata),
    )
