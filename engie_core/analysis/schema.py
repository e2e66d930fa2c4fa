"""
Analysis Payload Schema - Validate suggestions at the service boundary

The analysis service answers with loosely shaped JSON. Each entry is
validated on its own with pydantic: bad entries are dropped, unknown
severities are coerced to medium, unknown kinds are rejected. Nothing
untyped gets past this module.

Author: Engie contributors | 2025-05-21
"""

import json
import logging
import re
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..suggestions import Severity, Suggestion, SuggestionKind, new_suggestion_id

logger = logging.getLogger(__name__)


class SuggestionPayload(BaseModel):
    """One suggestion as returned by the analysis service."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: Optional[str] = None
    original: str = Field(validation_alias=AliasChoices("original", "text"))
    replacement: str = Field(validation_alias=AliasChoices("replacement", "suggestion"))
    kind: SuggestionKind = Field(validation_alias=AliasChoices("kind", "type"))
    severity: Severity = Severity.MEDIUM
    explanation: str = ""
    start_index: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("startIndex", "start_index")
    )

    @field_validator("kind", mode="before")
    @classmethod
    def _parse_kind(cls, value: Any) -> SuggestionKind:
        kind = SuggestionKind.parse(value)
        if kind is None:
            raise ValueError(f"unknown suggestion kind: {value!r}")
        return kind

    @field_validator("severity", mode="before")
    @classmethod
    def _parse_severity(cls, value: Any) -> Severity:
        return Severity.parse(value) or Severity.MEDIUM

    @field_validator("explanation", mode="before")
    @classmethod
    def _explanation_text(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("id", mode="before")
    @classmethod
    def _id_text(cls, value: Any) -> Optional[str]:
        if value is None or value == "":
            return None
        return str(value)

    @field_validator("original")
    @classmethod
    def _original_not_blank(cls, value: str) -> str:
        if not value or value.isspace():
            raise ValueError("original fragment is empty")
        return value

    @field_validator("start_index")
    @classmethod
    def _start_not_negative(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value < 0:
            return None
        return value

    @model_validator(mode="after")
    def _is_a_change(self) -> "SuggestionPayload":
        if self.original == self.replacement:
            raise ValueError("replacement equals original")
        return self

    def to_suggestion(self) -> Suggestion:
        return Suggestion(
            original=self.original,
            replacement=self.replacement,
            kind=self.kind,
            severity=self.severity,
            explanation=self.explanation,
            id=self.id or new_suggestion_id(),
            hint=self.start_index,
        )


_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.MULTILINE)


def decode_model_output(content: str) -> Any:
    """
    Decode the JSON a model produced, tolerating code fences and chatter.

    Returns:
        Decoded value, or None when no JSON can be recovered
    """
    if not content:
        return None
    text = _FENCE_RE.sub("", content.strip())
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    try:
        return json.loads(text[start:end + 1])
    except json.JSONDecodeError:
        return None


def parse_analysis_payload(
    data: Any,
    default_kind: Optional[SuggestionKind] = None,
    default_severity: Optional[Severity] = None,
) -> List[Suggestion]:
    """
    Turn a service payload into validated, unanchored suggestions.

    Accepts ``{"suggestions": [...]}``, a bare list of entries, or a JSON
    string of either. Anything else yields no suggestions.

    Args:
        data: Decoded payload (or raw JSON text)
        default_kind: Force this kind on every entry (spell-check mode)
        default_severity: Force this severity on every entry

    Returns:
        Valid suggestions in payload order
    """
    if isinstance(data, str):
        data = decode_model_output(data)

    if isinstance(data, dict):
        items = data.get("suggestions")
    elif isinstance(data, list):
        items = data
    else:
        items = None

    if not isinstance(items, list):
        if data is not None:
            logger.warning("Analysis payload has no suggestions list, ignoring it")
        return []

    suggestions = []
    for item in items:
        if not isinstance(item, dict):
            logger.debug(f"Skipping non-object suggestion entry: {item!r}")
            continue
        if default_kind is not None:
            item = {**item, "kind": default_kind.value}
        if default_severity is not None:
            item = {**item, "severity": default_severity.value}
        try:
            suggestions.append(SuggestionPayload.model_validate(item).to_suggestion())
        except ValidationError as e:
            logger.debug(f"Rejected suggestion entry {item!r}: {e.error_count()} error(s)")

    dropped = len(items) - len(suggestions)
    if dropped:
        logger.info(f"Dropped {dropped} invalid suggestion(s) of {len(items)}")
    return suggestions
