"""
Label Filter

Parses the webhook labels of a Swarm service into a typed record and selects
the services the HTTP endpoints are allowed to act on.
"""

import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional

from services.common.logging_config import get_logger
from .constants import DEFAULT_REPLICAS, ENABLED_VALUE, LABEL_ENABLED, LABEL_NAME, LABEL_REPLICAS
from .errors import InvalidReplicasLabelError

_EXACT_REPLICAS = re.compile(r"\s*\+?[0-9]+\s*")
_LEADING_INTEGER = re.compile(r"\s*([+-]?[0-9]+)")

logger = get_logger("webhook", name="labels")


def parse_replicas(value: Optional[str], strict: bool = False) -> Optional[int]:
    """Parse a replica count label; None when missing or malformed.

    By default the leading base-10 integer is taken and trailing text is
    ignored, so "3abc" reads as 3 and "2.5" as 2. With strict the whole value
    must be a non-negative integer. Negative counts are always malformed.
    """
    if value is None:
        return None
    if strict:
        if not _EXACT_REPLICAS.fullmatch(value):
            return None
        return int(value)
    match = _LEADING_INTEGER.match(value)
    if match is None:
        return None
    count = int(match.group(1))
    return count if count >= 0 else None


@dataclass(frozen=True)
class WebhookLabels:
    enabled: bool = False
    name: Optional[str] = None
    replicas: Optional[int] = None
    replicas_raw: Optional[str] = None

    @classmethod
    def from_labels(cls, labels: Optional[Mapping[str, str]]) -> "WebhookLabels":
        if not labels:
            return cls()
        raw = labels.get(LABEL_REPLICAS)
        # An empty value is treated like a missing label
        if raw is not None and str(raw).strip() == "":
            raw = None
        return cls(
            enabled=labels.get(LABEL_ENABLED) == ENABLED_VALUE,
            name=labels.get(LABEL_NAME),
            replicas=parse_replicas(raw),
            replicas_raw=raw,
        )

    @property
    def replicas_malformed(self) -> bool:
        return self.replicas_raw is not None and self.replicas is None

    @property
    def replicas_exact(self) -> bool:
        """True when the label is absent or is a plain non-negative integer."""
        return self.replicas_raw is None or parse_replicas(self.replicas_raw, strict=True) is not None


def _attrs_of(service: Any) -> Mapping[str, Any]:
    attrs = getattr(service, "attrs", service)
    return attrs if isinstance(attrs, Mapping) else {}


def labels_of(service: Any) -> WebhookLabels:
    """Return the parsed labels of a SwarmService, docker model or raw attrs."""
    parsed = getattr(service, "labels", None)
    if isinstance(parsed, WebhookLabels):
        return parsed
    spec = _attrs_of(service).get("Spec") or {}
    return WebhookLabels.from_labels(spec.get("Labels"))


def _name_of(service: Any) -> str:
    name = getattr(service, "name", None)
    if isinstance(name, str):
        return name
    spec = _attrs_of(service).get("Spec") or {}
    return spec.get("Name") or "<unnamed>"


def is_enabled(service: Any) -> bool:
    return labels_of(service).enabled


def filter_enabled(services: Iterable[Any]) -> List[Any]:
    return [service for service in services if is_enabled(service)]


def filter_by_name(services: Iterable[Any], target_name: str) -> List[Any]:
    """Services that are enabled and whose name label equals target_name exactly."""
    matches = []
    for service in services:
        labels = labels_of(service)
        if labels.enabled and labels.name is not None and labels.name == target_name:
            matches.append(service)
    return matches


def desired_replicas(service: Any, fallback: int = DEFAULT_REPLICAS, strict: bool = False) -> int:
    """Replica count requested by the replicas label, or fallback.

    The label is read up to its first non-digit ("3abc" gives 3) and a label
    without a leading integer falls back with a warning in the log. With
    strict, anything but a plain non-negative integer raises
    InvalidReplicasLabelError.
    """
    labels = labels_of(service)
    if strict and not labels.replicas_exact:
        raise InvalidReplicasLabelError(_name_of(service), labels.replicas_raw or "")
    if labels.replicas is not None:
        return labels.replicas
    if labels.replicas_malformed:
        logger.warning(
            f"ignoring malformed {LABEL_REPLICAS}={labels.replicas_raw!r} "
            f"on service {_name_of(service)}, using {fallback}"
        )
    return fallback
