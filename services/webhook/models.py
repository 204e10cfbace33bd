from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .labels import WebhookLabels


@dataclass(frozen=True)
class SwarmService:
    """Read-only snapshot of a Swarm service as returned by the Docker API."""

    id: str
    name: Optional[str]
    spec: Dict[str, Any]
    version: int
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    labels: WebhookLabels = field(default_factory=WebhookLabels)

    @classmethod
    def from_attrs(cls, attrs: Mapping[str, Any]) -> "SwarmService":
        spec = attrs.get("Spec") or {}
        return cls(
            id=attrs.get("ID", ""),
            name=spec.get("Name"),
            spec=spec,
            version=int((attrs.get("Version") or {}).get("Index", 0)),
            created_at=attrs.get("CreatedAt"),
            updated_at=attrs.get("UpdatedAt"),
            labels=WebhookLabels.from_labels(spec.get("Labels")),
        )

    @property
    def replicas(self) -> Optional[int]:
        """Desired replica count, None when the service is not replicated."""
        replicated = (self.spec.get("Mode") or {}).get("Replicated")
        if replicated is None:
            return None
        return int(replicated.get("Replicas", 0))

    def summary(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "labels": self.spec.get("Labels"),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
