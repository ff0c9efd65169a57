"""Component identity for the Artifact Authority Service."""

from __future__ import annotations

SERVICE_COMPONENT_ID = "service_artifact_authority"
