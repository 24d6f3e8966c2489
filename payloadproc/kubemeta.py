"""Fully qualified references to Kubernetes resources."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class GKNN:
    """A resource identified by group, kind, namespace and name."""

    namespace: str
    name: str
    group: str
    kind: str

    def __str__(self) -> str:
        group_kind = f"{self.kind}.{self.group}" if self.group else self.kind
        return f"{group_kind} {self.namespace}/{self.name}"