"""Cloud provider clients consumed by the provisioning workflow."""

from __future__ import annotations

from .base import ProviderClient

__all__ = ["ProviderClient"]
