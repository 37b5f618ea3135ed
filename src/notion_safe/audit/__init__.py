"""Audit trail of permission decisions (append-only JSONL)."""
from __future__ import annotations

from notion_safe.audit.logger import AuditLogger

__all__ = ["AuditLogger"]
