"""Audit trail for tool invocations.

Every ``tools/call`` is recorded with the caller's credential kind, the tool,
redacted arguments, outcome and duration. Entries always go to the
structured log and, when a path is configured, are appended to a JSON lines
file.
"""

import asyncio
import uuid
from pathlib import Path
from typing import Any, Optional

import aiofiles

from shared.logging import get_logger
from shared.models import (
    AuditEntry,
    InvocationContext,
    InvocationStatus,
    ToolDescriptor,
)

logger = get_logger(__name__)


class AuditLogger:
    """
    Audit logger for MCP tool invocations.

    File output is buffered and written in batches of ``buffer_size``;
    call :meth:`flush` on shutdown.
    """

    SENSITIVE_PARAMS = {
        "password", "token", "secret", "api_key", "apikey",
        "credential", "authorization", "anon_key",
    }

    def __init__(
        self,
        log_path: Optional[str] = None,
        enabled: bool = True,
        buffer_size: int = 100,
        max_buffered: int = 10_000
    ) -> None:
        self.log_path = Path(log_path) if log_path else None
        self.enabled = enabled
        self.buffer_size = buffer_size
        self.max_buffered = max(max_buffered, buffer_size)
        self._buffer: list[AuditEntry] = []
        self._lock = asyncio.Lock()

        if self.enabled and self.log_path is not None:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)

    def _redact_sensitive(self, params: Any) -> Any:
        """Redact sensitive values, descending into nested objects and lists."""
        if isinstance(params, dict):
            return {
                key: "[REDACTED]" if str(key).lower() in self.SENSITIVE_PARAMS
                else self._redact_sensitive(value)
                for key, value in params.items()
            }
        if isinstance(params, list):
            return [self._redact_sensitive(item) for item in params]
        return params

    def create_entry(
        self,
        tool_name: str,
        arguments: dict[str, Any],
        context: InvocationContext,
        status: InvocationStatus,
        tool: Optional[ToolDescriptor] = None,
        error: Optional[str] = None,
        execution_time_ms: float = 0
    ) -> AuditEntry:
        return AuditEntry(
            id=str(uuid.uuid4()),
            request_id=context.request_id,
            tool_name=tool_name,
            category=tool.category if tool else None,
            credential_kind=context.credential_kind,
            subject=context.auth.subject,
            arguments=self._redact_sensitive(arguments),
            status=status,
            error=error,
            execution_time_ms=execution_time_ms,
        )

    async def log(self, entry: AuditEntry) -> None:
        """Record an audit entry."""
        if not self.enabled:
            return

        logger.info(
            "Tool invoked",
            audit_id=entry.id,
            request_id=entry.request_id,
            tool=entry.tool_name,
            category=entry.category,
            credential_kind=entry.credential_kind.value if entry.credential_kind else None,
            status=entry.status.value,
            execution_time_ms=round(entry.execution_time_ms, 2)
        )

        if self.log_path is None:
            return

        async with self._lock:
            self._buffer.append(entry)

            if len(self._buffer) >= self.buffer_size:
                await self._flush()

    async def _flush(self) -> None:
        if not self._buffer or self.log_path is None:
            return

        entries_to_write = self._buffer.copy()
        self._buffer.clear()

        try:
            async with aiofiles.open(self.log_path, "a") as f:
                for entry in entries_to_write:
                    await f.write(entry.model_dump_json() + "\n")
        except OSError as e:
            logger.error("Failed to write audit log", path=str(self.log_path), error=str(e))
            # Keep entries for the next flush, dropping the oldest past the cap
            self._buffer[:0] = entries_to_write
            overflow = len(self._buffer) - self.max_buffered
            if overflow > 0:
                del self._buffer[:overflow]
                logger.warning("Audit entries dropped", count=overflow)

    async def flush(self) -> None:
        """Write any buffered entries to the audit file."""
        async with self._lock:
            await self._flush()
