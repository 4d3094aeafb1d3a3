"""Shared adapter helpers."""

from __future__ import annotations

import logging
import re
from collections.abc import Awaitable, Callable, Iterable, Sequence
from datetime import datetime, timezone

from aws_account_mcp.errors import ResourceNotFoundError, ToolInputError, normalize_error

logger = logging.getLogger(__name__)

_EPOCH_MS = re.compile(r"^\d+$")

BatchAction = Callable[[str], Awaitable[dict[str, object] | None]]


def tags_to_dict(tags: Iterable[dict[str, object]] | None) -> dict[str, object]:
    return {str(tag.get("Key")): tag.get("Value") for tag in tags or []}


def parse_timestamp(value: str | int | float) -> datetime:
    """Numeric input is epoch milliseconds; anything else must be ISO 8601."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    text = str(value).strip()
    if _EPOCH_MS.match(text):
        return datetime.fromtimestamp(int(text) / 1000, tz=timezone.utc)
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        raise ToolInputError(
            f"Invalid timestamp format: {value}. Use ISO 8601 or epoch milliseconds."
        ) from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def first(items: Sequence[dict[str, object]] | None, what: str, resource_id: str) -> dict[str, object]:
    if not items:
        raise ResourceNotFoundError(f"{what} '{resource_id}' not found")
    return items[0]


async def run_batch(
    resource_ids: Sequence[str],
    id_field: str,
    action: BatchAction,
) -> list[dict[str, object]]:
    """Apply ``action`` to each id in order; one failure never aborts the rest."""
    results: list[dict[str, object]] = []
    for resource_id in resource_ids:
        try:
            detail = await action(resource_id)
        except Exception as exc:  # noqa: BLE001 - recorded per target
            error = normalize_error(exc)
            logger.warning("%s %s failed: %s", id_field, resource_id, error.message)
            results.append(
                {
                    id_field: resource_id,
                    "success": False,
                    "error": error.message,
                    "errorCode": error.code,
                }
            )
            continue
        results.append({id_field: resource_id, "success": True, **(detail or {})})
    return results


def batch_summary(results: Sequence[dict[str, object]]) -> dict[str, int]:
    succeeded = sum(1 for item in results if item.get("success"))
    return {"total": len(results), "succeeded": succeeded, "failed": len(results) - succeeded}
