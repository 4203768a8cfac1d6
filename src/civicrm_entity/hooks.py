"""CRM post hook -- runs content-side CRUD hooks for CRM-originated writes.

When a record is created, edited or deleted in the CRM, the content side must
see the same presave/insert/update/predelete/delete hooks it would fire for
its own writes. Writes that started on the content side already went through
those hooks; for them the entity's ``drupal_crud`` flag is set and the hook
does nothing, which breaks the save -> CRM post -> save loop.

Exports:
    CivicrmPostHook: Dispatcher for CRM post events.
    HookResult: Summary of one dispatch.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Callable

import structlog
from pydantic import BaseModel, Field

from src.civicrm_entity.entity import CivicrmEntity

logger = structlog.get_logger(__name__)

Listener = Callable[[CivicrmEntity], None]

# CRM post operation -> content-side hooks, in invocation order
OP_HOOKS: dict[str, tuple[str, ...]] = {
    "create": ("presave", "insert"),
    "edit": ("presave", "update"),
    "delete": ("predelete", "delete"),
}


class HookResult(BaseModel):
    """Summary of one CRM post event dispatch."""

    op: str
    entity_type_id: str
    entity_id: int | str | None = None
    dispatched: bool = False
    hooks_invoked: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class CivicrmPostHook:
    """Dispatches CRM post events to content-side listeners.

    Listener errors are logged and collected in the HookResult; they do not
    stop the remaining listeners or the CRM write that triggered them.

    Args:
        listeners: Hook name -> callables taking the entity.
    """

    def __init__(self, listeners: dict[str, list[Listener]] | None = None) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        for hook, callbacks in (listeners or {}).items():
            self._listeners[hook].extend(callbacks)

    def add_listener(self, hook: str, listener: Listener) -> None:
        self._listeners[hook].append(listener)

    def __call__(self, op: str, entity: CivicrmEntity) -> HookResult:
        """Handle one CRM post event for ``entity``.

        Raises:
            ValueError: ``op`` is not create, edit or delete.
        """
        if op not in OP_HOOKS:
            raise ValueError(f"Unsupported CRM post operation: {op!r}")

        result = HookResult(op=op, entity_type_id=entity.entity_type_id, entity_id=entity.id)

        if entity.drupal_crud:
            logger.debug(
                "hooks.skip_content_originated",
                op=op,
                entity_type_id=entity.entity_type_id,
                entity_id=entity.id,
            )
            return result

        result.dispatched = True
        for hook in OP_HOOKS[op]:
            for listener in self._listeners.get(hook, []):
                try:
                    listener(entity)
                except Exception as exc:
                    result.errors.append(f"{hook}: {exc}")
                    logger.error(
                        "hooks.listener_error",
                        hook=hook,
                        entity_type_id=entity.entity_type_id,
                        entity_id=entity.id,
                        error=str(exc),
                    )
            result.hooks_invoked.append(hook)

        logger.info(
            "hooks.dispatched",
            op=op,
            entity_type_id=entity.entity_type_id,
            entity_id=entity.id,
            hooks=result.hooks_invoked,
            errors=len(result.errors),
        )
        return result
