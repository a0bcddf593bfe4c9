"""
Sync Options - caller-supplied callbacks and tuning knobs for one sync run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from catalogsync.core.domain import Resource, ResourceDraft, UpdateAction
from catalogsync.core.ports.config_provider import BatchConfig, RetryConfig


logger = logging.getLogger("SyncOptions")

# (message, exception, old_resource, new_draft, actions)
ErrorCallback = Callable[
    [str, "BaseException | None", Any, Any, "Sequence[UpdateAction] | None"],
    Any,
]
# (message, exception, old_resource, new_draft)
WarningCallback = Callable[[str, "BaseException | None", Any, Any], Any]
BeforeUpdateCallback = Callable[
    [list[UpdateAction], ResourceDraft, Resource], "list[UpdateAction] | None"
]
BeforeCreateCallback = Callable[[ResourceDraft], "ResourceDraft | None"]


@dataclass
class SyncOptions:
    """
    Callback surface and settings shared by the diff engines and services.

    Error and warning callbacks are fire-and-forget: their return value is
    ignored, and an exception raised inside one is logged and swallowed so a
    faulty callback cannot abort a sync run.
    """

    error_callback: ErrorCallback | None = None
    warning_callback: WarningCallback | None = None
    before_update_callback: BeforeUpdateCallback | None = None
    before_create_callback: BeforeCreateCallback | None = None
    batch: BatchConfig = field(default_factory=BatchConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)

    @property
    def batch_size(self) -> int:
        return self.batch.batch_size

    def apply_error_callback(
        self,
        message: str,
        exception: BaseException | None = None,
        old_resource: Any = None,
        new_draft: Any = None,
        actions: Sequence[UpdateAction] | None = None,
    ) -> None:
        """Report an error to the caller and log it."""
        logger.error(message)
        if self.error_callback is None:
            return
        try:
            self.error_callback(message, exception, old_resource, new_draft, actions)
        except Exception as e:
            logger.exception(f"Error callback raised: {e}")

    def apply_warning_callback(
        self,
        message: str,
        exception: BaseException | None = None,
        old_resource: Any = None,
        new_draft: Any = None,
    ) -> None:
        """Report a non-fatal problem to the caller and log it."""
        logger.warning(message)
        if self.warning_callback is None:
            return
        try:
            self.warning_callback(message, exception, old_resource, new_draft)
        except Exception as e:
            logger.exception(f"Warning callback raised: {e}")

    def apply_before_update_callback(
        self,
        actions: list[UpdateAction],
        new_draft: ResourceDraft,
        old_resource: Resource,
    ) -> list[UpdateAction]:
        """
        Let the caller filter or extend actions before they are sent.

        Skipped when there are no actions. A None result means "send nothing".
        """
        if self.before_update_callback is None or not actions:
            return actions
        return list(self.before_update_callback(actions, new_draft, old_resource) or [])

    def apply_before_create_callback(self, new_draft: ResourceDraft) -> ResourceDraft | None:
        """Let the caller rewrite a draft before creation. None skips creation."""
        if self.before_create_callback is None:
            return new_draft
        return self.before_create_callback(new_draft)
