import warnings
from types import MappingProxyType
from typing import Any, Callable, Optional

import structlog

from importmachine.utils.logging import get_logging_user_id

_DEFAULT_EXTRACTORS: dict[str, Callable[[Any], dict[str, Any]]] = {}


def _register_default_extractor(
    context_key: str, extractor_function: Callable[[Any], dict[str, Any]]
):
    _DEFAULT_EXTRACTORS[context_key] = extractor_function


def _status_name(obj: Any) -> Optional[str]:
    status_name = getattr(obj, "status_name", None)
    return status_name if isinstance(status_name, str) else None


_register_default_extractor("user", lambda user: {"user_id": get_logging_user_id(user)})

_register_default_extractor(
    "batch",
    lambda batch: {
        "batch_id": str(batch.pk) if getattr(batch, "pk", None) else None,
        "batch_status": _status_name(batch),
    },
)

_register_default_extractor(
    "import_attempt",
    lambda attempt: {
        "import_id": (
            str(attempt.import_id) if getattr(attempt, "import_id", None) else None
        ),
        "import_attempt_id": getattr(attempt, "pk", None),
        "import_attempt_status": _status_name(attempt),
    },
)

_register_default_extractor(
    "import_file",
    lambda import_file: {
        "import_id": (
            str(import_file.import_id)
            if getattr(import_file, "import_id", None)
            else None
        ),
        "import_file_id": getattr(import_file, "pk", None),
        "import_file_status": _status_name(import_file),
    },
)

_register_default_extractor(
    "snapshot",
    lambda snapshot: {
        **_DEFAULT_EXTRACTORS["user"](getattr(snapshot, "user_id", None)),
        "resource_kind": getattr(snapshot, "RESOURCE_KIND", None),
        "resource_id": getattr(snapshot, "resource_id", None),
    },
)

_DEFAULT_EXTRACTORS = MappingProxyType(_DEFAULT_EXTRACTORS)


class ImportMachineLogger:
    """
    A structured logging wrapper around structlog that enforces consistent logging
    conventions across the project.

    Features:
        - Requires 'message' and 'event_code' for all logs, and 'reason'/'reason_code'
          for warnings/errors.
        - Automatically extracts common context from objects like Batch,
          ImportFile and cached resource snapshots.
        - Allows semantic binding of objects (e.g., batch=self) which are expanded
          at log time.

    Usage:
    -----

    Create a logger:
        ```python
        structured_logger = ImportMachineLogger.get_logger(__name__)
        ```

    Log an info-level event:
        ```python
        structured_logger.info(
            "Cached import jobs.",
            event_code="resource_cache_refreshed",
            user=user_id,
            succeeded=12,
        )
        ```

    Log a warning with reason:
        ```python
        structured_logger.warning(
            "Snapshot could not be cached.",
            event_code="resource_cache_item_failed",
            reason="Payload is not JSON serializable.",
            reason_code="unserializable_payload",
            user=user_id,
        )
        ```

    Special Context Expansion:
    --------------------------

    - `user` -> `user_id` (a user object or a bare primary key)
    - `batch` -> `batch_id`, `batch_status`
    - `import_attempt` -> `import_id`, `import_attempt_id`, `import_attempt_status`
    - `import_file` -> `import_id`, `import_file_id`, `import_file_status`
    - `snapshot` -> `user_id`, `resource_kind`, `resource_id`

    Explicit values passed (e.g., `import_id=...`) override extracted ones. Fields
    with `None` values are omitted from the final log output.

    Note:
        The `snapshot` extractor chains to the default `user` extractor. Overriding
        `user` on a single logger does not change what `snapshot` produces.
    """

    def __init__(self, logger, context: Optional[dict[str, Any]] = None):
        self._logger = logger
        self._context = context or {}
        self._extractors = _DEFAULT_EXTRACTORS.copy()

    @classmethod
    def get_logger(cls, name: str) -> "ImportMachineLogger":
        """
        Factory method to create an ImportMachineLogger from a given logger name.

        Args:
            name (str): The logger name (typically __name__).

        Returns:
            ImportMachineLogger: A logger instance with enriched behavior.
        """
        return cls(structlog.get_logger(f"structlog.{name}"))

    def register_extractor(
        self, key: str, extractor: Callable[[Any], dict[str, Any]]
    ) -> None:
        """
        Register a custom context extractor for this logger instance only.
        """
        self._extractors[key] = extractor
        if key in _DEFAULT_EXTRACTORS:
            warnings.warn(
                f"Extractor for '{key}' registered but default extractors may still "
                f"reference the original implementation via chaining. Overriding it "
                f"here will not affect those chained uses.",
                UserWarning,
                stacklevel=2,
            )

    def unregister_extractor(self, key: str) -> None:
        self._extractors.pop(key, None)

    def log(
        self,
        level: str,
        message: str,
        *,
        event_code: str,
        reason: Optional[str] = None,
        reason_code: Optional[str] = None,
        **context: Any,
    ) -> None:
        """
        Emit structured logs with standardized context. Use one of the level
        methods (debug, info, warning, error) rather than calling this directly.

        Raises:
            ValueError: If required fields are missing for the given log level.
        """
        if not message:
            raise ValueError("Log message is required.")
        if not event_code:
            raise ValueError("Structured logs must include an 'event_code' field.")
        if level in ("warning", "error") and (not reason or not reason_code):
            raise ValueError(
                "Warnings and errors must include both 'reason' and 'reason_code'."
            )

        context_data = {"event_code": event_code}
        if reason:
            context_data["reason"] = reason
        if reason_code:
            context_data["reason_code"] = reason_code

        bound_context = self._context

        for context_key, extractor_function in self._extractors.items():
            context_object = context.pop(context_key, bound_context.get(context_key))
            # A user id of 0 is still a user id
            if context_object is not None and context_object != "":
                extracted_fields = extractor_function(context_object)
                for key, value in extracted_fields.items():
                    if value is not None:
                        context_data.setdefault(key, value)

        for key, value in bound_context.items():
            if key not in self._extractors and key not in context and value is not None:
                context_data[key] = value

        # Explicit values win over anything extracted from bound objects
        for key, value in context.items():
            if value is not None:
                context_data[key] = value

        getattr(self._logger, level)(message, **context_data)

    def debug(self, message: str, *, event_code: str, **kwargs):
        """Emit a debug-level structured log."""
        self.log("debug", message, event_code=event_code, **kwargs)

    def info(self, message: str, *, event_code: str, **kwargs):
        """Emit an info-level structured log."""
        self.log("info", message, event_code=event_code, **kwargs)

    def warning(
        self, message: str, *, event_code: str, reason: str, reason_code: str, **kwargs
    ):
        """Emit a warning-level structured log. Requires reason and reason_code."""
        self.log(
            "warning",
            message,
            event_code=event_code,
            reason=reason,
            reason_code=reason_code,
            **kwargs,
        )

    def error(
        self, message: str, *, event_code: str, reason: str, reason_code: str, **kwargs
    ):
        """Emit an error-level structured log. Requires reason and reason_code."""
        self.log(
            "error",
            message,
            event_code=event_code,
            reason=reason,
            reason_code=reason_code,
            **kwargs,
        )

    def bind(self, **kwargs: Any) -> "ImportMachineLogger":
        """
        Return a new ImportMachineLogger with additional context permanently bound.
        """
        new_context = self._context.copy()
        new_context.update(kwargs)
        return ImportMachineLogger(self._logger, context=new_context)
