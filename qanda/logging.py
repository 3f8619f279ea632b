import warnings
from types import MappingProxyType
from typing import Any, Callable, Optional

import structlog

from qanda.utils.logging import get_logging_user_id

# Default global registry for semantic context extractors
_DEFAULT_EXTRACTORS: dict[str, Callable[[Any], dict[str, Any]]] = {}


def _register_default_extractor(
    context_key: str, extractor_function: Callable[[Any], dict[str, Any]]
):
    _DEFAULT_EXTRACTORS[context_key] = extractor_function


_register_default_extractor("user", lambda user: {"user_id": get_logging_user_id(user)})

# Chained extractors must be registered after the ones they call:
# topic before question, question before answer
_register_default_extractor(
    "topic",
    lambda topic: {
        "topic_slug": getattr(topic, "slug", None),
    },
)

_register_default_extractor(
    "question",
    lambda question: {
        **_DEFAULT_EXTRACTORS["topic"](getattr(question, "topic", None)),
        "question_id": getattr(question, "pk", None),
        "question_slug": getattr(question, "slug", None),
    },
)

_register_default_extractor(
    "answer",
    lambda answer: {
        **_DEFAULT_EXTRACTORS["question"](getattr(answer, "question", None)),
        "answer_id": getattr(answer, "pk", None),
    },
)

# Freeze default extractors to prevent mutation
_DEFAULT_EXTRACTORS = MappingProxyType(_DEFAULT_EXTRACTORS)


class QandaLogger:
    """
    Structured logger for moderation events.

    Every entry carries an ``event_code``; warnings and errors also carry a
    ``reason`` and a ``reason_code``. Model instances passed as ``user``,
    ``topic``, ``question`` or ``answer`` are expanded into ids and slugs
    when the entry is written, e.g. ``question=q`` yields ``question_id``,
    ``question_slug`` and ``topic_slug``. Explicit keyword values win over
    expanded ones and ``None`` values are dropped.
    """

    def __init__(self, logger, context: Optional[dict[str, Any]] = None):
        self._logger = logger
        self._context = context or {}
        self._extractors = _DEFAULT_EXTRACTORS.copy()

    @classmethod
    def get_logger(cls, name: str) -> "QandaLogger":
        return cls(structlog.get_logger(f"structlog.{name}"))

    def register_extractor(
        self, key: str, extractor: Callable[[Any], dict[str, Any]]
    ) -> None:
        # Chained extractors keep using the defaults
        self._extractors[key] = extractor
        if key in _DEFAULT_EXTRACTORS:
            warnings.warn(
                f"Extractor for '{key}' registered but default extractors may still "
                f"reference the built-in extractor via chaining. Overriding it "
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
        Raises:
            ValueError: ``event_code`` is missing, or a warning or error lacks
                its ``reason`` or ``reason_code``.
        """
        if not message:
            raise ValueError("Log message is required.")
        if not event_code:
            raise ValueError("Structured logs must include an 'event_code' field.")
        if level in ("warning", "error") and (not reason or not reason_code):
            raise ValueError(
                "Warnings and errors must include both 'reason' and 'reason_code'."
            )

        entry = {}
        for name, extract in self._extractors.items():
            obj = context.pop(name, self._context.get(name))
            if obj:
                for key, value in extract(obj).items():
                    if value is not None:
                        entry.setdefault(key, value)

        bound = {
            key: value
            for key, value in self._context.items()
            if key not in self._extractors and key not in context
        }
        required = {
            "event_code": event_code,
            "reason": reason,
            "reason_code": reason_code,
        }
        # Later layers win; None never replaces a value
        for layer in (bound, context, required):
            entry.update(
                (key, value) for key, value in layer.items() if value is not None
            )

        getattr(self._logger, level)(message, **entry)

    def debug(self, message: str, *, event_code: str, **kwargs):
        self.log("debug", message, event_code=event_code, **kwargs)

    def info(self, message: str, *, event_code: str, **kwargs):
        self.log("info", message, event_code=event_code, **kwargs)

    def warning(
        self, message: str, *, event_code: str, reason: str, reason_code: str, **kwargs
    ):
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
        self.log(
            "error",
            message,
            event_code=event_code,
            reason=reason,
            reason_code=reason_code,
            **kwargs,
        )

    def bind(self, **kwargs: Any) -> "QandaLogger":
        """
        Return a logger which adds ``kwargs`` to every entry it writes.
        """
        new_context = self._context.copy()
        new_context.update(kwargs)
        return QandaLogger(self._logger, context=new_context)
