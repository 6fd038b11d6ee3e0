"""
=============================================================================
PROCESSOR INTERFACE
=============================================================================

A processor is one text-to-text step in an asset's chain. Minifiers and the
localizer are processors; so is any plain function wrapped in
FunctionProcessor.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        THE PROCESSOR CONTRACT                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   process(text, context) -> text                                    │
    │                                                                      │
    │   - pure: same text + same settings + same context → same output    │
    │   - raise ProcessingError for bad input (kind=SYNTAX_ERROR, ...)    │
    │   - settings_key() describes every setting that changes output;     │
    │     it is hashed into the asset's source fingerprint, so changing   │
    │     a setting recompiles                                             │
    │   - locale_aware = True when output depends on context.locale;      │
    │     such assets are cached once per locale                          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional


@dataclass(frozen=True)
class ProcessingContext:
    """
    What a processor may know about the current compile.

    Attributes:
        route: Route of the asset being compiled.
        content_type: Declared content type of the asset.
        locale: Requested locale, or None when the asset is not localized.
        source: Identifier of the file being processed (pre-processors
                only; None for post-processors).
    """
    route: str
    content_type: str
    locale: Optional[str] = None
    source: Optional[str] = None

    def for_source(self, identifier: str) -> "ProcessingContext":
        return ProcessingContext(self.route, self.content_type, self.locale, identifier)


class Processor(ABC):
    """Base class for chain steps."""

    locale_aware: bool = False

    @abstractmethod
    def process(self, text: str, context: ProcessingContext) -> str:
        """Transform text. Must not mutate shared state visible to callers."""

    def settings_key(self) -> str:
        """Serialized settings; empty when the step has none."""
        return ""

    @property
    def name(self) -> str:
        """Step identity used in errors and logs."""
        return self.__class__.__name__

    def __repr__(self) -> str:
        return f"<{self.name}>"


ProcessFunc = Callable[[str, ProcessingContext], str]


class FunctionProcessor(Processor):
    """
    Wraps a plain function as a processor.

        def banner(text, context):
            return f"/* {context.route} */\\n{text}"

        asset.add_processor(FunctionProcessor(banner))
    """

    def __init__(
        self,
        func: ProcessFunc,
        name: Optional[str] = None,
        settings_key: str = "",
        locale_aware: bool = False,
    ):
        self._func = func
        self._name = name or getattr(func, "__name__", "function")
        self._settings_key = settings_key
        self.locale_aware = locale_aware

    def process(self, text: str, context: ProcessingContext) -> str:
        return self._func(text, context)

    def settings_key(self) -> str:
        return self._settings_key

    @property
    def name(self) -> str:
        return self._name


def processor(func: ProcessFunc) -> FunctionProcessor:
    """
    Decorator form of FunctionProcessor.

        @processor
        def strip_debug(text, context):
            return text.replace("debugger;", "")
    """
    return FunctionProcessor(func)
