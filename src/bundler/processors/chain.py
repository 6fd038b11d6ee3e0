"""
=============================================================================
PROCESSOR CHAIN
=============================================================================

Runs an asset's processors over its sources.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          CHAIN EXECUTION                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   a.js ──► pre₁ ──► pre₂ ─┐                                          │
    │   b.js ──► pre₁ ──► pre₂ ─┼─► join(separator) ──► post₁ ──► post₂ ──► │
    │   c.js ──► pre₁ ──► pre₂ ─┘                                 output   │
    │                                                                      │
    │   - pre-processors: once per file, registration order               │
    │   - files joined in declaration order                               │
    │   - post-processors: once, registration order, each consuming the   │
    │     previous step's output                                           │
    │   - first failure stops the chain                                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import logging
from typing import Sequence

from ..errors import ProcessingError, ProcessingErrorKind
from ..sources import SourceFile
from .base import Processor, ProcessingContext


logger = logging.getLogger(__name__)


class ProcessorChain:
    """
    An ordered, immutable snapshot of pre- and post-processors.
    """

    def __init__(
        self,
        pre: Sequence[Processor] = (),
        post: Sequence[Processor] = (),
        separator: str = "\n",
    ):
        self.pre = tuple(pre)
        self.post = tuple(post)
        self.separator = separator

    def run(self, sources: Sequence[SourceFile], context: ProcessingContext) -> str:
        """
        Produce the compiled text for `sources`.

        Raises:
            ProcessingError: a step failed; `step` names it.
        """
        pieces = []
        for source in sources:
            text = source.text
            file_context = context.for_source(source.identifier)
            for step in self.pre:
                text = self._apply(step, text, file_context)
            pieces.append(text)

        output = self.separator.join(pieces)

        for step in self.post:
            output = self._apply(step, output, context)

        return output

    def _apply(self, step: Processor, text: str, context: ProcessingContext) -> str:
        try:
            result = step.process(text, context)
        except ProcessingError as e:
            if not e.step:
                e.step = step.name
            if e.source is None:
                e.source = context.source
            raise
        except Exception as e:
            raise ProcessingError(
                f"{type(e).__name__}: {e}",
                step=step.name,
                kind=ProcessingErrorKind.TRANSFORM_FAILED,
                cause=e,
                source=context.source,
            ) from e

        if not isinstance(result, str):
            raise ProcessingError(
                f"returned {type(result).__name__}, expected str",
                step=step.name,
                source=context.source,
            )
        logger.debug(f"{step.name} on {context.source or context.route}: {len(text)} -> {len(result)} chars")
        return result

    def settings_key(self) -> str:
        """
        Order-sensitive description of every step and its settings.

        Reordering processors changes output, so it must change the key.
        """
        parts = [f"sep={self.separator!r}"]
        parts.extend(f"pre:{step.name}({step.settings_key()})" for step in self.pre)
        parts.extend(f"post:{step.name}({step.settings_key()})" for step in self.post)
        return "|".join(parts)

    @property
    def locale_aware(self) -> bool:
        return any(step.locale_aware for step in self.pre + self.post)

    def __len__(self) -> int:
        return len(self.pre) + len(self.post)
