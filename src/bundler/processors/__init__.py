"""
=============================================================================
PROCESSORS
=============================================================================

Text transforms applied to an asset's sources:

    base.py       Processor, FunctionProcessor, ProcessingContext
    chain.py      ProcessorChain (pre per file, join, post once)
    minify.py     JavaScriptMinifier, CssMinifier (rjsmin / rcssmin)
    localize.py   Localizer, StringCatalog, LookupMiss

=============================================================================
"""

from .base import Processor, FunctionProcessor, ProcessingContext, processor
from .chain import ProcessorChain
from .minify import (
    CodeSettings,
    CssSettings,
    JavaScriptMinifier,
    CssMinifier,
    check_javascript,
    check_css,
)
from .localize import Localizer, StringCatalog, LookupMiss, Lookup, js_string_escape

__all__ = [
    "Processor",
    "FunctionProcessor",
    "ProcessingContext",
    "processor",
    "ProcessorChain",
    "CodeSettings",
    "CssSettings",
    "JavaScriptMinifier",
    "CssMinifier",
    "check_javascript",
    "check_css",
    "Localizer",
    "StringCatalog",
    "LookupMiss",
    "Lookup",
    "js_string_escape",
]
