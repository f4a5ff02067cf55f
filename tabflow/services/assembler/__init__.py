"""Document assembler service package."""

from .assembler import Document, DocumentAssembler, DocumentMetadata, assemble
from .templates import BUILTIN_TEMPLATES, TEMPLATE_DIR, ResolvedTemplate, resolve_template

__all__ = [
    "BUILTIN_TEMPLATES",
    "Document",
    "DocumentAssembler",
    "DocumentMetadata",
    "ResolvedTemplate",
    "TEMPLATE_DIR",
    "assemble",
    "resolve_template",
]
