"""
Protection module - Glossary terms management

This module provides:
- terms: Placeholder substitution and restoration
- glossary: Glossary storage, matching and translation preparation
"""

from polygot.protection.terms import (
    apply_placeholders,
    find_placeholders,
    restore_placeholders,
)

from polygot.protection.glossary import (
    GlossaryEntry,
    GlossaryManager,
    GlossaryMatch,
    GlossaryPreparation,
)
