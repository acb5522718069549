"""Controlled vocabulary models: synonyms and the cultural hierarchy.

A ``Vocabulary`` is an immutable, versioned snapshot handed out by an
``IVocabularyProvider``.  The expander never reads global tables; swapping
the provider swaps the vocabulary.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SynonymType(str, Enum):
    """Directionality of a synonym entry."""

    BIDIRECTIONAL = "bidirectional"
    ONEWAY = "oneway"
    TYPO_CORRECTION = "typo_correction"


class SynonymEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    term: str
    synonyms: list[str] = Field(default_factory=list)
    synonym_type: SynonymType = SynonymType.BIDIRECTIONAL


class HierarchyNode(BaseModel):
    """A parent category and its direct children."""

    model_config = ConfigDict(frozen=True)

    parent: str
    children: list[str] = Field(default_factory=list)


class Vocabulary(BaseModel):
    model_config = ConfigDict(frozen=True)

    version: str = "0"
    synonyms: list[SynonymEntry] = Field(default_factory=list)
    hierarchy: list[HierarchyNode] = Field(default_factory=list)

    @model_validator(mode="after")
    def _two_level_hierarchy(self) -> Vocabulary:
        # Expansion is one level deep; a child that is itself a parent would
        # make expand(expand(x)) differ from expand(x).
        parents = {node.parent for node in self.hierarchy}
        for node in self.hierarchy:
            nested = sorted(c for c in node.children if c in parents and c != node.parent)
            if nested:
                raise ValueError(
                    f"hierarchy must be two levels deep; {node.parent!r} has parent "
                    f"categories as children: {', '.join(nested)}"
                )
        return self

    def children_by_parent(self) -> dict[str, list[str]]:
        """Parent -> children; repeated parents have their children concatenated."""
        mapping: dict[str, list[str]] = {}
        for node in self.hierarchy:
            mapping.setdefault(node.parent, []).extend(node.children)
        return mapping
