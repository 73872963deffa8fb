"""
Search Operators for the RCSB Search API.

Each operator is an immutable value describing one leaf predicate of a search
query (exact match, range, comparison, sequence similarity, shape similarity,
chemical descriptor, sequence motif, ...). Operators are composed into query
trees by `rcsb_biokit.search.query` and serialized with `to_dict()` into the
``parameters`` object of a terminal query node.

Example:
    >>> from rcsb_biokit.search import ComparisonOperator
    >>> ComparisonOperator("rcsb_entry_info.resolution_combined", 2.0, "LESS").to_dict()
    {'operator': 'less', 'attribute': 'rcsb_entry_info.resolution_combined', 'value': 2.0}
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from ..connectors._utils import AmbiguousSequenceTypeError, UnsupportedMappingError

E = TypeVar("E", bound=Enum)


class ComparisonType(Enum):
    GREATER = "greater"
    GREATER_OR_EQUAL = "greater_or_equal"
    EQUAL = "equals"
    NOT_EQUAL = "not_equal"
    LESS_OR_EQUAL = "less_or_equal"
    LESS = "less"


class SequenceType(Enum):
    """Sequence search targets."""
    DNA = "pdb_dna_sequence"
    RNA = "pdb_rna_sequence"
    PROTEIN = "pdb_protein_sequence"


class PatternType(Enum):
    """Sequence motif pattern syntaxes."""
    SIMPLE = "simple"
    PROSITE = "prosite"
    REGEX = "regex"


class StructureSearchMode(Enum):
    STRICT_SHAPE_MATCH = "strict_shape_match"
    RELAXED_SHAPE_MATCH = "relaxed_shape_match"


class DescriptorMatchingCriterion(Enum):
    """How a chemical descriptor is matched against chemical components."""
    GRAPH_STRICT = "graph-strict"
    GRAPH_RELAXED = "graph-relaxed"
    GRAPH_RELAXED_STEREO = "graph-relaxed-stereo"
    FINGERPRINT_SIMILARITY = "fingerprint-similarity"


# Wire operator tags evaluated by the text (attribute) search service.
TEXT_SEARCH_OPERATORS = frozenset({
    "exact_match",
    "in",
    "contains_words",
    "contains_phrase",
    "range",
    "exists",
    "greater",
    "greater_or_equal",
    "equals",
    "not_equal",
    "less_or_equal",
    "less",
})

DNA_LETTERS = frozenset("ATCG")
RNA_LETTERS = frozenset("AUCG")
PROTEIN_LETTERS = frozenset("ABCDEFGHIKLMNPQRSTVWXYZ")
# Letters that only occur in amino acid sequences.
PROTEIN_FINGERPRINT_LETTERS = frozenset("BDEFHIKLMNPQRSVWXYZ")


def coerce_enum(enum_cls: Type[E], value: Union[E, str]) -> E:
    """Resolve an enum member from the member itself, its name or its wire value.

    Raises:
        UnsupportedMappingError: If `value` matches no member of `enum_cls`.
    """
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        key = value.strip()
        if key.upper().replace("-", "_") in enum_cls.__members__:
            return enum_cls[key.upper().replace("-", "_")]
        for member in enum_cls:
            if member.value == key or member.value == key.lower():
                return member
    allowed = ", ".join(enum_cls.__members__)
    raise UnsupportedMappingError(f"Unsupported {enum_cls.__name__} '{value}'. Expected one of: {allowed}")


def autoresolve_sequence_type(sequence: str) -> SequenceType:
    """Guess whether `sequence` is DNA, RNA or protein from its letters.

    Args:
        sequence (str): Sequence in one-letter code (case-sensitive).

    Returns:
        SequenceType: The detected sequence type.

    Raises:
        AmbiguousSequenceTypeError: If the letters fit none of the three alphabets.
    """
    letters = set(sequence)
    if letters and letters <= DNA_LETTERS and "T" in letters:
        return SequenceType.DNA
    if letters and letters <= RNA_LETTERS and "U" in letters:
        return SequenceType.RNA
    if letters and letters <= PROTEIN_LETTERS and letters & PROTEIN_FINGERPRINT_LETTERS:
        return SequenceType.PROTEIN
    raise AmbiguousSequenceTypeError(
        f"Sequence is ambiguous as to its SequenceType: '{sequence}'"
    )


@dataclass(frozen=True)
class DefaultOperator:
    """Full-text search over all indexed text."""
    value: str

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value}


@dataclass(frozen=True)
class ExactMatchOperator:
    attribute: str
    value: Any

    def to_dict(self) -> Dict[str, Any]:
        return {"attribute": self.attribute, "operator": "exact_match", "value": self.value}


@dataclass(frozen=True)
class InOperator:
    """Attribute value must be one of `value`."""
    attribute: str
    value: List[Any]

    def __post_init__(self):
        values = [self.value] if isinstance(self.value, (str, int, float)) else list(self.value)
        object.__setattr__(self, "value", values)

    def to_dict(self) -> Dict[str, Any]:
        return {"attribute": self.attribute, "operator": "in", "value": list(self.value)}


@dataclass(frozen=True)
class ContainsWordsOperator:
    attribute: str
    value: str

    def to_dict(self) -> Dict[str, Any]:
        return {"attribute": self.attribute, "operator": "contains_words", "value": self.value}


@dataclass(frozen=True)
class ContainsPhraseOperator:
    attribute: str
    value: str

    def to_dict(self) -> Dict[str, Any]:
        return {"attribute": self.attribute, "operator": "contains_phrase", "value": self.value}


@dataclass(frozen=True)
class ComparisonOperator:
    """Numeric or date comparison against an attribute.

    There is no ``not_equal`` operator on the wire, so `ComparisonType.NOT_EQUAL`
    serializes as a negated ``equals``.
    """
    attribute: str
    value: Any
    comparison_type: Union[ComparisonType, str]

    def __post_init__(self):
        object.__setattr__(self, "comparison_type", coerce_enum(ComparisonType, self.comparison_type))

    def to_dict(self) -> Dict[str, Any]:
        if self.comparison_type is ComparisonType.NOT_EQUAL:
            return {
                "operator": ComparisonType.EQUAL.value,
                "negation": True,
                "attribute": self.attribute,
                "value": self.value,
            }
        return {"operator": self.comparison_type.value, "attribute": self.attribute, "value": self.value}


@dataclass(frozen=True)
class RangeOperator:
    """Attribute value within ``[from_value, to_value]``.

    `include_lower` and `include_upper` are kept on the object but are not
    sent; the search service evaluates the range with its own bounds.
    """
    attribute: str
    from_value: Any
    to_value: Any
    include_lower: bool = True
    include_upper: bool = True
    negation: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operator": "range",
            "attribute": self.attribute,
            "negation": self.negation,
            "value": {"from": self.from_value, "to": self.to_value},
        }


@dataclass(frozen=True)
class ExistsOperator:
    attribute: str

    def to_dict(self) -> Dict[str, Any]:
        return {"attribute": self.attribute, "operator": "exists"}


@dataclass(frozen=True)
class SequenceOperator:
    """Sequence similarity search.

    Args:
        sequence (str): Query sequence in one-letter code.
        sequence_type (Optional[SequenceType | str]): DNA, RNA or PROTEIN. Detected
            from the letters of `sequence` when omitted.
        evalue_cutoff (float): Maximum E-value of a hit. Defaults to 100.
        identity_cutoff (float): Minimum sequence identity of a hit. Defaults to 0.95.
    """
    sequence: str
    sequence_type: Optional[Union[SequenceType, str]] = None
    evalue_cutoff: float = 100
    identity_cutoff: float = 0.95

    def __post_init__(self):
        if self.sequence_type is None:
            resolved = autoresolve_sequence_type(self.sequence)
        else:
            resolved = coerce_enum(SequenceType, self.sequence_type)
        object.__setattr__(self, "sequence_type", resolved)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "evalue_cutoff": self.evalue_cutoff,
            "identity_cutoff": self.identity_cutoff,
            "target": self.sequence_type.value,
            "value": self.sequence,
        }


@dataclass(frozen=True)
class StructureOperator:
    """3D shape similarity against an assembly of an existing entry."""
    pdb_entry_id: str
    assembly_id: int = 1
    search_mode: Union[StructureSearchMode, str] = StructureSearchMode.STRICT_SHAPE_MATCH

    def __post_init__(self):
        object.__setattr__(self, "search_mode", coerce_enum(StructureSearchMode, self.search_mode))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "value": {"entry_id": self.pdb_entry_id, "assembly_id": str(self.assembly_id)},
            "operator": self.search_mode.value,
        }


@dataclass(frozen=True)
class SeqMotifOperator:
    pattern: str
    sequence_type: Union[SequenceType, str]
    pattern_type: Union[PatternType, str]

    def __post_init__(self):
        object.__setattr__(self, "sequence_type", coerce_enum(SequenceType, self.sequence_type))
        object.__setattr__(self, "pattern_type", coerce_enum(PatternType, self.pattern_type))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "value": self.pattern,
            "pattern_type": self.pattern_type.value,
            "target": self.sequence_type.value,
        }


@dataclass(frozen=True)
class ChemicalOperator:
    """Chemical similarity search by SMILES or InChI descriptor.

    The descriptor type is detected from the ``InChI=`` prefix.
    """
    descriptor: str
    matching_criterion: Union[DescriptorMatchingCriterion, str] = DescriptorMatchingCriterion.GRAPH_STRICT
    descriptor_type: str = field(init=False)

    def __post_init__(self):
        object.__setattr__(
            self, "matching_criterion", coerce_enum(DescriptorMatchingCriterion, self.matching_criterion)
        )
        object.__setattr__(
            self, "descriptor_type", "InChI" if self.descriptor.startswith("InChI=") else "SMILES"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "value": self.descriptor,
            "type": "descriptor",
            "descriptor_type": self.descriptor_type,
            "match_type": self.matching_criterion.value,
        }


TextOperator = Union[
    ExactMatchOperator,
    InOperator,
    ContainsWordsOperator,
    ContainsPhraseOperator,
    ComparisonOperator,
    RangeOperator,
    ExistsOperator,
]

SearchOperator = Union[
    DefaultOperator,
    TextOperator,
    SequenceOperator,
    StructureOperator,
    SeqMotifOperator,
    ChemicalOperator,
]
