"""Header parameter matching against shared header classes.

``HeaderMatcher`` maps each endpoint's header parameter list to the name of a
configured header class. Lists that match no definition are handed to a
``HeaderConsolidator``, which synthesizes a shared class once the same
signature has been seen often enough.
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from .logs import get_logger
from .model_types import HeaderClassDefinition, HeaderField, HeaderParameter, MatchingStats
from .naming import to_class_name

logger = get_logger(__name__)

REQUIRED_FLAG = "R"
OPTIONAL_FLAG = "O"
SIGNATURE_SEPARATOR = "|"
HEADERS_SUFFIX = "Headers"
FALLBACK_CLASS_NAME = "SharedHeaders"
DEFAULT_CONSOLIDATION_THRESHOLD = 3
DEFAULT_FUZZY_THRESHOLD = 0.5

_SUBSET_COVERED_SCORE = 1.0
_SUBSET_REQUIRED_AGREES_SCORE = 0.5
_SUBSET_UNUSED_FIELD_PENALTY = 0.25

_PATH_PARAM_RE = re.compile(r"^\{[^{}]*\}$")
_VERSION_RE = re.compile(r"^v\d+(?:\.\d+)*$", re.IGNORECASE)


class MatchStrategy(str, Enum):
    """How endpoint headers are compared with configured definitions."""

    EXACT = "exact"
    SUBSET = "subset"
    FUZZY = "fuzzy"


def _signature(entries: Iterable[tuple[str, bool]]) -> str:
    parts = sorted(f"{name}:{REQUIRED_FLAG if required else OPTIONAL_FLAG}" for name, required in entries)
    return SIGNATURE_SEPARATOR.join(parts)


def header_signature(headers: Sequence[HeaderParameter]) -> str:
    """Return the order-independent signature of a header parameter list.

    Each parameter contributes ``<original name>:R`` or ``<original name>:O``;
    entries are sorted and joined with ``|``.
    """
    return _signature((header.original_name, header.required) for header in headers)


def definition_signature(definition: HeaderClassDefinition) -> str:
    """Return the signature a header class definition accepts under exact matching."""
    return _signature((item.name, item.required) for item in definition.fields)


def jaccard_index(left: frozenset[str], right: frozenset[str]) -> float:
    """Overlap ratio of two name sets; 0.0 when both are empty."""
    union = left | right
    if not union:
        return 0.0
    return len(left & right) / len(union)


@dataclass(frozen=True)
class _MatchRecord:
    endpoint: str
    signature: str
    class_name: Optional[str]


class HeaderConsolidator:
    """Synthesize shared header classes for recurring unmatched signatures.

    The ``threshold``-th occurrence of a signature creates the class; later
    occurrences reuse it. Earlier occurrences get None.
    """

    def __init__(
        self,
        *,
        threshold: int = DEFAULT_CONSOLIDATION_THRESHOLD,
        reserved_names: Iterable[str] = (),
    ) -> None:
        if threshold < 1:
            raise ValueError(f"Consolidation threshold must be at least 1, got {threshold}")
        self._threshold = threshold
        self._used_names: set[str] = set(reserved_names)
        self._counts: Counter[str] = Counter()
        self._paths: dict[str, list[str]] = {}
        self._names: dict[str, str] = {}
        self._definitions: dict[str, HeaderClassDefinition] = {}

    @property
    def definitions(self) -> tuple[HeaderClassDefinition, ...]:
        """Synthesized classes in creation order."""
        return tuple(self._definitions.values())

    def reserve(self, names: Iterable[str]) -> None:
        """Keep synthesized classes from using ``names``."""
        self._used_names.update(names)

    def occurrences(self, signature: str) -> int:
        """Number of times ``signature`` has been offered."""
        return self._counts[signature]

    def class_for(self, signature: str) -> Optional[str]:
        """Name synthesized for ``signature`` so far, if any."""
        return self._names.get(signature)

    def consolidate(
        self,
        signature: str,
        endpoint_path: str,
        headers: Sequence[HeaderParameter],
    ) -> Optional[str]:
        """Count one unmatched occurrence and return the shared class, if any.

        Args:
            signature (str): Signature of ``headers``.
            endpoint_path (str): URL path of the endpoint the headers belong to.
            headers (Sequence[HeaderParameter]): The endpoint's header parameters.

        Returns:
            Optional[str]: Synthesized class name, or None below the threshold.
        """
        self._counts[signature] += 1
        self._paths.setdefault(signature, []).append(endpoint_path)

        existing = self._names.get(signature)
        if existing is not None:
            return existing

        if self._counts[signature] < self._threshold:
            return None

        name = self._unique_name(synthesize_class_name(self._paths[signature]))
        self._names[signature] = name
        self._definitions[signature] = HeaderClassDefinition(
            name=name,
            fields=tuple(
                HeaderField(
                    name=header.original_name,
                    type=header.type,
                    required=header.required,
                    description=header.description,
                )
                for header in sorted(headers, key=lambda header: header.original_name)
            ),
            description=f"Headers shared by {self._counts[signature]}+ endpoints.",
            synthesized=True,
        )
        logger.info("Consolidated header signature %s into %s", signature, name)
        return name

    def _unique_name(self, base: str) -> str:
        candidate = base
        suffix = 2
        while candidate in self._used_names:
            candidate = f"{base}{suffix}"
            suffix += 1
        self._used_names.add(candidate)
        return candidate


def synthesize_class_name(paths: Sequence[str]) -> str:
    """Derive a header class name from the paths sharing one signature.

    Path segments present in every path (ignoring ``{params}`` and version
    segments such as ``v1``) are joined in PascalCase and suffixed with
    ``Headers``. Without common segments the first segment of the first path is
    used, and ``SharedHeaders`` when the path has none.
    """
    segment_lists = [_name_segments(path) for path in paths]
    if not segment_lists:
        return FALLBACK_CLASS_NAME

    first, rest = segment_lists[0], segment_lists[1:]
    common: list[str] = []
    for segment in first:
        if segment not in common and all(segment in other for other in rest):
            common.append(segment)

    if common:
        return "".join(to_class_name(segment) for segment in common) + HEADERS_SUFFIX
    if first:
        return to_class_name(first[0]) + HEADERS_SUFFIX
    return FALLBACK_CLASS_NAME


def _name_segments(path: str) -> list[str]:
    return [
        segment
        for segment in path.split("/")
        if segment and not _PATH_PARAM_RE.match(segment) and not _VERSION_RE.match(segment)
    ]


class HeaderMatcher:
    """Assign endpoints to header classes for one generation run.

    Definition matches are cached per signature. Statistics are recorded for
    every call with a non-empty header list while matching is enabled.
    """

    def __init__(
        self,
        definitions: Sequence[HeaderClassDefinition],
        *,
        enabled: bool = True,
        strategy: MatchStrategy = MatchStrategy.EXACT,
        fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD,
        consolidator: Optional[HeaderConsolidator] = None,
    ) -> None:
        self._definitions = tuple(definitions)
        self._enabled = enabled
        self._strategy = MatchStrategy(strategy)
        self._fuzzy_threshold = fuzzy_threshold
        self._consolidator = consolidator
        self._definition_cache: dict[str, Optional[str]] = {}
        self._records: list[_MatchRecord] = []
        self.stats = MatchingStats()
        if consolidator is not None:
            consolidator.reserve(definition.name for definition in self._definitions)

    @property
    def strategy(self) -> MatchStrategy:
        """Active match strategy."""
        return self._strategy

    def find_matching_header_class(
        self,
        endpoint_path: str,
        headers: Sequence[HeaderParameter],
        *,
        endpoint_name: Optional[str] = None,
    ) -> Optional[str]:
        """Return the header class for an endpoint's header parameters.

        Args:
            endpoint_path (str): URL path of the endpoint.
            headers (Sequence[HeaderParameter]): The endpoint's header parameters.
            endpoint_name (Optional[str]): Key used in ``assignments()``;
                defaults to ``endpoint_path``.

        Returns:
            Optional[str]: Class name, or None when nothing matched.
        """
        if not self._enabled or not headers:
            return None

        signature = header_signature(headers)
        self.stats.total_endpoints += 1

        class_name = self._match_definition(signature, headers)
        if class_name is None and self._consolidator is not None:
            class_name = self._consolidator.consolidate(signature, endpoint_path, headers)
            self.stats.consolidated_classes = len(self._consolidator.definitions)

        if class_name is None:
            self.stats.unmatched_endpoints += 1
            self.stats.unmatched_signatures.add(signature)
        else:
            self.stats.matched_endpoints += 1
            self.stats.class_usage[class_name] += 1

        self._records.append(
            _MatchRecord(
                endpoint=endpoint_name or endpoint_path,
                signature=signature,
                class_name=class_name,
            )
        )
        return class_name

    def _match_definition(self, signature: str, headers: Sequence[HeaderParameter]) -> Optional[str]:
        if signature in self._definition_cache:
            return self._definition_cache[signature]

        if self._strategy is MatchStrategy.SUBSET:
            result = self._match_subset(headers)
        elif self._strategy is MatchStrategy.FUZZY:
            result = self._match_fuzzy(headers)
        else:
            result = self._match_exact(signature)

        logger.debug("Header signature %s -> %s (%s)", signature, result, self._strategy.value)
        self._definition_cache[signature] = result
        return result

    def _match_exact(self, signature: str) -> Optional[str]:
        for definition in self._definitions:
            if definition.unknown_required:
                continue
            if definition_signature(definition) == signature:
                return definition.name
        return None

    def _match_subset(self, headers: Sequence[HeaderParameter]) -> Optional[str]:
        names = frozenset(header.original_name for header in headers)
        best_name: Optional[str] = None
        best_score = float("-inf")
        for definition in self._definitions:
            if not names <= definition.field_names:
                continue
            if not definition.required_names <= names:
                continue
            score = subset_score(definition, headers)
            if score > best_score:
                best_name, best_score = definition.name, score
        return best_name

    def _match_fuzzy(self, headers: Sequence[HeaderParameter]) -> Optional[str]:
        names = frozenset(header.original_name for header in headers)
        best_name: Optional[str] = None
        best_score = 0.0
        for definition in self._definitions:
            score = jaccard_index(names, definition.field_names)
            if score > best_score:
                best_name, best_score = definition.name, score
        if best_name is None or best_score < self._fuzzy_threshold:
            return None
        return best_name

    def assignments(self) -> dict[str, Optional[str]]:
        """Final header class per endpoint.

        Endpoints that got None before their signature was consolidated are
        reported with the class synthesized later.
        """
        result: dict[str, Optional[str]] = {}
        for record in self._records:
            class_name = record.class_name
            if class_name is None and self._consolidator is not None:
                class_name = self._consolidator.class_for(record.signature)
            result[record.endpoint] = class_name
        return result

    def header_classes(self) -> tuple[HeaderClassDefinition, ...]:
        """Configured definitions followed by synthesized ones."""
        synthesized = self._consolidator.definitions if self._consolidator is not None else ()
        return self._definitions + synthesized

    def report(self) -> str:
        """Render a Markdown summary of this run's matching."""
        stats = self.stats
        lines = [
            "# Header Matching Report",
            "",
            "## Statistics",
            f"- Strategy: {self._strategy.value}",
            f"- Total endpoints analyzed: {stats.total_endpoints}",
            f"- Endpoints matched to header classes: {stats.matched_endpoints}",
            f"- Consolidated classes: {stats.consolidated_classes}",
            f"- Unmatched endpoints: {stats.unmatched_endpoints}",
            f"- Unique unmatched signatures: {len(stats.unmatched_signatures)}",
            "",
            "## Header Class Usage",
        ]
        usage = sorted(stats.class_usage.items(), key=lambda item: (-item[1], item[0]))
        if usage:
            lines.extend(f"- {name}: {count} endpoint(s)" for name, count in usage)
        else:
            lines.append("- (none)")

        rerouted = [
            record
            for record in self._records
            if record.class_name is None
            and self._consolidator is not None
            and self._consolidator.class_for(record.signature) is not None
        ]
        if rerouted:
            lines.extend(["", "## Re-routed Endpoints"])
            lines.extend(
                f"- {record.endpoint} -> {self._consolidator.class_for(record.signature)}"
                for record in rerouted
                if self._consolidator is not None
            )

        if stats.unmatched_signatures:
            lines.extend(["", "## Unmatched Signatures"])
            lines.extend(f"- `{signature}`" for signature in sorted(stats.unmatched_signatures))
        return "\n".join(lines) + "\n"


def subset_score(definition: HeaderClassDefinition, headers: Sequence[HeaderParameter]) -> float:
    """Score how well ``definition`` covers ``headers`` under subset matching."""
    required_names = definition.required_names
    score = 0.0
    for header in headers:
        if header.original_name not in definition.field_names:
            continue
        score += _SUBSET_COVERED_SCORE
        if header.required == (header.original_name in required_names):
            score += _SUBSET_REQUIRED_AGREES_SCORE
    unused = len(definition.field_names) - len({header.original_name for header in headers})
    return score - _SUBSET_UNUSED_FIELD_PENALTY * max(unused, 0)
