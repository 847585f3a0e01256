"""Parsers for plain-text vocabulary sources."""
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Type, Union

from vocabulator.config import settings
from vocabulator.exceptions import IoFailure, SeedParseWarning

logger = logging.getLogger(__name__)

DEFAULT_GROUP = 1

_SENSE_MARKER = re.compile(r"(?:^|(?<=\s))\d+\.(?=\s|$)")
_NUMBERED_LINE = re.compile(r"^\d+\.\s*(.*)$")


@dataclass(frozen=True)
class SeedEntry:
    """One parsed word before it is assigned an id."""
    term: str
    definition: str
    group: int
    line_number: int


@dataclass
class ParseResult:
    """Entries and warnings produced by a parser."""
    entries: List[SeedEntry] = field(default_factory=list)
    warnings: List[SeedParseWarning] = field(default_factory=list)


def split_senses(text: str) -> str:
    """Turn inline numbered senses ("1. a 2. b") into one sense per line."""
    senses = [part.strip() for part in _SENSE_MARKER.split(text)]
    return "\n".join(sense for sense in senses if sense)


class SeedParser(ABC):
    """Base class for seed formats."""
    name: str = ""

    @abstractmethod
    def parse(self, lines: Iterable[str]) -> ParseResult:
        """Parse source lines into entries, collecting warnings for bad lines."""
        raise NotImplementedError("Subclasses must implement this method")

    def _warn(self, result: ParseResult, line_number: int, line: str, reason: str) -> None:
        warning = SeedParseWarning(line_number, line, reason)
        logger.warning(f"Skipping seed {warning}")
        result.warnings.append(warning)


class GroupedTextParser(SeedParser):
    """Format with explicit ``Group <n>`` headers.

    Any line starting with ``Group`` is a header whose last token is the
    group number; headers without one are skipped with a warning.

    ``<term> <definition>`` starts a word. Lines starting with ``<n>.`` or
    ``(`` add another sense to the previous word's definition.
    """
    name = "grouped"

    def parse(self, lines: Iterable[str]) -> ParseResult:
        result = ParseResult()
        group = DEFAULT_GROUP
        current: Optional[Dict[str, object]] = None

        def flush() -> None:
            nonlocal current
            if current is None:
                return
            definition = "\n".join(current["senses"]).strip()
            if definition:
                result.entries.append(
                    SeedEntry(current["term"], definition, current["group"], current["line_number"])
                )
            else:
                self._warn(result, current["line_number"], current["line"], "missing definition")
            current = None

        for line_number, raw_line in enumerate(lines, start=1):
            line = raw_line.strip()
            if not line:
                continue

            if line.startswith("Group"):
                flush()
                try:
                    group = int(line.split()[-1])
                except ValueError:
                    self._warn(result, line_number, line, "invalid group header")
                continue

            numbered = _NUMBERED_LINE.match(line)
            if numbered or line.startswith("("):
                sense = numbered.group(1).strip() if numbered else line
                if current is None:
                    self._warn(result, line_number, line, "definition without a word")
                elif sense:
                    current["senses"].append(sense)
                continue

            flush()
            term, _, definition = line.partition(" ")
            definition = split_senses(definition.strip())
            current = {
                "term": term,
                "senses": [definition] if definition else [],
                "group": group,
                "line_number": line_number,
                "line": line,
            }

        flush()
        return result


class ChunkedTsvParser(SeedParser):
    """``term<TAB>definition`` lines, grouped by a fixed number of words."""
    name = "tsv"

    def __init__(self, chunk_size: Optional[int] = None):
        self.chunk_size = chunk_size or settings.learning.seed_chunk_size
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be positive")

    def parse(self, lines: Iterable[str]) -> ParseResult:
        result = ParseResult()
        for line_number, raw_line in enumerate(lines, start=1):
            line = raw_line.strip()
            if not line:
                continue
            term, tab, definition = line.partition("\t")
            term, definition = term.strip(), definition.strip()
            if not tab or not term or not definition:
                self._warn(result, line_number, line, "expected term<TAB>definition")
                continue
            group = len(result.entries) // self.chunk_size + 1
            result.entries.append(SeedEntry(term, split_senses(definition), group, line_number))
        return result


SEED_PARSERS: Dict[str, Type[SeedParser]] = {
    GroupedTextParser.name: GroupedTextParser,
    ChunkedTsvParser.name: ChunkedTsvParser,
}


def get_parser(name: Optional[str] = None, chunk_size: Optional[int] = None) -> SeedParser:
    """Get a parser instance by format name (defaults from settings)."""
    name = name or settings.learning.seed_format
    if name not in SEED_PARSERS:
        raise ValueError(f"Unknown seed format: {name}")
    if name == ChunkedTsvParser.name:
        return ChunkedTsvParser(chunk_size)
    return SEED_PARSERS[name]()


def read_seed_file(path: Union[str, Path], parser: Optional[SeedParser] = None) -> ParseResult:
    """Read and parse a seed file, raising IoFailure if it cannot be read."""
    parser = parser or get_parser()
    try:
        content = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise IoFailure(f"Cannot read seed file {path}: {e}") from e

    result = parser.parse(content.splitlines())
    logger.info(
        f"Parsed {len(result.entries)} entries from {path} "
        f"({parser.name} format, {len(result.warnings)} malformed lines)"
    )
    return result
