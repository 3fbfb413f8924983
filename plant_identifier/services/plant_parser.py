"""Turn the generation service's Korean prose into a ``PlantRecord``.

The service is asked for a ``label: value`` layout followed by two bulleted
sections, but nothing guarantees it complies. Parsing is therefore a single
top-to-bottom scan that keeps whatever it can recognise and ignores the rest:

* scalar labels are detected by substring, so ``**이름:** 몬스테라`` still
  matches, and a later occurrence overwrites an earlier one;
* ``특징:`` and ``주의사항:`` switch the section cursor, and subsequent
  non-empty lines are collected as bullets for that section;
* bullets seen before any section header are dropped.

The scan is a left fold over immutable state, so parsing never mutates a
previously returned record.
"""

from __future__ import annotations

import logging
from enum import Enum
from functools import reduce
from typing import Mapping, NamedTuple

from plant_identifier.schemas import PlantRecord

logger = logging.getLogger(__name__)


class InvalidArgumentError(TypeError):
    """Raised when the parser is called with something other than text."""


class _Section(str, Enum):
    NONE = "none"
    FEATURES = "features"
    PRECAUTIONS = "precautions"


# Checked in order; the first label found on a line wins.
_SCALAR_LABELS: tuple[tuple[str, tuple[str, ...], bool], ...] = (
    ("name", ("이름:", "식물명:"), False),
    ("scientific_name", ("학명:",), False),
    ("water_frequency", ("물주기:",), True),
    ("temperature", ("온도:",), False),
    ("humidity", ("습도:",), False),
)
_SECTION_HEADERS: tuple[tuple[str, _Section], ...] = (
    ("특징:", _Section.FEATURES),
    ("주의사항:", _Section.PRECAUTIONS),
)
_BULLET_MARKERS = ("-", "•")


class _ParseState(NamedTuple):
    fields: Mapping[str, str]
    section: _Section
    features: tuple[str, ...]
    precautions: tuple[str, ...]


_INITIAL_STATE = _ParseState(
    fields={},
    section=_Section.NONE,
    features=(),
    precautions=(),
)


def _match_scalar(line: str) -> str | None:
    for field_name, tokens, case_insensitive in _SCALAR_LABELS:
        haystack = line.casefold() if case_insensitive else line
        for token in tokens:
            needle = token.casefold() if case_insensitive else token
            if needle in haystack:
                return field_name
    return None


def _match_section(line: str) -> _Section | None:
    for token, section in _SECTION_HEADERS:
        if token in line:
            return section
    return None


def _strip_bullet(line: str) -> str:
    if line.startswith(_BULLET_MARKERS):
        return line[1:].strip()
    return line


def _step(state: _ParseState, raw_line: str) -> _ParseState:
    line = raw_line.strip()

    field_name = _match_scalar(line)
    if field_name is not None:
        value = line.split(":", 1)[1].strip()
        return state._replace(fields={**state.fields, field_name: value})

    section = _match_section(line)
    if section is not None:
        return state._replace(section=section)

    if not line or state.section is _Section.NONE:
        return state

    item = _strip_bullet(line)
    if not item:
        return state
    if state.section is _Section.FEATURES:
        return state._replace(features=state.features + (item,))
    return state._replace(precautions=state.precautions + (item,))


def parse_plant_info(text: str) -> PlantRecord:
    """Build a ``PlantRecord`` from free text, filling gaps with defaults."""
    if not isinstance(text, str):
        raise InvalidArgumentError(
            f"Plant description must be a string, got {type(text).__name__}."
        )

    final = reduce(_step, text.splitlines(), _INITIAL_STATE)
    if not final.fields:
        logger.debug("No recognised labels in %d characters of text.", len(text))

    return PlantRecord(
        **final.fields,
        features=final.features,
        precautions=final.precautions,
    )


class PlantInfoParser:
    """Injectable wrapper around :func:`parse_plant_info`."""

    def parse(self, text: str) -> PlantRecord:
        return parse_plant_info(text)


__all__ = ["InvalidArgumentError", "PlantInfoParser", "parse_plant_info"]
