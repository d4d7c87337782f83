"""
Entity list parsing.

Applications and dashboards come back from the Config Exporter and the
controller UI as JSON arrays of ``{"name": ..., "id": ...}`` objects. They are
filtered by a name regex and flattened into an alternating stream of name and
id lines, the same shape a ``jq '.[] | select(.name | test(re)) | .name, .id'``
extraction produces. :func:`parse_entities` correlates that stream back into
ordered ``(name, id)`` records.

A name that spans several lines is re-joined with single spaces. A name made
only of digits is indistinguishable from an id and will be read as one.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

from ..shared.exceptions import HttpError

ID_LINE = re.compile(r"^[0-9]+$")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntityInfo:
    """An application or dashboard matched by a name filter."""

    name: str
    id: int

    def __str__(self) -> str:
        return f"{self.name}={self.id}"


def flatten_entities(records: Iterable[Any], regex: str) -> List[str]:
    """Select records whose name matches ``regex`` and emit their name and id lines.

    Args:
        records: Decoded JSON array of objects with ``name`` and ``id`` keys
        regex: Name filter, matched anywhere in the name (``re.search``)

    Returns:
        Alternating name / id lines, in record order
    """
    pattern = re.compile(regex)
    lines: List[str] = []
    for record in records:
        if not isinstance(record, dict):
            continue
        name = record.get("name")
        if name is None or record.get("id") is None:
            continue
        name = str(name)
        if not pattern.search(name):
            continue
        lines.extend(name.splitlines())
        lines.append(str(record["id"]))
    return lines


def parse_entities(raw_lines: Iterable[str]) -> List[EntityInfo]:
    """Correlate an alternating name / id line stream into entity records.

    A line made of digits only closes the current name with that id. Any
    other line starts a new name when the previous line was an id, or is
    appended to the current name (separated by a space) when it was not.

    Args:
        raw_lines: Name and id lines as produced by :func:`flatten_entities`

    Returns:
        Ordered list of EntityInfo
    """
    entities: List[EntityInfo] = []
    name_parts: List[str] = []
    last_info = "id"

    for line in raw_lines:
        line = line.strip()
        if not line:
            continue
        if ID_LINE.match(line):
            entities.append(EntityInfo(" ".join(name_parts), int(line)))
            name_parts = []
            last_info = "id"
        else:
            if last_info == "id":
                name_parts = [line]
            else:
                name_parts.append(line)
            last_info = "name"

    if name_parts and last_info == "name":
        logger.debug(f"Ignoring trailing name without id: {' '.join(name_parts)}")
    return entities


def format_entities(entities: Iterable[EntityInfo]) -> str:
    """Render entities as ``name1=id1,name2=id2,`` for log messages."""
    return "".join(f"{entity}," for entity in entities)


def find_entity_by_name(name: str, entities: Iterable[EntityInfo]) -> Optional[EntityInfo]:
    """Return the first entity whose name is exactly ``name``."""
    for entity in entities:
        if entity.name == name:
            return entity
    return None


def get_entities_info(client, url: str, regex: str, authenticated: bool = False,
                      session=None) -> List[EntityInfo]:
    """Fetch a JSON entity list and return the entries whose name matches ``regex``.

    Args:
        client: AppDynamicsAPIClient instance
        url: Listing endpoint returning a JSON array of ``{name, id}`` objects
        regex: Name filter
        authenticated: Whether the listing call needs controller credentials
        session: ControllerSession for authenticated controller calls

    Raises:
        HttpError: If the listing cannot be fetched or is not a JSON array
    """
    records = client.get_json(session, authenticated, url)
    if not isinstance(records, list):
        raise HttpError(f"Unexpected entity list returned by {url}", url=url)
    return parse_entities(flatten_entities(records, regex))
