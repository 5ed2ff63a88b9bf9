import json
import logging
import re

from pydantic import TypeAdapter, ValidationError

from schemas.dto import IdentifiedItem, Recipe
from services.errors import InvalidModelOutput

logger = logging.getLogger(__name__)

RAW_OUTPUT_TITLE = "🔍 Raw AI Output"

LEADING_FENCE_RE = re.compile(r"^```(?:json)?\s*", re.I)
TRAILING_FENCE_RE = re.compile(r"\s*```$")
NAME_RE = re.compile(r'"name"\s*:\s*"([^"]+)"')
DESCRIPTION_RE = re.compile(r'"description"\s*:\s*"([^"]+)"')

_recipes = TypeAdapter(list[Recipe])


def strip_fences(raw: str) -> str:
    text = raw.strip()
    text = LEADING_FENCE_RE.sub("", text, count=1)
    text = TRAILING_FENCE_RE.sub("", text, count=1)
    return text.strip()


def extract_recipes(raw: str) -> list[Recipe]:
    """
    Parse model output into recipes.

    Markdown fences are removed first. The result must be a JSON array whose
    elements all have a string title, a list of string ingredients and string
    instructions; anything else raises InvalidModelOutput holding the
    untouched raw text.
    """
    cleaned = strip_fences(raw)
    try:
        data = json.loads(cleaned)
    except ValueError:
        logger.error("Failed to parse AI response: %s", cleaned)
        raise InvalidModelOutput(raw)

    if not isinstance(data, list):
        logger.error("AI response is not a JSON array: %s", cleaned)
        raise InvalidModelOutput(raw, "AI response is not a list of recipes.")

    try:
        return _recipes.validate_python(data)
    except ValidationError as e:
        logger.error("AI response does not match the recipe shape: %s", e)
        raise InvalidModelOutput(raw, "AI response does not match the recipe format.")


def raw_output_recipe(raw: str) -> Recipe:
    return Recipe(title=RAW_OUTPUT_TITLE, ingredients=[], instructions=raw)


def lenient_parse_item(raw: str) -> IdentifiedItem:
    """Regex fallback for identification replies that are almost-but-not JSON."""
    name = NAME_RE.search(raw)
    desc = DESCRIPTION_RE.search(raw)
    return IdentifiedItem(
        name=name.group(1) if name else "",
        description=desc.group(1) if desc else "",
    )


def parse_identified_item(raw: str) -> IdentifiedItem:
    try:
        data = json.loads(strip_fences(raw))
        if not isinstance(data, dict):
            raise ValueError("not an object")
        item = IdentifiedItem(name=data.get("name"), description=data.get("description"))
        if not item.name:
            raise ValueError("no name")
        return item
    except (ValueError, ValidationError) as e:
        logger.warning("Strict parse of identification failed (%s); trying lenient parse", e)

    item = lenient_parse_item(raw)
    if not item.name:
        raise InvalidModelOutput(raw)
    return item
