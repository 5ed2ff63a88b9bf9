import json

from schemas.dto import Item

RECIPE_SYSTEM_PROMPT = """
You are a JSON recipe generator. Based on the user's items, return as many unique recipes as possible using different combinations of the items. Each recipe must be a valid JSON object with these exact keys:
- "title": string (a catchy name)
- "ingredients": string[] (only the ingredients used for this recipe)
- "instructions": string (multi-step instructions, with each step numbered like '1. Do this.', '2. Then this.', etc.)

Respond ONLY with a single JSON array of recipe objects. Do NOT include any other text. Each recipe can use a subset of the items; do NOT try to use all items in every recipe.
"""

IDENTIFY_SYSTEM_PROMPT = """
You are an AI food item identifier. Your job is to identify food items in images and return JSON with:
- "name": The food item's name (simple, 1-3 words)
- "description": A brief description (optional, one short sentence)

Return ONLY valid JSON with these two fields. No other text."""

IDENTIFY_USER_PROMPT = "What food item is in this image? Respond with JSON only."


def _serialize(item):
    if isinstance(item, Item):
        d = {"name": item.name}
        if item.description:
            d["description"] = item.description
        return d
    return item


def build_recipe_prompt(items: list) -> str:
    listing = json.dumps([_serialize(i) for i in items], indent=2, ensure_ascii=False)
    return (
        f"Here is a list of available items:\n{listing}\n\n"
        "Please generate as many valid and creative recipe combinations as possible. "
        "Each recipe should use a subset of the ingredients."
    )


def build_recipe_messages(items: list) -> list[dict]:
    """System + user chat messages asking the model for a JSON array of recipes."""
    return [
        {"role": "system", "content": RECIPE_SYSTEM_PROMPT},
        {"role": "user", "content": build_recipe_prompt(items)},
    ]


def build_identify_messages(image_b64: str, mime_type: str = "image/jpeg") -> list[dict]:
    return [
        {"role": "system", "content": IDENTIFY_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": [
                {"type": "text", "text": IDENTIFY_USER_PROMPT},
                {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{image_b64}"}},
            ],
        },
    ]
