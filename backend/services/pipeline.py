import logging
from dataclasses import dataclass, field
from typing import List, Optional

from pydantic import ValidationError

from schemas.dto import GenerateRequest, IdentifiedItem, Recipe
from services.errors import ErrorInfo, InvalidInput, InvalidModelOutput, normalize_error
from services.extractor import extract_recipes, parse_identified_item, raw_output_recipe
from services.gateway import ModelGateway
from services.prompts import build_identify_messages, build_recipe_messages

logger = logging.getLogger(__name__)

INVALID_OUTPUT_MODES = ("error", "raw")


@dataclass
class PipelineResult:
    recipes: List[Recipe] = field(default_factory=list)
    error: Optional[ErrorInfo] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class IdentifyResult:
    item: Optional[IdentifiedItem] = None
    error: Optional[ErrorInfo] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def validate_items(items) -> list:
    """Check the raw request items; raises InvalidInput before anything is sent upstream."""
    if not isinstance(items, list) or not items:
        raise InvalidInput()
    try:
        return GenerateRequest(items=items).items
    except ValidationError as e:
        first = e.errors()[0]
        loc = ".".join(str(p) for p in first["loc"])
        raise InvalidInput(f"{loc}: {first['msg']}")


class RecipePipeline:
    """
    items -> prompt -> model -> recipes.

    Every call is independent. Failures come back normalized on the result,
    never raised. `on_invalid_output` picks what happens when the model
    answers with something that is not a recipe array: "error" reports
    InvalidModelOutput, "raw" hands back a single pseudo-recipe holding the
    text.
    """

    def __init__(self, gateway: ModelGateway, on_invalid_output: str = "error"):
        if on_invalid_output not in INVALID_OUTPUT_MODES:
            raise ValueError(f"on_invalid_output must be one of {INVALID_OUTPUT_MODES}")
        self.gateway = gateway
        self.on_invalid_output = on_invalid_output

    def generate(self, items, on_invalid_output: Optional[str] = None) -> PipelineResult:
        mode = on_invalid_output or self.on_invalid_output
        if mode not in INVALID_OUTPUT_MODES:
            return PipelineResult(error=ErrorInfo(400, f"on_invalid must be one of {', '.join(INVALID_OUTPUT_MODES)}"))

        try:
            clean = validate_items(items)
            raw = self.gateway.complete(build_recipe_messages(clean))
            recipes = extract_recipes(raw)
        except InvalidModelOutput as e:
            if mode == "raw":
                logger.info("Returning raw model output as a recipe")
                return PipelineResult(recipes=[raw_output_recipe(e.raw)])
            return PipelineResult(error=normalize_error(e))
        except Exception as e:
            return PipelineResult(error=normalize_error(e))

        logger.info("Generated %d recipes from %d items", len(recipes), len(clean))
        return PipelineResult(recipes=recipes)

    def identify(self, image_b64: str, mime_type: str = "image/jpeg") -> IdentifyResult:
        if not image_b64:
            return IdentifyResult(error=normalize_error(InvalidInput("image is required")))
        try:
            raw = self.gateway.complete(
                build_identify_messages(image_b64, mime_type),
                model=self.gateway.config.vision_model,
            )
            return IdentifyResult(item=parse_identified_item(raw))
        except Exception as e:
            return IdentifyResult(error=normalize_error(e))
